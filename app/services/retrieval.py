from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from typing import Any

from polybius.core import classify
from polybius.models import as_number

from app.services.blob_store import BlobNotFound, BlobStore, BlobStoreError

logger = logging.getLogger(__name__)

STATE_LOADING = "loading"
STATE_READY = "ready"
STATE_ERROR = "error"

REASON_NO_RESULTS = "no_results"
REASON_UNAVAILABLE = "unavailable"

ERROR_MESSAGES = {
    REASON_NO_RESULTS: "No results have been published yet.",
    REASON_UNAVAILABLE: "Unable to load results. Please try again later.",
}


class RetrievalError(Exception):
    def __init__(self, message: str, *, status: int | None = None, not_found: bool = False) -> None:
        super().__init__(message)
        self.status = status
        self.not_found = not_found


class MalformedArtifactError(RetrievalError):
    pass


class PageStateError(RuntimeError):
    pass


def read_artifact(store: BlobStore, url: str) -> bytes:
    """Read the artifact bytes, always bypassing caches. Raises :class:`RetrievalError`."""
    try:
        return store.get(url, no_cache=True)
    except BlobNotFound as exc:
        logger.warning("Artifact not found: %s", url)
        raise RetrievalError("No published results yet", status=exc.status or 404, not_found=True) from exc
    except BlobStoreError as exc:
        logger.warning("Artifact fetch failed: status=%s err=%s", exc.status, exc)
        raise RetrievalError(str(exc), status=exc.status) from exc


def decode_artifact(raw: bytes) -> Any:
    try:
        return json.loads(raw.decode("utf-8"))
    except (UnicodeDecodeError, ValueError) as exc:
        logger.warning("Artifact is not valid JSON: %s", exc.__class__.__name__)
        raise MalformedArtifactError("Artifact is not valid JSON") from exc


def fetch_artifact(store: BlobStore, url: str) -> Any:
    return decode_artifact(read_artifact(store, url))


def has_aci_signal(payload: Any) -> bool:
    if not isinstance(payload, dict) or "error" in payload:
        return False
    score = payload.get("aciScore")
    return isinstance(score, (int, float)) and not isinstance(score, bool) and as_number(score) > 0


def fetch_record(store: BlobStore, url: str) -> dict[str, Any]:
    payload = fetch_artifact(store, url)
    if not has_aci_signal(payload):
        raise MalformedArtifactError("Artifact has no positive aciScore")
    return payload


@dataclass
class DashboardPage:
    """loading -> ready | error, once per retrieval."""

    state: str = STATE_LOADING
    view: dict[str, Any] | None = None
    reason: str = ""
    message: str = ""
    details: dict[str, Any] = field(default_factory=dict)

    def _leave_loading(self) -> None:
        if self.state != STATE_LOADING:
            raise PageStateError(f"Page already resolved as {self.state}")

    def resolve(self, record: dict[str, Any]) -> "DashboardPage":
        self._leave_loading()
        self.state = STATE_READY
        self.view = classify(record)
        return self

    def fail(self, reason: str, **details: Any) -> "DashboardPage":
        self._leave_loading()
        self.state = STATE_ERROR
        self.reason = reason
        self.message = ERROR_MESSAGES.get(reason, ERROR_MESSAGES[REASON_UNAVAILABLE])
        self.details = dict(details)
        return self

    def to_payload(self) -> dict[str, Any]:
        if self.state == STATE_READY:
            return {"state": self.state, "view": self.view}
        if self.state == STATE_ERROR:
            return {"state": self.state, "error": {"reason": self.reason, "message": self.message}}
        return {"state": self.state}


def load_dashboard(store: BlobStore, url: str) -> DashboardPage:
    """Retrieve and classify the current artifact; never raises for retrieval problems."""
    page = DashboardPage()
    try:
        record = fetch_record(store, url)
    except MalformedArtifactError as exc:
        return page.fail(REASON_UNAVAILABLE, error=str(exc))
    except RetrievalError as exc:
        reason = REASON_NO_RESULTS if exc.not_found else REASON_UNAVAILABLE
        return page.fail(reason, error=str(exc), status=exc.status)
    return page.resolve(record)
