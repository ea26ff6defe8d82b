from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from typing import Any

from app.services.blob_store import BlobStore, BlobStoreError, PutOptions

logger = logging.getLogger(__name__)

ARTIFACT_PUT_OPTIONS = PutOptions(
    access="public",
    content_type="application/json",
    add_random_suffix=False,
    allow_overwrite=True,
)


class PublishError(Exception):
    def __init__(self, message: str, *, cause: BaseException | None = None) -> None:
        super().__init__(message)
        self.cause = cause

    @property
    def details(self) -> str:
        if self.cause is None:
            return str(self)
        return str(self.cause) or self.cause.__class__.__name__


@dataclass(frozen=True)
class PublishResult:
    url: str
    key: str
    size: int


def serialize_record(record: Any) -> bytes:
    """Pretty-printed UTF-8 JSON, written as-is; the producer is trusted and nothing is validated."""
    try:
        text = json.dumps(record, indent=2, ensure_ascii=False, allow_nan=False)
    except (TypeError, ValueError) as exc:
        raise PublishError("Record is not JSON serializable", cause=exc) from exc
    return text.encode("utf-8")


def publish(record: Any, store: BlobStore, *, key: str) -> PublishResult:
    """
    Write ``record`` to the fixed artifact key, replacing whatever was there.

    Last writer wins: concurrent publishers are not serialized and no retry is
    attempted. Any store failure surfaces as :class:`PublishError`.
    """
    data = serialize_record(record)
    try:
        url = store.put(key, data, ARTIFACT_PUT_OPTIONS)
    except BlobStoreError as exc:
        logger.exception("Publish to %s store failed for key %s", store.name, key)
        raise PublishError("Publish failed", cause=exc) from exc
    logger.info("Published artifact key=%s bytes=%s url=%s", key, len(data), url)
    return PublishResult(url=url, key=key, size=len(data))
