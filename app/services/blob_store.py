from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from pathlib import PurePosixPath
from threading import Lock
from typing import Callable
from urllib.parse import urlsplit
from uuid import uuid4

import requests
from sqlalchemy import select
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app import db as app_db
from app.models import StoredBlob

# Dialects with INSERT .. ON CONFLICT; others fall back to select-then-write.
_UPSERT_INSERTS = {"sqlite": sqlite.insert, "postgresql": postgresql.insert}


class BlobStoreError(Exception):
    def __init__(self, message: str, *, status: int | None = None) -> None:
        super().__init__(message)
        self.status = status


class BlobNotFound(BlobStoreError):
    pass


@dataclass(frozen=True)
class PutOptions:
    access: str = "public"
    content_type: str = "application/json"
    add_random_suffix: bool = False
    allow_overwrite: bool = True


@dataclass(frozen=True)
class StoredObject:
    content: bytes
    content_type: str
    access: str = "public"


def _suffixed(key: str) -> str:
    path = PurePosixPath(key)
    return str(path.with_name(f"{path.stem}-{uuid4().hex[:8]}{path.suffix}"))


class BlobStore:
    """put/get over keys; ``get`` takes the public URL that ``put`` returned."""

    name: str = "base"

    def url_for(self, key: str) -> str:
        raise NotImplementedError

    def put(self, key: str, data: bytes, opts: PutOptions | None = None) -> str:
        raise NotImplementedError

    def get(self, url: str, *, no_cache: bool = True) -> bytes:
        raise NotImplementedError


class LocalBlobStore(BlobStore):
    """Stores that are also served by this process under ``base_url``."""

    def __init__(self, base_url: str) -> None:
        self.base_url = base_url.rstrip("/")

    def url_for(self, key: str) -> str:
        return f"{self.base_url}/{key.lstrip('/')}"

    def key_for(self, url: str) -> str:
        prefix = self.base_url + "/"
        bare = url.split("?", 1)[0].split("#", 1)[0]
        if not bare.startswith(prefix) or len(bare) == len(prefix):
            raise BlobNotFound(f"URL is not served by this store: {url}", status=404)
        return bare[len(prefix) :]

    def read(self, key: str) -> StoredObject:
        raise NotImplementedError

    def write(self, key: str, data: bytes, opts: PutOptions) -> None:
        raise NotImplementedError

    def exists(self, key: str) -> bool:
        try:
            self.read(key)
        except BlobNotFound:
            return False
        return True

    def put(self, key: str, data: bytes, opts: PutOptions | None = None) -> str:
        opts = opts or PutOptions()
        target = _suffixed(key) if opts.add_random_suffix else key.lstrip("/")
        if not opts.allow_overwrite and self.exists(target):
            raise BlobStoreError(f"Blob already exists: {target}", status=409)
        self.write(target, bytes(data), opts)
        return self.url_for(target)

    def get(self, url: str, *, no_cache: bool = True) -> bytes:
        # Nothing sits between a local store and its reader, so no_cache needs no handling.
        return self.read(self.key_for(url)).content


class MemoryBlobStore(LocalBlobStore):
    name = "memory"

    def __init__(self, base_url: str = "memory://blobs") -> None:
        super().__init__(base_url)
        self._lock = Lock()
        self._objects: dict[str, StoredObject] = {}

    def read(self, key: str) -> StoredObject:
        with self._lock:
            obj = self._objects.get(key)
        if obj is None:
            raise BlobNotFound(f"Blob not found: {key}", status=404)
        return obj

    def write(self, key: str, data: bytes, opts: PutOptions) -> None:
        with self._lock:
            self._objects[key] = StoredObject(content=data, content_type=opts.content_type, access=opts.access)


class DatabaseBlobStore(LocalBlobStore):
    name = "database"

    def __init__(self, session_factory: Callable[[], Session], base_url: str) -> None:
        super().__init__(base_url)
        self._session_factory = session_factory

    def read(self, key: str) -> StoredObject:
        try:
            with self._session_factory() as db:
                row = db.execute(select(StoredBlob).where(StoredBlob.key == key)).scalar_one_or_none()
                if row is None:
                    raise BlobNotFound(f"Blob not found: {key}", status=404)
                return StoredObject(
                    content=bytes(row.content),
                    content_type=str(row.content_type),
                    access=str(row.access),
                )
        except SQLAlchemyError as exc:
            raise BlobStoreError(f"Blob read failed: {exc.__class__.__name__}") from exc

    def write(self, key: str, data: bytes, opts: PutOptions) -> None:
        values = {
            "key": key,
            "content": data,
            "content_type": opts.content_type,
            "access": opts.access,
            "updated_at": datetime.utcnow(),
        }
        try:
            with self._session_factory() as db:
                insert = _UPSERT_INSERTS.get(db.get_bind().dialect.name)
                if insert is not None:
                    stmt = insert(StoredBlob).values(**values)
                    stmt = stmt.on_conflict_do_update(
                        index_elements=[StoredBlob.key],
                        set_={k: v for k, v in values.items() if k != "key"},
                    )
                    db.execute(stmt)
                else:
                    row = db.execute(select(StoredBlob).where(StoredBlob.key == key)).scalar_one_or_none()
                    if row is None:
                        db.add(StoredBlob(**values))
                    else:
                        for name, value in values.items():
                            setattr(row, name, value)
                db.commit()
        except SQLAlchemyError as exc:
            raise BlobStoreError(f"Blob write failed: {exc.__class__.__name__}") from exc


class HttpBlobStore(BlobStore):
    """Remote blob service: authenticated PUT to ``api_url``, public GET from ``public_base_url``."""

    name = "http"
    api_version = "7"

    def __init__(
        self,
        *,
        api_url: str,
        public_base_url: str,
        token: str,
        timeout_seconds: int = 15,
    ) -> None:
        self.api_url = api_url.rstrip("/")
        self.public_base_url = public_base_url.rstrip("/")
        self.token = token
        self.timeout_seconds = timeout_seconds

    def url_for(self, key: str) -> str:
        return f"{self.public_base_url}/{key.lstrip('/')}"

    def put(self, key: str, data: bytes, opts: PutOptions | None = None) -> str:
        opts = opts or PutOptions()
        if not self.token:
            raise BlobStoreError("BLOB_READ_WRITE_TOKEN is not configured")
        headers = {
            "authorization": f"Bearer {self.token}",
            "x-api-version": self.api_version,
            "x-content-type": opts.content_type,
            "x-add-random-suffix": "1" if opts.add_random_suffix else "0",
            "x-allow-overwrite": "1" if opts.allow_overwrite else "0",
            "x-access": opts.access,
        }
        endpoint = f"{self.api_url}/{key.lstrip('/')}"
        try:
            res = requests.put(endpoint, data=data, headers=headers, timeout=self.timeout_seconds)
        except requests.RequestException as exc:
            raise BlobStoreError(f"Blob upload failed: {exc.__class__.__name__}: {exc}") from exc
        if res.status_code >= 400:
            raise BlobStoreError(f"Blob upload rejected: status={res.status_code} body={res.text[:200]}", status=res.status_code)
        try:
            payload = res.json()
        except ValueError:
            payload = {}
        url = payload.get("url") if isinstance(payload, dict) else None
        return str(url) if url else self.url_for(key)

    def get(self, url: str, *, no_cache: bool = True) -> bytes:
        headers = {"Accept": "application/json"}
        if no_cache:
            headers.update({"Cache-Control": "no-cache", "Pragma": "no-cache"})
        try:
            res = requests.get(url, headers=headers, timeout=self.timeout_seconds)
        except requests.RequestException as exc:
            raise BlobStoreError(f"Blob fetch failed: {exc.__class__.__name__}: {exc}") from exc
        if res.status_code == 404:
            raise BlobNotFound(f"Blob not found: {urlsplit(url).path}", status=404)
        if res.status_code >= 400:
            raise BlobStoreError(f"Blob fetch failed: status={res.status_code}", status=res.status_code)
        return res.content


def build_blob_store(settings) -> BlobStore:
    if settings.blob_backend == "memory":
        return MemoryBlobStore(settings.blob_public_base_url)
    if settings.blob_backend == "http":
        return HttpBlobStore(
            api_url=settings.blob_api_url,
            public_base_url=settings.blob_public_base_url,
            token=settings.blob_read_write_token,
            timeout_seconds=settings.request_timeout_seconds,
        )
    return DatabaseBlobStore(app_db.SessionLocal, settings.blob_public_base_url)
