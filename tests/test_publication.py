from __future__ import annotations

import json
import tempfile
import threading
from pathlib import Path

import pytest
from sqlalchemy import func, select

import app.db as app_db
from app.models import StoredBlob
from app.services.blob_store import (
    BlobNotFound,
    BlobStore,
    BlobStoreError,
    DatabaseBlobStore,
    MemoryBlobStore,
    PutOptions,
)
from app.services.publication import PublishError, publish, serialize_record

KEY = "results.json"


class _FailingStore(BlobStore):
    name = "failing"

    def url_for(self, key: str) -> str:
        return f"failing://{key}"

    def put(self, key, data, opts=None):
        raise BlobStoreError("storage quota exceeded", status=503)

    def get(self, url, *, no_cache=True):
        raise BlobStoreError("unreachable")


def _init_test_db(db_path: Path) -> None:
    app_db.configure_database(f"sqlite:///{db_path.as_posix()}")
    assert app_db.engine is not None
    app_db.Base.metadata.drop_all(bind=app_db.engine)
    app_db.Base.metadata.create_all(bind=app_db.engine)


def test_publish_then_get_round_trips_record() -> None:
    store = MemoryBlobStore("http://testserver/blobs")
    record = {"country": "United States", "aciScore": 47.5, "scores": {"judicial": 41}, "note": "naïve"}

    result = publish(record, store, key=KEY)

    assert result.url == "http://testserver/blobs/results.json"
    assert result.key == KEY
    assert json.loads(store.get(result.url).decode("utf-8")) == record


def test_publish_overwrites_fixed_key() -> None:
    store = MemoryBlobStore("http://testserver/blobs")

    first = publish({"aciScore": 10}, store, key=KEY)
    second = publish({"aciScore": 70}, store, key=KEY)

    assert first.url == second.url
    assert json.loads(store.get(second.url)) == {"aciScore": 70}


def test_publish_to_database_store_keeps_single_row() -> None:
    with tempfile.TemporaryDirectory(prefix="polybius-publish-") as temp_dir:
        _init_test_db(Path(temp_dir) / "blobs.db")
        store = DatabaseBlobStore(app_db.SessionLocal, "http://testserver/blobs")

        publish({"aciScore": 33}, store, key=KEY)
        result = publish({"aciScore": 66, "country": "X"}, store, key=KEY)

        assert json.loads(store.get(result.url)) == {"aciScore": 66, "country": "X"}
        with app_db.SessionLocal() as db:
            count = db.execute(select(func.count()).select_from(StoredBlob)).scalar_one()
            row = db.execute(select(StoredBlob)).scalar_one()
        assert count == 1
        assert row.key == KEY
        assert row.content_type == "application/json"
        assert row.access == "public"

        if app_db.engine is not None:
            app_db.engine.dispose()
        app_db.configure_database("sqlite:///:memory:")


def test_store_failure_becomes_publish_error() -> None:
    with pytest.raises(PublishError) as excinfo:
        publish({"aciScore": 50}, _FailingStore(), key=KEY)

    assert excinfo.value.details == "storage quota exceeded"
    assert isinstance(excinfo.value.cause, BlobStoreError)


@pytest.mark.parametrize("record", [{"tags": {"a", "b"}}, {"aciScore": float("nan")}])
def test_unserializable_record_is_rejected(record) -> None:
    store = MemoryBlobStore()
    with pytest.raises(PublishError):
        publish(record, store, key=KEY)
    with pytest.raises(BlobNotFound):
        store.get(store.url_for(KEY))


def test_serialized_artifact_is_pretty_utf8_json() -> None:
    data = serialize_record({"country": "Türkiye", "aciScore": 1})
    text = data.decode("utf-8")
    assert "Türkiye" in text
    assert text.startswith("{\n  ")


def test_local_store_put_options() -> None:
    store = MemoryBlobStore("http://testserver/blobs")
    store.put(KEY, b"{}", PutOptions(allow_overwrite=False))

    with pytest.raises(BlobStoreError) as excinfo:
        store.put(KEY, b"{}", PutOptions(allow_overwrite=False))
    assert excinfo.value.status == 409

    suffixed = store.put(KEY, b"{}", PutOptions(add_random_suffix=True))
    assert suffixed != store.url_for(KEY)
    assert suffixed.startswith("http://testserver/blobs/results-")
    assert suffixed.endswith(".json")


def test_local_store_rejects_foreign_urls() -> None:
    store = MemoryBlobStore("http://testserver/blobs")
    publish({"aciScore": 5}, store, key=KEY)

    with pytest.raises(BlobNotFound):
        store.get("http://elsewhere.example/blobs/results.json")
    assert store.get("http://testserver/blobs/results.json?ts=123") == store.read(KEY).content


def test_concurrent_first_publish_to_database_store() -> None:
    with tempfile.TemporaryDirectory(prefix="polybius-race-") as temp_dir:
        _init_test_db(Path(temp_dir) / "race.db")
        store = DatabaseBlobStore(app_db.SessionLocal, "http://testserver/blobs")
        errors: list[Exception] = []

        def _worker(n: int) -> None:
            try:
                publish({"aciScore": n}, store, key=KEY)
            except Exception as exc:
                errors.append(exc)

        threads = [threading.Thread(target=_worker, args=(n,)) for n in range(1, 9)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert errors == []
        with app_db.SessionLocal() as db:
            count = db.execute(select(func.count()).select_from(StoredBlob)).scalar_one()
        assert count == 1
        assert json.loads(store.get(store.url_for(KEY)))["aciScore"] in range(1, 9)

        if app_db.engine is not None:
            app_db.engine.dispose()
        app_db.configure_database("sqlite:///:memory:")


def test_database_store_overwrite_updates_metadata() -> None:
    with tempfile.TemporaryDirectory(prefix="polybius-meta-") as temp_dir:
        _init_test_db(Path(temp_dir) / "meta.db")
        store = DatabaseBlobStore(app_db.SessionLocal, "http://testserver/blobs")

        store.put(KEY, b"one", PutOptions(access="private", content_type="text/plain"))
        store.put(KEY, b"{}", PutOptions())

        obj = store.read(KEY)
        assert obj.content == b"{}"
        assert obj.access == "public"
        assert obj.content_type == "application/json"

        if app_db.engine is not None:
            app_db.engine.dispose()
        app_db.configure_database("sqlite:///:memory:")
