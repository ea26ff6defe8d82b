from __future__ import annotations

import json
from pathlib import Path

import pytest
from fastapi.testclient import TestClient

from app.services.blob_store import BlobStore, BlobStoreError, PutOptions

SAMPLE_PATH = Path(__file__).resolve().parents[1] / "examples" / "sample_record.json"


class _BrokenStore(BlobStore):
    name = "broken"

    def __init__(self, status=None):
        self.status = status

    def url_for(self, key):
        return f"https://broken.example.test/{key}"

    def put(self, key, data, opts=None):
        raise BlobStoreError("write refused", status=self.status)

    def get(self, url, *, no_cache=True):
        raise BlobStoreError("read refused", status=self.status)


@pytest.fixture()
def client(monkeypatch) -> TestClient:
    monkeypatch.setenv("BLOB_BACKEND", "memory")
    monkeypatch.setenv("BLOB_PUBLIC_BASE_URL", "http://testserver/blobs")
    monkeypatch.delenv("RESULTS_URL", raising=False)
    from app.main import create_app

    return TestClient(create_app())


def _sample() -> dict:
    return json.loads(SAMPLE_PATH.read_text(encoding="utf-8"))


def test_health_endpoints(client: TestClient) -> None:
    assert client.get("/healthz").json() == {"status": "ok"}
    body = client.get("/api/health").json()
    assert body["status"] == "ok"
    assert body["version"] == "0.1.0"
    assert body["blob_backend"] == "memory"


def test_root_redirects_to_dashboard(client: TestClient) -> None:
    response = client.get("/", follow_redirects=False)
    assert response.status_code == 302
    assert response.headers["location"] == "/api/dashboard"


def test_results_before_first_publish(client: TestClient) -> None:
    response = client.get("/api/results")
    assert response.status_code == 404
    assert response.json() == {"error": "No published results yet", "status": 404}

    dashboard = client.get("/api/dashboard").json()
    assert dashboard["state"] == "error"
    assert dashboard["error"]["reason"] == "no_results"
    assert "live_analysis_url" in dashboard


def test_publish_then_read_back(client: TestClient) -> None:
    record = _sample()

    response = client.post("/api/publish", json={"results": record})
    assert response.status_code == 200
    body = response.json()
    assert body["success"] is True
    assert body["url"] == "http://testserver/blobs/results.json"
    assert body["message"] == "Published! The dashboard will show new results on next load."

    results = client.get("/api/results")
    assert results.status_code == 200
    assert results.json() == record
    assert results.headers["cache-control"] == "no-cache, no-store, must-revalidate"
    assert results.headers["pragma"] == "no-cache"
    assert results.headers["expires"] == "0"

    blob = client.get("/blobs/results.json")
    assert blob.status_code == 200
    assert blob.content == results.content

    assert client.get("/api/results/url").json() == {"url": "http://testserver/blobs/results.json"}

    dashboard = client.get("/api/dashboard")
    assert dashboard.headers["cache-control"] == "no-cache, no-store, must-revalidate"
    payload = dashboard.json()
    assert payload["state"] == "ready"
    assert payload["view"]["risk"]["tier"] == "DANGER ZONE"
    assert payload["view"]["sections"]["models"]["count"] == 1


def test_second_publish_replaces_first(client: TestClient) -> None:
    client.post("/api/publish", json={"results": {"aciScore": 12, "country": "A"}})
    client.post("/api/publish", json={"results": {"aciScore": 81, "country": "B"}})

    assert client.get("/api/results").json() == {"aciScore": 81, "country": "B"}
    view = client.get("/api/dashboard").json()["view"]
    assert view["risk"]["tier"] == "Authoritarian Regime"
    assert view["probability"] == "85%+"


@pytest.mark.parametrize("body", [[], {"record": {}}, "text"])
def test_publish_requires_results_envelope(client: TestClient, body) -> None:
    response = client.post("/api/publish", json=body)
    assert response.status_code == 400
    assert response.json()["error"] == "Publish failed"


@pytest.mark.parametrize("raw", [b"{not json", b"", b"\xff\xfe\x00"])
def test_publish_rejects_unparseable_body(client: TestClient, raw) -> None:
    response = client.post("/api/publish", content=raw, headers={"content-type": "application/json"})

    assert response.status_code == 400
    body = response.json()
    assert body["error"] == "Publish failed"
    assert "not valid JSON" in body["details"]
    assert client.get("/api/results").status_code == 404


def test_publish_failure_is_500(client: TestClient) -> None:
    client.app.state.blob_store = _BrokenStore(status=503)

    response = client.post("/api/publish", json={"results": {"aciScore": 40}})

    assert response.status_code == 500
    assert response.json() == {"error": "Publish failed", "details": "write refused"}


def test_results_proxy_status_mapping(client: TestClient) -> None:
    client.app.state.blob_store = _BrokenStore(status=403)
    response = client.get("/api/results")
    assert response.status_code == 404
    assert response.json() == {"error": "No published results yet", "status": 403}

    client.app.state.blob_store = _BrokenStore(status=None)
    response = client.get("/api/results")
    assert response.status_code == 500
    assert response.json() == {"error": "Failed to fetch results", "details": "read refused"}

    assert client.get("/api/dashboard").json()["error"]["reason"] == "unavailable"


def test_results_with_invalid_json_is_500(client: TestClient) -> None:
    client.app.state.blob_store.put("results.json", b"<html>not json</html>")

    response = client.get("/api/results")
    assert response.status_code == 500
    assert response.json()["error"] == "Failed to fetch results"


def test_unknown_blob_is_404(client: TestClient) -> None:
    assert client.get("/blobs/missing.json").status_code == 404


def test_private_blob_is_not_served(client: TestClient) -> None:
    store = client.app.state.blob_store
    store.put("draft.json", b'{"aciScore": 1}', PutOptions(access="private"))
    store.put("shared.json", b'{"aciScore": 2}', PutOptions(access="public"))

    response = client.get("/blobs/draft.json")
    assert response.status_code == 404
    assert response.json() == {"error": "not_found"}
    assert client.get("/blobs/shared.json").json() == {"aciScore": 2}


def test_database_backend(monkeypatch, tmp_path) -> None:
    monkeypatch.setenv("BLOB_BACKEND", "database")
    monkeypatch.setenv("DATABASE_URL", f"sqlite:///{(tmp_path / 'api.db').as_posix()}")
    monkeypatch.setenv("BLOB_PUBLIC_BASE_URL", "http://testserver/blobs")
    from app.main import create_app

    client = TestClient(create_app())
    assert client.get("/api/results").status_code == 404
    assert client.post("/api/publish", json={"results": {"aciScore": 45}}).status_code == 200
    assert client.get("/api/results").json() == {"aciScore": 45}
    assert client.get("/api/health").json()["blob_backend"] == "database"

    import app.db as app_db

    if app_db.engine is not None:
        app_db.engine.dispose()
