from __future__ import annotations

from fastapi import APIRouter, Depends, Request
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import JSONResponse

from app.config import Settings
from app.dependencies import get_app_settings, get_blob_store
from app.services.blob_store import BlobStore
from app.services.publication import PublishError, publish

router = APIRouter(prefix="/api", tags=["publish"])


def _bad_request(details: str) -> JSONResponse:
    return JSONResponse(status_code=400, content={"error": "Publish failed", "details": details})


@router.post("/publish")
async def api_publish(
    request: Request,
    store: BlobStore = Depends(get_blob_store),
    settings: Settings = Depends(get_app_settings),
):
    try:
        payload = await request.json()
    except ValueError as exc:
        return _bad_request(f"Request body is not valid JSON: {exc.__class__.__name__}")
    if not isinstance(payload, dict) or "results" not in payload:
        return _bad_request("Request body must be a JSON object with a 'results' member")
    try:
        result = await run_in_threadpool(publish, payload["results"], store, key=settings.blob_key)
    except PublishError as exc:
        return JSONResponse(status_code=500, content={"error": "Publish failed", "details": exc.details})
    return {"success": True, "url": result.url, "message": settings.publish_message}
