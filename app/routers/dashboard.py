from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse, RedirectResponse

from app.config import Settings
from app.dependencies import get_app_settings, get_artifact_url, get_blob_store
from app.routers.results import NO_CACHE_HEADERS
from app.services.blob_store import BlobStore
from app.services.retrieval import load_dashboard

router = APIRouter(tags=["dashboard"])


@router.get("/")
def root():
    return RedirectResponse(url="/api/dashboard", status_code=302)


@router.get("/api/dashboard")
def api_dashboard(
    store: BlobStore = Depends(get_blob_store),
    artifact_url: str = Depends(get_artifact_url),
    settings: Settings = Depends(get_app_settings),
):
    page = load_dashboard(store, artifact_url)
    payload = page.to_payload()
    payload["live_analysis_url"] = settings.live_analysis_url
    return JSONResponse(content=payload, headers=NO_CACHE_HEADERS)
