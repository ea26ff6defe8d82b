from __future__ import annotations

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse, Response

from app.dependencies import get_artifact_url, get_blob_store
from app.services.blob_store import BlobStore
from app.services.retrieval import MalformedArtifactError, RetrievalError, decode_artifact, read_artifact

router = APIRouter(prefix="/api", tags=["results"])

NO_CACHE_HEADERS = {
    "Cache-Control": "no-cache, no-store, must-revalidate",
    "Pragma": "no-cache",
    "Expires": "0",
}


@router.get("/results")
def api_results(
    store: BlobStore = Depends(get_blob_store),
    artifact_url: str = Depends(get_artifact_url),
):
    try:
        raw = read_artifact(store, artifact_url)
        decode_artifact(raw)
    except MalformedArtifactError as exc:
        return JSONResponse(status_code=500, content={"error": "Failed to fetch results", "details": str(exc)})
    except RetrievalError as exc:
        # The store answered, just not with the artifact.
        if exc.not_found or exc.status is not None:
            return JSONResponse(
                status_code=404,
                content={"error": "No published results yet", "status": exc.status or 404},
            )
        return JSONResponse(status_code=500, content={"error": "Failed to fetch results", "details": str(exc)})
    # Forward the stored bytes untouched.
    return Response(content=raw, media_type="application/json", headers=NO_CACHE_HEADERS)


@router.get("/results/url")
def api_results_url(artifact_url: str = Depends(get_artifact_url)):
    return JSONResponse(content={"url": artifact_url}, headers=NO_CACHE_HEADERS)
