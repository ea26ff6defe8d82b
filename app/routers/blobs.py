from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse, Response

from app.dependencies import get_blob_store
from app.routers.results import NO_CACHE_HEADERS
from app.services.blob_store import BlobNotFound, BlobStore, BlobStoreError, LocalBlobStore

router = APIRouter(tags=["blobs"])


@router.get("/blobs/{key:path}")
def read_blob(key: str, store: BlobStore = Depends(get_blob_store)):
    if not isinstance(store, LocalBlobStore):
        return JSONResponse(status_code=404, content={"error": "not_found"})
    try:
        obj = store.read(key)
    except BlobNotFound:
        return JSONResponse(status_code=404, content={"error": "not_found"})
    except BlobStoreError as exc:
        return JSONResponse(status_code=503, content={"error": "unavailable", "details": str(exc)})
    if obj.access != "public":
        return JSONResponse(status_code=404, content={"error": "not_found"})
    return Response(content=obj.content, media_type=obj.content_type, headers=NO_CACHE_HEADERS)
