from fastapi import Request

from app.config import Settings
from app.services.blob_store import BlobStore


def get_blob_store(request: Request) -> BlobStore:
    return request.app.state.blob_store


def get_app_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_artifact_url(request: Request) -> str:
    return request.app.state.artifact_url
