import logging
import os
from datetime import datetime
from pathlib import Path

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy.exc import OperationalError

from app import db as app_db
from app import models as _models  # noqa: F401 - register SQLAlchemy models before create_all
from app.config import get_settings
from app.routers import blobs, dashboard, publish, results
from app.services.blob_store import build_blob_store
from polybius import get_runtime_version


def _sqlite_path_from_url(database_url: str) -> Path | None:
    url = (database_url or "").strip()
    if not url.startswith("sqlite:///"):
        return None
    raw = url[len("sqlite:///") :]
    return Path(raw) if raw and raw != ":memory:" else None


def _backup_sqlite_files(db_path: Path, backup_dir: Path) -> None:
    ts = datetime.utcnow().strftime("%Y%m%d_%H%M%S")
    backup_dir.mkdir(parents=True, exist_ok=True)
    for p in (db_path, Path(str(db_path) + "-journal"), Path(str(db_path) + "-wal")):
        if p.exists():
            try:
                os.replace(str(p), str(backup_dir / f"{p.name}.recovery.{ts}"))
            except OSError:
                logging.getLogger(__name__).exception("Failed to backup sqlite file: %s", p)


def _initialize_db_schema(database_url: str) -> None:
    active_engine = app_db.configure_database(database_url)
    app_db.Base.metadata.create_all(bind=active_engine)


def _init_db_with_recovery(settings) -> None:
    """
    Create the blob table, moving a corrupted SQLite file aside and starting fresh if needed.
    The artifact is replaced on every publish, so losing it only means "no results yet".
    """
    logger = logging.getLogger(__name__)
    try:
        _initialize_db_schema(settings.database_url)
        return
    except OperationalError as e:
        if "disk i/o error" not in str(e).lower():
            raise
        db_path = _sqlite_path_from_url(settings.database_url)
        if not db_path:
            raise

    logger.warning("SQLite disk I/O error detected. Backing up DB and creating a fresh database: %s", db_path)
    _backup_sqlite_files(db_path, settings.runtime_dir / "db_recovery")
    _initialize_db_schema(settings.database_url)


def create_app() -> FastAPI:
    # Respect runtime env overrides (tests, launchers, temporary runs).
    get_settings.cache_clear()
    settings = get_settings()

    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )

    app = FastAPI(title=settings.app_name)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_allowed_origins or ["http://127.0.0.1", "http://localhost"],
        allow_origin_regex=settings.cors_allow_origin_regex,
        allow_methods=["GET", "POST"],
        allow_headers=["*"],
    )

    if settings.blob_backend == "database":
        _init_db_with_recovery(settings)

    store = build_blob_store(settings)
    app.state.settings = settings
    app.state.blob_store = store
    app.state.artifact_url = settings.results_url or store.url_for(settings.blob_key)
    logging.getLogger(__name__).info(
        "Blob backend=%s artifact=%s", store.name, app.state.artifact_url
    )

    app.include_router(publish.router)
    app.include_router(results.router)
    app.include_router(dashboard.router)
    app.include_router(blobs.router)

    @app.get("/healthz")
    def healthz():
        return {"status": "ok"}

    @app.get("/api/health")
    def api_health():
        return {"status": "ok", "version": get_runtime_version(), "blob_backend": store.name}

    return app


app = create_app()
