import os
from functools import lru_cache
from pathlib import Path

BASE_DIR = Path(__file__).resolve().parent.parent


def _load_env_file_if_present() -> None:
    env_file = BASE_DIR / ".env"
    if not env_file.exists():
        return
    try:
        lines = env_file.read_text(encoding="utf-8", errors="replace").splitlines()
    except OSError:
        return

    for raw in lines:
        line = raw.strip()
        if not line or line.startswith("#") or "=" not in line:
            continue
        key, value = line.split("=", 1)
        key = key.strip()
        if not key or key in os.environ:
            continue
        value = value.strip()
        if len(value) >= 2 and value[0] == value[-1] and value[0] in {"'", '"'}:
            value = value[1:-1]
        os.environ[key] = value


_load_env_file_if_present()


BLOB_BACKENDS = ("memory", "database", "http")


def _default_runtime_dir() -> Path:
    return BASE_DIR / "data"


def _split_csv(raw: str) -> list[str]:
    return [item.strip() for item in (raw or "").split(",") if item.strip()]


class Settings:
    def __init__(self) -> None:
        self.app_name: str = os.getenv("APP_NAME", "Polybius")
        self.app_env: str = os.getenv("APP_ENV", "dev")
        self.runtime_dir: Path = Path(os.getenv("RUNTIME_DIR", str(_default_runtime_dir()))).expanduser()
        default_db_path: Path = self.runtime_dir / "polybius.db"
        self.database_url: str = os.getenv("DATABASE_URL", f"sqlite:///{default_db_path.as_posix()}")

        backend = os.getenv("BLOB_BACKEND", "database").strip().lower()
        self.blob_backend: str = backend if backend in BLOB_BACKENDS else "database"
        # The one fixed key every publish overwrites.
        self.blob_key: str = os.getenv("BLOB_KEY", "results.json").strip().strip("/") or "results.json"
        self.blob_public_base_url: str = os.getenv("BLOB_PUBLIC_BASE_URL", "http://127.0.0.1:8000/blobs").rstrip("/")
        self.blob_api_url: str = os.getenv("BLOB_API_URL", "https://blob.vercel-storage.com").rstrip("/")
        self.blob_read_write_token: str = os.getenv("BLOB_READ_WRITE_TOKEN", "")
        self.results_url: str = os.getenv("RESULTS_URL", "").strip()

        self.request_timeout_seconds: int = int(os.getenv("REQUEST_TIMEOUT_SECONDS", "15"))
        self.live_analysis_url: str = os.getenv("LIVE_ANALYSIS_URL", "https://app.polybius.world")
        self.publish_message: str = os.getenv(
            "PUBLISH_MESSAGE",
            "Published! The dashboard will show new results on next load.",
        )
        self.cors_allowed_origins: list[str] = _split_csv(
            os.getenv("CORS_ALLOWED_ORIGINS", "http://127.0.0.1,http://localhost")
        )
        self.cors_allow_origin_regex: str = os.getenv(
            "CORS_ALLOW_ORIGIN_REGEX",
            r"^https?://(localhost|127\.0\.0\.1)(:\d+)?$",
        )


@lru_cache
def get_settings() -> Settings:
    return Settings()
