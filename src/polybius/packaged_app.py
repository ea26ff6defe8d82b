from __future__ import annotations

import argparse
import os
import socket
import tempfile
from pathlib import Path

import uvicorn

from polybius import get_runtime_version

APP_IMPORT_PATH = "app.main:app"
HOST = "127.0.0.1"
PREFERRED_PORT = 8000


def _can_bind(host: str, port: int) -> bool:
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as sock:
        sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        try:
            sock.bind((host, int(port)))
            return True
        except OSError:
            return False


def _find_port(host: str, preferred_port: int = PREFERRED_PORT, max_attempts: int = 50) -> int:
    if _can_bind(host, preferred_port):
        return preferred_port

    for port in range(preferred_port + 1, preferred_port + 1 + max_attempts):
        if _can_bind(host, port):
            return int(port)

    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as sock:
        sock.bind((host, 0))
        return int(sock.getsockname()[1])


def _resolve_runtime_dir() -> Path:
    configured = os.getenv("RUNTIME_DIR", "").strip()
    candidates = [Path(configured).expanduser()] if configured else []
    candidates.append(Path.home() / ".polybius" / "data")
    candidates.append(Path(tempfile.gettempdir()) / "Polybius" / "data")

    for candidate in candidates:
        try:
            candidate.mkdir(parents=True, exist_ok=True)
            return candidate
        except OSError:
            continue
    raise RuntimeError("Unable to create a writable runtime data directory.")


def _configure_runtime_env(host: str, port: int) -> Path:
    runtime_dir = _resolve_runtime_dir()
    os.environ.setdefault("RUNTIME_DIR", str(runtime_dir))
    db_path = runtime_dir / "polybius.db"
    os.environ.setdefault("DATABASE_URL", f"sqlite:///{db_path.as_posix()}")
    # Locally stored artifacts are served back by this same process.
    os.environ.setdefault("BLOB_PUBLIC_BASE_URL", f"http://{host}:{port}/blobs")
    return runtime_dir


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="polybius-serve", description="Serve the Polybius dashboard API.")
    parser.add_argument("--host", default=HOST, help=f"Bind host (default: {HOST})")
    parser.add_argument("--port", type=int, default=0, help=f"Bind port (default: first free from {PREFERRED_PORT})")
    return parser


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    port = args.port or _find_port(args.host)
    data_dir = _configure_runtime_env(args.host, port)
    from app.main import create_app

    fastapi_app = create_app()
    base_url = f"http://{args.host}:{port}"
    print(f"Version: {get_runtime_version()}", flush=True)
    print(f"Dashboard: {base_url}/api/dashboard", flush=True)
    print(f"Data dir: {data_dir.resolve()}", flush=True)
    print(f"App import path: {APP_IMPORT_PATH}", flush=True)

    uvicorn.run(
        fastapi_app,
        host=args.host,
        port=port,
        reload=False,
        access_log=False,
        log_level="warning",
    )
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
