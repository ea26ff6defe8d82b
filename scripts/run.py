from __future__ import annotations

import argparse
import os
import shlex
import subprocess
import sys
import tomllib
from pathlib import Path


ROOT_DIR = Path(__file__).resolve().parents[1]
DEFAULT_HOST = "127.0.0.1"
DEFAULT_PORT = 8000

DEFAULT_CLASSIFY_ARGS = [
    "examples/sample_record.json",
    "--out",
    "examples/output/view.json",
]


def _format_cmd(cmd: list[str]) -> str:
    if os.name == "nt":
        return subprocess.list2cmdline(cmd)
    return shlex.join(cmd)


def _run(cmd: list[str], *, cwd: Path | None = None, env: dict[str, str] | None = None) -> int:
    print(f"+ {_format_cmd(cmd)}")
    completed = subprocess.run(cmd, cwd=cwd or ROOT_DIR, env=env)
    return completed.returncode


def _venv_python() -> Path:
    if os.name == "nt":
        return ROOT_DIR / ".venv" / "Scripts" / "python.exe"
    return ROOT_DIR / ".venv" / "bin" / "python"


def _python_for_tasks() -> str:
    venv_python = _venv_python()
    if venv_python.exists():
        return str(venv_python)
    return sys.executable


def _ensure_venv() -> int:
    if _venv_python().exists():
        return 0
    return _run([sys.executable, "-m", "venv", ".venv"])


def _has_editable_install_support() -> bool:
    pyproject = ROOT_DIR / "pyproject.toml"
    if not pyproject.exists():
        return False
    try:
        data = tomllib.loads(pyproject.read_text(encoding="utf-8"))
    except (OSError, tomllib.TOMLDecodeError):
        return False
    return "build-system" in data and "project" in data


def _forwarded(raw: list[str] | None) -> list[str]:
    passthrough = list(raw or [])
    if passthrough and passthrough[0] == "--":
        passthrough = passthrough[1:]
    return passthrough


def cmd_setup(args: argparse.Namespace) -> int:
    if args.venv:
        code = _ensure_venv()
        if code != 0:
            return code
    if not _has_editable_install_support():
        print("error: pyproject.toml is missing or has no [build-system]/[project].", file=sys.stderr)
        return 2
    return _run([_python_for_tasks(), "-m", "pip", "install", "-e", ".[dev]"])


def cmd_test(args: argparse.Namespace) -> int:
    return _run([_python_for_tasks(), "-m", "pytest", *_forwarded(args.pytest_args)])


def cmd_classify(args: argparse.Namespace) -> int:
    passthrough = _forwarded(args.cli_args) or list(DEFAULT_CLASSIFY_ARGS)
    return _run([_python_for_tasks(), "-m", "polybius.cli.main", *passthrough])


def cmd_publish(args: argparse.Namespace) -> int:
    return _run([_python_for_tasks(), "-m", "polybius.cli.publish", *_forwarded(args.cli_args)])


def cmd_web(args: argparse.Namespace) -> int:
    if not (ROOT_DIR / "app" / "main.py").exists():
        print("error: app/main.py not found.", file=sys.stderr)
        return 2

    env = os.environ.copy()
    env.setdefault("BLOB_PUBLIC_BASE_URL", f"http://{args.host}:{args.port}/blobs")
    print(f"starting web app at http://{args.host}:{args.port}")
    cmd = [
        _python_for_tasks(),
        "-m",
        "uvicorn",
        "app.main:app",
        "--host",
        args.host,
        "--port",
        str(args.port),
    ]
    if args.reload:
        cmd.append("--reload")
    return _run(cmd, env=env)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Cross-platform task runner for Polybius.")
    sub = parser.add_subparsers(dest="command", required=True)

    setup_parser = sub.add_parser("setup", help="Install project dependencies.")
    setup_parser.add_argument("--venv", action="store_true", help="Create .venv if missing before install.")
    setup_parser.set_defaults(func=cmd_setup)

    test_parser = sub.add_parser("test", help="Run pytest.")
    test_parser.add_argument("pytest_args", nargs=argparse.REMAINDER, help="Optional pytest args.")
    test_parser.set_defaults(func=cmd_test)

    classify_parser = sub.add_parser("classify", help="Classify a record file into the dashboard view.")
    classify_parser.add_argument("cli_args", nargs=argparse.REMAINDER, help="Args forwarded to polybius.cli.main.")
    classify_parser.set_defaults(func=cmd_classify)

    publish_parser = sub.add_parser("publish", help="Publish a record file to a running server.")
    publish_parser.add_argument("cli_args", nargs=argparse.REMAINDER, help="Args forwarded to polybius.cli.publish.")
    publish_parser.set_defaults(func=cmd_publish)

    web_parser = sub.add_parser("web", help="Run the FastAPI app with uvicorn.")
    web_parser.add_argument("--host", default=DEFAULT_HOST, help="Web host (default: 127.0.0.1).")
    web_parser.add_argument("--port", type=int, default=DEFAULT_PORT, help="Web port (default: 8000).")
    web_parser.add_argument("--reload", action="store_true", help="Enable uvicorn auto-reload.")
    web_parser.set_defaults(func=cmd_web)

    return parser


def main() -> int:
    parser = build_parser()
    args = parser.parse_args()
    return int(args.func(args))


if __name__ == "__main__":
    raise SystemExit(main())
