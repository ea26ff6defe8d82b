from __future__ import annotations

import argparse
import sys
from pathlib import Path

import requests

from ..io import load_record_file

DEFAULT_ENDPOINT = "http://127.0.0.1:8000/api/publish"


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="polybius-publish",
        description="Publish an analysis record through the publication gateway.",
    )
    parser.add_argument("input", help="JSON file containing the analysis record to publish")
    parser.add_argument("--endpoint", default=DEFAULT_ENDPOINT, help=f"Gateway URL (default: {DEFAULT_ENDPOINT})")
    parser.add_argument("--timeout", type=int, default=30, help="Request timeout in seconds (default: 30)")
    return parser


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    input_path = Path(args.input).resolve()

    if not input_path.exists() or not input_path.is_file():
        print(f"error: input file not found: {input_path}", file=sys.stderr)
        return 2

    try:
        record = load_record_file(input_path)
    except ValueError as exc:
        print(f"error: invalid input: {exc}", file=sys.stderr)
        return 2

    try:
        res = requests.post(args.endpoint, json={"results": record}, timeout=args.timeout)
    except requests.RequestException as exc:
        print(f"error: publish request failed: {exc.__class__.__name__}: {exc}", file=sys.stderr)
        return 1

    try:
        body = res.json()
    except ValueError:
        body = {}
    if not isinstance(body, dict):
        body = {}
    if res.status_code >= 400 or not body.get("success"):
        details = body.get("details") or body.get("error") or res.text[:200]
        print(f"error: publish failed (status={res.status_code}): {details}", file=sys.stderr)
        return 1

    print(f"url={body.get('url', '')}")
    print(body.get("message", ""))
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
