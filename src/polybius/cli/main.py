from __future__ import annotations

import argparse
import sys
from pathlib import Path

from ..core import classify
from ..io import dump_result_file, load_record_file


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="polybius-classify",
        description="Classify a published analysis record into the dashboard view.",
    )
    parser.add_argument("input", help="JSON file containing an analysis record (or a {results: ...} envelope)")
    parser.add_argument(
        "--out",
        default="examples/output/view.json",
        help="Output JSON file path (default: examples/output/view.json)",
    )
    return parser


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    input_path = Path(args.input).resolve()
    output_path = Path(args.out).resolve()

    if not input_path.exists() or not input_path.is_file():
        print(f"error: input file not found: {input_path}", file=sys.stderr)
        return 2

    try:
        record = load_record_file(input_path)
    except ValueError as exc:
        print(f"error: invalid input: {exc}", file=sys.stderr)
        return 2

    view = classify(record)

    output_path.parent.mkdir(parents=True, exist_ok=True)
    dump_result_file(output_path, view)

    print(f"tier={view['risk']['tier']}")
    print(f"probability={view['probability']}")
    print(f"wrote={output_path}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
