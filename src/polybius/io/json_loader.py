from __future__ import annotations

import json
from pathlib import Path
from typing import Any


def load_record_file(path: Path) -> dict[str, Any]:
    raw = json.loads(path.read_text(encoding="utf-8"))
    if not isinstance(raw, dict):
        raise ValueError("Input JSON must be an analysis record object.")
    # Accept the publish request envelope as well as a bare record.
    if set(raw) == {"results"} and isinstance(raw["results"], dict):
        return raw["results"]
    return raw


def dump_result_file(path: Path, payload: dict[str, object]) -> None:
    path.write_text(json.dumps(payload, indent=2) + "\n", encoding="utf-8")
