from __future__ import annotations

import json
from pathlib import Path
from typing import Any


def write_summary(data: dict[str, Any], path: Path, *, detector: str) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    payload = {"detector": detector, **data}
    path.write_text(json.dumps(payload, indent=2, sort_keys=True, default=str), encoding="utf-8")
    return path
