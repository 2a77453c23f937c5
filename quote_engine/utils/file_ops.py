"""Small helpers for interacting with the filesystem."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Dict


def _ensure_parent(path: Path) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)


def write_bytes(path: Path, payload: bytes) -> None:
    _ensure_parent(path)
    path.write_bytes(payload)


def append_jsonl(path: Path, payload: Dict[str, Any]) -> None:
    """Append one JSON document per line, creating the file when needed."""

    _ensure_parent(path)
    with path.open("a", encoding="utf-8") as handle:
        handle.write(json.dumps(payload, ensure_ascii=False, default=str) + "\n")


def safe_component(value: str) -> str:
    """Reduce an arbitrary key to a filesystem-safe path component."""

    cleaned = "".join(char if char.isalnum() or char in "-_." else "_" for char in value)
    return cleaned.strip(".") or "unnamed"
