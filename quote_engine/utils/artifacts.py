"""Screenshot and event artifacts for carrier sessions."""

from __future__ import annotations

from datetime import UTC, datetime
from pathlib import Path
from typing import Any, Dict, Optional

from .file_ops import append_jsonl, safe_component, write_bytes


class ArtifactStore:
    """Persists per-session diagnostics under ``<root>/<session key>/``."""

    def __init__(self, root: Path | str = "screenshots", *, enabled: bool = True) -> None:
        self.root = Path(root)
        self.enabled = enabled

    def session_dir(self, session_key: str) -> Path:
        return self.root / safe_component(session_key)

    def save_screenshot(self, session_key: str, payload: bytes, *, name: str | None = None) -> Optional[Path]:
        """Write screenshot bytes and return the path, or None when disabled."""

        if not self.enabled:
            return None
        stamp = datetime.now(UTC).strftime("%Y%m%d_%H%M%S_%f")
        file_name = safe_component(name or "screenshot")
        if not file_name.endswith(".png"):
            file_name = f"{file_name}_{stamp}.png"
        path = self.session_dir(session_key) / file_name
        write_bytes(path, payload)
        self.log_event(session_key, {"event": "screenshot", "path": str(path)})
        return path

    def log_event(self, session_key: str, payload: Dict[str, Any]) -> None:
        if not self.enabled:
            return
        entry = {"timestamp": datetime.now(UTC).isoformat(), "session": session_key, **payload}
        append_jsonl(self.session_dir(session_key) / "events.jsonl", entry)


__all__ = ["ArtifactStore"]
