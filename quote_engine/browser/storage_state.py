"""Optional on-disk persistence of browser storage state per session key."""

from __future__ import annotations

import logging
import time
from pathlib import Path
from typing import Any, List, Optional

from quote_engine.utils.file_ops import safe_component

LOGGER = logging.getLogger(__name__)


class StorageStateStore:
    """Keeps ``<directory>/<key>-state.json`` files for a fixed retention window."""

    def __init__(self, directory: Path | str = "session-states", *, retention_hours: float = 24.0, enabled: bool = True) -> None:
        self.directory = Path(directory)
        self.retention_seconds = retention_hours * 3600
        self.enabled = enabled

    def path_for(self, key: str) -> Path:
        return self.directory / f"{safe_component(key)}-state.json"

    def _is_fresh(self, path: Path, now: float | None = None) -> bool:
        age = (now or time.time()) - path.stat().st_mtime
        return age < self.retention_seconds

    def load(self, key: str) -> Optional[str]:
        """Return the state file path when a fresh one exists for ``key``."""

        if not self.enabled:
            return None
        path = self.path_for(key)
        if path.exists() and self._is_fresh(path):
            LOGGER.info("Reusing stored session state for %s", key)
            return str(path)
        return None

    async def save(self, context: Any, key: str) -> Optional[Path]:
        if not self.enabled:
            return None
        path = self.path_for(key)
        path.parent.mkdir(parents=True, exist_ok=True)
        try:
            await context.storage_state(path=str(path))
        except Exception as exc:  # noqa: BLE001 - persistence is best effort
            LOGGER.warning("Could not save session state for %s: %s", key, exc)
            return None
        return path

    def purge_expired(self, now: float | None = None) -> List[Path]:
        """Delete state files older than the retention window."""

        if not self.directory.exists():
            return []
        removed: List[Path] = []
        for path in self.directory.glob("*-state.json"):
            if not self._is_fresh(path, now):
                path.unlink(missing_ok=True)
                removed.append(path)
        if removed:
            LOGGER.info("Purged %d expired session state files", len(removed))
        return removed


__all__ = ["StorageStateStore"]
