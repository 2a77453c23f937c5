"""Utilities for loading quote engine configuration files."""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any, Dict

import yaml

DEFAULT_SETTINGS_PATH = Path(__file__).resolve().parents[1] / "config" / "settings.yaml"

_ENV_OVERRIDES = {
    "QUOTE_ENGINE_PORT": ("server", "port", int),
    "QUOTE_ENGINE_SCREENSHOTS_DIR": ("artifacts", "screenshots_dir", str),
    "QUOTE_ENGINE_LOG_LEVEL": ("logging", "level", str),
}


def _truthy(value: str) -> bool:
    return value.strip().lower() in {"1", "true", "yes", "on"}


def apply_env_overrides(settings: Dict[str, Any], environ: Dict[str, str] | None = None) -> Dict[str, Any]:
    """Overlay supported environment variables onto parsed settings."""

    env = os.environ if environ is None else environ
    for var, (section, key, cast) in _ENV_OVERRIDES.items():
        raw = env.get(var)
        if raw:
            settings.setdefault(section, {})[key] = cast(raw)
    headful = env.get("QUOTE_ENGINE_HEADFUL")
    if headful:
        settings.setdefault("browser", {})["headless"] = not _truthy(headful)
    return settings


def load_settings(path: Path | None = None) -> Dict[str, Any]:
    """Return parsed settings YAML as a dictionary."""

    env_path = os.environ.get("QUOTE_ENGINE_SETTINGS")
    file_path = path or (Path(env_path) if env_path else DEFAULT_SETTINGS_PATH)
    if not file_path.exists():
        raise FileNotFoundError(f"Missing settings file at {file_path}")
    with file_path.open("r", encoding="utf-8") as handle:
        data = yaml.safe_load(handle) or {}
    return apply_env_overrides(data)


__all__ = ["DEFAULT_SETTINGS_PATH", "apply_env_overrides", "load_settings"]
