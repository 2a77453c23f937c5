from __future__ import annotations

import argparse
from pathlib import Path
from typing import Any, Dict

import uvicorn

from quote_engine.api.app import create_app
from quote_engine.config_loader import load_settings
from quote_engine.runtime import build_runtime
from quote_engine.utils.logging_setup import configure_logging


def _parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Serve the multi-carrier quote engine API.")
    parser.add_argument("--host", default=None, help="Bind address (defaults to server.host)")
    parser.add_argument("--port", type=int, default=None, help="Port (defaults to server.port)")
    parser.add_argument("--settings", type=Path, default=None, help="Path to a settings YAML file")
    parser.add_argument("--headful", action="store_true", help="Show the browser window")
    return parser.parse_args()


def _apply_cli(settings: Dict[str, Any], args: argparse.Namespace) -> Dict[str, Any]:
    server = settings.setdefault("server", {})
    if args.host:
        server["host"] = args.host
    if args.port:
        server["port"] = args.port
    if args.headful:
        settings.setdefault("browser", {})["headless"] = False
    return settings


def main() -> None:
    args = _parse_args()
    settings = _apply_cli(load_settings(args.settings), args)
    level = settings.get("logging", {}).get("level", "INFO")
    configure_logging(level)
    app = create_app(build_runtime(settings))
    server = settings.get("server", {})
    uvicorn.run(app, host=server.get("host", "0.0.0.0"), port=int(server.get("port", 3001)), log_level=str(level).lower())


if __name__ == "__main__":
    main()
