"""HTTP and WebSocket surface."""

from .app import create_app
from .websocket_manager import WebSocketManager

__all__ = ["WebSocketManager", "create_app"]
