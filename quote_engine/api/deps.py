"""Request-scoped accessors for objects stored on the app."""

from __future__ import annotations

from fastapi import Request, WebSocket

from quote_engine.api.websocket_manager import WebSocketManager
from quote_engine.runtime import QuoteRuntime


def get_runtime(request: Request) -> QuoteRuntime:
    return request.app.state.runtime


def get_ws_manager(websocket: WebSocket) -> WebSocketManager:
    return websocket.app.state.ws_manager
