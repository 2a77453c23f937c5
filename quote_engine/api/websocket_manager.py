"""
WebSocket connection manager.

Tracks connected clients and their task subscriptions and pushes carrier
events to them without blocking the caller.
"""

from __future__ import annotations

import asyncio
import json
import logging
from typing import Any, Dict, Optional, Set

from fastapi import WebSocket

LOGGER = logging.getLogger(__name__)


class WebSocketManager:
    """Fan-out of carrier events; a failed send drops the connection."""

    def __init__(self, payload_version: str = "1.1.0") -> None:
        self.payload_version = payload_version
        self._connections: Dict[WebSocket, Set[str]] = {}
        self._pending: Set[asyncio.Task] = set()

    async def connect(self, websocket: WebSocket) -> None:
        await websocket.accept()
        self._connections[websocket] = set()
        LOGGER.info("WebSocket connected. Total connections: %d", len(self._connections))

    def disconnect(self, websocket: WebSocket) -> None:
        if self._connections.pop(websocket, None) is not None:
            LOGGER.info("WebSocket disconnected. Total connections: %d", len(self._connections))

    def subscribe(self, websocket: WebSocket, task_id: str) -> None:
        self._connections.setdefault(websocket, set()).add(task_id)

    def _wants(self, websocket: WebSocket, message: Dict[str, Any]) -> bool:
        topics = self._connections.get(websocket) or set()
        return not topics or message.get("taskId") in topics

    async def broadcast(self, message: Dict[str, Any]) -> int:
        """Send to every interested client and return how many received it."""

        if not self._connections:
            return 0
        message.setdefault("payloadVersion", self.payload_version)
        text = json.dumps(message, default=str)
        delivered = 0
        disconnected = []
        for connection in list(self._connections):
            if not self._wants(connection, message):
                continue
            try:
                await connection.send_text(text)
                delivered += 1
            except Exception as exc:  # noqa: BLE001
                LOGGER.error("Error sending WebSocket message: %s", exc)
                disconnected.append(connection)
        for connection in disconnected:
            self.disconnect(connection)
        return delivered

    def publish(self, message: Dict[str, Any]) -> Optional[asyncio.Task]:
        """Schedule a broadcast on the running loop and return immediately."""

        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            LOGGER.debug("No running loop, dropping %s event", message.get("type"))
            return None
        task = loop.create_task(self.broadcast(dict(message)))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)
        return task

    async def send_to_connection(self, websocket: WebSocket, message: Dict[str, Any]) -> bool:
        message.setdefault("payloadVersion", self.payload_version)
        try:
            await websocket.send_text(json.dumps(message, default=str))
        except Exception as exc:  # noqa: BLE001
            LOGGER.error("Error sending WebSocket message: %s", exc)
            self.disconnect(websocket)
            return False
        return True

    def get_connection_count(self) -> int:
        return len(self._connections)


__all__ = ["WebSocketManager"]
