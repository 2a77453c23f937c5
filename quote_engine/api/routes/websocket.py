"""
WebSocket route.

Clients receive carrier events; sending ``{"type": "subscribe", "taskId": ...}``
narrows the stream to that task.
"""

from __future__ import annotations

import json
import logging

from fastapi import APIRouter, Depends, WebSocket, WebSocketDisconnect

from quote_engine.api.deps import get_ws_manager
from quote_engine.api.websocket_manager import WebSocketManager

LOGGER = logging.getLogger(__name__)
router = APIRouter()


@router.websocket("/ws")
async def websocket_endpoint(websocket: WebSocket, manager: WebSocketManager = Depends(get_ws_manager)):
    await manager.connect(websocket)
    try:
        while True:
            raw = await websocket.receive_text()
            try:
                message = json.loads(raw)
            except json.JSONDecodeError:
                await manager.send_to_connection(websocket, {"type": "error", "error": "Invalid JSON"})
                continue
            if not isinstance(message, dict):
                await manager.send_to_connection(websocket, {"type": "error", "error": "Expected a JSON object"})
                continue
            if message.get("type") == "subscribe" and message.get("taskId"):
                manager.subscribe(websocket, str(message["taskId"]))
                await manager.send_to_connection(websocket, {"type": "subscribed", "taskId": message["taskId"]})
            elif message.get("type") == "ping":
                await manager.send_to_connection(websocket, {"type": "pong"})
            else:
                LOGGER.debug("Ignoring WebSocket message of type %s", message.get("type"))
    except WebSocketDisconnect:
        LOGGER.info("WebSocket client disconnected")
    finally:
        manager.disconnect(websocket)
