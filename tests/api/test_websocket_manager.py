from __future__ import annotations

import asyncio
import json
from typing import List

import pytest

from quote_engine.api.websocket_manager import WebSocketManager


class _FakeSocket:
    def __init__(self, *, fail: bool = False) -> None:
        self.fail = fail
        self.accepted = False
        self.sent: List[dict] = []

    async def accept(self) -> None:
        self.accepted = True

    async def send_text(self, text: str) -> None:
        if self.fail:
            raise RuntimeError("connection reset")
        self.sent.append(json.loads(text))


@pytest.mark.asyncio
async def test_broadcast_drops_failing_connections() -> None:
    manager = WebSocketManager()
    healthy, broken = _FakeSocket(), _FakeSocket(fail=True)
    await manager.connect(healthy)
    await manager.connect(broken)
    assert healthy.accepted and manager.get_connection_count() == 2

    delivered = await manager.broadcast({"type": "carrier_started", "taskId": "t1", "carrier": "geico"})

    assert delivered == 1
    assert manager.get_connection_count() == 1
    assert healthy.sent == [{"type": "carrier_started", "taskId": "t1", "carrier": "geico", "payloadVersion": "1.1.0"}]


@pytest.mark.asyncio
async def test_subscriptions_filter_by_task() -> None:
    manager = WebSocketManager()
    everything, only_t2 = _FakeSocket(), _FakeSocket()
    await manager.connect(everything)
    await manager.connect(only_t2)
    manager.subscribe(only_t2, "t2")

    await manager.broadcast({"type": "quote_completed", "taskId": "t1"})
    await manager.broadcast({"type": "quote_completed", "taskId": "t2"})

    assert [message["taskId"] for message in everything.sent] == ["t1", "t2"]
    assert [message["taskId"] for message in only_t2.sent] == ["t2"]


@pytest.mark.asyncio
async def test_publish_schedules_without_blocking() -> None:
    manager = WebSocketManager(payload_version="2.0.0")
    socket = _FakeSocket()
    await manager.connect(socket)

    task = manager.publish({"type": "carrier_error", "taskId": "t1", "error": "boom"})

    assert task is not None
    assert socket.sent == []
    assert await task == 1
    assert socket.sent[0]["payloadVersion"] == "2.0.0"


def test_publish_without_running_loop_is_dropped() -> None:
    assert WebSocketManager().publish({"type": "carrier_started"}) is None


def test_send_to_connection_failure_disconnects() -> None:
    manager = WebSocketManager()
    broken = _FakeSocket(fail=True)

    async def _run() -> bool:
        await manager.connect(broken)
        return await manager.send_to_connection(broken, {"type": "pong"})

    assert asyncio.run(_run()) is False
    assert manager.get_connection_count() == 0
