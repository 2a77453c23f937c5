from __future__ import annotations

import asyncio
import re
from datetime import UTC, datetime, timedelta

import pytest

from quote_engine.carriers.registry import carrier_required_fields
from quote_engine.core.errors import TaskNotFoundError
from quote_engine.tasks.manager import TaskManager, generate_task_id

from tests.fakes import RecordingBroadcaster


def test_task_ids_are_timestamped_and_unique() -> None:
    assert re.match(r"^task_\d+_[0-9a-z]{7}$", generate_task_id())
    assert generate_task_id(now_ms=1700000000000).startswith("task_1700000000000_")
    manager = TaskManager()
    ids = {manager.start_task(["statefarm"]).task_id for _ in range(25)}
    assert len(ids) == 25
    assert len(manager) == 25


def test_user_data_merges_with_later_writes_winning() -> None:
    manager = TaskManager()
    task = manager.start_task(["geico"], {"zipCode": "60601", "firstName": "Ada"})
    merged = manager.update_user_data(task.task_id, {"firstName": "Grace", "lastName": "Hopper"})
    assert merged == {"zipCode": "60601", "firstName": "Grace", "lastName": "Hopper"}
    assert manager.get_user_data("missing") == {}


def test_require_and_update_task() -> None:
    manager = TaskManager()
    task = manager.start_task(["progressive"])
    manager.update_task(task.task_id, status="processing", current_step=2)
    assert manager.require_task(task.task_id).current_step == 2
    with pytest.raises(AttributeError):
        manager.update_task(task.task_id, colour="blue")
    with pytest.raises(TaskNotFoundError, match="Task not found: nope"):
        manager.require_task("nope")


def test_carrier_context_snapshots_task_data() -> None:
    manager = TaskManager(step_timeout_ms=5000)
    task = manager.start_task(["statefarm"], {"zipCode": "60601"})
    context = manager.create_carrier_context(task.task_id, "statefarm")
    manager.update_user_data(task.task_id, {"zipCode": "10001"})
    assert context.session_key == f"{task.task_id}_statefarm"
    assert context.user_data == {"zipCode": "60601"}
    assert context.step_timeout_ms == 5000


def test_missing_fields_for_carrier() -> None:
    manager = TaskManager()
    task = manager.start_task(["statefarm"], {"zipCode": "60601", "firstName": "Ada"})
    required = carrier_required_fields("statefarm")
    missing = manager.missing_fields_for_carrier(task.task_id, required)
    assert "zipCode" not in missing and "firstName" not in missing
    assert missing["lastName"]["name"] == "Last Name"
    assert not manager.has_required_data_for_carrier(task.task_id, required)
    assert manager.validate_user_data(task.task_id, {"firstName": required["firstName"]}) == {}


def test_cleanup_expired_removes_only_idle_tasks() -> None:
    manager = TaskManager(ttl_seconds=3600)
    stale = manager.start_task(["geico"])
    fresh = manager.start_task(["geico"])
    stale.last_activity = datetime.now(UTC) - timedelta(hours=2)
    assert manager.cleanup_expired() == [stale.task_id]
    assert stale.task_id not in manager
    assert fresh.task_id in manager
    later = datetime.now(UTC) + timedelta(hours=2)
    assert manager.expired_task_ids(now=later) == [fresh.task_id]


def test_cleanup_loop_invokes_expiry_hook() -> None:
    manager = TaskManager(ttl_seconds=0)
    task = manager.start_task(["geico"])
    task.last_activity = datetime.now(UTC) - timedelta(seconds=5)
    expired: list[str] = []

    async def _on_expired(task_id: str) -> None:
        expired.append(task_id)

    async def _run() -> None:
        loop_task = asyncio.create_task(manager.run_cleanup_loop(0.01, on_expired=_on_expired))
        for _ in range(50):
            if expired:
                break
            await asyncio.sleep(0.01)
        loop_task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await loop_task

    asyncio.run(_run())
    assert expired == [task.task_id]


def test_broadcast_goes_through_attached_publisher() -> None:
    broadcaster = RecordingBroadcaster()
    manager = TaskManager(broadcaster=broadcaster)
    manager.broadcast({"type": "carrier_started", "taskId": "t"})
    assert broadcaster.types() == ["carrier_started"]
    TaskManager().broadcast({"type": "ignored"})
