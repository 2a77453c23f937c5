"""Task accumulator: one task per quote request, shared by its carriers."""

from __future__ import annotations

import asyncio
import logging
import secrets
import string
import time
from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta
from typing import Any, Awaitable, Callable, Dict, List, Mapping, Optional

from quote_engine.carriers.base import CarrierContext
from quote_engine.core.errors import TaskNotFoundError
from quote_engine.core.types import Broadcaster, FieldPayload
from quote_engine.schema.fields import FieldDefinition

from .validation import validate_user_data

LOGGER = logging.getLogger(__name__)

_BASE36 = string.digits + string.ascii_lowercase

ExpiryCallback = Callable[[str], Awaitable[None]]


def _now() -> datetime:
    return datetime.now(UTC)


def generate_task_id(now_ms: int | None = None) -> str:
    stamp = now_ms if now_ms is not None else int(time.time() * 1000)
    suffix = "".join(secrets.choice(_BASE36) for _ in range(7))
    return f"task_{stamp}_{suffix}"


@dataclass
class TaskState:
    task_id: str
    selected_carriers: List[str]
    user_data: Dict[str, Any] = field(default_factory=dict)
    status: str = "starting"
    current_step: int = 0
    current_step_label: str = "entry"
    created_at: datetime = field(default_factory=_now)
    last_activity: datetime = field(default_factory=_now)

    def touch(self) -> None:
        self.last_activity = _now()

    def summary(self) -> Dict[str, Any]:
        return {
            "taskId": self.task_id,
            "status": self.status,
            "carriers": list(self.selected_carriers),
            "currentStep": self.current_step,
            "currentStepLabel": self.current_step_label,
            "userData": dict(self.user_data),
            "createdAt": self.created_at.isoformat(),
            "lastActivity": self.last_activity.isoformat(),
        }


class TaskManager:
    """Keeps tasks and their accumulated user data in memory."""

    def __init__(
        self,
        *,
        broadcaster: Broadcaster | None = None,
        step_timeout_ms: int = 120000,
        ttl_seconds: float = 3600,
    ) -> None:
        self.broadcaster = broadcaster
        self.step_timeout_ms = step_timeout_ms
        self.ttl_seconds = ttl_seconds
        self._tasks: Dict[str, TaskState] = {}

    def broadcast(self, message: Dict[str, Any]) -> None:
        if self.broadcaster is None:
            LOGGER.debug("No broadcaster configured, dropping %s", message.get("type"))
            return
        self.broadcaster.publish(message)

    # ----------------------------------------------------------------- tasks

    def start_task(self, carriers: List[str], initial_data: Mapping[str, Any] | None = None) -> TaskState:
        task_id = generate_task_id()
        while task_id in self._tasks:
            task_id = generate_task_id()
        task = TaskState(task_id=task_id, selected_carriers=list(carriers), user_data=dict(initial_data or {}))
        self._tasks[task_id] = task
        LOGGER.info("Started task %s for carriers: %s", task_id, ", ".join(carriers))
        return task

    def get_task(self, task_id: str) -> Optional[TaskState]:
        return self._tasks.get(task_id)

    def require_task(self, task_id: str) -> TaskState:
        task = self._tasks.get(task_id)
        if task is None:
            raise TaskNotFoundError(f"Task not found: {task_id}")
        return task

    def update_task(self, task_id: str, **updates: Any) -> TaskState:
        task = self.require_task(task_id)
        for name, value in updates.items():
            if not hasattr(task, name):
                raise AttributeError(f"TaskState has no field {name}")
            setattr(task, name, value)
        task.touch()
        return task

    def active_tasks(self) -> List[Dict[str, Any]]:
        return [
            {
                "taskId": task.task_id,
                "status": task.status,
                "carriers": list(task.selected_carriers),
                "createdAt": task.created_at.isoformat(),
                "lastActivity": task.last_activity.isoformat(),
            }
            for task in self._tasks.values()
        ]

    # ------------------------------------------------------------- user data

    def update_user_data(self, task_id: str, new_data: Mapping[str, Any]) -> Dict[str, Any]:
        """Merge ``new_data`` into the task; later writes win per key."""

        task = self.require_task(task_id)
        task.user_data.update(new_data)
        task.touch()
        return dict(task.user_data)

    def get_user_data(self, task_id: str) -> Dict[str, Any]:
        task = self._tasks.get(task_id)
        return dict(task.user_data) if task else {}

    def create_carrier_context(self, task_id: str, carrier: str) -> CarrierContext:
        task = self.require_task(task_id)
        return CarrierContext(
            task_id=task_id,
            carrier=carrier,
            user_data=dict(task.user_data),
            step_timeout_ms=self.step_timeout_ms,
        )

    def validate_user_data(
        self,
        task_or_data: str | Mapping[str, Any],
        fields: Mapping[str, FieldDefinition],
    ) -> Dict[str, str]:
        data = self.get_user_data(task_or_data) if isinstance(task_or_data, str) else task_or_data
        return validate_user_data(data, fields)

    def missing_fields_for_carrier(
        self,
        task_id: str,
        carrier_fields: Mapping[str, FieldDefinition],
    ) -> Dict[str, FieldPayload]:
        data = self.get_user_data(task_id)
        return {
            field_id: definition.as_payload()
            for field_id, definition in carrier_fields.items()
            if definition.required and data.get(field_id) in (None, "", [])
        }

    def has_required_data_for_carrier(self, task_id: str, carrier_fields: Mapping[str, FieldDefinition]) -> bool:
        return not self.missing_fields_for_carrier(task_id, carrier_fields)

    # --------------------------------------------------------------- cleanup

    def cleanup_task(self, task_id: str) -> bool:
        removed = self._tasks.pop(task_id, None) is not None
        if removed:
            LOGGER.info("Cleaned up task %s", task_id)
        return removed

    def expired_task_ids(self, ttl_seconds: float | None = None, *, now: datetime | None = None) -> List[str]:
        ttl = timedelta(seconds=self.ttl_seconds if ttl_seconds is None else ttl_seconds)
        cutoff = (now or _now()) - ttl
        return [task_id for task_id, task in self._tasks.items() if task.last_activity < cutoff]

    def cleanup_expired(self, ttl_seconds: float | None = None, *, now: datetime | None = None) -> List[str]:
        expired = self.expired_task_ids(ttl_seconds, now=now)
        for task_id in expired:
            self.cleanup_task(task_id)
        if expired:
            LOGGER.info("Expired %d inactive task(s)", len(expired))
        return expired

    async def run_cleanup_loop(self, interval_seconds: float = 900, on_expired: ExpiryCallback | None = None) -> None:
        """Periodically drop inactive tasks until cancelled."""

        while True:
            await asyncio.sleep(interval_seconds)
            for task_id in self.cleanup_expired():
                if on_expired is None:
                    continue
                try:
                    await on_expired(task_id)
                except Exception as exc:  # noqa: BLE001
                    LOGGER.warning("Expiry hook failed for %s: %s", task_id, exc)

    def __contains__(self, task_id: object) -> bool:
        return task_id in self._tasks

    def __len__(self) -> int:
        return len(self._tasks)


__all__ = ["TaskManager", "TaskState", "generate_task_id"]
