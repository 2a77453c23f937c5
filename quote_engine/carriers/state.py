"""Plain per task x carrier state records."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any, Dict, Optional

from quote_engine.core.types import CarrierStatus, FieldPayload, QuotePayload


def _now() -> datetime:
    return datetime.now(UTC)


@dataclass
class CarrierTaskState:
    session_key: str
    task_id: str
    carrier: str
    status: str = "initializing"
    current_step: int = 0
    current_step_label: str = "entry"
    required_fields: Dict[str, FieldPayload] = field(default_factory=dict)
    user_data: Dict[str, Any] = field(default_factory=dict)
    error: Optional[str] = None
    quote: Optional[QuotePayload] = None
    created_at: datetime = field(default_factory=_now)
    last_activity: datetime = field(default_factory=_now)

    def touch(self) -> None:
        self.last_activity = _now()

    def merge(self, data: Dict[str, Any]) -> None:
        self.user_data.update(data)
        self.touch()

    def as_status(self) -> CarrierStatus:
        payload: CarrierStatus = {
            "status": self.status,  # type: ignore[typeddict-item]
            "currentStep": self.current_step,
            "currentStepLabel": self.current_step_label,
        }
        if self.error:
            payload["error"] = self.error
        return payload


class CarrierStateStore:
    """In-memory registry of carrier task state keyed by session key."""

    def __init__(self) -> None:
        self._states: Dict[str, CarrierTaskState] = {}

    def get(self, key: str) -> Optional[CarrierTaskState]:
        return self._states.get(key)

    def ensure(
        self,
        key: str,
        task_id: str,
        carrier: str,
        user_data: Dict[str, Any] | None = None,
    ) -> CarrierTaskState:
        state = self._states.get(key)
        if state is None:
            state = CarrierTaskState(session_key=key, task_id=task_id, carrier=carrier, user_data=dict(user_data or {}))
            self._states[key] = state
        elif user_data:
            state.merge(user_data)
        return state

    def remove(self, key: str) -> bool:
        return self._states.pop(key, None) is not None

    def __contains__(self, key: object) -> bool:
        return key in self._states

    def __len__(self) -> int:
        return len(self._states)


__all__ = ["CarrierStateStore", "CarrierTaskState"]
