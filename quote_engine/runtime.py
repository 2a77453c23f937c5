"""Wires sessions, actions, carriers and tasks into one runtime."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional

from quote_engine.browser.actions import BrowserActions
from quote_engine.browser.session_manager import BrowserFactory, SessionManager
from quote_engine.browser.storage_state import StorageStateStore
from quote_engine.carriers.registry import CarrierRegistry, carrier_required_fields
from quote_engine.core.errors import TaskNotFoundError, UnsupportedCarrierError
from quote_engine.core.types import Broadcaster, CarrierResponse, CarrierStatus
from quote_engine.schema.unified import get_all_fields
from quote_engine.tasks.manager import TaskManager, TaskState
from quote_engine.utils.artifacts import ArtifactStore

LOGGER = logging.getLogger(__name__)

DEFAULT_PAYLOAD_VERSION = "1.1.0"


class _NullBroadcaster:
    def publish(self, message: Dict[str, Any]) -> None:
        LOGGER.debug("Dropping %s event, no broadcaster attached", message.get("type"))


@dataclass
class QuoteRuntime:
    settings: Dict[str, Any]
    sessions: SessionManager
    actions: BrowserActions
    artifacts: ArtifactStore
    tasks: TaskManager
    registry: CarrierRegistry
    broadcaster: Broadcaster = field(default_factory=_NullBroadcaster)

    # ---------------------------------------------------------------- events

    def attach_broadcaster(self, broadcaster: Broadcaster) -> None:
        self.broadcaster = broadcaster
        self.tasks.broadcaster = broadcaster

    def _event(self, event_type: str, task_id: str, carrier: str, **payload: Any) -> None:
        ws_cfg = self.settings.get("websocket", {})
        message: Dict[str, Any] = {
            "type": event_type,
            "taskId": task_id,
            "carrier": carrier,
            "payloadVersion": ws_cfg.get("payload_version", DEFAULT_PAYLOAD_VERSION),
        }
        message.update({key: value for key, value in payload.items() if value is not None})
        if not ws_cfg.get("include_required_fields", True):
            message.pop("requiredFields", None)
        self.tasks.broadcast(message)

    def _report(self, task_id: str, carrier: str, response: CarrierResponse, event_type: str) -> None:
        status = response.get("status")
        if status == "error":
            self._event("carrier_error", task_id, carrier, error=response.get("error"))
        elif status == "completed":
            self._event("quote_completed", task_id, carrier, quote=response.get("quote"))
        else:
            self._event(
                event_type,
                task_id,
                carrier,
                status=status,
                requiredFields=response.get("requiredFields"),
                currentStep=response.get("currentStep"),
                currentStepLabel=response.get("currentStepLabel"),
            )

    # ----------------------------------------------------------------- tasks

    def start_task(self, carriers: List[str], data: Mapping[str, Any] | None = None) -> TaskState:
        if not carriers:
            raise UnsupportedCarrierError("At least one carrier is required")
        unknown = self.registry.unsupported(carriers)
        if unknown:
            raise UnsupportedCarrierError(f"Unsupported carriers: {', '.join(unknown)}")
        return self.tasks.start_task([carrier.lower() for carrier in carriers], data)

    def validate_submission(self, data: Mapping[str, Any]) -> Dict[str, str]:
        """Validate only the submitted keys that the unified schema knows about."""

        catalog = get_all_fields()
        submitted = {field_id: catalog[field_id] for field_id in data if field_id in catalog}
        return self.tasks.validate_user_data(data, submitted)

    def submit_data(self, task_id: str, data: Mapping[str, Any]) -> Dict[str, Any]:
        task = self.tasks.require_task(task_id)
        self.tasks.update_user_data(task_id, data)
        missing: Dict[str, Any] = {}
        for carrier in task.selected_carriers:
            missing.update(self.tasks.missing_fields_for_carrier(task_id, carrier_required_fields(carrier)))
        return {"success": True, "dataComplete": not missing, "missingFields": missing}

    def task_summary(self, task_id: str) -> Dict[str, Any]:
        task = self.tasks.require_task(task_id)
        summary = task.summary()
        summary["carrierStatuses"] = {
            carrier: self.carrier_status(task_id, carrier) for carrier in task.selected_carriers
        }
        return summary

    async def cleanup_task(self, task_id: str) -> Dict[str, Any]:
        task = self.tasks.require_task(task_id)
        closed = await self.release_task_resources(task_id, task.selected_carriers)
        self.tasks.cleanup_task(task_id)
        return {"success": True, "closedSessions": closed}

    async def release_task_resources(self, task_id: str, carriers: List[str] | None = None) -> List[str]:
        """Close every carrier session of the task, including ones still being created."""

        keys = [f"{task_id}_{carrier}" for carrier in carriers or self.registry.available()]
        closed = [key for key in keys if await self.sessions.close_session(key)]
        closed.extend(await self.sessions.close_sessions_with_prefix(task_id))
        for key in keys:
            self.registry.states.remove(key)
        return closed

    # -------------------------------------------------------------- carriers

    def _context(self, task_id: str, carrier: str):
        task = self.tasks.require_task(task_id)
        agent = self.registry.get(carrier)
        if agent is None:
            raise UnsupportedCarrierError(f"Unsupported carrier: {carrier}")
        if agent.carrier_id not in task.selected_carriers:
            task.selected_carriers.append(agent.carrier_id)
        return agent, self.tasks.create_carrier_context(task_id, agent.carrier_id)

    def _track(self, task_id: str, response: CarrierResponse) -> None:
        if task_id not in self.tasks:
            LOGGER.info("Task %s was cleaned up before its carrier call returned", task_id)
            return
        self.tasks.update_task(
            task_id,
            status=response.get("status", "processing"),
            current_step=int(response.get("currentStep") or 0),
            current_step_label=response.get("currentStepLabel") or "entry",
        )

    async def start_carrier(self, task_id: str, carrier: str) -> CarrierResponse:
        agent, context = self._context(task_id, carrier)
        self._event("carrier_started", task_id, agent.carrier_id)
        response = await agent.start(context)
        self._track(task_id, response)
        self._report(task_id, agent.carrier_id, response, "carrier_step_completed")
        return response

    async def step_carrier(self, task_id: str, carrier: str, step_data: Mapping[str, Any]) -> CarrierResponse:
        self.tasks.require_task(task_id)
        self.tasks.update_user_data(task_id, step_data)
        agent, context = self._context(task_id, carrier)
        response = await agent.step(context, dict(step_data))
        self._track(task_id, response)
        self._report(task_id, agent.carrier_id, response, "carrier_step_completed")
        return response

    def carrier_status(self, task_id: str, carrier: str) -> CarrierStatus:
        if task_id not in self.tasks:
            raise TaskNotFoundError(f"Task not found: {task_id}")
        agent = self.registry.require(carrier)
        return agent.status(f"{task_id}_{agent.carrier_id}")

    async def cleanup_carrier(self, task_id: str, carrier: str) -> Dict[str, bool]:
        if task_id not in self.tasks:
            raise TaskNotFoundError(f"Task not found: {task_id}")
        agent = self.registry.require(carrier)
        return await agent.cleanup(f"{task_id}_{agent.carrier_id}")

    def carriers_payload(self) -> Dict[str, Any]:
        return {"carriers": self.registry.available(), "displayNames": self.registry.display_names()}

    # ------------------------------------------------------------- lifecycle

    def health(self) -> Dict[str, Any]:
        return {
            "status": "healthy",
            "activeTasks": len(self.tasks),
            "tasks": self.tasks.active_tasks(),
            **self.sessions.status(),
        }

    async def expire_task(self, task_id: str) -> None:
        await self.release_task_resources(task_id)

    async def run_cleanup_loop(self) -> None:
        interval = float(self.settings.get("tasks", {}).get("cleanup_interval_seconds", 900))
        await self.tasks.run_cleanup_loop(interval, on_expired=self.expire_task)

    async def shutdown(self) -> None:
        await self.sessions.shutdown()
        if self.sessions.storage is not None:
            self.sessions.storage.purge_expired()


def build_runtime(
    settings: Dict[str, Any],
    *,
    browser_factory: Optional[BrowserFactory] = None,
    broadcaster: Optional[Broadcaster] = None,
) -> QuoteRuntime:
    """Construct every collaborator from one settings mapping."""

    artifacts_cfg = settings.get("artifacts", {})
    state_cfg = settings.get("session_state", {})
    tasks_cfg = settings.get("tasks", {})
    artifacts = ArtifactStore(
        artifacts_cfg.get("screenshots_dir", "screenshots"),
        enabled=bool(artifacts_cfg.get("screenshots_enabled", True)),
    )
    storage = StorageStateStore(
        state_cfg.get("directory", "session-states"),
        retention_hours=float(state_cfg.get("retention_hours", 24)),
        enabled=bool(state_cfg.get("enabled", False)),
    )
    sessions = SessionManager(settings=settings, browser_factory=browser_factory, storage=storage)
    actions = BrowserActions(sessions, settings=settings, artifacts=artifacts)
    tasks = TaskManager(
        broadcaster=broadcaster,
        step_timeout_ms=int(settings.get("timeouts", {}).get("step_ms", 120000)),
        ttl_seconds=float(tasks_cfg.get("ttl_seconds", 3600)),
    )
    registry = CarrierRegistry(actions, settle_seconds=float(settings.get("carriers", {}).get("settle_seconds", 1.0)))
    runtime = QuoteRuntime(
        settings=settings,
        sessions=sessions,
        actions=actions,
        artifacts=artifacts,
        tasks=tasks,
        registry=registry,
    )
    if broadcaster is not None:
        runtime.attach_broadcaster(broadcaster)
    return runtime


__all__ = ["QuoteRuntime", "build_runtime"]
