"""
Quote task routes.

Task lifecycle, data submission and per-carrier start/step/status/cleanup.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional

from fastapi import APIRouter, Body, Depends
from fastapi.responses import JSONResponse

from quote_engine.api.deps import get_runtime
from quote_engine.api.models import DataSubmissionResponse, StartQuoteRequest, StartQuoteResponse
from quote_engine.core.errors import UnsupportedCarrierError
from quote_engine.runtime import QuoteRuntime

LOGGER = logging.getLogger(__name__)
router = APIRouter(prefix="/quotes", tags=["Quotes"])


def _rejected(scope: str, errors: Dict[str, str]) -> JSONResponse:
    LOGGER.info("Rejected data for %s: %s", scope, sorted(errors))
    return JSONResponse(status_code=400, content={"error": "Validation failed", "validationErrors": errors})


@router.post("/start", response_model=StartQuoteResponse)
async def start_quote(payload: StartQuoteRequest, runtime: QuoteRuntime = Depends(get_runtime)):
    errors = runtime.validate_submission(payload.data)
    if errors:
        return _rejected("new task", errors)
    try:
        task = runtime.start_task(payload.carriers, payload.data)
    except UnsupportedCarrierError as exc:
        return JSONResponse(status_code=400, content={"error": str(exc)})
    return StartQuoteResponse(taskId=task.task_id, status=task.status)


@router.post("/{task_id}/data", response_model=DataSubmissionResponse)
async def submit_data(
    task_id: str,
    data: Dict[str, Any] = Body(...),
    runtime: QuoteRuntime = Depends(get_runtime),
):
    runtime.tasks.require_task(task_id)
    errors = runtime.validate_submission(data)
    if errors:
        return _rejected(task_id, errors)
    return runtime.submit_data(task_id, data)


@router.get("/{task_id}")
async def get_task(task_id: str, runtime: QuoteRuntime = Depends(get_runtime)) -> Dict[str, Any]:
    return runtime.task_summary(task_id)


@router.delete("/{task_id}")
async def delete_task(task_id: str, runtime: QuoteRuntime = Depends(get_runtime)) -> Dict[str, Any]:
    return await runtime.cleanup_task(task_id)


@router.post("/{task_id}/carriers/{carrier}/start")
async def start_carrier(task_id: str, carrier: str, runtime: QuoteRuntime = Depends(get_runtime)) -> Dict[str, Any]:
    return dict(await runtime.start_carrier(task_id, carrier))


@router.post("/{task_id}/carriers/{carrier}/step")
async def step_carrier(
    task_id: str,
    carrier: str,
    step_data: Optional[Dict[str, Any]] = Body(default=None),
    runtime: QuoteRuntime = Depends(get_runtime),
):
    runtime.tasks.require_task(task_id)
    data = step_data or {}
    errors = runtime.validate_submission(data)
    if errors:
        return _rejected(f"{task_id}/{carrier}", errors)
    return dict(await runtime.step_carrier(task_id, carrier, data))


@router.get("/{task_id}/carriers/{carrier}/status")
async def carrier_status(task_id: str, carrier: str, runtime: QuoteRuntime = Depends(get_runtime)) -> Dict[str, Any]:
    return dict(runtime.carrier_status(task_id, carrier))


@router.delete("/{task_id}/carriers/{carrier}")
async def cleanup_carrier(task_id: str, carrier: str, runtime: QuoteRuntime = Depends(get_runtime)) -> Dict[str, Any]:
    return await runtime.cleanup_carrier(task_id, carrier)
