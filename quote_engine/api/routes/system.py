"""Carrier catalogue, unified schema and health routes."""

from __future__ import annotations

from typing import Any, Dict

from fastapi import APIRouter, Depends

from quote_engine.api.deps import get_runtime
from quote_engine.runtime import QuoteRuntime
from quote_engine.schema.unified import progressive_form_steps, schema_payload

router = APIRouter(tags=["System"])


@router.get("/carriers")
async def list_carriers(runtime: QuoteRuntime = Depends(get_runtime)) -> Dict[str, Any]:
    return runtime.carriers_payload()


@router.get("/schema")
async def unified_schema() -> Dict[str, Any]:
    return {"schema": schema_payload(), "formSteps": [step.as_payload() for step in progressive_form_steps()]}


@router.get("/health")
async def health(runtime: QuoteRuntime = Depends(get_runtime)) -> Dict[str, Any]:
    return runtime.health()
