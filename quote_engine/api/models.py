"""Request bodies accepted by the HTTP API."""

from __future__ import annotations

from typing import Any, Dict, List

from pydantic import BaseModel, Field


class StartQuoteRequest(BaseModel):
    carriers: List[str]
    data: Dict[str, Any] = Field(default_factory=dict)


class StartQuoteResponse(BaseModel):
    taskId: str
    status: str


class DataSubmissionResponse(BaseModel):
    success: bool
    dataComplete: bool
    missingFields: Dict[str, Any] = Field(default_factory=dict)


__all__ = ["DataSubmissionResponse", "StartQuoteRequest", "StartQuoteResponse"]
