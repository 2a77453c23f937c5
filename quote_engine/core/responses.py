"""Carrier response builders shared across agents."""

from __future__ import annotations

from typing import Mapping

from .types import CarrierResponse, FieldPayload, QuotePayload

DEFAULT_ERROR = "carrier did not specify an error"


def build_error(message: str | None = None) -> CarrierResponse:
    """Construct a normalized error response."""

    return {"status": "error", "error": message or DEFAULT_ERROR}


def build_waiting(required_fields: Mapping[str, FieldPayload], *, message: str | None = None) -> CarrierResponse:
    """Response asking the client for more input."""

    data: CarrierResponse = {"status": "waiting_for_input", "requiredFields": dict(required_fields)}
    if message:
        data["message"] = message
    return data


def build_completed(quote: QuotePayload) -> CarrierResponse:
    return {"status": "completed", "quote": quote}


def build_processing(message: str | None = None) -> CarrierResponse:
    data: CarrierResponse = {"status": "processing"}
    if message:
        data["message"] = message
    return data


__all__ = ["build_completed", "build_error", "build_processing", "build_waiting"]
