"""Shared type declarations for the quote engine."""

from __future__ import annotations

from typing import Any, Dict, List, Literal, Optional, Protocol, TypedDict

TaskStatus = Literal[
    "initializing",
    "starting",
    "waiting_for_input",
    "processing",
    "completed",
    "error",
    "inactive",
    "extracting_quote",
]


class FieldPayload(TypedDict, total=False):
    """Wire representation of a field definition."""

    id: str
    name: str
    type: str
    required: bool
    options: List[str]
    placeholder: str
    validation: Dict[str, Any]
    itemFields: Dict[str, "FieldPayload"]


class QuotePayload(TypedDict, total=False):
    """Quote extracted from a carrier results page."""

    price: str
    term: str
    monthlyPremium: Optional[float]
    details: Dict[str, Any]


class CarrierResponse(TypedDict, total=False):
    """Uniform response returned by carrier start/step calls."""

    status: TaskStatus
    requiredFields: Dict[str, FieldPayload]
    quote: QuotePayload
    error: str
    message: str
    currentStep: int
    currentStepLabel: str


class CarrierStatus(TypedDict, total=False):
    """Status snapshot for one task x carrier pair."""

    status: TaskStatus
    currentStep: int
    currentStepLabel: str
    error: Optional[str]


class Broadcaster(Protocol):
    """Protocol for push-channel publishers."""

    def publish(self, message: Dict[str, Any]) -> None:
        """Queue a message for best-effort delivery."""

