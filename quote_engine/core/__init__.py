"""Core types, errors and response helpers."""

from .errors import (
    ActionError,
    DiscoveryExhaustedError,
    MissingInputError,
    QuoteEngineError,
    SessionCreationError,
    TaskNotFoundError,
    UnknownStepError,
    UnsupportedCarrierError,
)
from .responses import build_completed, build_error, build_processing, build_waiting

__all__ = [
	"ActionError",
	"DiscoveryExhaustedError",
	"MissingInputError",
	"QuoteEngineError",
	"SessionCreationError",
	"TaskNotFoundError",
	"UnknownStepError",
	"UnsupportedCarrierError",
	"build_completed",
	"build_error",
	"build_processing",
	"build_waiting",
]
