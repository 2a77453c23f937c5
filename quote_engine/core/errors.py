"""Custom exception hierarchy for the quote engine."""

from __future__ import annotations


class QuoteEngineError(RuntimeError):
    """Base exception for engine-specific failures."""


class SessionCreationError(QuoteEngineError):
    """Raised when a browser session cannot be created for a key."""


class ActionError(QuoteEngineError):
    """Raised by carrier flows when a browser primitive reports failure."""


class DiscoveryExhaustedError(QuoteEngineError):
    """Raised when neither discovery nor any fallback selector located a purpose."""

    def __init__(self, purpose: str) -> None:
        super().__init__(f"Could not discover element for purpose: {purpose}")
        self.purpose = purpose


class UnknownStepError(QuoteEngineError):
    """Raised when the live page does not match any known carrier step."""

    def __init__(self, url: str, label: str = "unknown") -> None:
        super().__init__(f"Unrecognized page state '{label}' at {url}")
        self.url = url
        self.label = label


class MissingInputError(QuoteEngineError):
    """Raised when a carrier flow lacks user data it cannot proceed without."""


class TaskNotFoundError(QuoteEngineError):
    """Raised when a task id is not tracked by the task manager."""


class UnsupportedCarrierError(QuoteEngineError):
    """Raised when a carrier id has no registered agent."""
