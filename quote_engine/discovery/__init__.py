from .fallbacks import FallbackChain, GENERIC_FALLBACKS, first_match, resolve_chain
from .field_discovery import (
    SnapshotElement,
    build_selector,
    discover_fields,
    find_selector,
    identify_field_by_purpose,
    matches_attribute_pattern,
)
from .patterns import FIELD_PATTERNS, PurposePattern

__all__ = [
    "FIELD_PATTERNS",
    "FallbackChain",
    "GENERIC_FALLBACKS",
    "PurposePattern",
    "SnapshotElement",
    "build_selector",
    "discover_fields",
    "find_selector",
    "first_match",
    "identify_field_by_purpose",
    "matches_attribute_pattern",
    "resolve_chain",
]
