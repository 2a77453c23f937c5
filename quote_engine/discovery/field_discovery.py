"""Selector discovery over structural page snapshots."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

from .patterns import FIELD_PATTERNS, INTERACTIVE_TAGS, PurposePattern

SYNTHETIC_REF_ATTR = "data-qe-ref"
_SYNTHETIC_REF = re.compile(r"^e\d+$")
_CSS_IDENT = re.compile(r"^[A-Za-z_][A-Za-z0-9_-]*$")

LAYERS = ("attributes", "text", "types", "maxlength")


@dataclass(frozen=True)
class SnapshotElement:
    """One interactive element captured by a structural snapshot."""

    tag: str
    attributes: Dict[str, str] = field(default_factory=dict)
    text: str = ""
    ref: str = ""

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> "SnapshotElement":
        attributes = {
            str(key).lower(): str(value)
            for key, value in (payload.get("attributes") or {}).items()
            if value is not None
        }
        return cls(
            tag=str(payload.get("tag") or "").lower(),
            attributes=attributes,
            text=str(payload.get("text") or ""),
            ref=str(payload.get("ref") or ""),
        )


def parse_attribute_pattern(pattern: str) -> Tuple[str, str, bool]:
    """Split ``attr*=value`` / ``attr=value`` into (attr, value, substring)."""

    if "*=" in pattern:
        attr, value = pattern.split("*=", 1)
        return attr.strip().lower(), value, True
    attr, _, value = pattern.partition("=")
    return attr.strip().lower(), value, False


def matches_attribute_pattern(attributes: Mapping[str, Any], pattern: str) -> bool:
    attr, expected, substring = parse_attribute_pattern(pattern)
    value = attributes.get(attr)
    if not value:
        return False
    actual = str(value).lower()
    if substring:
        return expected.lower() in actual
    return actual == expected.lower()


def _quote(value: str) -> str:
    return value.replace("\\", "\\\\").replace('"', '\\"')


def build_selector(element: SnapshotElement) -> str:
    """Most specific selector derivable from an element's own attributes."""

    tag = element.tag or "div"
    attrs = element.attributes
    element_id = attrs.get("id")
    if element_id:
        if _CSS_IDENT.match(element_id):
            return f"#{element_id}"
        return f'{tag}[id="{_quote(element_id)}"]'
    if attrs.get("name"):
        return f'{tag}[name="{_quote(attrs["name"])}"]'
    classes = (attrs.get("class") or "").split()
    if classes and _CSS_IDENT.match(classes[0]):
        return f"{tag}.{classes[0]}"
    return tag


def ref_selector(element: SnapshotElement) -> str:
    """Selector for an element's snapshot reference, falling back to its attributes."""

    testid = element.attributes.get("data-testid")
    if testid and element.ref == testid:
        return f'[data-testid="{_quote(testid)}"]'
    if element.ref and _SYNTHETIC_REF.match(element.ref):
        return f'[{SYNTHETIC_REF_ATTR}="{element.ref}"]'
    return build_selector(element)


def _attribute_hit(element: SnapshotElement, pattern: str) -> Optional[str]:
    if not matches_attribute_pattern(element.attributes, pattern):
        return None
    attr, value, substring = parse_attribute_pattern(pattern)
    if substring:
        return f'{element.tag}[{attr}*="{_quote(value)}" i]'
    return f'{element.tag}[{attr}="{_quote(value)}"]'


def _text_hit(element: SnapshotElement, phrase: str) -> Optional[str]:
    if element.text and phrase.lower() in element.text.lower():
        return ref_selector(element)
    return None


def _type_hit(element: SnapshotElement, allowed: str) -> Optional[str]:
    element_type = (element.attributes.get("type") or "").lower()
    if element_type and element_type == allowed.lower():
        return ref_selector(element)
    return None


def _maxlength_hit(element: SnapshotElement, expected: int) -> Optional[str]:
    raw = (element.attributes.get("maxlength") or "").strip()
    if raw.isdigit() and int(raw) == expected:
        return ref_selector(element)
    return None


_LAYER_PROBES = {
    "attributes": _attribute_hit,
    "text": _text_hit,
    "types": _type_hit,
    "maxlength": _maxlength_hit,
}


def _candidates(pattern: PurposePattern, layer: str) -> Sequence[Any]:
    return getattr(pattern, layer)


def _coerce(element: SnapshotElement | Mapping[str, Any]) -> SnapshotElement:
    if isinstance(element, SnapshotElement):
        return element
    return SnapshotElement.from_payload(element)


def identify_field_by_purpose(element: SnapshotElement | Mapping[str, Any], purpose: str) -> Optional[str]:
    """Return a selector when ``element`` satisfies the heuristics for ``purpose``."""

    pattern = FIELD_PATTERNS.get(purpose)
    if pattern is None:
        return None
    node = _coerce(element)
    if node.tag not in INTERACTIVE_TAGS:
        return None
    for layer in LAYERS:
        probe = _LAYER_PROBES[layer]
        for candidate in _candidates(pattern, layer):
            selector = probe(node, candidate)
            if selector:
                return selector
    return None


def find_selector(elements: Iterable[SnapshotElement | Mapping[str, Any]], purpose: str) -> Optional[str]:
    """Search a whole snapshot for ``purpose``.

    Evaluation order is layer, then pattern declaration order, then document
    order, so an attribute hit anywhere on the page beats a text hit.
    Substring attribute hits carry the CSS ``i`` flag to mirror the
    case-insensitive match.
    """

    pattern = FIELD_PATTERNS.get(purpose)
    if pattern is None:
        return None
    nodes = [node for node in (_coerce(item) for item in elements) if node.tag in INTERACTIVE_TAGS]
    for layer in LAYERS:
        probe = _LAYER_PROBES[layer]
        for candidate in _candidates(pattern, layer):
            for node in nodes:
                selector = probe(node, candidate)
                if selector:
                    return selector
    return None


def discover_fields(
    elements: Iterable[SnapshotElement | Mapping[str, Any]],
    purposes: Iterable[str],
) -> Dict[str, str]:
    """Map each purpose to the selector discovery found; misses are omitted."""

    nodes: List[SnapshotElement] = [_coerce(item) for item in elements]
    discovered: Dict[str, str] = {}
    for purpose in purposes:
        selector = find_selector(nodes, purpose)
        if selector:
            discovered[purpose] = selector
    return discovered


__all__ = [
    "LAYERS",
    "SYNTHETIC_REF_ATTR",
    "SnapshotElement",
    "build_selector",
    "discover_fields",
    "find_selector",
    "identify_field_by_purpose",
    "matches_attribute_pattern",
    "parse_attribute_pattern",
    "ref_selector",
]
