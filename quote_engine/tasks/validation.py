"""Validation of accumulated user data against field definitions."""

from __future__ import annotations

import re
from typing import Any, Dict, Mapping, Optional

from quote_engine.schema.fields import FieldDefinition

EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")

_TEXT_TYPES = {"text", "email", "tel", "date"}
_CHOICE_TYPES = {"select", "radio"}


def _is_empty(value: Any) -> bool:
    return value is None or value == "" or value == []


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _type_error(definition: FieldDefinition, value: Any) -> Optional[str]:
    kind = definition.type
    if kind in _TEXT_TYPES and not isinstance(value, str):
        return f"{definition.name} must be text"
    if kind in _CHOICE_TYPES and not (isinstance(value, str) or _is_number(value)):
        return f"{definition.name} must be one of the listed options"
    if kind == "number" and not _is_number(value):
        if not (isinstance(value, str) and _as_float(value) is not None):
            return f"{definition.name} must be a number"
    if kind == "boolean" and not isinstance(value, bool):
        return f"{definition.name} must be true or false"
    if kind == "checkbox" and not isinstance(value, (bool, list)):
        return f"{definition.name} must be true, false or a list of options"
    if kind == "array" and not (isinstance(value, list) and all(isinstance(item, dict) for item in value)):
        return f"{definition.name} must be a list of entries"
    return None


def _as_float(value: Any) -> Optional[float]:
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def validate_value(definition: FieldDefinition, value: Any) -> Optional[str]:
    """Return the first problem with ``value`` or None when it is acceptable."""

    if _is_empty(value):
        return f"{definition.name} is required" if definition.required else None
    problem = _type_error(definition, value)
    if problem:
        return problem
    if definition.type in _CHOICE_TYPES and definition.options and str(value) not in definition.options:
        return f"{definition.name} must be one of: {', '.join(definition.options)}"
    if definition.type == "email" and not EMAIL_PATTERN.match(value):
        return f"{definition.name} must be a valid email address"
    rules = definition.validation
    if rules is None:
        return None
    if isinstance(value, str):
        if rules.pattern and not re.search(rules.pattern, value):
            return f"{definition.name} format is invalid"
        if rules.min_length is not None and len(value) < rules.min_length:
            return f"{definition.name} must be at least {rules.min_length} characters"
        if rules.max_length is not None and len(value) > rules.max_length:
            return f"{definition.name} must be no more than {rules.max_length} characters"
    number = _as_float(value) if definition.type == "number" else None
    if number is not None:
        if rules.min is not None and number < rules.min:
            return f"{definition.name} must be at least {rules.min:g}"
        if rules.max is not None and number > rules.max:
            return f"{definition.name} must be no more than {rules.max:g}"
    return None


def _validate_items(definition: FieldDefinition, items: list) -> Dict[str, str]:
    errors: Dict[str, str] = {}
    for index, item in enumerate(items):
        for child in definition.item_fields:
            problem = validate_value(child, item.get(child.id))
            if problem:
                errors[f"{definition.id}[{index}].{child.id}"] = problem
    return errors


def validate_user_data(data: Mapping[str, Any], fields: Mapping[str, FieldDefinition]) -> Dict[str, str]:
    """Check every field and collect one message per failing field id.

    An empty result means the data is valid. Values for ids missing from
    ``fields`` are ignored.
    """

    errors: Dict[str, str] = {}
    for field_id, definition in fields.items():
        value = data.get(field_id)
        problem = validate_value(definition, value)
        if problem:
            errors[field_id] = problem
            continue
        if definition.type == "array" and isinstance(value, list) and definition.item_fields:
            errors.update(_validate_items(definition, value))
    return errors


__all__ = ["EMAIL_PATTERN", "validate_user_data", "validate_value"]
