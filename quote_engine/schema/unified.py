"""Unified schema queries shared by the task manager and the API."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Iterable, List, Mapping, Tuple

from .fields import CATEGORIES, FieldDefinition


@dataclass(frozen=True)
class FormStep:
    """Groups fields for progressive disclosure in a client form."""

    id: str
    title: str
    description: str
    categories: Tuple[str, ...]
    fields: Tuple[str, ...]

    def as_payload(self) -> Dict[str, object]:
        return {
            "id": self.id,
            "title": self.title,
            "description": self.description,
            "categories": list(self.categories),
            "fields": list(self.fields),
        }


FORM_STEPS: Tuple[FormStep, ...] = (
    FormStep(
        "basic_info",
        "Basic Information",
        "Tell us about yourself to get started",
        ("personal_info", "address"),
        ("firstName", "lastName", "dateOfBirth", "email", "phone", "streetAddress", "city", "state", "zipCode",
         "housingType"),
    ),
    FormStep(
        "vehicle_details",
        "Vehicle Information",
        "Details about the vehicle you want to insure",
        ("vehicle",),
        ("vehicleYear", "vehicleMake", "vehicleModel", "vehicleTrim", "ownership", "primaryUse", "annualMileage",
         "commuteMiles", "antiTheftDevice", "rideshareUsage"),
    ),
    FormStep(
        "driver_profile",
        "Driver Profile",
        "Your personal and driving background",
        ("driving_history", "demographics"),
        ("gender", "maritalStatus", "education", "employmentStatus", "licenseAge", "yearsLicensed", "accidents",
         "violations", "continuousCoverage", "currentInsurer"),
    ),
    FormStep(
        "coverage_preferences",
        "Coverage Preferences",
        "Choose your preferred coverage levels",
        ("coverage",),
        ("liabilityLimit", "collisionDeductible", "comprehensiveDeductible", "medicalPayments", "uninsuredMotorist",
         "rentalCoverage", "roadsideAssistance"),
    ),
)


def get_fields_by_category(category: str) -> Dict[str, FieldDefinition]:
    if category not in CATEGORIES:
        raise KeyError(f"Unknown schema category: {category}")
    return dict(CATEGORIES[category])


def get_all_fields() -> Dict[str, FieldDefinition]:
    """Flatten every category into a single id -> definition mapping."""

    merged: Dict[str, FieldDefinition] = {}
    for fields in CATEGORIES.values():
        merged.update(fields)
    return merged


def merge_carrier_fields(field_sets: Iterable[Mapping[str, FieldDefinition]]) -> Dict[str, FieldDefinition]:
    """Union field definitions from several carriers.

    On an id collision the first definition is kept unless a later one is
    required, in which case the required definition replaces it. Merging a
    set with itself yields the same set.
    """

    merged: Dict[str, FieldDefinition] = {}
    for fields in field_sets:
        for field_id, definition in fields.items():
            current = merged.get(field_id)
            if current is None or (definition.required and not current.required):
                merged[field_id] = definition
    return merged


def progressive_form_steps() -> List[FormStep]:
    return list(FORM_STEPS)


def schema_payload() -> Dict[str, Dict[str, object]]:
    return {
        category: {field_id: definition.as_payload() for field_id, definition in fields.items()}
        for category, fields in CATEGORIES.items()
    }


__all__ = [
    "FORM_STEPS",
    "FormStep",
    "get_all_fields",
    "get_fields_by_category",
    "merge_carrier_fields",
    "progressive_form_steps",
    "schema_payload",
]
