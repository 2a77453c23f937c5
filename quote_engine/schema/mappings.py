"""Per-carrier vocabulary for unified field values."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, Mapping, Optional

LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True)
class FieldMapping:
    carrier_field_id: str
    transform: Optional[Callable[[Any], Any]] = None

    def apply(self, value: Any) -> Any:
        return self.transform(value) if self.transform else value


def _lookup(table: Mapping[str, str]) -> Callable[[Any], Any]:
    def transform(value: Any) -> Any:
        return table.get(value, value)

    return transform


def _home_ownership(value: Any) -> str:
    return "Own" if "Own" in str(value) else "Rent"


PROGRESSIVE_PRIMARY_USE = {
    "Pleasure (recreational, errands)": "Pleasure (recreational, errands)",
    "Commuting to work/school": "Business",
    "Business use": "Business",
    "Farm/Ranch use": "Farm Use",
}

PROGRESSIVE_LIABILITY = {
    "State Minimum": "$15,000/$30,000",
    "25/50/25 ($25K/$50K/$25K)": "$25,000/$50,000",
    "50/100/50 ($50K/$100K/$50K)": "$50,000/$100,000",
    "100/300/100 ($100K/$300K/$100K)": "$100,000/$300,000",
    "250/500/250 ($250K/$500K/$250K)": "$250,000/$500,000",
    "500/500/500 ($500K/$500K/$500K)": "$500,000/$1,000,000",
}

LIBERTY_OWNERSHIP = {
    "Own (fully paid off)": "Own",
    "Finance (making payments)": "Finance",
    "Lease": "Lease",
}


def _same(*field_ids: str) -> Dict[str, FieldMapping]:
    return {field_id: FieldMapping(field_id) for field_id in field_ids}


CARRIER_FIELD_MAPPINGS: Dict[str, Dict[str, FieldMapping]] = {
    "progressive": {
        **_same("firstName", "lastName", "dateOfBirth", "email", "vehicleYear", "vehicleMake", "vehicleModel"),
        "primaryUse": FieldMapping("primaryUse", _lookup(PROGRESSIVE_PRIMARY_USE)),
        **_same("gender", "maritalStatus", "education", "employmentStatus", "occupation"),
        "liabilityLimit": FieldMapping("liabilityLimits", _lookup(PROGRESSIVE_LIABILITY)),
    },
    "statefarm": _same(
        "firstName", "lastName", "dateOfBirth", "email", "phone", "streetAddress", "city", "state", "zipCode",
        "vehicleYear", "vehicleMake", "vehicleModel", "ownership", "purchaseDate", "antiTheftDevice", "gender",
    ),
    "libertymutual": {
        **_same("firstName", "lastName"),
        "dateOfBirth": FieldMapping("birthday"),
        **_same("email", "phone", "maritalStatus"),
        "gender": FieldMapping("genderIdentity"),
        "vehicleYear": FieldMapping("year"),
        "vehicleMake": FieldMapping("make"),
        "vehicleModel": FieldMapping("model"),
        "vehicleTrim": FieldMapping("trim"),
        "ownership": FieldMapping("ownershipStatus", _lookup(LIBERTY_OWNERSHIP)),
        **_same("education", "employmentStatus"),
    },
    "geico": {
        **_same("dateOfBirth", "firstName", "lastName", "vehicleYear", "vehicleMake", "vehicleModel"),
        "vehicleVin": FieldMapping("vin"),
        **_same("gender", "maritalStatus"),
        "housingType": FieldMapping("homeOwnership", _home_ownership),
        **_same("education", "occupation", "industry"),
    },
}


def transform_data_for_carrier(unified_data: Mapping[str, Any], carrier_id: str) -> Dict[str, Any]:
    """Rename and convert unified values into a carrier's vocabulary.

    Fields without a mapping entry for the carrier are dropped, as are
    ``None`` and empty-string values.
    """

    mapping = CARRIER_FIELD_MAPPINGS.get(carrier_id.lower())
    if mapping is None:
        LOGGER.warning("No field mapping found for carrier %s", carrier_id)
        return {}
    transformed: Dict[str, Any] = {}
    for field_id, value in unified_data.items():
        entry = mapping.get(field_id)
        if entry is None or value is None or value == "":
            continue
        transformed[entry.carrier_field_id] = entry.apply(value)
    return transformed


__all__ = ["CARRIER_FIELD_MAPPINGS", "FieldMapping", "transform_data_for_carrier"]
