from .fields import CATEGORIES, FieldDefinition, Validation
from .mappings import CARRIER_FIELD_MAPPINGS, transform_data_for_carrier
from .unified import (
    get_all_fields,
    get_fields_by_category,
    merge_carrier_fields,
    progressive_form_steps,
    schema_payload,
)

__all__ = [
    "CARRIER_FIELD_MAPPINGS",
    "CATEGORIES",
    "FieldDefinition",
    "Validation",
    "get_all_fields",
    "get_fields_by_category",
    "merge_carrier_fields",
    "progressive_form_steps",
    "schema_payload",
    "transform_data_for_carrier",
]
