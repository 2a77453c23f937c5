"""Heuristic tables keyed by field purpose."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Tuple

INTERACTIVE_TAGS = ("input", "select", "textarea", "button", "a")


@dataclass(frozen=True)
class PurposePattern:
    """Ordered heuristics for one purpose; earlier entries win."""

    attributes: Tuple[str, ...] = ()
    text: Tuple[str, ...] = ()
    types: Tuple[str, ...] = ()
    maxlength: Tuple[int, ...] = ()


FIELD_PATTERNS: Dict[str, PurposePattern] = {
    "zipcode": PurposePattern(
        attributes=("name*=zip", "id*=zip", "placeholder*=zip"),
        text=("zip code", "postal code"),
        types=("tel", "text"),
        maxlength=(5,),
    ),
    "email": PurposePattern(
        attributes=("type=email", "name*=email", "id*=email"),
        text=("email", "e-mail"),
        types=("email",),
    ),
    "firstname": PurposePattern(
        attributes=("name*=first", "id*=first", "placeholder*=first"),
        text=("first name", "given name"),
        types=("text",),
    ),
    "lastname": PurposePattern(
        attributes=("name*=last", "id*=last", "placeholder*=last"),
        text=("last name", "surname", "family name"),
        types=("text",),
    ),
    "dateofbirth": PurposePattern(
        attributes=("name*=birth", "name*=dob", "id*=birth", "placeholder*=birth"),
        text=("date of birth", "birthday", "birth date"),
        types=("text", "date"),
    ),
    "phone": PurposePattern(
        attributes=("name*=phone", "id*=phone", "type=tel"),
        text=("phone", "telephone", "mobile"),
        types=("tel", "text"),
    ),
    "address": PurposePattern(
        attributes=("name*=address", "name*=street", "id*=address"),
        text=("address", "street"),
        types=("text",),
    ),
    "street": PurposePattern(
        attributes=("name*=street", "id*=street", "autocomplete*=address-line1", "placeholder*=street"),
        text=("street address", "street"),
    ),
    "city": PurposePattern(
        attributes=("name*=city", "id*=city", "autocomplete*=address-level2"),
        text=("city",),
    ),
    "state": PurposePattern(
        attributes=("name=state", "id=state", "name*=state", "autocomplete*=address-level1"),
        text=("state",),
    ),
    "vehicle_year": PurposePattern(
        attributes=("name*=vehicleyear", "id*=vehicleyear", "name*=year", "id*=year"),
        text=("vehicle year", "year"),
    ),
    "vehicle_make": PurposePattern(
        attributes=("name*=make", "id*=make"),
        text=("vehicle make", "make"),
    ),
    "vehicle_model": PurposePattern(
        attributes=("name*=model", "id*=model"),
        text=("vehicle model", "model"),
    ),
    "auto_insurance_button": PurposePattern(
        attributes=("data-product*=auto", "href*=auto"),
        text=("auto insurance", "car insurance", "vehicle insurance"),
        types=("button", "link"),
    ),
    "start_quote_button": PurposePattern(
        attributes=("data-action*=quote", "name*=quote", "id*=quote"),
        text=("start quote", "get quote", "quote", "start my quote"),
        types=("button", "submit"),
    ),
    "continue_button": PurposePattern(
        text=("continue", "next", "proceed"),
        types=("button", "submit"),
    ),
}

__all__ = ["FIELD_PATTERNS", "INTERACTIVE_TAGS", "PurposePattern"]
