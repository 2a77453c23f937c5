"""GEICO auto quote flow."""

from __future__ import annotations

from .base import CarrierAgent, FieldFill, StepPlan
from .steps import StepClassifier, StepRule

_PERSONAL = (
    FieldFill("dateOfBirth", "dateofbirth", ('input[name="dateOfBirth"]', 'input[id*="dob" i]')),
    FieldFill("firstName", "firstname", ('input[name="firstName"]',)),
    FieldFill("lastName", "lastname", ('input[name="lastName"]',)),
)
_ADDRESS = (
    FieldFill("streetAddress", "street", ('input[name="street"]', 'input[name*="address" i]')),
    FieldFill("apt", None, ('input[name*="apt" i]',), required=False),
)
_VEHICLE = (
    FieldFill("vehicleVin", None, ('input[name="vin"]', 'input[id*="vin" i]'), carrier_field="vin", required=False),
    FieldFill("vehicleYear", "vehicle_year", ('select[name="vehicleYear"]',), kind="select"),
    FieldFill("vehicleMake", "vehicle_make", ('select[name="vehicleMake"]',), kind="select"),
    FieldFill("vehicleModel", "vehicle_model", ('select[name="vehicleModel"]',), kind="select"),
)
_HOUSEHOLD = (
    FieldFill(
        "housingType",
        None,
        ('input[type="radio"][name*="own" i][value*="{value}" i]', 'input[type="radio"][value*="{value}" i]'),
        kind="radio",
        carrier_field="homeOwnership",
    ),
)
_DRIVER = (
    FieldFill("gender", None, ('input[type="radio"][name*="gender" i][value*="{value}" i]',), kind="radio"),
    FieldFill("maritalStatus", None, ('select[name*="marital" i]',), kind="select"),
    FieldFill("education", None, ('select[name*="education" i]',), kind="select"),
    FieldFill("occupation", None, ('input[name*="occupation" i]',), required=False),
    FieldFill("industry", None, ('input[name*="industry" i]',), required=False),
)


class GeicoAgent(CarrierAgent):
    carrier_id = "geico"
    display_name = "GEICO"
    start_url = "https://www.geico.com/auto-insurance/"
    zip_selectors = (
        'input[name="zip"]',
        'input[id*="zip"]',
        'input[placeholder*="ZIP"]',
        'input[placeholder*="Zip"]',
        'input[aria-label*="ZIP"]',
        'input[aria-label*="Zip"]',
    )
    start_selectors = ('button:has-text("Start My Quote")', 'button:has-text("Start Quote")', 'input[type="submit"]')
    continue_selectors = (
        'button[type="submit"]',
        'input[type="submit"]',
        "button.submit",
        "button.continue",
        'button:has-text("Continue")',
        'button:has-text("Next")',
    )
    quote_selectors = (".price", ".premium", ".amount")
    default_term = "6 months"
    first_step_fields = ("dateOfBirth", "firstName", "lastName")
    classifier = StepClassifier(
        rules=(
            StepRule("quote_results", url=("/quote-results", "/rates"), text=("Your Quote",)),
            StepRule("personal_info", url=("/about-you",), title=("about you",), text=("date of birth",)),
            StepRule("address", url=("/address",), title=("address",), text=("street address",)),
            StepRule("vehicle", url=("/vehicle",), title=("vehicle",), text=("vehicle year",)),
            StepRule("household", url=("/household",), title=("household",), text=("own or rent",)),
            StepRule("driver_details", url=("/driver",), title=("driver",), text=("marital status",)),
        ),
    )
    plans = {
        "personal_info": StepPlan("personal_info", _PERSONAL, ("streetAddress", "apt"), "address"),
        "address": StepPlan("address", _ADDRESS, ("vehicleYear", "vehicleMake", "vehicleModel", "vehicleVin"), "vehicle"),
        "vehicle": StepPlan("vehicle", _VEHICLE, ("housingType",), "household"),
        "household": StepPlan(
            "household", _HOUSEHOLD, ("gender", "maritalStatus", "education", "occupation", "industry"), "driver_details"
        ),
        "driver_details": StepPlan("driver_details", _DRIVER, (), "quote_results"),
    }


__all__ = ["GeicoAgent"]
