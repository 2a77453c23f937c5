"""State Farm auto quote flow."""

from __future__ import annotations

from typing import Optional

from quote_engine.core.types import QuotePayload
from quote_engine.schema.fields import FieldDefinition

from .base import CarrierAgent, FieldFill, StepPlan
from .steps import PageSignals, StepClassifier, StepMatch, StepRule

VEHICLE_PROBE = 'select#vehicleYear, select[name*="year" i], input[name*="year" i]'
ADDRESS_PROBE = (
    'input[name="addressLine1"], input[name*="street" i], input[id*="address" i], input[placeholder*="Street" i]'
)

_PERSONAL = (
    FieldFill("firstName", "firstname"),
    FieldFill("lastName", "lastname"),
    FieldFill("dateOfBirth", "dateofbirth"),
)
_VEHICLE = (
    FieldFill("vehicleYear", "vehicle_year", ("select#vehicleYear",), kind="select"),
    FieldFill("vehicleMake", "vehicle_make", ("select#vehicleMake",), kind="select"),
    FieldFill("vehicleModel", "vehicle_model", ("select#vehicleModel", "input#vehicleModel"), kind="select"),
)
_ADDRESS = (
    FieldFill("streetAddress", "street", ('input[name="addressLine1"]',), carrier_field="streetAddress"),
    FieldFill("city", "city"),
    FieldFill("state", "state", kind="select"),
)
_DRIVER = (
    FieldFill("gender", None, ('select[name*="gender" i]', 'select[id*="gender" i]'), kind="select"),
    FieldFill("maritalStatus", None, ('select[name*="marital" i]', 'select[id*="marital" i]'), kind="select"),
)

VEHICLE_FIELDS = ("vehicleYear", "vehicleMake", "vehicleModel")
DRIVER_FIELDS = ("gender", "maritalStatus")


class StateFarmAgent(CarrierAgent):
    carrier_id = "statefarm"
    display_name = "State Farm"
    start_url = "https://www.statefarm.com/insurance/auto"
    zip_selectors = (
        "#quote-main-zip-code-input1",
        'input[name="zipCode"]',
        "#quote-main-zip-code",
        "input#zipCode",
        'input[name="zip"]',
        "#zipcode",
    )
    start_selectors = (
        "#quote-submit-button1",
        'button[data-action="get-quote"]',
        'button:has-text("Start a quote")',
        'button:has-text("Start Quote")',
        'input[value="Start Quote"]',
    )
    modal_selectors = ('button[aria-label="Close"]', 'button:has-text("No thanks")')
    quote_selectors = ('[data-testid*="premium"]', ".premium-amount", ".quote-price")
    default_term = "month"
    classifier = StepClassifier(
        rules=(
            StepRule("vehicle_info", url=("/vehicle",), title=("vehicle",)),
            StepRule("driver_details", url=("/driver",), title=("driver",)),
            StepRule("coverage_selection", url=("/coverage",), title=("coverage",)),
            StepRule("quote_results", url=("/rates", "/final"), title=("rates", "final")),
            StepRule("personal_info", url=("/quote",)),
        ),
        sources=("url", "title"),
    )
    extra_fields = {
        "acceptDefaultCoverage": FieldDefinition(
            "acceptDefaultCoverage", "Continue to see your quote", "boolean", True
        ),
    }
    plans = {
        "personal_info": StepPlan("personal_info", _PERSONAL, VEHICLE_FIELDS, "vehicle_info"),
        "vehicle_info": StepPlan("vehicle_info", _VEHICLE, DRIVER_FIELDS, "driver_details"),
        "vehicle_and_address": StepPlan("vehicle_and_address", _VEHICLE + _ADDRESS, DRIVER_FIELDS, "driver_details"),
        "driver_details": StepPlan("driver_details", _DRIVER, ("acceptDefaultCoverage",), "coverage_selection"),
        "coverage_selection": StepPlan(
            "coverage_selection",
            (FieldFill("acceptDefaultCoverage", kind="confirm"),),
            expects_quote=True,
        ),
    }

    async def is_vehicle_and_address_combined(self, key: str) -> bool:
        """Some sessions show vehicle and street address fields on one page."""

        if not await self.actions.is_visible(key, VEHICLE_PROBE):
            return False
        return await self.actions.is_visible(key, ADDRESS_PROBE)

    async def classify_step(self, key: str, signals: PageSignals) -> StepMatch:
        if await self.is_vehicle_and_address_combined(key):
            return StepMatch("vehicle_and_address", "dom")
        return self.classifier.classify(signals)

    async def extract_quote(self, key: str) -> Optional[QuotePayload]:
        url = (await self.actions.current_url(key) or "").lower()
        if "/rates" not in url and "/final" not in url:
            return None
        return await super().extract_quote(key)


__all__ = ["StateFarmAgent"]
