"""Liberty Mutual auto quote flow.

The quote interview lives under ``/shop/quote-interview`` and keeps one URL
for every step, so steps there are told apart by page content.
"""

from __future__ import annotations

import logging
from urllib.parse import urlencode

from quote_engine.core.errors import ActionError
from quote_engine.core.types import CarrierResponse

from .base import CarrierAgent, CarrierContext, FieldFill, StepPlan, flatten_user_data
from .state import CarrierTaskState
from .steps import PageSignals, StepClassifier, StepMatch, StepRule

LOGGER = logging.getLogger(__name__)

INTERVIEW_PATH = "/shop/quote-interview"
DIRECT_QUOTE_URL = "https://buy.libertymutual.com/"

INTERVIEW_CLASSIFIER = StepClassifier(
    rules=(
        StepRule("personal_info", text=("About You", "personal information", "First Name")),
        StepRule("vehicle", text=("Vehicle", "Year", "Make")),
        StepRule("drivers", text=("Driver", "license", "Gender")),
        StepRule("insurance_history", text=("Current Insurance", "insurance status")),
        StepRule("discounts", text=("Savings", "Discount", "RightTrack")),
        StepRule("quote_results", text=("Quote Results", "monthly premium", "per month")),
    ),
    default="personal_info",
    sources=("text",),
)

_PERSONAL = (
    FieldFill("firstName", "firstname", ('input[name="firstName"]',)),
    FieldFill("lastName", "lastname", ('input[name="lastName"]',)),
    FieldFill("dateOfBirth", "dateofbirth", ('input[name="dateOfBirth"]', 'input[name="birthday"]'), carrier_field="birthday"),
)
_ADDRESS = (FieldFill("streetAddress", "street", ('input[name*="address-line-1" i]', 'input[name="addressLine1"]')),)
_VEHICLE = (
    FieldFill("vehicleYear", "vehicle_year", ('select[name="year"]',), kind="select", carrier_field="year"),
    FieldFill("vehicleMake", "vehicle_make", ('select[name="make"]',), kind="select", carrier_field="make"),
    FieldFill("vehicleModel", "vehicle_model", ('select[name="model"]',), kind="select", carrier_field="model"),
    FieldFill(
        "ownership", None, ('select[name*="ownership" i]',), kind="select", carrier_field="ownershipStatus", required=False
    ),
)
_DRIVERS = (
    FieldFill(
        "gender", None, ('input[type="radio"][name*="gender" i][value*="{value}" i]',), kind="radio",
        carrier_field="genderIdentity",
    ),
    FieldFill("maritalStatus", None, ('select[name*="marital" i]',), kind="select"),
)
_HISTORY = (FieldFill("continuousCoverage", None, ('select[name*="insurance" i]', 'select[name*="coverage" i]'), kind="select"),)

VEHICLE_FIELDS = ("vehicleYear", "vehicleMake", "vehicleModel")


class LibertyMutualAgent(CarrierAgent):
    carrier_id = "libertymutual"
    display_name = "Liberty Mutual"
    start_url = "https://www.libertymutual.com/auto-insurance"
    zip_selectors = (
        'input[name*="zip" i]',
        'input[placeholder*="zip" i]',
        'input[id*="zip" i]',
    )
    start_selectors = (
        'button:has-text("Get my price")',
        'button:has-text("Get quote")',
        'button:has-text("Start")',
        'button[type="submit"]',
        'input[type="submit"]',
        'button:has-text("Continue")',
    )
    modal_selectors = ('div[role="alertdialog"] button:has-text("OK, thanks!")',)
    continue_selectors = ('button:has-text("Next")', 'button:has-text("Continue")', 'button[type="submit"]')
    quote_selectors = ('[data-testid*="premium"]', '[class*="premium" i]', ".price", ".quote-amount")
    default_term = "12 months"
    classifier = StepClassifier(
        rules=(
            StepRule("vehicle", url=("vehicle",), text=("vehicle",)),
            StepRule("address", url=("address",), text=("address",)),
            StepRule("personal_info", url=("personal",), text=("about you",)),
        ),
        sources=("text", "url"),
        by_rule=True,
    )
    plans = {
        "personal_info": StepPlan("personal_info", _PERSONAL, VEHICLE_FIELDS, "vehicle"),
        "address": StepPlan("address", _ADDRESS, VEHICLE_FIELDS, "vehicle"),
        "vehicle": StepPlan("vehicle", _VEHICLE, ("gender", "maritalStatus"), "drivers"),
        "drivers": StepPlan("drivers", _DRIVERS, ("continuousCoverage",), "insurance_history"),
        "insurance_history": StepPlan("insurance_history", _HISTORY, (), "discounts"),
        "discounts": StepPlan("discounts", (), (), "quote_results"),
    }

    def direct_quote_url(self, zip_code: str) -> str:
        return f"{DIRECT_QUOTE_URL}?{urlencode({'lob': 'Auto', 'policyType': 'Auto', 'zipCode': zip_code})}"

    async def run_start(self, context: CarrierContext, state: CarrierTaskState) -> CarrierResponse:
        key = context.session_key
        data = flatten_user_data(context.user_data)
        await self.navigate(key, self.start_url)
        zip_selector = await self.locate(key, "zipcode", self.zip_selectors, required=False)
        if zip_selector is None:
            LOGGER.info("[%s] no ZIP input on the landing page, using the direct quote URL", self.carrier_id)
            await self.navigate(key, self.direct_quote_url(str(data["zipCode"])))
        else:
            result = await self.actions.type(key, zip_selector, str(data["zipCode"]), slowly=True)
            if result.failed():
                raise ActionError(f"Could not enter ZIP code: {result.error}")
            await self.click_purpose(key, "start_quote_button", self.start_selectors)
            await self.settle(key)
            await self.dismiss_optional(key, self.modal_selectors)
        return self.next_response(self.first_step_fields, self.first_step_label, data)

    async def classify_step(self, key: str, signals: PageSignals) -> StepMatch:
        if INTERVIEW_PATH in signals.url.lower():
            return INTERVIEW_CLASSIFIER.classify(signals)
        return self.classifier.classify(signals)


__all__ = ["DIRECT_QUOTE_URL", "INTERVIEW_CLASSIFIER", "LibertyMutualAgent"]
