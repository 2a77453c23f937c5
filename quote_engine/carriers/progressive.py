"""Progressive auto quote flow keyed off its URL slugs."""

from __future__ import annotations

from typing import Any, Dict

from quote_engine.core.errors import ActionError
from quote_engine.core.responses import build_completed
from quote_engine.core.types import CarrierResponse
from quote_engine.schema.fields import YES_NO, FieldDefinition

from .base import CarrierAgent, CarrierContext, FieldFill, StepHandler, StepPlan
from .state import CarrierTaskState
from .steps import StepClassifier, StepRule

BUNDLE_CHOICES = ("auto_only", "auto_and_home", "auto_and_renters")

_PERSONAL = (
    FieldFill("firstName", "firstname", ('input[name="FirstName"]',)),
    FieldFill("lastName", "lastname", ('input[name="LastName"]',)),
    FieldFill("dateOfBirth", "dateofbirth", ('input[name*="birth"]', 'input[name*="dob"]')),
    FieldFill("email", "email", ('input[type="email"]', 'input[name*="email"]'), required=False),
)
_ADDRESS = (
    FieldFill("streetAddress", "street", ('input[name*="street"]', 'input[name*="address"]')),
    FieldFill("apt", None, ('input[name*="apt"]', 'input[name*="suite"]'), required=False),
    FieldFill("city", "city", ('input[name*="city"]',)),
)
_VEHICLE = (
    FieldFill("vehicleYear", "vehicle_year", ('select[name*="year"]', 'select[id*="year"]'), kind="select"),
    FieldFill("vehicleMake", "vehicle_make", ('select[name*="make"]', 'select[id*="make"]'), kind="select"),
    FieldFill("vehicleModel", "vehicle_model", ('select[name*="model"]', 'select[id*="model"]'), kind="select"),
    FieldFill(
        "primaryUse", None, ('select[name*="use"]', 'select[name*="purpose"]'), kind="select", carrier_field="primaryUse"
    ),
    FieldFill("annualMileage", None, ('select[name*="mileage" i]', 'select[name*="miles" i]'), kind="select"),
    FieldFill("ownership", None, ('select[name*="own"]', 'select[name*="lease"]'), kind="select"),
    FieldFill("trackingDevice", None, ('input[type="radio"][name*="track" i][value*="{value}" i]',), kind="radio"),
)
_DRIVER = (
    FieldFill("gender", None, ('input[type="radio"][name*="gender" i][value*="{value}" i]',), kind="radio"),
    FieldFill("maritalStatus", None, ('select[name*="marital"]', 'select[name*="marriage"]'), kind="select"),
    FieldFill("education", None, ('select[name*="education"]', 'select[name*="school"]'), kind="select"),
    FieldFill("employmentStatus", None, ('select[name*="employment"]', 'select[name*="work"]'), kind="select"),
    FieldFill("occupation", None, ('input[name*="occupation"]', 'input[name*="job"]'), required=False),
)
_FINAL = (
    FieldFill(
        "hasPreviousProgressive", None, ('input[type="radio"][name*="previous" i][value*="{value}" i]',), kind="radio"
    ),
    FieldFill(
        "liabilityLimit",
        None,
        ('select[name*="bodily"]', 'select[name*="liability"]'),
        kind="select",
        carrier_field="liabilityLimits",
    ),
    FieldFill("email", None, ('input[type="email"]',), required=False),
)

VEHICLE_FIELDS = ("vehicleYear", "vehicleMake", "vehicleModel", "primaryUse", "annualMileage", "ownership", "trackingDevice")
DRIVER_FIELDS = ("gender", "maritalStatus", "education", "employmentStatus", "occupation")
FINAL_FIELDS = ("hasPreviousProgressive", "liabilityLimit", "email")


class ProgressiveAgent(CarrierAgent):
    carrier_id = "progressive"
    display_name = "Progressive"
    start_url = "https://www.progressive.com/"
    product_first = True
    product_selectors = ('a[href*="/auto" i]', 'button:has-text("Auto")', '[data-product="auto"]')
    zip_selectors = ("#zipCode_mma", 'input[name="ZipCode"]')
    start_selectors = ("#qsButton_mma", 'input[name="qsButton"]', 'button:has-text("Get a Quote")')
    continue_selectors = (
        'button[type="submit"]',
        'input[type="submit"]',
        'button:has-text("Continue")',
        "button#next-button",
        'a:has-text("Continue")',
    )
    quote_selectors = ('[data-qu-id="price"]', '[data-testid="price-amount"]', ".final-price", 'span[class*="price"]')
    default_term = "6-Month"
    first_step_fields = ("firstName", "lastName", "dateOfBirth", "email")
    classifier = StepClassifier(
        rules=(
            StepRule("personal_info", url=("nameedit",), title=("personal information",)),
            StepRule("address_info", url=("addressedit",), title=("address",)),
            StepRule("vehicle_info", url=("vehiclesalledit",), title=("vehicle",)),
            StepRule("driver_details", url=("driversaddpnidetails", "driversindex"), title=("driver",)),
            StepRule("final_details", url=("finaldetailsedit",), title=("final details",)),
            StepRule("bundle_options", url=("bundle",), title=("bundle",)),
            StepRule("quote_results", url=("rates",), title=("rates", "quote")),
        ),
        sources=("url", "title"),
    )
    extra_fields = {
        "hasPreviousProgressive": FieldDefinition(
            "hasPreviousProgressive", "Had Progressive in the past 6 months?", "radio", True, options=YES_NO
        ),
        "bundleChoice": FieldDefinition("bundleChoice", "Bundle Options", "select", True, options=BUNDLE_CHOICES),
    }
    plans = {
        "personal_info": StepPlan("personal_info", _PERSONAL, ("streetAddress", "apt", "city"), "address_info"),
        "address_info": StepPlan("address_info", _ADDRESS, VEHICLE_FIELDS, "vehicle_info"),
        "vehicle_info": StepPlan("vehicle_info", _VEHICLE, DRIVER_FIELDS, "driver_details"),
        "driver_details": StepPlan("driver_details", _DRIVER, FINAL_FIELDS, "final_details"),
        "final_details": StepPlan("final_details", _FINAL, ("bundleChoice",), "bundle_options"),
    }

    def step_handlers(self) -> Dict[str, StepHandler]:
        handlers = super().step_handlers()
        handlers["bundle_options"] = self.handle_bundle_options
        return handlers

    async def handle_bundle_options(
        self,
        context: CarrierContext,
        state: CarrierTaskState,
        data: Dict[str, Any],
    ) -> CarrierResponse:
        key = context.session_key
        choice = data.get("bundleChoice")
        if not choice:
            return self.next_response(("bundleChoice",), "bundle_options", data)
        if choice == "auto_only":
            await self.click_purpose(key, "no_thanks", ('button:has-text("No thanks")', 'a:has-text("just auto")'))
            await self.settle(key)
        else:
            await self.click_continue(key)
        quote = await self.extract_quote(key)
        if quote is None:
            raise ActionError("Could not retrieve quote after bundle options")
        return build_completed(quote)


__all__ = ["BUNDLE_CHOICES", "ProgressiveAgent"]
