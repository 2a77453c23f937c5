"""Shared contract and step machinery for carrier quote flows."""

from __future__ import annotations

import asyncio
import logging
import re
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, Iterable, Mapping, Optional, Sequence, Tuple

from quote_engine.browser.actions import BrowserActions
from quote_engine.core.errors import ActionError, MissingInputError, UnknownStepError
from quote_engine.core.responses import build_completed, build_error, build_processing, build_waiting
from quote_engine.core.types import CarrierResponse, CarrierStatus, FieldPayload, QuotePayload
from quote_engine.discovery.fallbacks import FallbackChain, first_match, resolve_chain
from quote_engine.discovery.field_discovery import find_selector
from quote_engine.schema.fields import FieldDefinition
from quote_engine.schema.mappings import transform_data_for_carrier
from quote_engine.schema.unified import get_all_fields

from .state import CarrierStateStore, CarrierTaskState
from .steps import PageSignals, StepClassifier, StepMatch

LOGGER = logging.getLogger(__name__)

CONTINUE_SELECTORS: Tuple[str, ...] = (
    'button:has-text("Continue")',
    'button:has-text("Next")',
    'button[type="submit"]',
    'input[type="submit"]',
    ".continue-btn",
    ".next-btn",
    ".btn-primary",
)

PRICE_SELECTORS: Tuple[str, ...] = (
    ".price",
    ".premium",
    ".quote-amount",
    '[data-testid*="price"]',
    '[data-testid*="premium"]',
)

_AMOUNT = re.compile(r"\$\s*([\d,]+(?:\.\d{1,2})?)")

ADDRESS_ALIASES = {"street": "streetAddress", "city": "city", "state": "state", "zipCode": "zipCode", "apt": "apt"}

StepHandler = Callable[["CarrierContext", CarrierTaskState, Dict[str, Any]], Awaitable[CarrierResponse]]


@dataclass(frozen=True)
class CarrierContext:
    """Execution context for one task x carrier chain."""

    task_id: str
    carrier: str
    user_data: Dict[str, Any]
    step_timeout_ms: int = 120000

    @property
    def session_key(self) -> str:
        return f"{self.task_id}_{self.carrier}"


@dataclass(frozen=True)
class FieldFill:
    """How one unified field is written onto a carrier page.

    ``kind`` is one of text, slow_text, select, radio, check or confirm.
    Radio selectors may contain ``{value}``. Confirm fields gate a step on
    user input without touching the page.
    """

    field_id: str
    purpose: Optional[str] = None
    selectors: Tuple[str, ...] = ()
    kind: str = "text"
    carrier_field: Optional[str] = None
    required: bool = True


@dataclass(frozen=True)
class StepPlan:
    label: str
    fills: Tuple[FieldFill, ...] = ()
    next_fields: Tuple[str, ...] = ()
    next_label: str = ""
    advance: bool = True
    expects_quote: bool = False


def parse_amount(text: str) -> Optional[float]:
    match = _AMOUNT.search(text or "")
    if not match:
        return None
    try:
        return float(match.group(1).replace(",", ""))
    except ValueError:
        return None


def flatten_user_data(data: Mapping[str, Any]) -> Dict[str, Any]:
    """Lift the first vehicle and a nested address onto top-level unified ids."""

    flat = dict(data)
    vehicles = data.get("vehicles")
    if isinstance(vehicles, list) and vehicles and isinstance(vehicles[0], dict):
        for key, value in vehicles[0].items():
            flat.setdefault(key, value)
    address = data.get("address")
    if isinstance(address, dict):
        for key, value in address.items():
            flat.setdefault(ADDRESS_ALIASES.get(key, key), value)
    return flat


def _present(value: Any) -> bool:
    return value is not None and value != "" and value != []


class CarrierAgent:
    """Base state machine; variants supply selectors, classifier rules and step plans."""

    carrier_id: str = ""
    display_name: str = ""
    start_url: str = ""
    zip_selectors: Tuple[str, ...] = ()
    product_selectors: Tuple[str, ...] = ()
    start_selectors: Tuple[str, ...] = ()
    modal_selectors: Tuple[str, ...] = ()
    continue_selectors: Tuple[str, ...] = CONTINUE_SELECTORS
    quote_selectors: Tuple[str, ...] = PRICE_SELECTORS
    default_term: str = "6 months"
    product_first: bool = False
    classifier: StepClassifier = StepClassifier(rules=())
    plans: Mapping[str, StepPlan] = {}
    first_step_label: str = "personal_info"
    first_step_fields: Tuple[str, ...] = ("firstName", "lastName", "dateOfBirth")
    extra_fields: Mapping[str, FieldDefinition] = {}

    def __init__(
        self,
        actions: BrowserActions,
        *,
        states: CarrierStateStore | None = None,
        settle_seconds: float = 1.0,
    ) -> None:
        self.actions = actions
        self.states = states or CarrierStateStore()
        self.settle_seconds = settle_seconds

    # ------------------------------------------------------------------ contract

    async def start(self, context: CarrierContext) -> CarrierResponse:
        key = context.session_key
        state = self.states.ensure(key, context.task_id, self.carrier_id, context.user_data)
        state.status = "starting"
        if not _present(context.user_data.get("zipCode")):
            message = f"ZIP code is required to start a {self.display_name} quote."
            LOGGER.warning("[%s] %s cannot start: %s", self.carrier_id, key, message)
            return self._apply(state, build_error(message))
        self.actions.sessions.reopen(key)
        async with self.actions.sessions.lock(key):
            try:
                response = await self._bounded(context, self.run_start(context, state), "start")
            except Exception as exc:  # noqa: BLE001
                return await self._fail(key, state, exc, "start-error")
        if self.actions.sessions.is_closed(key):
            return self._cleaned_up(key)
        state.current_step_label = self.first_step_label
        return self._apply(state, response)

    async def step(self, context: CarrierContext, step_data: Dict[str, Any]) -> CarrierResponse:
        key = context.session_key
        if self.actions.sessions.is_closed(key):
            return self._cleaned_up(key)
        state = self.states.ensure(key, context.task_id, self.carrier_id, context.user_data)
        state.merge(step_data)
        data = {**state.user_data, **step_data}
        async with self.actions.sessions.lock(key):
            state.status = "processing"
            try:
                response = await self._bounded(context, self._run_step(context, state, data), "step")
            except Exception as exc:  # noqa: BLE001
                label = "unknown-step" if isinstance(exc, UnknownStepError) else "step-error"
                return await self._fail(key, state, exc, label)
        if self.actions.sessions.is_closed(key):
            return self._cleaned_up(key)
        return self._apply(state, response)

    async def _run_step(self, context: CarrierContext, state: CarrierTaskState, data: Dict[str, Any]) -> CarrierResponse:
        key = context.session_key
        quote = await self.extract_quote(key)
        if quote is not None:
            state.current_step_label = "quote_results"
            return build_completed(quote)
        signals = await self.read_page(key)
        match = await self.classify_step(key, signals)
        state.current_step_label = match.label
        handler = self.step_handlers().get(match.label)
        if handler is None:
            raise UnknownStepError(signals.url, match.label)
        LOGGER.info("[%s] %s handling step %s (%s)", self.carrier_id, key, match.label, match.source)
        response = await handler(context, state, data)
        state.current_step += 1
        return response

    async def _bounded(self, context: CarrierContext, work: Awaitable[CarrierResponse], phase: str) -> CarrierResponse:
        timeout = context.step_timeout_ms / 1000
        try:
            return await asyncio.wait_for(work, timeout=timeout)
        except asyncio.TimeoutError as exc:
            raise ActionError(
                f"{self.display_name} {phase} did not finish within {context.step_timeout_ms} ms"
            ) from exc

    def status(self, session_key: str) -> CarrierStatus:
        state = self.states.get(session_key)
        if state is None:
            return {"status": "inactive", "currentStep": 0, "currentStepLabel": "entry"}
        return state.as_status()

    async def cleanup(self, session_key: str) -> Dict[str, bool]:
        closed = await self.actions.sessions.close_session(session_key)
        removed = self.states.remove(session_key)
        LOGGER.info("[%s] cleaned up %s", self.carrier_id, session_key)
        return {"success": closed or removed}

    # ------------------------------------------------------------- flow pieces

    async def run_start(self, context: CarrierContext, state: CarrierTaskState) -> CarrierResponse:
        """Navigate, enter the ZIP, pick the product line and open the quote flow."""

        key = context.session_key
        data = flatten_user_data(context.user_data)
        await self.navigate(key, self.start_url)
        if self.product_first:
            await self.select_product(key)
        await self.enter_zip(key, data)
        if not self.product_first:
            await self.select_product(key)
        await self.click_purpose(key, "start_quote_button", self.start_selectors)
        await self.settle(key)
        await self.dismiss_optional(key, self.modal_selectors)
        return self.next_response(self.first_step_fields, self.first_step_label, data)

    async def enter_zip(self, key: str, data: Mapping[str, Any]) -> None:
        await self.fill_field(key, FieldFill("zipCode", "zipcode", self.zip_selectors), data)

    async def select_product(self, key: str) -> bool:
        if not self.product_selectors:
            return False
        return await self.click_purpose(key, "auto_insurance_button", self.product_selectors, required=False)

    def step_handlers(self) -> Dict[str, StepHandler]:
        handlers: Dict[str, StepHandler] = {}
        for label, plan in self.plans.items():
            handlers[label] = self._plan_handler(plan)
        handlers["quote_results"] = self.handle_quote_results
        return handlers

    def _plan_handler(self, plan: StepPlan) -> StepHandler:
        async def _handler(context: CarrierContext, state: CarrierTaskState, data: Dict[str, Any]) -> CarrierResponse:
            return await self.run_plan(context, plan, data)

        return _handler

    async def run_plan(self, context: CarrierContext, plan: StepPlan, data: Dict[str, Any]) -> CarrierResponse:
        key = context.session_key
        flat = flatten_user_data(data)
        missing = self.missing_fields(plan.fills, flat)
        if missing:
            return build_waiting(missing, message=f"{self.display_name} needs more information for {plan.label}")
        for fill in plan.fills:
            await self.fill_field(key, fill, flat)
        if plan.advance:
            await self.click_continue(key)
        quote = await self.extract_quote(key)
        if quote is not None:
            return build_completed(quote)
        if plan.expects_quote:
            raise ActionError(f"Could not retrieve quote after {plan.label.replace('_', ' ')} step.")
        return self.next_response(plan.next_fields, plan.next_label, flat)

    async def handle_quote_results(
        self,
        context: CarrierContext,
        state: CarrierTaskState,
        data: Dict[str, Any],
    ) -> CarrierResponse:
        quote = await self.extract_quote(context.session_key)
        if quote is None:
            url = await self.actions.current_url(context.session_key)
            raise ActionError(f"Quote page reached at {url} but no premium could be extracted")
        return build_completed(quote)

    async def classify_step(self, key: str, signals: PageSignals) -> StepMatch:
        return self.classifier.classify(signals)

    async def read_page(self, key: str) -> PageSignals:
        result = await self.actions.page_state(key)
        if result.failed():
            raise ActionError(result.error or "could not read page state")
        return PageSignals.from_payload(result.data)

    # ---------------------------------------------------------------- helpers

    async def navigate(self, key: str, url: str) -> str:
        result = await self.actions.navigate(key, url)
        if result.failed():
            raise ActionError(result.error or f"navigation to {url} failed")
        return str(result.data or url)

    async def _exists(self, key: str, selector: str) -> bool:
        return await self.actions.count(key, selector) > 0

    async def locate(
        self,
        key: str,
        purpose: Optional[str],
        selectors: Sequence[str] = (),
        *,
        label: str | None = None,
        required: bool = True,
    ) -> Optional[str]:
        """Discovery first, then the carrier's and the generic fallback chain."""

        if purpose:
            snapshot = await self.actions.snapshot(key)
            if snapshot.success:
                discovered = find_selector(snapshot.data or [], purpose)
                if discovered and await self._exists(key, discovered):
                    LOGGER.debug("[%s] discovered %s -> %s", self.carrier_id, purpose, discovered)
                    return discovered
        chain = FallbackChain.for_purpose(purpose or label or "element", selectors, include_generic=bool(purpose))

        async def _probe(selector: str) -> bool:
            return await self._exists(key, selector)

        if not required:
            return await first_match(chain.selectors, _probe)
        return await resolve_chain(chain, _probe)

    def value_for(self, fill: FieldFill, data: Mapping[str, Any]) -> Any:
        if fill.carrier_field:
            mapped = transform_data_for_carrier(data, self.carrier_id)
            if fill.carrier_field in mapped:
                return mapped[fill.carrier_field]
        return data.get(fill.field_id)

    def missing_fields(self, fills: Iterable[FieldFill], data: Mapping[str, Any]) -> Dict[str, FieldPayload]:
        ids = [fill.field_id for fill in fills if fill.required and not _present(self.value_for(fill, data))]
        return self.field_payloads(ids)

    async def fill_field(self, key: str, fill: FieldFill, data: Mapping[str, Any]) -> bool:
        value = self.value_for(fill, data)
        if not _present(value):
            if fill.required:
                raise MissingInputError(f"{fill.field_id} is required for {self.display_name}")
            return False
        if fill.kind == "confirm":
            return True
        # Checkboxes are only ever ticked; a negative answer leaves them alone.
        if fill.kind == "check" and str(value).strip().lower() in ("no", "false", "0"):
            return False
        selectors = fill.selectors
        purpose = fill.purpose
        if fill.kind == "radio":
            selectors = tuple(selector.format(value=value) for selector in selectors)
            purpose = None
        selector = await self.locate(key, purpose, selectors, label=fill.field_id, required=fill.required)
        if selector is None:
            LOGGER.info("[%s] optional field %s not present", self.carrier_id, fill.field_id)
            return False
        if fill.kind == "select":
            result = await self.actions.select_option(key, selector, str(value))
        elif fill.kind == "check":
            result = await self.actions.check(key, selector)
        elif fill.kind == "radio":
            result = await self.actions.click(key, selector)
        else:
            result = await self.actions.type(key, selector, str(value), slowly=fill.kind == "slow_text")
        if result.failed():
            raise ActionError(f"Could not fill {fill.field_id}: {result.error}")
        return True

    async def click_purpose(self, key: str, purpose: str, selectors: Sequence[str] = (), *, required: bool = True) -> bool:
        selector = await self.locate(key, purpose, selectors, required=required)
        if selector is None:
            return False
        result = await self.actions.click(key, selector)
        if result.failed():
            raise ActionError(f"Could not click {purpose}: {result.error}")
        return True

    async def click_continue(self, key: str) -> None:
        await self.click_purpose(key, "continue_button", self.continue_selectors)
        await self.settle(key)

    async def settle(self, key: str) -> None:
        if self.settle_seconds > 0:
            await self.actions.wait_for(key, time=self.settle_seconds)

    async def dismiss_optional(self, key: str, selectors: Sequence[str]) -> bool:
        """Click the first present selector; nothing present is not an error."""

        if not selectors:
            return False

        async def _probe(selector: str) -> bool:
            return await self._exists(key, selector)

        selector = await first_match(selectors, _probe)
        if selector is None:
            return False
        result = await self.actions.fast_click(key, selector)
        return result.success

    async def extract_quote(self, key: str) -> Optional[QuotePayload]:
        for selector in self.quote_selectors:
            if not await self._exists(key, selector):
                continue
            result = await self.actions.extract_text(key, selector)
            text = str(result.data or "") if result.success else ""
            if "$" not in text:
                continue
            url = await self.actions.current_url(key)
            return self.build_quote(text, selector=selector, url=url)
        return None

    def build_quote(self, text: str, *, selector: str, url: Optional[str]) -> QuotePayload:
        amount = parse_amount(text)
        lowered = text.lower()
        monthly = amount if amount is not None and ("/mo" in lowered or "month" in lowered) else None
        return {
            "price": text.strip(),
            "term": self.default_term,
            "monthlyPremium": monthly,
            "details": {"carrier": self.carrier_id, "selector": selector, "url": url, "amount": amount},
        }

    def field_payloads(self, field_ids: Iterable[str]) -> Dict[str, FieldPayload]:
        catalog = get_all_fields()
        payloads: Dict[str, FieldPayload] = {}
        for field_id in field_ids:
            definition = self.extra_fields.get(field_id) or catalog.get(field_id)
            if definition is None:
                raise KeyError(f"No field definition for {field_id}")
            payloads[field_id] = definition.as_payload()
        return payloads

    @classmethod
    def required_fields(cls) -> Dict[str, FieldDefinition]:
        """Every field this flow cannot complete without, in the order it asks for them."""

        catalog = get_all_fields()
        ids = ["zipCode", *cls.first_step_fields]
        for plan in cls.plans.values():
            ids.extend(fill.field_id for fill in plan.fills if fill.required)
        required: Dict[str, FieldDefinition] = {}
        for field_id in ids:
            definition = cls.extra_fields.get(field_id) or catalog.get(field_id)
            if definition is not None and definition.required:
                required.setdefault(field_id, definition)
        return required

    def next_response(self, field_ids: Sequence[str], label: str, data: Mapping[str, Any]) -> CarrierResponse:
        """Ask only for next-step fields the task has not supplied yet."""

        remaining = [field_id for field_id in field_ids if not _present(data.get(field_id))]
        if remaining:
            return build_waiting(self.field_payloads(remaining), message=f"Waiting for {label.replace('_', ' ')}")
        return build_processing(f"Ready for {label.replace('_', ' ')}" if label else None)

    # ------------------------------------------------------------ bookkeeping

    async def _fail(self, key: str, state: CarrierTaskState, exc: BaseException, label: str) -> CarrierResponse:
        if self.actions.sessions.is_closed(key):
            return self._cleaned_up(key)
        message = str(exc) or exc.__class__.__name__
        LOGGER.error("[%s] %s failed: %s", self.carrier_id, key, message)
        await self.actions.screenshot(key, f"{self.carrier_id}-{label}")
        return self._apply(state, build_error(message))

    def _cleaned_up(self, key: str) -> CarrierResponse:
        message = f"{self.display_name} session {key} was cleaned up"
        LOGGER.warning("[%s] %s", self.carrier_id, message)
        response = build_error(message)
        response["currentStep"] = 0
        response["currentStepLabel"] = "entry"
        return response

    def _apply(self, state: CarrierTaskState, response: CarrierResponse) -> CarrierResponse:
        state.status = response.get("status", state.status)
        state.required_fields = dict(response.get("requiredFields") or {})
        if "quote" in response:
            state.quote = response["quote"]
        state.error = response.get("error")
        state.touch()
        response["currentStep"] = state.current_step
        response["currentStepLabel"] = state.current_step_label
        return response


__all__ = [
    "CONTINUE_SELECTORS",
    "CarrierAgent",
    "CarrierContext",
    "FieldFill",
    "PRICE_SELECTORS",
    "StepHandler",
    "StepPlan",
    "flatten_user_data",
    "parse_amount",
]
