"""Hardcoded selector chains evaluated after heuristic discovery misses."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Awaitable, Callable, Dict, Iterable, Optional, Sequence, Tuple

from quote_engine.core.errors import DiscoveryExhaustedError

LOGGER = logging.getLogger(__name__)

SelectorProbe = Callable[[str], Awaitable[bool]]

GENERIC_FALLBACKS: Dict[str, Tuple[str, ...]] = {
    "zipcode": (
        'input[name*="zip" i]',
        'input[id*="zip" i]',
        'input[placeholder*="zip" i]',
        'input[type="tel"][maxlength="5"]',
        'input[autocomplete="postal-code"]',
    ),
    "email": ('input[type="email"]', 'input[name*="email" i]', 'input[id*="email" i]'),
    "firstname": ('input[name*="first" i]', 'input[id*="first" i]', 'input[placeholder*="first" i]'),
    "lastname": ('input[name*="last" i]', 'input[id*="last" i]', 'input[placeholder*="last" i]'),
    "dateofbirth": (
        'input[name*="birth" i]',
        'input[name*="dob" i]',
        'input[id*="birth" i]',
        'input[type="date"]',
    ),
    "phone": ('input[type="tel"]', 'input[name*="phone" i]', 'input[id*="phone" i]'),
    "address": ('input[name*="address" i]', 'input[name*="street" i]', 'input[id*="address" i]'),
    "street": ('input[name*="street" i]', 'input[id*="street" i]', 'input[autocomplete="address-line1"]'),
    "city": ('input[name*="city" i]', 'input[id*="city" i]', 'input[autocomplete="address-level2"]'),
    "state": ('select[name*="state" i]', 'select[id*="state" i]', 'input[name*="state" i]'),
    "vehicle_year": ('select[name*="year" i]', 'select[id*="year" i]', 'input[name*="year" i]'),
    "vehicle_make": ('select[name*="make" i]', 'select[id*="make" i]', 'input[name*="make" i]'),
    "vehicle_model": ('select[name*="model" i]', 'select[id*="model" i]', 'input[name*="model" i]'),
    "auto_insurance_button": ('a[href*="auto" i]', 'button:has-text("Auto")', 'a:has-text("Auto Insurance")'),
    "start_quote_button": (
        'button:has-text("Start")',
        'button:has-text("Quote")',
        'input[type="submit"]',
        'button[type="submit"]',
        'a:has-text("Get Quote")',
    ),
    "continue_button": (
        'button:has-text("Continue")',
        'button:has-text("Next")',
        'button[type="submit"]',
        'input[type="submit"]',
        ".continue-btn",
        ".next-btn",
        ".btn-primary",
    ),
}


@dataclass(frozen=True)
class FallbackChain:
    """Ordered selectors for one purpose; the first that probes true wins."""

    purpose: str
    selectors: Tuple[str, ...]

    @classmethod
    def for_purpose(
        cls,
        purpose: str,
        carrier_selectors: Sequence[str] = (),
        *,
        include_generic: bool = True,
    ) -> "FallbackChain":
        generic = GENERIC_FALLBACKS.get(purpose, ()) if include_generic else ()
        ordered = _dedupe([*carrier_selectors, *generic])
        return cls(purpose=purpose, selectors=ordered)


def _dedupe(selectors: Iterable[str]) -> Tuple[str, ...]:
    seen: Dict[str, None] = {}
    for selector in selectors:
        if selector and selector not in seen:
            seen[selector] = None
    return tuple(seen)


async def first_match(selectors: Iterable[str], probe: SelectorProbe) -> Optional[str]:
    """Return the first selector the probe accepts; probe failures skip the candidate."""

    for selector in selectors:
        try:
            if await probe(selector):
                return selector
        except Exception as exc:  # noqa: BLE001 - a broken candidate is not fatal
            LOGGER.debug("Fallback selector %s raised %s", selector, exc)
    return None


async def resolve_chain(chain: FallbackChain, probe: SelectorProbe) -> str:
    selector = await first_match(chain.selectors, probe)
    if selector is None:
        raise DiscoveryExhaustedError(chain.purpose)
    return selector


__all__ = [
    "FallbackChain",
    "GENERIC_FALLBACKS",
    "SelectorProbe",
    "first_match",
    "resolve_chain",
]
