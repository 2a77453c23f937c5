"""Lookup table of carrier agents."""

from __future__ import annotations

from typing import Dict, List, Mapping, Optional, Type

from quote_engine.browser.actions import BrowserActions
from quote_engine.core.errors import UnsupportedCarrierError
from quote_engine.schema.fields import FieldDefinition

from .base import CarrierAgent
from .geico import GeicoAgent
from .libertymutual import LibertyMutualAgent
from .progressive import ProgressiveAgent
from .state import CarrierStateStore
from .statefarm import StateFarmAgent

AGENT_TYPES: Dict[str, Type[CarrierAgent]] = {
    "geico": GeicoAgent,
    "progressive": ProgressiveAgent,
    "statefarm": StateFarmAgent,
    "libertymutual": LibertyMutualAgent,
}


def carrier_required_fields(carrier: str) -> Dict[str, FieldDefinition]:
    agent_type = AGENT_TYPES.get(carrier.lower())
    if agent_type is None:
        raise UnsupportedCarrierError(f"Unsupported carrier: {carrier}")
    return agent_type.required_fields()


class CarrierRegistry:
    """Carrier agents bound to one set of browser actions and one state store."""

    def __init__(
        self,
        actions: BrowserActions,
        *,
        states: CarrierStateStore | None = None,
        agent_types: Mapping[str, Type[CarrierAgent]] | None = None,
        settle_seconds: float = 1.0,
    ) -> None:
        self.states = states or CarrierStateStore()
        self._agents: Dict[str, CarrierAgent] = {
            carrier: agent_type(actions, states=self.states, settle_seconds=settle_seconds)
            for carrier, agent_type in (agent_types or AGENT_TYPES).items()
        }

    def get(self, carrier: str) -> Optional[CarrierAgent]:
        return self._agents.get(carrier.lower())

    def require(self, carrier: str) -> CarrierAgent:
        agent = self.get(carrier)
        if agent is None:
            raise UnsupportedCarrierError(f"Unsupported carrier: {carrier}")
        return agent

    def is_supported(self, carrier: str) -> bool:
        return carrier.lower() in self._agents

    def available(self) -> List[str]:
        return list(self._agents)

    def display_names(self) -> Dict[str, str]:
        return {carrier: agent.display_name for carrier, agent in self._agents.items()}

    def unsupported(self, carriers: List[str]) -> List[str]:
        return [carrier for carrier in carriers if not self.is_supported(carrier)]


__all__ = ["AGENT_TYPES", "CarrierRegistry", "carrier_required_fields"]
