"""Carrier quote flows."""

from .base import CarrierAgent, CarrierContext, FieldFill, StepPlan, flatten_user_data, parse_amount
from .geico import GeicoAgent
from .libertymutual import LibertyMutualAgent
from .progressive import ProgressiveAgent
from .registry import AGENT_TYPES, CarrierRegistry, carrier_required_fields
from .state import CarrierStateStore, CarrierTaskState
from .statefarm import StateFarmAgent
from .steps import PageSignals, StepClassifier, StepMatch, StepRule

__all__ = [
	"AGENT_TYPES",
	"CarrierAgent",
	"CarrierContext",
	"CarrierRegistry",
	"CarrierStateStore",
	"CarrierTaskState",
	"FieldFill",
	"GeicoAgent",
	"LibertyMutualAgent",
	"PageSignals",
	"ProgressiveAgent",
	"StateFarmAgent",
	"StepClassifier",
	"StepMatch",
	"StepPlan",
	"StepRule",
	"carrier_required_fields",
	"flatten_user_data",
	"parse_amount",
]
