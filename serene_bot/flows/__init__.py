from serene_bot.flows.flow import Flow
from serene_bot.flows.gate import GateError, GateValidationError, StepCancelled
from serene_bot.flows.registry import FlowRegistry, flows
from serene_bot.flows.state import FlowState, Phase
from serene_bot.flows.steps import Field, FlowDefinition, StepDefinition
from serene_bot.flows.store import StepStore

__all__ = [
    "Field",
    "Flow",
    "FlowDefinition",
    "FlowRegistry",
    "FlowState",
    "GateError",
    "GateValidationError",
    "Phase",
    "StepCancelled",
    "StepDefinition",
    "StepStore",
    "flows",
]
