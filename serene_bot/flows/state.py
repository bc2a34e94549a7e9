"""
Flow state — one guided flow instance as an explicit state value.

States:
  READY(i)     → Step(i), waiting for user input
  PENDING(i)   → an advance / finish attempt is in flight
  ERROR(i)     → Step(i) with last_error set
  FINISHED(N)  → terminal, finish() resolved

All transitions are pure functions returning a new FlowState.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, Mapping


class Phase(str, Enum):
    READY = "READY"
    PENDING = "PENDING"
    ERROR = "ERROR"
    FINISHED = "FINISHED"


@dataclass(frozen=True)
class FlowState:
    total_steps: int
    current_step: int = 1
    form_data: dict[str, Any] = field(default_factory=dict)
    phase: Phase = Phase.READY
    last_error: str | None = None
    focus: str | None = None

    def __post_init__(self):
        if self.total_steps < 1:
            raise ValueError("A flow needs at least one step")
        if not 1 <= self.current_step <= self.total_steps:
            raise ValueError(
                f"current_step {self.current_step} outside [1, {self.total_steps}]"
            )
        if self.phase is Phase.ERROR and not self.last_error:
            raise ValueError("ERROR phase requires a non-empty last_error")
        if self.phase is not Phase.ERROR and self.last_error is not None:
            raise ValueError(f"last_error is only allowed in ERROR phase, not {self.phase.value}")
        if self.phase is Phase.FINISHED and self.current_step != self.total_steps:
            raise ValueError("Only the terminal step can be FINISHED")

    @property
    def is_first(self) -> bool:
        return self.current_step == 1

    @property
    def is_last(self) -> bool:
        return self.current_step == self.total_steps

    @property
    def busy(self) -> bool:
        return self.phase is Phase.PENDING

    @property
    def finished(self) -> bool:
        return self.phase is Phase.FINISHED


def initial(total_steps: int, form_data: Mapping[str, Any] | None = None) -> FlowState:
    return FlowState(total_steps=total_steps, form_data=dict(form_data or {}))


# ── Transitions ────────────────────────────────────────────

def advanced(state: FlowState) -> FlowState:
    """Step(i) → Step(i+1); a no-op on the terminal step."""
    if state.is_last:
        return state
    step = min(state.current_step + 1, state.total_steps)
    return replace(state, current_step=step, phase=Phase.READY, last_error=None, focus=None)


def retreated(state: FlowState) -> FlowState:
    """Step(i) → Step(i-1); a no-op on the first step."""
    if state.is_first:
        return state
    step = max(state.current_step - 1, 1)
    return replace(state, current_step=step, phase=Phase.READY, last_error=None, focus=None)


def merged(state: FlowState, partial: Mapping[str, Any]) -> FlowState:
    return replace(state, form_data={**state.form_data, **partial})


def pending(state: FlowState) -> FlowState:
    return replace(state, phase=Phase.PENDING, last_error=None)


def failed(state: FlowState, message: str) -> FlowState:
    return replace(state, phase=Phase.ERROR, last_error=message or "Something went wrong. Please try again.")


def settled(state: FlowState) -> FlowState:
    """Back to READY on the same step, dropping any error."""
    return replace(state, phase=Phase.READY, last_error=None)


def finished(state: FlowState) -> FlowState:
    return replace(state, phase=Phase.FINISHED, last_error=None, focus=None)


def focused(state: FlowState, key: str | None) -> FlowState:
    return replace(state, focus=key)
