"""Step Store — single source of truth for one flow instance."""

from __future__ import annotations

from typing import Any, Mapping

from serene_bot.flows import state as st
from serene_bot.flows.state import FlowState


class StepStore:
    """Holds the current FlowState; every mutation swaps in a new value."""

    def __init__(self, total_steps: int, defaults: Mapping[str, Any] | None = None):
        self._defaults = dict(defaults or {})
        self._state = st.initial(total_steps, self._defaults)

    @property
    def state(self) -> FlowState:
        return self._state

    @property
    def form_data(self) -> dict[str, Any]:
        return dict(self._state.form_data)

    def advance(self) -> FlowState:
        self._state = st.advanced(self._state)
        return self._state

    def retreat(self) -> FlowState:
        self._state = st.retreated(self._state)
        return self._state

    def merge(self, partial: Mapping[str, Any]) -> FlowState:
        self._state = st.merged(self._state, partial)
        return self._state

    def reset(self) -> FlowState:
        self._state = st.initial(self._state.total_steps, self._defaults)
        return self._state

    # Phase bookkeeping driven by the flow controller

    def mark_pending(self) -> FlowState:
        self._state = st.pending(self._state)
        return self._state

    def fail(self, message: str) -> FlowState:
        self._state = st.failed(self._state, message)
        return self._state

    def settle(self) -> FlowState:
        self._state = st.settled(self._state)
        return self._state

    def mark_finished(self) -> FlowState:
        self._state = st.finished(self._state)
        return self._state

    def focus_on(self, key: str | None) -> FlowState:
        self._state = st.focused(self._state, key)
        return self._state
