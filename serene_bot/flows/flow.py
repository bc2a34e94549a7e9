"""
Flow controller — wires user actions to the Step Store and Step Gate.

One Flow per mounted flow instance. Only one advance / finish attempt can be
in flight at a time; while PENDING every action except close() is ignored.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any

from serene_bot.flows import gate
from serene_bot.flows.gate import GateError, GateValidationError, StepCancelled
from serene_bot.flows.renderer import View, render
from serene_bot.flows.state import FlowState, Phase
from serene_bot.flows.steps import FlowDefinition, StepDefinition
from serene_bot.flows.store import StepStore

logger = logging.getLogger(__name__)


class Flow:
    def __init__(self, definition: FlowDefinition):
        self.definition = definition
        self.store = StepStore(definition.total, definition.defaults)
        self.result: Any = None
        self.closed = False
        self._inflight: asyncio.Future | None = None

    @property
    def state(self) -> FlowState:
        return self.store.state

    @property
    def step(self) -> StepDefinition:
        return self.definition.step(self.state.current_step)

    @property
    def busy(self) -> bool:
        return self.state.busy

    def view(self, busy: bool = False) -> View:
        return render(self.definition, self.state, busy=busy)

    def _accepting_input(self) -> bool:
        return not (self.closed or self.state.busy or self.state.finished)

    # ── Input ──────────────────────────────────────────────

    def enter(self, text: str) -> FlowState:
        """Free-text answer for the field currently asked for."""
        if not self._accepting_input():
            return self.state
        target = self.step.pending_field(self.state.form_data, self.state.focus)
        if target is None:
            return self.state
        return self._answer(target.key, lambda: target.accept(text))

    def pick(self, choice_index: int) -> FlowState:
        """Choice-button answer for the field currently asked for."""
        if not self._accepting_input():
            return self.state
        target = self.step.pending_field(self.state.form_data, self.state.focus)
        if target is None or not 0 <= choice_index < len(target.choices):
            return self.state
        return self._answer(target.key, lambda: target.accept(target.choices[choice_index]))

    def skip(self) -> FlowState:
        if not self._accepting_input():
            return self.state
        target = self.step.pending_field(self.state.form_data, self.state.focus)
        if target is None or target.required:
            return self.state
        self.store.merge({target.key: None})
        self.store.focus_on(None)
        return self.store.settle()

    def edit(self, field_index: int) -> FlowState:
        if not self._accepting_input() or not 0 <= field_index < len(self.step.fields):
            return self.state
        self.store.settle()
        return self.store.focus_on(self.step.fields[field_index].key)

    def _answer(self, key: str, produce) -> FlowState:
        try:
            value = produce()
        except GateValidationError as e:
            return self.store.fail(e.message)
        self.store.merge({key: value})
        self.store.focus_on(None)
        return self.store.settle()

    # ── Transitions ────────────────────────────────────────

    async def advance(self) -> FlowState:
        """Leave the current step through its gate; no-op on the terminal step."""
        if not self._accepting_input() or self.state.is_last:
            return self.state
        step = self.step
        try:
            gate.check(step, self.state.form_data)
        except GateValidationError as e:
            return self.store.fail(e.message)

        self.store.mark_pending()
        try:
            partial = await self._run(gate.evaluate(step, self.state.form_data))
        except StepCancelled:
            logger.info("%s: step %s cancelled by user", self.definition.name, step.index)
            return self.store.settle()
        except GateError as e:
            return self.store.fail(e.message)
        except asyncio.CancelledError:
            if self.closed:
                return self.state
            raise
        self.store.merge(partial)
        return self.store.advance()

    async def retry(self) -> FlowState:
        """Re-attempt whatever failed on this step."""
        if self.state.is_last:
            return await self.finish()
        return await self.advance()

    def back(self) -> FlowState:
        if not self._accepting_input():
            return self.state
        if self.state.is_first:
            return self.store.settle() if self.state.phase is Phase.ERROR else self.state
        return self.store.retreat()

    async def finish(self) -> FlowState:
        """Hand the collected form data to the flow's collaborator, exactly once."""
        if not self._accepting_input() or not self.state.is_last:
            return self.state
        try:
            gate.check(self.step, self.state.form_data)
        except GateValidationError as e:
            return self.store.fail(e.message)

        self.store.mark_pending()
        try:
            if self.definition.on_finish is not None:
                self.result = await self._run(self.definition.on_finish(dict(self.state.form_data)))
        except asyncio.CancelledError:
            if self.closed:
                return self.state
            raise
        except Exception as e:
            logger.warning("%s: finish failed: %s", self.definition.name, e)
            return self.store.fail(gate.describe(e))
        logger.info("%s: flow finished", self.definition.name)
        return self.store.mark_finished()

    def restart(self) -> FlowState:
        if self.closed or self.state.busy:
            return self.state
        return self.store.reset()

    def close(self) -> None:
        """Discard the flow; an in-flight gate is cancelled."""
        self.closed = True
        if self._inflight is not None and not self._inflight.done():
            self._inflight.cancel()

    async def _run(self, coro):
        self._inflight = asyncio.ensure_future(coro)
        try:
            return await self._inflight
        finally:
            self._inflight = None
