"""FSM states for guided flows."""

from aiogram.fsm.state import StatesGroup, State


class FlowInput(StatesGroup):
    """A guided flow owns this chat's free-text input."""
    active = State()
