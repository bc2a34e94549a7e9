"""
Step Gate — decides whether the current step may be left.

Two stages:
  1. check()    → synchronous validation, never calls a collaborator
  2. evaluate() → awaits the step's on_advance (may hit the API / checkout)

Every rejection leaves here as a GateError with a human-readable message.
User cancellation (StepCancelled) is not an error and passes through.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, Mapping

if TYPE_CHECKING:
    from serene_bot.flows.steps import StepDefinition

logger = logging.getLogger(__name__)

GENERIC_ERROR = "Something went wrong. Please try again."


class GateError(Exception):
    """A step's exit condition failed; message is shown to the user."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message or GENERIC_ERROR


class GateValidationError(GateError):
    """Input is missing or malformed — shown inline, nothing was sent anywhere."""


class StepCancelled(Exception):
    """The user backed out of the step (e.g. closed the checkout)."""


def describe(exc: BaseException) -> str:
    message = getattr(exc, "message", None) or str(exc)
    return message.strip() or GENERIC_ERROR


def check(step: StepDefinition, form_data: Mapping[str, Any]) -> None:
    missing = [f for f in step.fields if f.required and not step.answered(form_data, f)]
    if missing:
        names = ", ".join(f.title.lower() for f in missing)
        raise GateValidationError(f"Please provide {names} to continue.")
    if step.check:
        step.check(form_data)


async def evaluate(step: StepDefinition, form_data: Mapping[str, Any]) -> dict[str, Any]:
    """Run the step's asynchronous exit condition and return data to merge."""
    if step.on_advance is None:
        return {}
    try:
        partial = await step.on_advance(dict(form_data))
    except (GateError, StepCancelled):
        raise
    except Exception as e:
        logger.warning("Gate for step %s (%s) rejected: %s", step.index, step.title, e)
        raise GateError(describe(e)) from e
    return dict(partial or {})
