"""
Checkout gate shared by every paid flow (booking, credits).

  ready?  → create order  → open checkout → wait for handler / ondismiss
          → verify with the API → merge payment details into form_data

A dismissed checkout raises StepCancelled: the step stays put, no error.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Awaitable, Callable

from serene_bot.checkout.provider import (
    CheckoutDismissed,
    CheckoutModal,
    CheckoutOptions,
    CheckoutProvider,
    CheckoutResult,
)
from serene_bot.config import settings
from serene_bot.flows.gate import GateError, StepCancelled
from serene_bot.flows.steps import Advance
from serene_bot.services.payments import PaymentOrder

logger = logging.getLogger(__name__)

NOT_READY = "Payment system not ready. Please refresh the page."
CONFIG_MISSING = "Payment configuration missing"

Present = Callable[[str, PaymentOrder], Awaitable[None]]
CreateOrder = Callable[[dict[str, Any]], Awaitable[PaymentOrder]]
Verify = Callable[[CheckoutResult, dict[str, Any]], Awaitable[Any]]


def ensure_ready(checkout: CheckoutProvider, key: str) -> None:
    if not checkout.is_loaded:
        raise GateError(NOT_READY)
    if not key:
        raise GateError(CONFIG_MISSING)


async def collect_payment(
    checkout: CheckoutProvider,
    order: PaymentOrder,
    present: Present,
    *,
    key: str,
    description: str,
    prefill: dict[str, str] | None = None,
) -> CheckoutResult:
    """Open the checkout for an order and wait for its single outcome."""
    outcome: asyncio.Future = asyncio.get_running_loop().create_future()

    def on_success(result: CheckoutResult) -> None:
        if not outcome.done():
            outcome.set_result(result)

    def on_dismiss() -> None:
        if not outcome.done():
            outcome.set_exception(CheckoutDismissed())

    options = CheckoutOptions(
        key=key,
        amount=order.amount,
        currency=order.currency,
        order_id=order.order_id,
        handler=on_success,
        name=settings.BRAND_NAME,
        description=description,
        prefill=prefill or {},
        theme={"color": settings.THEME_COLOR},
        modal=CheckoutModal(ondismiss=on_dismiss),
    )
    url = checkout.open(options)
    if url is None:
        raise GateError(NOT_READY)
    try:
        await present(url, order)
        return await outcome
    except CheckoutDismissed:
        logger.info("Checkout for order %s dismissed by user", order.order_id)
        raise StepCancelled()
    finally:
        checkout.release(order.order_id)


def checkout_gate(
    checkout: CheckoutProvider,
    create_order: CreateOrder,
    verify: Verify,
    present: Present,
    *,
    description: str,
    prefill: Callable[[dict[str, Any]], dict[str, str]] | None = None,
    key: str | None = None,
    reference: Callable[[dict[str, Any]], Any] | None = None,
) -> Advance:
    """Build the on_advance of a payment step.

    A payment that went through but failed verification is kept; the next
    attempt for the same reference only re-runs verify, it never charges twice.
    """
    unverified: dict[Any, CheckoutResult] = {}

    async def on_advance(form_data: dict[str, Any]) -> dict[str, Any]:
        ref = reference(form_data) if reference else None
        result = unverified.get(ref)
        if result is None:
            razorpay_key = settings.RAZORPAY_KEY_ID if key is None else key
            ensure_ready(checkout, razorpay_key)
            order = await create_order(form_data)
            result = await collect_payment(
                checkout, order, present,
                key=razorpay_key,
                description=description,
                prefill=prefill(form_data) if prefill else None,
            )
            unverified[ref] = result
        else:
            logger.info("Re-verifying payment %s for order %s", result.provider_payment_id, result.order_id)
        await verify(result, form_data)
        del unverified[ref]
        logger.info("Payment %s verified for order %s", result.provider_payment_id, result.order_id)
        return {
            "payment": result.model_dump(),
            "payment_id": result.provider_payment_id,
            "order_id": result.order_id,
        }

    return on_advance
