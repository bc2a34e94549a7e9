"""
Payment endpoints (/payments/*).

Order creation answers either {order: {id, amount, currency}} or a flat
{orderId, amount, currency}; amount is always in minor units (paise).
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field

from serene_bot.checkout.provider import RazorpayResponse
from serene_bot.services.api import ApiClient, ApiError


class PaymentOrder(BaseModel):
    order_id: str = Field(alias="orderId")
    amount: int
    currency: str

    @classmethod
    def from_response(cls, data: dict[str, Any]) -> PaymentOrder:
        order = data.get("order")
        if isinstance(order, dict):
            return cls(orderId=order["id"], amount=order["amount"], currency=order["currency"])
        if data.get("orderId"):
            return cls.model_validate(data)
        raise ApiError(data.get("message") or "Order creation failed", data=data)


async def create_payment_order(
    api: ApiClient,
    session_id: str,
    amount: float,
    currency: str | None = None,
    timezone: str | None = None,
) -> PaymentOrder:
    resp = await api.post("/payments/create-order", {
        "sessionId": session_id,
        "amount": amount,
        "currency": currency,
        "timezone": timezone,
    })
    return PaymentOrder.from_response(resp)


async def verify_payment(api: ApiClient, response: RazorpayResponse) -> dict[str, Any]:
    return await api.post("/payments/verify", response.model_dump())


async def purchase_credits(
    api: ApiClient, amount: float, credits: int, currency: str | None = None,
) -> PaymentOrder:
    resp = await api.post("/payments/credits/purchase", {
        "amount": amount,
        "credits": credits,
        "currency": currency,
    })
    return PaymentOrder.from_response(resp)


async def verify_credit_purchase(
    api: ApiClient, response: RazorpayResponse, credits: int,
) -> dict[str, Any]:
    return await api.post("/payments/credits/verify", {**response.model_dump(), "credits": credits})


async def get_payment_history(api: ApiClient, page: int = 1, limit: int = 10) -> dict[str, Any]:
    return await api.get("/payments/history", params={"page": page, "limit": limit})


async def request_refund(api: ApiClient, session_id: str, reason: str) -> dict[str, Any]:
    return await api.post("/payments/refund", {"sessionId": session_id, "reason": reason})
