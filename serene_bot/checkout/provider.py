"""
Checkout provider contract.

The widget options mirror the provider's JavaScript contract:
  { key, amount, currency, order_id, name, description, prefill, theme,
    handler(response), modal: { ondismiss() } }
Field names are fixed by Razorpay and must not be renamed.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Callable, Protocol

from pydantic import BaseModel


class RazorpayResponse(BaseModel):
    """Payload the widget hands to handler() on a successful payment."""

    razorpay_order_id: str
    razorpay_payment_id: str
    razorpay_signature: str


class CheckoutResult(BaseModel):
    order_id: str
    amount_minor_units: int
    currency_code: str
    provider_payment_id: str
    provider_signature: str

    def to_response(self) -> RazorpayResponse:
        return RazorpayResponse(
            razorpay_order_id=self.order_id,
            razorpay_payment_id=self.provider_payment_id,
            razorpay_signature=self.provider_signature,
        )


class CheckoutDismissed(Exception):
    """The user closed the checkout modal without paying."""


@dataclass
class CheckoutModal:
    ondismiss: Callable[[], None] | None = None


@dataclass
class CheckoutOptions:
    key: str
    amount: int
    currency: str
    order_id: str
    handler: Callable[[CheckoutResult], None]
    name: str = ""
    description: str = ""
    prefill: dict[str, str] = field(default_factory=dict)
    theme: dict[str, str] = field(default_factory=dict)
    modal: CheckoutModal = field(default_factory=CheckoutModal)

    def widget_payload(self) -> dict[str, Any]:
        """JSON-safe part of the options, as passed to `new Razorpay(options)`."""
        payload: dict[str, Any] = {
            "key": self.key,
            "amount": self.amount,
            "currency": self.currency,
            "order_id": self.order_id,
        }
        if self.name:
            payload["name"] = self.name
        if self.description:
            payload["description"] = self.description
        if self.prefill:
            payload["prefill"] = dict(self.prefill)
        if self.theme:
            payload["theme"] = dict(self.theme)
        return payload


class CheckoutProvider(Protocol):
    """Anything that can load a checkout widget and open it for an order."""

    @property
    def is_loaded(self) -> bool: ...

    @property
    def error(self) -> str | None: ...

    async def load(self) -> bool: ...

    def open(self, options: CheckoutOptions) -> str | None: ...

    def release(self, order_id: str) -> None: ...
