"""Shared test doubles for flow and checkout tests."""

import asyncio
import os
import sys

sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

import pytest

from serene_bot.checkout.provider import CheckoutOptions


class FakeCheckout:
    """In-memory CheckoutProvider: records opened checkouts, never touches the network."""

    def __init__(self, loaded: bool = True):
        self.is_loaded = loaded
        self.error = None if loaded else "Failed to load Razorpay SDK"
        self.opened: list[CheckoutOptions] = []
        self.released: list[str] = []

    async def load(self) -> bool:
        return self.is_loaded

    def open(self, options: CheckoutOptions) -> str | None:
        if not self.is_loaded:
            return None
        self.opened.append(options)
        return f"https://pay.test/checkout/{len(self.opened)}"

    def release(self, order_id: str) -> None:
        self.released.append(order_id)

    @property
    def last(self) -> CheckoutOptions:
        return self.opened[-1]


async def wait_until(condition, attempts: int = 200):
    """Yield to the event loop until condition() holds."""
    for _ in range(attempts):
        if condition():
            return
        await asyncio.sleep(0)
    raise AssertionError("condition never became true")


@pytest.fixture
def checkout():
    return FakeCheckout()
