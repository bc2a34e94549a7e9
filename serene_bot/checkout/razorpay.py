"""
Razorpay Checkout adapter — loads the provider script once per process and
opens the checkout modal on a hosted page (see checkout/bridge.py).

Lifecycle of one checkout:
  open(options)  → token registered, hosted-page URL returned
  complete(...)  → handler(CheckoutResult)      (payment succeeded)
  dismiss(...)   → modal.ondismiss()            (user closed the modal)
Exactly one of complete / dismiss wins; the pending entry is dropped after it.
"""

from __future__ import annotations

import asyncio
import logging
import secrets

import httpx

from serene_bot.checkout.provider import CheckoutOptions, CheckoutResult, RazorpayResponse
from serene_bot.config import settings

logger = logging.getLogger(__name__)

LOAD_ERROR = "Failed to load Razorpay SDK"


class RazorpayCheckout:
    def __init__(
        self,
        script_url: str = settings.CHECKOUT_SCRIPT_URL,
        public_url: str = settings.CHECKOUT_PUBLIC_URL,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.script_url = script_url
        self.public_url = public_url.rstrip("/")
        self._transport = transport
        self._script: str | None = None
        self._error: str | None = None
        self._loading: asyncio.Task | None = None
        self._pending: dict[str, CheckoutOptions] = {}

    @property
    def is_loaded(self) -> bool:
        return self._script is not None

    @property
    def error(self) -> str | None:
        return self._error

    @property
    def script(self) -> str | None:
        return self._script

    # ── Loading ────────────────────────────────────────────

    async def load(self) -> bool:
        """Fetch the provider script; concurrent callers share one download."""
        if self._script is not None:
            return True
        if self._error is not None:
            return False
        if self._loading is None:
            self._loading = asyncio.ensure_future(self._fetch())
        await asyncio.shield(self._loading)
        return self.is_loaded

    async def _fetch(self) -> None:
        try:
            async with httpx.AsyncClient(timeout=15.0, transport=self._transport) as client:
                resp = await client.get(self.script_url)
                resp.raise_for_status()
        except httpx.HTTPError as e:
            self._error = LOAD_ERROR
            logger.error("Checkout script load failed (%s): %s", self.script_url, e)
            return
        self._script = resp.text
        logger.info("Checkout script loaded from %s (%d bytes)", self.script_url, len(resp.text))

    # ── Opening and outcomes ───────────────────────────────

    def open(self, options: CheckoutOptions) -> str | None:
        """Register a checkout and return the URL of the page that opens the modal."""
        if not self.is_loaded:
            logger.error("Razorpay SDK not loaded yet; checkout for order %s not opened", options.order_id)
            return None
        token = secrets.token_urlsafe(16)
        self._pending[token] = options
        logger.info("Checkout opened for order %s", options.order_id)
        return f"{self.public_url}/checkout/{token}"

    def options_for(self, token: str) -> CheckoutOptions | None:
        return self._pending.get(token)

    def complete(self, token: str, response: RazorpayResponse) -> bool:
        options = self._pending.get(token)
        if options is None:
            return False
        if response.razorpay_order_id != options.order_id:
            logger.warning(
                "Checkout %s: order mismatch (%s != %s)",
                token, response.razorpay_order_id, options.order_id,
            )
            return False
        del self._pending[token]
        result = CheckoutResult(
            order_id=options.order_id,
            amount_minor_units=options.amount,
            currency_code=options.currency,
            provider_payment_id=response.razorpay_payment_id,
            provider_signature=response.razorpay_signature,
        )
        options.handler(result)
        return True

    def dismiss(self, token: str) -> bool:
        options = self._pending.pop(token, None)
        if options is None:
            return False
        logger.info("Checkout for order %s dismissed", options.order_id)
        if options.modal.ondismiss is not None:
            options.modal.ondismiss()
        return True

    def release(self, order_id: str) -> None:
        """Forget any pending checkout for an order (flow discarded mid-payment)."""
        for token, options in list(self._pending.items()):
            if options.order_id == order_id:
                del self._pending[token]

    @property
    def pending_count(self) -> int:
        return len(self._pending)


_checkout: RazorpayCheckout | None = None


def get_checkout() -> RazorpayCheckout:
    """Process-wide checkout adapter."""
    global _checkout
    if _checkout is None:
        _checkout = RazorpayCheckout()
    return _checkout
