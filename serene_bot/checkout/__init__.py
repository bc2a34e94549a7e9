from serene_bot.checkout.provider import (
    CheckoutDismissed,
    CheckoutModal,
    CheckoutOptions,
    CheckoutProvider,
    CheckoutResult,
    RazorpayResponse,
)
from serene_bot.checkout.razorpay import RazorpayCheckout, get_checkout

__all__ = [
    "CheckoutDismissed",
    "CheckoutModal",
    "CheckoutOptions",
    "CheckoutProvider",
    "CheckoutResult",
    "RazorpayResponse",
    "RazorpayCheckout",
    "get_checkout",
]
