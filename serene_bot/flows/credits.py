"""Credit top-up flow — pick a pack, pay with Razorpay, see the new balance."""

from __future__ import annotations

from typing import Any

from serene_bot.checkout.provider import CheckoutProvider, CheckoutResult
from serene_bot.config import settings
from serene_bot.currency import format_amount
from serene_bot.flows.payment import Present, checkout_gate
from serene_bot.flows.steps import Field, FlowDefinition, StepDefinition
from serene_bot.services import auth, payments
from serene_bot.services.api import ApiClient

# credits → price per currency
CREDIT_PACKS = {
    50: {"INR": 499, "USD": 6},
    150: {"INR": 1299, "USD": 15},
    500: {"INR": 3999, "USD": 49},
}


def pack_currency(currency: str | None) -> str:
    return "INR" if (currency or settings.DEFAULT_CURRENCY).upper() == "INR" else "USD"


def pack_label(credits: int, currency: str) -> str:
    return f"{credits} Credits · {format_amount(CREDIT_PACKS[credits][currency], currency)}"


def build_credits_flow(
    api: ApiClient,
    checkout: CheckoutProvider,
    present: Present,
    currency: str | None = None,
    razorpay_key: str | None = None,
) -> FlowDefinition:
    code = pack_currency(currency)
    labels = {pack_label(c, code): c for c in CREDIT_PACKS}

    async def create_order(form_data: dict[str, Any]) -> payments.PaymentOrder:
        credits = labels[form_data["pack"]]
        return await payments.purchase_credits(api, CREDIT_PACKS[credits][code], credits, currency=code)

    async def verify(result: CheckoutResult, form_data: dict[str, Any]) -> Any:
        return await payments.verify_credit_purchase(api, result.to_response(), labels[form_data["pack"]])

    def prefill(form_data: dict[str, Any]) -> dict[str, str]:
        user = (api.session.user if api.session else None) or {}
        return {k: user[k] for k in ("name", "email") if user.get(k)}

    steps = (
        StepDefinition(
            index=1,
            title="Choose a Pack",
            intro="Credits can be used towards any session on Serene.",
            fields=(Field("pack", "Which pack would you like?", label="Pack", choices=tuple(labels)),),
            continue_label="Continue to Payment ➡️",
        ),
        StepDefinition(
            index=2,
            title="Payment",
            summary=lambda d: f"🪙 <b>{d.get('pack')}</b>\n\nPay securely with Razorpay.",
            on_advance=checkout_gate(
                checkout, create_order, verify, present,
                description="Credits Topup",
                prefill=prefill,
                key=razorpay_key,
                reference=lambda d: d["pack"],
            ),
            continue_label="💳 Pay Now",
        ),
        StepDefinition(
            index=3,
            title="Done",
            summary=lambda d: (
                f"🎉 Added <b>{labels.get(d.get('pack'), 0)} credits</b> to your account.\n"
                f"🧾 Payment ID: <code>{d.get('payment_id')}</code>"
            ),
        ),
    )

    async def refresh_balance(form_data: dict[str, Any]) -> dict[str, Any]:
        return await auth.get_current_user(api)

    return FlowDefinition(
        name="credits",
        title="🪙 <b>Top Up Credits</b>",
        steps=steps,
        on_finish=refresh_balance,
        finish_label="✅ Done",
    )
