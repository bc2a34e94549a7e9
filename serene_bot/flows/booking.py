"""
Session booking flow — 3 steps.

  1. Schedule     → duration, date, time, notes   (gate: POST /sessions)
  2. Payment      → Razorpay checkout              (gate: create-order, verify)
  3. Confirmation → booked session summary         (finish: GET /sessions/{id})

The session id is always issued by the server. Re-submitting step 1 with an
unchanged schedule reuses the id instead of booking the slot twice; a changed
schedule books a new session and cancels the superseded one.
"""

from __future__ import annotations

import logging
from datetime import date, datetime, timedelta
from typing import Any

from serene_bot.checkout.provider import CheckoutProvider, CheckoutResult
from serene_bot.config import settings
from serene_bot.currency import format_amount
from serene_bot.flows.gate import GateError, GateValidationError
from serene_bot.flows.payment import Present, checkout_gate
from serene_bot.flows.steps import Field, FlowDefinition, StepDefinition
from serene_bot.services import experts, payments, sessions
from serene_bot.services.api import ApiClient, ApiError

logger = logging.getLogger(__name__)

# ── Constants ──────────────────────────────────────────────

DURATIONS = {"30 min": 30, "60 min": 60, "90 min": 90}
DEFAULT_DURATION = "60 min"
TIME_SLOTS = ("09:00 AM", "11:00 AM", "02:00 PM", "04:00 PM")
BOOKABLE_DAYS = 4
NOTES_MAX_LENGTH = 500
TIME_FORMAT = "%I:%M %p"
SLOT_TAKEN = "This time slot is no longer available. Please pick another time."
RESCHEDULED = "Rescheduled before payment"


# ── Helpers ────────────────────────────────────────────────

def upcoming_dates(today: date | None = None, days: int = BOOKABLE_DAYS) -> dict[str, str]:
    """Bookable dates from tomorrow on, as {"Tue 13": "2026-10-13"}."""
    today = today or date.today()
    out = {}
    for offset in range(1, days + 1):
        day = today + timedelta(days=offset)
        out[f"{day:%a} {day.day}"] = day.isoformat()
    return out


def session_price(hourly_rate: float, duration: int) -> float:
    """30 min = half the rate, 60 = the rate, 90 = one and a half."""
    return round(hourly_rate * duration / 60, 2)


def end_time(start: str, duration: int) -> str:
    start_at = datetime.strptime(start, TIME_FORMAT)
    return (start_at + timedelta(minutes=duration)).strftime(TIME_FORMAT)


def slot_24h(time: str) -> str:
    """Convert "11:00 AM" to "11:00", the format availability is reported in."""
    return datetime.strptime(time, TIME_FORMAT).strftime("%H:%M")


def _clean_notes(text: str) -> str:
    if len(text) > NOTES_MAX_LENGTH:
        raise GateValidationError(f"Notes cannot exceed {NOTES_MAX_LENGTH} characters.")
    return text


def _schedule_key(form_data: dict[str, Any]) -> str:
    return "|".join(str(form_data.get(k) or "") for k in ("date", "time", "duration", "notes"))


def expert_name(expert: dict[str, Any]) -> str:
    user = expert.get("userId")
    if isinstance(user, dict) and user.get("name"):
        return user["name"]
    return expert.get("name") or "your expert"


# ── Flow ───────────────────────────────────────────────────

def build_booking_flow(
    api: ApiClient,
    checkout: CheckoutProvider,
    expert: dict[str, Any],
    present: Present,
    today: date | None = None,
    razorpay_key: str | None = None,
) -> FlowDefinition:
    dates = upcoming_dates(today)
    rate = float(expert.get("hourlyRate") or 0)
    currency = expert.get("currency") or settings.DEFAULT_CURRENCY
    name = expert_name(expert)

    async def cancel_previous(session_id: str) -> None:
        try:
            await sessions.cancel_session(api, session_id, reason=RESCHEDULED)
        except ApiError as e:
            logger.warning("Could not cancel superseded session %s: %s", session_id, e.message)
        else:
            logger.info("Cancelled superseded session %s", session_id)

    async def create_session(form_data: dict[str, Any]) -> dict[str, Any]:
        key = _schedule_key(form_data)
        if form_data.get("session_id") and form_data.get("scheduled_for") == key:
            return {}
        duration = DURATIONS[form_data["duration"]]
        scheduled_date = dates[form_data["date"]]
        availability = await experts.get_availability(api, expert["_id"], scheduled_date, duration)
        free = availability.get("availableSlots")
        if free is not None and slot_24h(form_data["time"]) not in free:
            raise GateError(SLOT_TAKEN)
        resp = await sessions.create_session(
            api,
            expert_id=expert["_id"],
            scheduled_date=scheduled_date,
            scheduled_time=form_data["time"],
            duration=duration,
            notes=form_data.get("notes"),
        )
        if form_data.get("session_id"):
            await cancel_previous(form_data["session_id"])
        session = resp["session"]
        price = resp.get("amountToPay", session.get("price", session_price(rate, duration)))
        return {
            "session_id": session["_id"],
            "scheduled_for": key,
            "price": price,
            "currency": currency,
            "end_time": end_time(form_data["time"], duration),
        }

    async def create_order(form_data: dict[str, Any]) -> payments.PaymentOrder:
        return await payments.create_payment_order(
            api, form_data["session_id"], form_data["price"],
            currency=form_data["currency"], timezone=settings.DEFAULT_TIMEZONE,
        )

    async def verify(result: CheckoutResult, form_data: dict[str, Any]) -> Any:
        return await payments.verify_payment(api, result.to_response())

    def prefill(form_data: dict[str, Any]) -> dict[str, str]:
        user = (api.session.user if api.session else None) or {}
        return {k: user[k] for k in ("name", "email") if user.get(k)}

    def payment_summary(form_data: dict[str, Any]) -> str:
        return (
            f"🧑‍⚕️ Expert: <b>{name}</b>\n"
            f"📅 {form_data.get('date')} · {form_data.get('time')} - {form_data.get('end_time')}\n"
            f"⏱ {form_data.get('duration')}\n"
            f"💰 Amount: <b>{format_amount(form_data.get('price') or 0, form_data.get('currency'))}</b>"
        )

    def confirmation_summary(form_data: dict[str, Any]) -> str:
        return (
            "🎉 <b>Your session is booked!</b>\n\n"
            f"🧑‍⚕️ {name}\n"
            f"📅 {form_data.get('date')} · {form_data.get('time')} - {form_data.get('end_time')}\n"
            f"🧾 Payment ID: <code>{form_data.get('payment_id')}</code>"
        )

    steps = (
        StepDefinition(
            index=1,
            title="Schedule",
            intro=f"Book a session with <b>{name}</b>.",
            fields=(
                Field("duration", "How long should the session be?", label="Duration",
                      choices=tuple(DURATIONS)),
                Field("date", "Pick a date:", label="Date", choices=tuple(dates)),
                Field("time", "Pick a time slot:", label="Time", choices=TIME_SLOTS),
                Field("notes", "Anything your expert should know beforehand? (optional)",
                      label="Notes", required=False, clean=_clean_notes),
            ),
            on_advance=create_session,
            continue_label="Continue to Payment ➡️",
        ),
        StepDefinition(
            index=2,
            title="Payment",
            intro="Review your booking and pay securely with Razorpay.",
            on_advance=checkout_gate(
                checkout, create_order, verify, present,
                description="Session Booking Payment",
                prefill=prefill,
                key=razorpay_key,
                reference=lambda d: d["session_id"],
            ),
            summary=payment_summary,
            continue_label="💳 Pay Now",
        ),
        StepDefinition(
            index=3,
            title="Confirmation",
            summary=confirmation_summary,
        ),
    )

    async def confirm(form_data: dict[str, Any]) -> dict[str, Any]:
        return await sessions.get_session(api, form_data["session_id"])

    return FlowDefinition(
        name="booking",
        title="📅 <b>Book a Session</b>",
        steps=steps,
        on_finish=confirm,
        finish_label="✅ Done",
        defaults={"duration": DEFAULT_DURATION},
    )
