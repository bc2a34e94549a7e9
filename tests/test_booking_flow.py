"""Tests for the 3-step booking flow (schedule → payment → confirmation)."""

import sys
import os
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

import asyncio
from datetime import date
import pytest
from unittest.mock import ANY, AsyncMock, patch

from serene_bot.checkout.provider import CheckoutResult
from serene_bot.flows.booking import (
    RESCHEDULED, SLOT_TAKEN, build_booking_flow, end_time, session_price, slot_24h, upcoming_dates,
)
from serene_bot.flows.flow import Flow
from serene_bot.flows.payment import CONFIG_MISSING, NOT_READY
from serene_bot.flows.state import Phase
from serene_bot.services.api import ApiClient, ApiError
from serene_bot.services.payments import PaymentOrder

from conftest import FakeCheckout, wait_until

MONDAY = date(2026, 10, 12)
EXPERT = {
    "_id": "exp_1",
    "userId": {"name": "Dr. Sarah Johnson"},
    "title": "Clinical Psychologist",
    "hourlyRate": 1500,
}
SESSION_ID = "session_1760600000"
ORDER = PaymentOrder(orderId="order_9", amount=150000, currency="INR")
FREE_SLOTS = {"availableSlots": ["09:00", "11:00", "14:00", "16:00"]}


@pytest.fixture(autouse=True)
def schedule_api():
    """Availability and cancellation calls made by the schedule step."""
    with patch("serene_bot.services.experts.get_availability", new_callable=AsyncMock) as availability, \
         patch("serene_bot.services.sessions.cancel_session", new_callable=AsyncMock) as cancel:
        availability.return_value = dict(FREE_SLOTS)
        yield {"availability": availability, "cancel": cancel}


def booking(checkout, present=None, key="rzp_test_key") -> Flow:
    return Flow(build_booking_flow(
        ApiClient(), checkout, EXPERT, present or AsyncMock(), today=MONDAY, razorpay_key=key,
    ))


def created(session_id=SESSION_ID, price=1500):
    return {"success": True, "session": {"_id": session_id, "price": price}, "amountToPay": price}


async def at_payment_step(flow: Flow, create: AsyncMock):
    create.return_value = created()
    flow.enter("Tue 13")
    flow.enter("11:00 AM")
    await flow.advance()
    assert flow.state.current_step == 2


# ── Helpers ────────────────────────────────────────────────

def test_upcoming_dates_start_tomorrow():
    dates = upcoming_dates(MONDAY)
    assert list(dates) == ["Tue 13", "Wed 14", "Thu 15", "Fri 16"]
    assert dates["Tue 13"] == "2026-10-13"


def test_session_price_by_duration():
    assert session_price(1500, 30) == 750
    assert session_price(1500, 60) == 1500
    assert session_price(1500, 90) == 2250


def test_end_time():
    assert end_time("11:00 AM", 60) == "12:00 PM"
    assert end_time("04:00 PM", 90) == "05:30 PM"


def test_notes_longer_than_limit_rejected(checkout):
    flow = booking(checkout)
    flow.enter("Tue 13")
    flow.enter("11:00 AM")
    flow.enter("x" * 501)
    assert flow.state.last_error == "Notes cannot exceed 500 characters."
    assert "notes" not in flow.state.form_data


# ── Step 1: schedule gate ──────────────────────────────────

@pytest.mark.asyncio
async def test_schedule_gate_sets_server_session_id(checkout):
    with patch("serene_bot.services.sessions.create_session", new_callable=AsyncMock) as create:
        create.return_value = created()
        flow = booking(checkout)
        flow.enter("Tue 13")
        flow.enter("11:00 AM")
        await flow.advance()

    assert flow.state.current_step == 2
    assert flow.state.form_data["session_id"] == SESSION_ID
    assert flow.state.form_data["end_time"] == "12:00 PM"
    create.assert_awaited_once_with(
        ANY,
        expert_id="exp_1",
        scheduled_date="2026-10-13",
        scheduled_time="11:00 AM",
        duration=60,
        notes=None,
    )


@pytest.mark.asyncio
async def test_unchanged_schedule_reuses_session_id(checkout, schedule_api):
    with patch("serene_bot.services.sessions.create_session", new_callable=AsyncMock) as create:
        flow = booking(checkout)
        await at_payment_step(flow, create)
        flow.back()
        await flow.advance()
        assert create.await_count == 1
        assert flow.state.form_data["session_id"] == SESSION_ID

        flow.back()
        flow.edit(2)
        flow.enter("02:00 PM")
        create.return_value = created("session_2")
        await flow.advance()
        assert create.await_count == 2
        assert flow.state.form_data["session_id"] == "session_2"
    schedule_api["cancel"].assert_awaited_once_with(ANY, SESSION_ID, reason=RESCHEDULED)


@pytest.mark.asyncio
async def test_slot_conflict_shows_server_message(checkout):
    with patch("serene_bot.services.sessions.create_session", new_callable=AsyncMock) as create:
        create.side_effect = ApiError("This time slot is already booked", status=409)
        flow = booking(checkout)
        flow.enter("Tue 13")
        flow.enter("11:00 AM")
        await flow.advance()
    assert flow.state.current_step == 1
    assert flow.state.last_error == "This time slot is already booked"
    assert "session_id" not in flow.state.form_data


# ── Step 2: checkout gate ──────────────────────────────────

@pytest.mark.asyncio
async def test_dismissed_checkout_stays_on_payment_step(checkout):
    present = AsyncMock()
    with patch("serene_bot.services.sessions.create_session", new_callable=AsyncMock) as create, \
         patch("serene_bot.services.payments.create_payment_order", new_callable=AsyncMock) as order, \
         patch("serene_bot.services.payments.verify_payment", new_callable=AsyncMock) as verify:
        order.return_value = ORDER
        flow = booking(checkout, present)
        await at_payment_step(flow, create)

        task = asyncio.create_task(flow.advance())
        await wait_until(lambda: checkout.opened)
        checkout.last.modal.ondismiss()
        await task

    assert flow.state.current_step == 2
    assert flow.state.phase is Phase.READY
    assert flow.state.last_error is None
    assert flow.state.form_data["session_id"] == SESSION_ID
    assert "payment_id" not in flow.state.form_data
    verify.assert_not_awaited()
    present.assert_awaited_once_with("https://pay.test/checkout/1", ORDER)
    assert checkout.released == ["order_9"]


@pytest.mark.asyncio
async def test_successful_payment_is_verified_and_advances(checkout):
    with patch("serene_bot.services.sessions.create_session", new_callable=AsyncMock) as create, \
         patch("serene_bot.services.payments.create_payment_order", new_callable=AsyncMock) as order, \
         patch("serene_bot.services.payments.verify_payment", new_callable=AsyncMock) as verify:
        order.return_value = ORDER
        verify.return_value = {"success": True}
        flow = booking(checkout)
        await at_payment_step(flow, create)

        task = asyncio.create_task(flow.advance())
        await wait_until(lambda: checkout.opened)
        options = checkout.last
        assert options.key == "rzp_test_key"
        assert options.amount == 150000
        assert options.order_id == "order_9"
        assert options.description == "Session Booking Payment"
        options.handler(CheckoutResult(
            order_id="order_9",
            amount_minor_units=150000,
            currency_code="INR",
            provider_payment_id="pay_1",
            provider_signature="sig_1",
        ))
        await task

    assert flow.state.current_step == 3
    assert flow.state.form_data["payment_id"] == "pay_1"
    assert flow.state.form_data["order_id"] == "order_9"
    order.assert_awaited_once_with(ANY, SESSION_ID, 1500, currency="INR", timezone="Asia/Kolkata")
    sent = verify.await_args.args[1]
    assert sent.razorpay_payment_id == "pay_1"
    assert sent.razorpay_signature == "sig_1"


@pytest.mark.asyncio
async def test_order_creation_failure_and_retry(checkout):
    with patch("serene_bot.services.sessions.create_session", new_callable=AsyncMock) as create, \
         patch("serene_bot.services.payments.create_payment_order", new_callable=AsyncMock) as order:
        order.side_effect = ApiError("Order creation failed", status=500)
        flow = booking(checkout)
        await at_payment_step(flow, create)

        await flow.advance()
        assert flow.state.last_error == "Order creation failed"
        assert flow.state.current_step == 2

        await flow.retry()
        assert order.await_count == 2
        assert flow.state.last_error == "Order creation failed"
    assert checkout.opened == []


@pytest.mark.asyncio
async def test_payment_blocked_when_sdk_not_loaded():
    checkout = FakeCheckout(loaded=False)
    with patch("serene_bot.services.sessions.create_session", new_callable=AsyncMock) as create, \
         patch("serene_bot.services.payments.create_payment_order", new_callable=AsyncMock) as order:
        flow = booking(checkout)
        await at_payment_step(flow, create)
        await flow.advance()
    assert flow.state.last_error == NOT_READY
    order.assert_not_awaited()


@pytest.mark.asyncio
async def test_payment_blocked_without_key(checkout):
    with patch("serene_bot.services.sessions.create_session", new_callable=AsyncMock) as create, \
         patch("serene_bot.services.payments.create_payment_order", new_callable=AsyncMock) as order:
        flow = booking(checkout, key="")
        await at_payment_step(flow, create)
        await flow.advance()
    assert flow.state.last_error == CONFIG_MISSING
    order.assert_not_awaited()


@pytest.mark.asyncio
async def test_closing_flow_mid_payment_releases_checkout(checkout):
    with patch("serene_bot.services.sessions.create_session", new_callable=AsyncMock) as create, \
         patch("serene_bot.services.payments.create_payment_order", new_callable=AsyncMock) as order:
        order.return_value = ORDER
        flow = booking(checkout)
        await at_payment_step(flow, create)

        task = asyncio.create_task(flow.advance())
        await wait_until(lambda: checkout.opened)
        flow.close()
        await task

    assert flow.state.current_step == 2
    assert checkout.released == ["order_9"]


# ── Step 3: confirmation ───────────────────────────────────

@pytest.mark.asyncio
async def test_finish_fetches_booked_session(checkout):
    with patch("serene_bot.services.sessions.create_session", new_callable=AsyncMock) as create, \
         patch("serene_bot.services.sessions.get_session", new_callable=AsyncMock) as get:
        get.return_value = {"_id": SESSION_ID, "status": "confirmed"}
        flow = booking(checkout)
        await at_payment_step(flow, create)
        flow.store.merge({"payment_id": "pay_1"})
        flow.store.advance()

        await flow.finish()

    assert flow.state.finished is True
    assert flow.result["status"] == "confirmed"
    get.assert_awaited_once_with(ANY, SESSION_ID)


# ── Availability and rescheduling ──────────────────────────

def test_slot_24h():
    assert slot_24h("09:00 AM") == "09:00"
    assert slot_24h("02:00 PM") == "14:00"


@pytest.mark.asyncio
async def test_taken_slot_is_rejected_before_booking(checkout, schedule_api):
    schedule_api["availability"].return_value = {"availableSlots": ["09:00", "16:00"]}
    with patch("serene_bot.services.sessions.create_session", new_callable=AsyncMock) as create:
        flow = booking(checkout)
        flow.enter("Tue 13")
        flow.enter("11:00 AM")
        await flow.advance()

    assert flow.state.current_step == 1
    assert flow.state.last_error == SLOT_TAKEN
    create.assert_not_awaited()
    schedule_api["availability"].assert_awaited_once_with(ANY, "exp_1", "2026-10-13", 60)


@pytest.mark.asyncio
async def test_availability_without_slot_list_does_not_block(checkout, schedule_api):
    schedule_api["availability"].return_value = {"success": True}
    with patch("serene_bot.services.sessions.create_session", new_callable=AsyncMock) as create:
        flow = booking(checkout)
        await at_payment_step(flow, create)
    assert flow.state.form_data["session_id"] == SESSION_ID


@pytest.mark.asyncio
async def test_failed_cancel_of_old_session_does_not_block(checkout, schedule_api):
    schedule_api["cancel"].side_effect = ApiError("Session not found", status=404)
    with patch("serene_bot.services.sessions.create_session", new_callable=AsyncMock) as create:
        flow = booking(checkout)
        await at_payment_step(flow, create)
        flow.back()
        flow.edit(1)
        flow.enter("Wed 14")
        create.return_value = created("session_2")
        await flow.advance()

    assert flow.state.current_step == 2
    assert flow.state.form_data["session_id"] == "session_2"
    schedule_api["cancel"].assert_awaited_once()


# ── Verification retry ─────────────────────────────────────

@pytest.mark.asyncio
async def test_retry_after_failed_verification_does_not_charge_again(checkout):
    with patch("serene_bot.services.sessions.create_session", new_callable=AsyncMock) as create, \
         patch("serene_bot.services.payments.create_payment_order", new_callable=AsyncMock) as order, \
         patch("serene_bot.services.payments.verify_payment", new_callable=AsyncMock) as verify:
        order.return_value = ORDER
        verify.side_effect = [ApiError("Payment verification failed", status=400), {"success": True}]
        flow = booking(checkout)
        await at_payment_step(flow, create)

        task = asyncio.create_task(flow.advance())
        await wait_until(lambda: checkout.opened)
        checkout.last.handler(CheckoutResult(
            order_id="order_9",
            amount_minor_units=150000,
            currency_code="INR",
            provider_payment_id="pay_1",
            provider_signature="sig_1",
        ))
        await task
        assert flow.state.last_error == "Payment verification failed"
        assert flow.state.current_step == 2

        await flow.retry()

    assert flow.state.current_step == 3
    assert flow.state.form_data["payment_id"] == "pay_1"
    order.assert_awaited_once()
    assert len(checkout.opened) == 1
    assert verify.await_count == 2
    assert verify.await_args.args[1].razorpay_payment_id == "pay_1"
