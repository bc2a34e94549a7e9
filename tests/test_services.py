"""Tests for the REST endpoint wrappers against a mocked transport."""

import sys
import os
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

import json
import httpx
import pytest

from serene_bot.checkout.provider import RazorpayResponse
from serene_bot.handlers.booking import history_lines
from serene_bot.services import experts, payments, sessions
from serene_bot.services.api import ApiClient, ApiError
from serene_bot.services.payments import PaymentOrder

BASE = "https://api.test/api/v1"


class Recorder:
    """MockTransport handler that remembers requests and replies with a fixed body."""

    def __init__(self, body: dict, status: int = 200):
        self.body = body
        self.status = status
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return httpx.Response(self.status, json=self.body)

    @property
    def last(self) -> httpx.Request:
        return self.requests[-1]

    @property
    def last_json(self) -> dict:
        return json.loads(self.last.content)


def client(recorder: Recorder) -> ApiClient:
    return ApiClient(base_url=BASE, transport=httpx.MockTransport(recorder))


# ── Experts ────────────────────────────────────────────────

@pytest.mark.asyncio
async def test_get_availability_query():
    rec = Recorder({"availableSlots": ["09:00", "11:00"]})
    resp = await experts.get_availability(client(rec), "exp_1", "2026-10-13", 60)
    assert resp["availableSlots"] == ["09:00", "11:00"]
    assert rec.last.method == "GET"
    assert rec.last.url.path == "/api/v1/experts/availability"
    assert rec.last.url.params["expertId"] == "exp_1"
    assert rec.last.url.params["date"] == "2026-10-13"
    assert rec.last.url.params["duration"] == "60"


@pytest.mark.asyncio
async def test_get_availability_without_duration():
    rec = Recorder({"availableSlots": []})
    await experts.get_availability(client(rec), "exp_1", "2026-10-13")
    assert "duration" not in rec.last.url.params


@pytest.mark.asyncio
async def test_list_experts_unwraps_list():
    rec = Recorder({"success": True, "experts": [{"_id": "exp_1"}]})
    found = await experts.list_experts(client(rec), limit=8, sort="-rating")
    assert found == [{"_id": "exp_1"}]
    assert rec.last.url.params["sort"] == "-rating"


# ── Sessions ───────────────────────────────────────────────

@pytest.mark.asyncio
async def test_cancel_session_posts_reason():
    rec = Recorder({"success": True, "message": "Session cancelled"})
    resp = await sessions.cancel_session(client(rec), "session_1", reason="Rescheduled before payment")
    assert resp["message"] == "Session cancelled"
    assert rec.last.method == "POST"
    assert rec.last.url.path == "/api/v1/sessions/session_1/cancel"
    assert rec.last_json == {"cancelReason": "Rescheduled before payment"}


@pytest.mark.asyncio
async def test_create_session_without_id_fails():
    rec = Recorder({"success": True, "session": {}})
    with pytest.raises(ApiError) as exc:
        await sessions.create_session(client(rec), "exp_1", "2026-10-13", "11:00 AM", 60)
    assert exc.value.message == "Failed to create session"


# ── Payments ───────────────────────────────────────────────

@pytest.mark.asyncio
async def test_payment_history_paging():
    rec = Recorder({"success": True, "transactions": [{"type": "payment"}], "page": 2, "pages": 3})
    history = await payments.get_payment_history(client(rec), page=2, limit=5)
    assert history["transactions"] == [{"type": "payment"}]
    assert rec.last.url.path == "/api/v1/payments/history"
    assert rec.last.url.params["page"] == "2"
    assert rec.last.url.params["limit"] == "5"


@pytest.mark.asyncio
async def test_request_refund_body():
    rec = Recorder({"success": True, "message": "Refund processed successfully"})
    resp = await payments.request_refund(client(rec), "session_1", "Requested from Telegram")
    assert resp["message"] == "Refund processed successfully"
    assert rec.last.url.path == "/api/v1/payments/refund"
    assert rec.last_json == {"sessionId": "session_1", "reason": "Requested from Telegram"}


@pytest.mark.asyncio
async def test_refund_rejection_surfaces_server_message():
    rec = Recorder({"success": False, "message": "Session already refunded"}, status=400)
    with pytest.raises(ApiError) as exc:
        await payments.request_refund(client(rec), "session_1", "again")
    assert exc.value.message == "Session already refunded"


@pytest.mark.asyncio
async def test_create_order_accepts_nested_and_flat_shapes():
    nested = Recorder({"success": True, "order": {"id": "order_1", "amount": 150000, "currency": "INR"}})
    order = await payments.create_payment_order(client(nested), "session_1", 1500, currency="INR")
    assert order == PaymentOrder(orderId="order_1", amount=150000, currency="INR")
    assert nested.last_json["sessionId"] == "session_1"

    flat = Recorder({"orderId": "order_2", "amount": 600, "currency": "USD"})
    order = await payments.purchase_credits(client(flat), 6, 50, currency="USD")
    assert order.order_id == "order_2"
    assert flat.last_json == {"amount": 6, "credits": 50, "currency": "USD"}


@pytest.mark.asyncio
async def test_create_order_without_order_fails():
    rec = Recorder({"success": False})
    with pytest.raises(ApiError) as exc:
        await payments.create_payment_order(client(rec), "session_1", 1500)
    assert exc.value.message == "Order creation failed"


@pytest.mark.asyncio
async def test_verify_credit_purchase_adds_credits():
    rec = Recorder({"success": True})
    response = RazorpayResponse(
        razorpay_order_id="order_1", razorpay_payment_id="pay_1", razorpay_signature="sig_1",
    )
    await payments.verify_credit_purchase(client(rec), response, 150)
    assert rec.last_json == {
        "razorpay_order_id": "order_1",
        "razorpay_payment_id": "pay_1",
        "razorpay_signature": "sig_1",
        "credits": 150,
    }


def test_history_lines_formats_transactions():
    lines = history_lines({
        "transactions": [
            {"type": "credit_purchase", "amount": 499, "currency": "INR", "status": "completed",
             "createdAt": "2026-10-12T09:30:00Z"},
        ],
        "page": 1,
        "pages": 2,
    })
    assert "• 2026-10-12 · Credit Purchase · <b>₹499.00</b> (completed)" in lines
    assert lines[-1] == "\n<i>Page 1 of 2</i>"


def test_history_lines_empty():
    assert history_lines({"transactions": []})[-1] == "No payments yet."
