"""Tests for the marketplace API client and the per-user auth session."""

import sys
import os
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

import json
import httpx
import pytest
from unittest.mock import AsyncMock, MagicMock, patch

from serene_bot.services.api import DEFAULT_ERROR, NETWORK_ERROR, ApiClient, ApiError
from serene_bot.session_context import SessionContext

BASE = "https://api.test/api/v1"


@pytest.fixture
def fake_redis():
    r = MagicMock()
    r.get = AsyncMock(return_value=None)
    r.setex = AsyncMock()
    r.delete = AsyncMock()
    with patch("serene_bot.session_context.get_redis", new_callable=AsyncMock) as get_redis:
        get_redis.return_value = r
        yield r


def client(handler, session=None) -> ApiClient:
    return ApiClient(session, base_url=BASE, transport=httpx.MockTransport(handler))


def signed_in() -> SessionContext:
    session = SessionContext(42)
    session.user = {"name": "Asha", "email": "asha@example.com"}
    session.csrf_token = "csrf-1"
    session.session_id = "sid-1"
    return session


# ── Requests ───────────────────────────────────────────────

@pytest.mark.asyncio
async def test_success_returns_json():
    api = client(lambda request: httpx.Response(200, json={"experts": []}))
    assert await api.get("/experts") == {"experts": []}


@pytest.mark.asyncio
async def test_empty_body_is_empty_dict():
    api = client(lambda request: httpx.Response(204))
    assert await api.post("/auth/logout") == {}


@pytest.mark.asyncio
async def test_none_params_are_dropped():
    seen = []

    def handler(request):
        seen.append(request.url)
        return httpx.Response(200, json={})

    await client(handler).get("/experts", params={"category": "Therapist", "search": None})
    assert seen[0].params.get("category") == "Therapist"
    assert "search" not in seen[0].params


@pytest.mark.asyncio
async def test_server_message_becomes_api_error():
    api = client(lambda request: httpx.Response(409, json={"message": "This time slot is already booked"}))
    with pytest.raises(ApiError) as exc:
        await api.post("/sessions", json={})
    assert exc.value.message == "This time slot is already booked"
    assert exc.value.status == 409


@pytest.mark.asyncio
async def test_error_without_message_gets_default_text():
    api = client(lambda request: httpx.Response(500, text="<html>oops</html>"))
    with pytest.raises(ApiError) as exc:
        await api.get("/experts")
    assert exc.value.message == DEFAULT_ERROR
    assert exc.value.status == 500


@pytest.mark.asyncio
async def test_network_failure_is_reported():
    def handler(request):
        raise httpx.ConnectError("connection refused", request=request)

    with pytest.raises(ApiError) as exc:
        await client(handler).get("/experts")
    assert exc.value.message == NETWORK_ERROR
    assert exc.value.status == 0


# ── Session plumbing ───────────────────────────────────────

@pytest.mark.asyncio
async def test_csrf_headers_only_on_state_changing_requests(fake_redis):
    seen = {}

    def handler(request):
        seen[request.method] = request.headers
        return httpx.Response(200, json={})

    api = client(handler, signed_in())
    await api.get("/auth/me")
    await api.post("/sessions", json={})
    assert "x-csrf-token" not in seen["GET"]
    assert seen["POST"]["x-csrf-token"] == "csrf-1"
    assert seen["POST"]["x-session-id"] == "sid-1"


@pytest.mark.asyncio
async def test_tokens_from_response_are_saved(fake_redis):
    session = signed_in()

    def handler(request):
        return httpx.Response(
            200, json={},
            headers={"X-CSRF-Token": "csrf-2", "Set-Cookie": "accessToken=tok-2; Path=/"},
        )

    await client(handler, session).get("/auth/me")
    assert session.csrf_token == "csrf-2"
    assert session.cookies["accessToken"] == "tok-2"
    fake_redis.setex.assert_awaited_once()
    key, ttl, raw = fake_redis.setex.await_args.args
    assert key == "auth:42"
    assert json.loads(raw)["csrf_token"] == "csrf-2"


@pytest.mark.asyncio
async def test_unauthorized_refreshes_then_retries_once(fake_redis):
    calls = []

    def handler(request):
        calls.append(request.url.path)
        if request.url.path.endswith("/auth/refresh"):
            return httpx.Response(200, json={"success": True}, headers={"X-CSRF-Token": "csrf-new"})
        if len([c for c in calls if c.endswith("/auth/me")]) == 1:
            return httpx.Response(401, json={"message": "Token expired"})
        return httpx.Response(200, json={"user": {"name": "Asha"}})

    session = signed_in()
    result = await client(handler, session).get("/auth/me")
    assert result == {"user": {"name": "Asha"}}
    assert calls == ["/api/v1/auth/me", "/api/v1/auth/refresh", "/api/v1/auth/me"]
    assert session.csrf_token == "csrf-new"


@pytest.mark.asyncio
async def test_failed_refresh_clears_session(fake_redis):
    calls = []

    def handler(request):
        calls.append(request.url.path)
        return httpx.Response(401, json={"message": "Session expired. Please log in again."})

    session = signed_in()
    with pytest.raises(ApiError) as exc:
        await client(handler, session).get("/auth/me")
    assert exc.value.status == 401
    assert len(calls) == 2
    assert session.is_authenticated is False
    fake_redis.delete.assert_awaited_once_with("auth:42")


@pytest.mark.asyncio
async def test_no_refresh_without_session():
    calls = []

    def handler(request):
        calls.append(request.url.path)
        return httpx.Response(401, json={"message": "Not authorized"})

    with pytest.raises(ApiError):
        await client(handler).get("/auth/me")
    assert calls == ["/api/v1/auth/me"]


@pytest.mark.asyncio
async def test_session_round_trips_through_redis(fake_redis):
    session = signed_in()
    await session.save()
    stored = fake_redis.setex.await_args.args[2]

    fake_redis.get.return_value = stored
    loaded = await SessionContext(42).init()
    assert loaded.user["email"] == "asha@example.com"
    assert loaded.csrf_token == "csrf-1"
    assert loaded.session_id == "sid-1"


@pytest.mark.asyncio
async def test_missing_session_is_anonymous(fake_redis):
    session = await SessionContext(7).init()
    assert session.is_authenticated is False
    assert session.headers("POST") == {}
