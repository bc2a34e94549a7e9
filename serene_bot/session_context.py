"""
Per-user auth session against the marketplace API.

Stored in Redis under auth:{telegram_id} (TTL SESSION_TTL_SEC):
  user        → the user object returned by /auth/login, /auth/register, /auth/me
  cookies     → access / refresh token cookies set by the API
  csrf_token  → echoed as X-CSRF-Token on state-changing requests
  session_id  → echoed as X-Session-Id on state-changing requests

Lifecycle: init() → establish(user) → refresh() on 401 → clear() on logout.
"""

from __future__ import annotations

import json
import logging
from typing import TYPE_CHECKING, Any

import redis.asyncio as aioredis

from serene_bot.config import settings

if TYPE_CHECKING:
    import httpx

    from serene_bot.services.api import ApiClient

logger = logging.getLogger(__name__)

_redis: aioredis.Redis | None = None


async def get_redis() -> aioredis.Redis:
    global _redis
    if _redis is None:
        _redis = aioredis.from_url(settings.REDIS_URL, decode_responses=True)
    return _redis


class SessionContext:
    def __init__(self, telegram_id: int):
        self.telegram_id = telegram_id
        self.user: dict[str, Any] | None = None
        self.cookies: dict[str, str] = {}
        self.csrf_token: str | None = None
        self.session_id: str | None = None

    @property
    def key(self) -> str:
        return f"auth:{self.telegram_id}"

    @property
    def is_authenticated(self) -> bool:
        return self.user is not None

    # ── Lifecycle ──────────────────────────────────────────

    async def init(self) -> SessionContext:
        """Load whatever was stored for this user (no-op if nothing)."""
        r = await get_redis()
        raw = await r.get(self.key)
        if raw:
            data = json.loads(raw)
            self.user = data.get("user")
            self.cookies = data.get("cookies") or {}
            self.csrf_token = data.get("csrf_token")
            self.session_id = data.get("session_id")
        return self

    async def save(self) -> None:
        r = await get_redis()
        payload = {
            "user": self.user,
            "cookies": self.cookies,
            "csrf_token": self.csrf_token,
            "session_id": self.session_id,
        }
        await r.setex(self.key, settings.SESSION_TTL_SEC, json.dumps(payload))

    async def establish(self, user: dict[str, Any]) -> None:
        self.user = user
        await self.save()
        logger.info("Session established for telegram user %s (%s)", self.telegram_id, user.get("email"))

    async def refresh(self, api: ApiClient) -> bool:
        """Trade the refresh cookie for new tokens; a failure logs the user out."""
        from serene_bot.services.api import ApiError

        try:
            await api.request("POST", "/auth/refresh", json={}, retry=False)
        except ApiError as e:
            logger.info("Token refresh failed for %s: %s", self.telegram_id, e.message)
            await self.clear()
            return False
        await self.save()
        return True

    async def clear(self) -> None:
        self.user = None
        self.cookies = {}
        self.csrf_token = None
        self.session_id = None
        r = await get_redis()
        await r.delete(self.key)

    # ── Request plumbing ───────────────────────────────────

    def headers(self, method: str) -> dict[str, str]:
        if method.upper() not in ("POST", "PUT", "PATCH", "DELETE"):
            return {}
        headers = {}
        if self.csrf_token:
            headers["X-CSRF-Token"] = self.csrf_token
        if self.session_id:
            headers["X-Session-Id"] = self.session_id
        return headers

    def absorb(self, response: httpx.Response) -> bool:
        """Remember tokens and cookies the API handed back; True if anything changed."""
        before = (self.csrf_token, self.session_id, dict(self.cookies))
        csrf = response.headers.get("x-csrf-token")
        sid = response.headers.get("x-session-id")
        if csrf:
            self.csrf_token = csrf
        if sid:
            self.session_id = sid
        for name, value in response.cookies.items():
            self.cookies[name] = value
        return before != (self.csrf_token, self.session_id, self.cookies)
