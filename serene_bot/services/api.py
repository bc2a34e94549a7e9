"""
HTTP client for the marketplace REST API.

Every call goes through ApiClient.request():
  - state-changing requests carry X-CSRF-Token / X-Session-Id
  - tokens and cookies from responses are remembered in the SessionContext
  - 401 → one POST /auth/refresh, then one retry
  - failures surface as ApiError with a message fit for the user
"""

from __future__ import annotations

import logging
from typing import Any

import httpx

from serene_bot.config import settings
from serene_bot.session_context import SessionContext

logger = logging.getLogger(__name__)

NETWORK_ERROR = "Network error. Please check your internet connection."
DEFAULT_ERROR = "An error occurred"


class ApiError(Exception):
    def __init__(self, message: str, status: int = 0, data: Any = None):
        super().__init__(message)
        self.message = message
        self.status = status
        self.data = data


class ApiClient:
    def __init__(
        self,
        session: SessionContext | None = None,
        base_url: str = settings.API_BASE_URL,
        transport: httpx.AsyncBaseTransport | None = None,
        timeout: float = 30.0,
    ):
        self.session = session
        self.base_url = base_url.rstrip("/")
        self._transport = transport
        self._timeout = timeout

    async def request(
        self,
        method: str,
        endpoint: str,
        *,
        json: Any = None,
        params: dict[str, Any] | None = None,
        retry: bool = True,
    ) -> Any:
        headers = self.session.headers(method) if self.session else {}
        cookies = dict(self.session.cookies) if self.session else None
        if params:
            params = {k: v for k, v in params.items() if v is not None}
        try:
            async with httpx.AsyncClient(
                timeout=self._timeout, transport=self._transport, cookies=cookies,
            ) as client:
                resp = await client.request(
                    method, f"{self.base_url}{endpoint}",
                    json=json, params=params, headers=headers,
                )
        except httpx.HTTPError as e:
            logger.error("API call error: %s %s → %s", method, endpoint, e)
            raise ApiError(NETWORK_ERROR, status=0) from e

        if self.session and self.session.absorb(resp) and self.session.is_authenticated:
            await self.session.save()

        if resp.status_code == 401 and retry and self.session is not None:
            logger.info("API %s %s → 401, refreshing session", method, endpoint)
            if await self.session.refresh(self):
                return await self.request(method, endpoint, json=json, params=params, retry=False)

        if resp.is_success:
            if not resp.content:
                return {}
            return resp.json()

        data = _body(resp)
        message = data.get("message") if isinstance(data, dict) else None
        logger.warning("API error: %s %s → %s %s", method, endpoint, resp.status_code, message or "")
        raise ApiError(message or DEFAULT_ERROR, status=resp.status_code, data=data)

    async def get(self, endpoint: str, params: dict[str, Any] | None = None) -> Any:
        return await self.request("GET", endpoint, params=params)

    async def post(self, endpoint: str, json: Any = None) -> Any:
        return await self.request("POST", endpoint, json=json if json is not None else {})


def _body(resp: httpx.Response) -> Any:
    try:
        return resp.json()
    except ValueError:
        return None


async def api_for(telegram_id: int) -> ApiClient:
    """ApiClient bound to a Telegram user's stored session."""
    session = await SessionContext(telegram_id).init()
    return ApiClient(session)
