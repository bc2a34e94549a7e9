"""Auth endpoints (/auth/*). Successful login / register establishes the session."""

from __future__ import annotations

from typing import Any

from serene_bot.services.api import ApiClient


async def register(api: ApiClient, data: dict[str, Any]) -> dict[str, Any]:
    """Create an account (role user / expert / company) and sign it in."""
    resp = await api.post("/auth/register", data)
    if api.session is not None and resp.get("user"):
        await api.session.establish(resp["user"])
    return resp


async def login(api: ApiClient, email: str, password: str) -> dict[str, Any]:
    resp = await api.post("/auth/login", {"email": email, "password": password})
    if api.session is not None and resp.get("user"):
        await api.session.establish(resp["user"])
    return resp


async def logout(api: ApiClient) -> None:
    try:
        await api.post("/auth/logout")
    finally:
        if api.session is not None:
            await api.session.clear()


async def get_current_user(api: ApiClient) -> dict[str, Any]:
    resp = await api.get("/auth/me")
    user = resp.get("user", resp)
    if api.session is not None and user:
        await api.session.establish(user)
    return user


async def forgot_password(api: ApiClient, email: str) -> dict[str, Any]:
    return await api.post("/auth/forgot-password", {"email": email})
