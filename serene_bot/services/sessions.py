"""Therapy session endpoints (/sessions/*)."""

from __future__ import annotations

from typing import Any

from serene_bot.services.api import ApiClient, ApiError


async def create_session(
    api: ApiClient,
    expert_id: str,
    scheduled_date: str,
    scheduled_time: str,
    duration: int,
    notes: str | None = None,
) -> dict[str, Any]:
    """Book a slot; returns the created session (its _id is the server-issued id)."""
    resp = await api.post("/sessions", {
        "expertId": expert_id,
        "scheduledDate": scheduled_date,
        "scheduledTime": scheduled_time,
        "duration": duration,
        "notes": notes,
    })
    session = resp.get("session") or {}
    if not session.get("_id"):
        raise ApiError("Failed to create session", data=resp)
    return resp


async def get_session(api: ApiClient, session_id: str) -> dict[str, Any]:
    resp = await api.get(f"/sessions/{session_id}")
    return resp.get("session", resp)


async def get_upcoming_sessions(api: ApiClient) -> list[dict[str, Any]]:
    resp = await api.get("/sessions/user/upcoming")
    return resp.get("sessions", [])


async def cancel_session(api: ApiClient, session_id: str, reason: str = "") -> dict[str, Any]:
    return await api.post(f"/sessions/{session_id}/cancel", {"cancelReason": reason})
