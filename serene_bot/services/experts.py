"""Expert directory and profile endpoints (/experts/*)."""

from __future__ import annotations

from typing import Any

from serene_bot.services.api import ApiClient


async def list_experts(api: ApiClient, **filters: Any) -> list[dict[str, Any]]:
    resp = await api.get("/experts", params=filters or None)
    return resp.get("experts", [])


async def get_expert(api: ApiClient, expert_id: str) -> dict[str, Any]:
    resp = await api.get(f"/experts/{expert_id}")
    return resp.get("expert", resp)


async def get_availability(
    api: ApiClient, expert_id: str, date: str, duration: int | None = None,
) -> dict[str, Any]:
    """Free slots for a day, as {"availableSlots": ["09:00", "14:30", ...]}."""
    return await api.get(
        "/experts/availability",
        params={"expertId": expert_id, "date": date, "duration": duration},
    )


async def create_profile(api: ApiClient, data: dict[str, Any]) -> dict[str, Any]:
    resp = await api.post("/experts/profile", data)
    return resp.get("expert", resp)
