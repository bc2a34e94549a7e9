"""Inline keyboard builders for the main menu and guided flows."""

from aiogram.types import InlineKeyboardMarkup, InlineKeyboardButton

from serene_bot.config import settings
from serene_bot.flows.renderer import View


def view_keyboard(view: View) -> InlineKeyboardMarkup | None:
    """Turn a rendered flow View into an inline keyboard (None while busy)."""
    if not view.buttons:
        return None
    rows = []
    for row in view.buttons:
        rows.append([
            InlineKeyboardButton(text=b.text, url=b.url) if b.url
            else InlineKeyboardButton(text=b.text, callback_data=b.action)
            for b in row
        ])
    return InlineKeyboardMarkup(inline_keyboard=rows)


def main_menu_keyboard(signed_in: bool = False) -> InlineKeyboardMarkup:
    if signed_in:
        buttons = [
            [InlineKeyboardButton(text="📅 Book a Session", callback_data="menu:book")],
            [
                InlineKeyboardButton(text="🗓 My Sessions", callback_data="menu:sessions"),
                InlineKeyboardButton(text="🪙 Buy Credits", callback_data="menu:credits"),
            ],
            [
                InlineKeyboardButton(text="🧾 Payments", callback_data="menu:payments"),
                InlineKeyboardButton(text="🚪 Log Out", callback_data="menu:logout"),
            ],
        ]
    else:
        buttons = [
            [InlineKeyboardButton(text="🌿 Get Started", callback_data="join:user")],
            [InlineKeyboardButton(text="🔐 Sign In", callback_data="menu:login")],
            [
                InlineKeyboardButton(text="🩺 Join as Expert", callback_data="join:expert"),
                InlineKeyboardButton(text="🏢 For Companies", callback_data="join:company"),
            ],
        ]
    buttons.append([InlineKeyboardButton(text="📞 Support", url=settings.SUPPORT_URL)])
    return InlineKeyboardMarkup(inline_keyboard=buttons)


def back_to_menu_keyboard() -> InlineKeyboardMarkup:
    return InlineKeyboardMarkup(inline_keyboard=[
        [InlineKeyboardButton(text="🏠 Main Menu", callback_data="menu:main")],
    ])


def experts_keyboard(experts: list[dict]) -> InlineKeyboardMarkup:
    """One button per expert: name, title, rating."""
    buttons = []
    for expert in experts:
        user = expert.get("userId") or {}
        name = user.get("name") if isinstance(user, dict) else None
        label = f"{name or 'Expert'} · {expert.get('title', '')}"
        if expert.get("rating"):
            label += f" ⭐{expert['rating']:.1f}"
        buttons.append([InlineKeyboardButton(text=label, callback_data=f"book:{expert['_id']}")])
    buttons.append([InlineKeyboardButton(text="🏠 Main Menu", callback_data="menu:main")])
    return InlineKeyboardMarkup(inline_keyboard=buttons)


def pay_keyboard(url: str, amount_label: str) -> InlineKeyboardMarkup:
    return InlineKeyboardMarkup(inline_keyboard=[
        [InlineKeyboardButton(text=f"💳 Pay {amount_label}", url=url)],
    ])


def sessions_keyboard(sessions: list[dict]) -> InlineKeyboardMarkup:
    """Cancel (and, once paid, refund) buttons per upcoming session."""
    buttons = []
    for s in sessions:
        if s.get("status") in ("cancelled", "completed"):
            continue
        label = f"❌ Cancel {str(s.get('scheduledDate', ''))[:10]} {s.get('scheduledTime', '')}".strip()
        row = [InlineKeyboardButton(text=label, callback_data=f"cancel:{s['_id']}")]
        if s.get("paymentStatus") == "paid":
            row.append(InlineKeyboardButton(text="💸 Refund", callback_data=f"refund:{s['_id']}"))
        buttons.append(row)
    buttons.append([InlineKeyboardButton(text="🏠 Main Menu", callback_data="menu:main")])
    return InlineKeyboardMarkup(inline_keyboard=buttons)
