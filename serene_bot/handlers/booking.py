"""
Booking handlers — pick an expert, then run the booking or credits flow;
list, cancel and refund sessions; show payment history.

Both paid flows need a signed-in user; the checkout link is sent as a
separate message with a URL button while the flow waits for the outcome.
"""

import logging

from aiogram import Bot, Router, F
from aiogram.filters import Command
from aiogram.fsm.context import FSMContext
from aiogram.types import Message, CallbackQuery

from serene_bot.checkout.razorpay import get_checkout
from serene_bot.currency import format_amount, format_minor_units
from serene_bot.flows.booking import build_booking_flow, expert_name
from serene_bot.flows.credits import build_credits_flow
from serene_bot.flows.renderer import DIVIDER
from serene_bot.handlers.flows import start_flow
from serene_bot.keyboards.flow_kb import (
    back_to_menu_keyboard, experts_keyboard, main_menu_keyboard, pay_keyboard, sessions_keyboard,
)
from serene_bot.services import experts, payments, sessions
from serene_bot.services.api import ApiClient, ApiError, api_for
from serene_bot.services.payments import PaymentOrder

router = Router()
logger = logging.getLogger(__name__)

EXPERTS_PAGE_SIZE = 8
SIGN_IN_FIRST = "🔐 Please sign in or create an account first."
CANCEL_REASON = "Cancelled from Telegram"
REFUND_REASON = "Requested from Telegram"


def payment_presenter(bot: Bot, chat_id: int):
    """Send the hosted checkout link for an order to the chat."""

    async def present(url: str, order: PaymentOrder) -> None:
        amount = format_minor_units(order.amount, order.currency)
        await bot.send_message(
            chat_id,
            f"💳 <b>Secure payment</b>\n\nTap below to pay <b>{amount}</b> with Razorpay.\n"
            "<i>Closing the payment window keeps you on this step.</i>",
            reply_markup=pay_keyboard(url, amount),
        )

    return present


async def _signed_in(telegram_id: int) -> ApiClient | None:
    api = await api_for(telegram_id)
    return api if api.session.is_authenticated else None


# ── Expert directory ───────────────────────────────────────

async def _send_experts(bot: Bot, chat_id: int, telegram_id: int):
    api = await _signed_in(telegram_id)
    if api is None:
        await bot.send_message(chat_id, SIGN_IN_FIRST, reply_markup=main_menu_keyboard(False))
        return
    try:
        found = await experts.list_experts(api, limit=EXPERTS_PAGE_SIZE, sort="-rating")
    except ApiError as e:
        await bot.send_message(chat_id, f"⚠️ {e.message}", reply_markup=back_to_menu_keyboard())
        return
    if not found:
        await bot.send_message(chat_id, "😔 No experts are available right now.", reply_markup=back_to_menu_keyboard())
        return
    await bot.send_message(
        chat_id,
        f"{DIVIDER}\n🧑‍⚕️ <b>Choose an Expert</b>\n{DIVIDER}",
        reply_markup=experts_keyboard(found),
    )


@router.message(Command("book"))
async def cmd_book(message: Message):
    await _send_experts(message.bot, message.chat.id, message.from_user.id)


@router.callback_query(F.data == "menu:book")
async def cb_book(callback: CallbackQuery):
    await callback.answer()
    await _send_experts(callback.bot, callback.message.chat.id, callback.from_user.id)


@router.callback_query(F.data.startswith("book:"))
async def cb_book_expert(callback: CallbackQuery, state: FSMContext):
    """Start the booking flow with the chosen expert."""
    await callback.answer()
    chat_id = callback.message.chat.id
    api = await _signed_in(callback.from_user.id)
    if api is None:
        await callback.message.answer(SIGN_IN_FIRST, reply_markup=main_menu_keyboard(False))
        return
    try:
        expert = await experts.get_expert(api, callback.data.split(":", 1)[1])
    except ApiError as e:
        await callback.message.answer(f"⚠️ {e.message}", reply_markup=back_to_menu_keyboard())
        return
    logger.info("Booking started with %s in chat %s", expert_name(expert), chat_id)
    definition = build_booking_flow(
        api, get_checkout(), expert, payment_presenter(callback.bot, chat_id),
    )
    await start_flow(callback.bot, chat_id, state, definition)


# ── Credits ────────────────────────────────────────────────

async def _start_credits(bot: Bot, chat_id: int, telegram_id: int, state: FSMContext):
    api = await _signed_in(telegram_id)
    if api is None:
        await bot.send_message(chat_id, SIGN_IN_FIRST, reply_markup=main_menu_keyboard(False))
        return
    definition = build_credits_flow(
        api, get_checkout(), payment_presenter(bot, chat_id), currency=api.session.user.get("currency"),
    )
    await start_flow(bot, chat_id, state, definition)


@router.message(Command("credits"))
async def cmd_credits(message: Message, state: FSMContext):
    await _start_credits(message.bot, message.chat.id, message.from_user.id, state)


@router.callback_query(F.data == "menu:credits")
async def cb_credits(callback: CallbackQuery, state: FSMContext):
    await callback.answer()
    await _start_credits(callback.bot, callback.message.chat.id, callback.from_user.id, state)


# ── Upcoming sessions ──────────────────────────────────────

async def _send_sessions(bot: Bot, chat_id: int, telegram_id: int):
    api = await _signed_in(telegram_id)
    if api is None:
        await bot.send_message(chat_id, SIGN_IN_FIRST, reply_markup=main_menu_keyboard(False))
        return
    try:
        upcoming = await sessions.get_upcoming_sessions(api)
    except ApiError as e:
        await bot.send_message(chat_id, f"⚠️ {e.message}", reply_markup=back_to_menu_keyboard())
        return

    lines = [DIVIDER, "🗓 <b>Upcoming Sessions</b>", DIVIDER, ""]
    if not upcoming:
        lines.append("No sessions booked yet. Tap <b>Book a Session</b> to get started!")
    for s in upcoming:
        expert = s.get("expertId") if isinstance(s.get("expertId"), dict) else {}
        lines.append(
            f"📅 {str(s.get('scheduledDate', ''))[:10]} · {s.get('scheduledTime', '')} "
            f"({s.get('duration', 60)} min)\n"
            f"   🧑‍⚕️ {expert_name(expert)} · {s.get('status', 'pending').title()}"
        )
    await bot.send_message(chat_id, "\n".join(lines), reply_markup=sessions_keyboard(upcoming))


@router.message(Command("sessions"))
async def cmd_sessions(message: Message):
    await _send_sessions(message.bot, message.chat.id, message.from_user.id)


@router.callback_query(F.data == "menu:sessions")
async def cb_sessions(callback: CallbackQuery):
    await callback.answer()
    await _send_sessions(callback.bot, callback.message.chat.id, callback.from_user.id)


@router.callback_query(F.data.startswith("cancel:"))
async def cb_cancel_session(callback: CallbackQuery):
    """Cancel an upcoming session; the API refunds eligible sessions as credits."""
    await callback.answer()
    api = await _signed_in(callback.from_user.id)
    if api is None:
        await callback.message.answer(SIGN_IN_FIRST, reply_markup=main_menu_keyboard(False))
        return
    session_id = callback.data.split(":", 1)[1]
    try:
        await sessions.cancel_session(api, session_id, reason=CANCEL_REASON)
    except ApiError as e:
        await callback.message.answer(f"⚠️ {e.message}", reply_markup=back_to_menu_keyboard())
        return
    logger.info("Session %s cancelled from chat %s", session_id, callback.message.chat.id)
    await callback.message.answer(
        "✅ <b>Session cancelled.</b>\n\nAny refund due has been added to your credits.",
        reply_markup=main_menu_keyboard(True),
    )


@router.callback_query(F.data.startswith("refund:"))
async def cb_refund_session(callback: CallbackQuery):
    await callback.answer()
    api = await _signed_in(callback.from_user.id)
    if api is None:
        await callback.message.answer(SIGN_IN_FIRST, reply_markup=main_menu_keyboard(False))
        return
    session_id = callback.data.split(":", 1)[1]
    try:
        resp = await payments.request_refund(api, session_id, REFUND_REASON)
    except ApiError as e:
        await callback.message.answer(f"⚠️ {e.message}", reply_markup=back_to_menu_keyboard())
        return
    await callback.message.answer(
        f"💸 {resp.get('message') or 'Refund requested.'}",
        reply_markup=main_menu_keyboard(True),
    )


# ── Payment history ────────────────────────────────────────

def history_lines(history: dict) -> list[str]:
    lines = [DIVIDER, "🧾 <b>Payment History</b>", DIVIDER, ""]
    transactions = history.get("transactions") or []
    if not transactions:
        lines.append("No payments yet.")
    for t in transactions:
        kind = str(t.get("type", "payment")).replace("_", " ").title()
        amount = format_amount(t.get("amount") or 0, t.get("currency"))
        lines.append(f"• {str(t.get('createdAt', ''))[:10]} · {kind} · <b>{amount}</b> ({t.get('status', '-')})")
    if history.get("pages", 1) > 1:
        lines.append(f"\n<i>Page {history.get('page', 1)} of {history['pages']}</i>")
    return lines


async def _send_history(bot: Bot, chat_id: int, telegram_id: int):
    api = await _signed_in(telegram_id)
    if api is None:
        await bot.send_message(chat_id, SIGN_IN_FIRST, reply_markup=main_menu_keyboard(False))
        return
    try:
        history = await payments.get_payment_history(api)
    except ApiError as e:
        await bot.send_message(chat_id, f"⚠️ {e.message}", reply_markup=back_to_menu_keyboard())
        return
    await bot.send_message(chat_id, "\n".join(history_lines(history)), reply_markup=back_to_menu_keyboard())


@router.message(Command("payments"))
async def cmd_payments(message: Message):
    await _send_history(message.bot, message.chat.id, message.from_user.id)


@router.callback_query(F.data == "menu:payments")
async def cb_payments(callback: CallbackQuery):
    await callback.answer()
    await _send_history(callback.bot, callback.message.chat.id, callback.from_user.id)
