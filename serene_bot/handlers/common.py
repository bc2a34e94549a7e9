"""
Main menu handlers — /start, /help, /cancel, /logout.

/start always drops whatever flow the chat had running.
"""

import logging

from aiogram import Router, F
from aiogram.filters import Command
from aiogram.fsm.context import FSMContext
from aiogram.types import Message, CallbackQuery

from serene_bot.config import settings
from serene_bot.flows.renderer import DIVIDER
from serene_bot.handlers.flows import end_flow, safe_edit
from serene_bot.keyboards.flow_kb import back_to_menu_keyboard, main_menu_keyboard
from serene_bot.services import auth
from serene_bot.services.api import ApiError, api_for

router = Router()
logger = logging.getLogger(__name__)


def welcome_text(user: dict | None) -> str:
    if user:
        credits = user.get("credits", 0)
        return (
            f"{DIVIDER}\n"
            f"🌿 <b>{settings.BRAND_NAME}</b>\n"
            f"{DIVIDER}\n\n"
            f"Welcome back, <b>{user.get('name', 'friend')}</b>! 👋\n"
            f"🪙 Credits: <b>{credits}</b>\n\n"
            "What would you like to do?"
        )
    return (
        f"{DIVIDER}\n"
        f"🌿 <b>{settings.BRAND_NAME}</b>\n"
        f"{DIVIDER}\n\n"
        "Talk to verified therapists, coaches and wellness experts,\n"
        "right here in Telegram. 💚\n\n"
        "New here? Tap <b>Get Started</b>."
    )


@router.message(Command("start"))
async def cmd_start(message: Message, state: FSMContext):
    """Handle /start — show the menu for signed-in or new users."""
    await end_flow(message.chat.id, state)
    api = await api_for(message.from_user.id)
    await message.answer(
        welcome_text(api.session.user),
        reply_markup=main_menu_keyboard(api.session.is_authenticated),
    )


@router.callback_query(F.data == "menu:main")
async def cb_main_menu(callback: CallbackQuery, state: FSMContext):
    await callback.answer()
    await end_flow(callback.message.chat.id, state)
    api = await api_for(callback.from_user.id)
    await safe_edit(
        callback.bot, callback.message.chat.id, callback.message.message_id,
        welcome_text(api.session.user),
        reply_markup=main_menu_keyboard(api.session.is_authenticated),
    )


@router.message(Command("cancel"))
async def cmd_cancel(message: Message, state: FSMContext):
    await end_flow(message.chat.id, state)
    await message.answer("❌ Cancelled. Nothing was saved.", reply_markup=back_to_menu_keyboard())


async def _logout(telegram_id: int) -> None:
    api = await api_for(telegram_id)
    try:
        await auth.logout(api)
    except ApiError as e:
        # Local session is cleared regardless
        logger.info("Logout call failed for %s: %s", telegram_id, e.message)


@router.message(Command("logout"))
async def cmd_logout(message: Message, state: FSMContext):
    await end_flow(message.chat.id, state)
    await _logout(message.from_user.id)
    await message.answer("🚪 You're logged out.", reply_markup=main_menu_keyboard(False))


@router.callback_query(F.data == "menu:logout")
async def cb_logout(callback: CallbackQuery, state: FSMContext):
    await callback.answer()
    await end_flow(callback.message.chat.id, state)
    await _logout(callback.from_user.id)
    await safe_edit(
        callback.bot, callback.message.chat.id, callback.message.message_id,
        "🚪 You're logged out.",
        reply_markup=main_menu_keyboard(False),
    )


@router.message(Command("help"))
async def cmd_help(message: Message):
    """Show help."""
    await message.answer(
        f"{DIVIDER}\n"
        f"ℹ️ <b>{settings.BRAND_NAME} Help</b>\n"
        f"{DIVIDER}\n\n"
        "/start — Main menu\n"
        "/book — Book a session\n"
        "/sessions — Your upcoming sessions\n"
        "/credits — Top up credits\n"
        "/payments — Payment history\n"
        "/cancel — Cancel the current step-by-step flow\n"
        "/logout — Sign out\n"
        "/help — This message",
        reply_markup=back_to_menu_keyboard(),
    )
