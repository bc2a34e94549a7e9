"""
Guided flow handler — one Telegram message per flow, edited in place.

Callback actions ("flow:*") and free-text answers are routed to the chat's
mounted Flow. While an advance / finish is in flight the message shows a
loading line with no buttons, and further taps are ignored.
"""

import logging

from aiogram import Bot, Router, F
from aiogram.exceptions import TelegramBadRequest
from aiogram.fsm.context import FSMContext
from aiogram.types import Message, CallbackQuery

from serene_bot.flows.flow import Flow
from serene_bot.flows.registry import flows
from serene_bot.flows.renderer import (
    ACTION_PREFIX, BACK, CANCEL, DIVIDER, EDIT, FINISH, NEXT, PICK, RETRY, SKIP,
)
from serene_bot.flows.steps import FlowDefinition
from serene_bot.keyboards.flow_kb import back_to_menu_keyboard, main_menu_keyboard, view_keyboard
from serene_bot.states.flow_states import FlowInput

router = Router()
logger = logging.getLogger(__name__)

SECRET_FIELDS = {"password"}

FINISHED_TEXT = {
    "booking": "🎉 <b>Session booked!</b>\n\nYou'll get a reminder before it starts.",
    "credits": "🪙 <b>Credits added!</b>\n\nYour balance: <b>{credits}</b> credits.",
    "login": "👋 <b>Welcome back, {name}!</b>",
    "user_onboarding": "🌿 <b>Your account is ready, {name}!</b>\n\nBook your first session below.",
    "expert_onboarding": (
        "🩺 <b>Application submitted!</b>\n\n"
        "Check your inbox to set your password. We'll notify you once approved."
    ),
    "company_onboarding": (
        "🏢 <b>Workspace created!</b>\n\n"
        "Check your inbox to set your password and invite your team."
    ),
}


async def safe_edit(bot: Bot, chat_id: int, message_id: int, text: str, **kwargs):
    """Edit message, silently ignoring 'message not modified' errors."""
    try:
        await bot.edit_message_text(text, chat_id=chat_id, message_id=message_id, **kwargs)
    except TelegramBadRequest as e:
        if "message is not modified" not in str(e):
            raise


async def show(bot: Bot, chat_id: int, flow: Flow, state: FSMContext, busy: bool = False, fresh: bool = False):
    """Render the flow into its message (a new one when fresh)."""
    view = flow.view(busy=busy)
    kb = view_keyboard(view)
    data = await state.get_data()
    message_id = data.get("flow_message_id")

    if message_id and not fresh:
        await safe_edit(bot, chat_id, message_id, view.text, reply_markup=kb)
        return

    if message_id:
        # Old view stays in the history without buttons
        try:
            await bot.edit_message_reply_markup(chat_id=chat_id, message_id=message_id, reply_markup=None)
        except TelegramBadRequest as e:
            logger.debug("Could not strip old flow keyboard: %s", e)
    sent = await bot.send_message(chat_id, view.text, reply_markup=kb)
    await state.update_data(flow_message_id=sent.message_id)


async def start_flow(bot: Bot, chat_id: int, state: FSMContext, definition: FlowDefinition) -> Flow:
    """Mount a new flow for the chat (discarding any running one) and show step 1."""
    flow = flows.mount(chat_id, Flow(definition))
    await state.set_state(FlowInput.active)
    await state.update_data(flow_message_id=None)
    await show(bot, chat_id, flow, state)
    return flow


async def end_flow(chat_id: int, state: FSMContext) -> None:
    flows.discard(chat_id)
    await state.clear()


def finished_text(flow: Flow) -> str:
    template = FINISHED_TEXT.get(flow.definition.name, "✅ <b>All done!</b>")
    result = flow.result if isinstance(flow.result, dict) else {}
    user = result.get("user") if isinstance(result.get("user"), dict) else result
    return template.format(name=user.get("name", "there"), credits=user.get("credits", "-"))


async def _finished(bot: Bot, chat_id: int, flow: Flow, state: FSMContext):
    await show(bot, chat_id, flow, state)
    await end_flow(chat_id, state)
    await bot.send_message(
        chat_id,
        f"{DIVIDER}\n{finished_text(flow)}\n{DIVIDER}",
        reply_markup=main_menu_keyboard(signed_in=True),
    )


# ── Button actions ─────────────────────────────────────────

@router.callback_query(F.data.startswith(ACTION_PREFIX))
async def on_flow_action(callback: CallbackQuery, state: FSMContext):
    chat_id = callback.message.chat.id
    bot = callback.bot
    flow = flows.get(chat_id)
    if flow is None:
        await callback.answer("This flow has ended. Use /start to begin again.", show_alert=True)
        return
    await callback.answer()

    action = callback.data
    if action == CANCEL:
        await end_flow(chat_id, state)
        await safe_edit(
            bot, chat_id, callback.message.message_id,
            "❌ <b>Cancelled.</b>\n\nNothing was saved.",
            reply_markup=back_to_menu_keyboard(),
        )
        return

    if flow.busy:
        return

    if action in (NEXT, RETRY, FINISH):
        await show(bot, chat_id, flow, state, busy=True)
        if action == NEXT:
            await flow.advance()
        elif action == RETRY:
            await flow.retry()
        else:
            await flow.finish()
        if flow.closed:
            return
        if flow.state.finished:
            await _finished(bot, chat_id, flow, state)
            return
    elif action == BACK:
        flow.back()
    elif action == SKIP:
        flow.skip()
    elif action.startswith(PICK):
        flow.pick(int(action[len(PICK):]))
    elif action.startswith(EDIT):
        flow.edit(int(action[len(EDIT):]))
    else:
        logger.warning("Unknown flow action: %s", action)
        return

    await show(bot, chat_id, flow, state)


# ── Free-text answers ──────────────────────────────────────

@router.message(FlowInput.active, F.text)
async def on_flow_text(message: Message, state: FSMContext):
    chat_id = message.chat.id
    flow = flows.get(chat_id)
    if flow is None:
        await state.clear()
        await message.answer("No active flow. Use /start to see the menu.")
        return
    if flow.busy:
        await message.answer("⏳ Still working on your last step, please wait...")
        return

    target = flow.step.pending_field(flow.state.form_data, flow.state.focus)
    flow.enter(message.text)
    if target is not None and target.key in SECRET_FIELDS:
        try:
            await message.delete()
        except TelegramBadRequest:
            logger.info("Could not delete secret message in chat %s", chat_id)
    await show(message.bot, chat_id, flow, state, fresh=True)
