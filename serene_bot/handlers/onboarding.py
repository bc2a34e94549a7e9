"""Entry points for sign-in and the three onboarding flows."""

from aiogram import Router, F
from aiogram.fsm.context import FSMContext
from aiogram.types import CallbackQuery

from serene_bot.flows.company_onboarding import build_company_onboarding
from serene_bot.flows.expert_onboarding import build_expert_onboarding
from serene_bot.flows.login import build_login_flow
from serene_bot.flows.user_onboarding import build_user_onboarding
from serene_bot.handlers.flows import start_flow
from serene_bot.services.api import api_for

router = Router()

BUILDERS = {
    "user": build_user_onboarding,
    "expert": build_expert_onboarding,
    "company": build_company_onboarding,
}


@router.callback_query(F.data.startswith("join:"))
async def cb_join(callback: CallbackQuery, state: FSMContext):
    """Begin the onboarding flow for the chosen account type."""
    await callback.answer()
    build = BUILDERS.get(callback.data.split(":", 1)[1])
    if build is None:
        return
    api = await api_for(callback.from_user.id)
    await start_flow(callback.bot, callback.message.chat.id, state, build(api))


@router.callback_query(F.data == "menu:login")
async def cb_login(callback: CallbackQuery, state: FSMContext):
    await callback.answer()
    api = await api_for(callback.from_user.id)
    await start_flow(callback.bot, callback.message.chat.id, state, build_login_flow(api))
