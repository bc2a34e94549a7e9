"""
Serene Wellbeing Bot — entrypoint.

Runs aiogram polling and the hosted checkout page (uvicorn) on one event loop.
"""

import asyncio
import logging

import uvicorn
from aiogram import Bot, Dispatcher
from aiogram.client.default import DefaultBotProperties
from aiogram.enums import ParseMode

from serene_bot.checkout.bridge import create_app
from serene_bot.checkout.razorpay import get_checkout
from serene_bot.config import settings
from serene_bot.handlers import booking, common, flows, onboarding

logger = logging.getLogger(__name__)


def build_dispatcher() -> Dispatcher:
    dp = Dispatcher()
    # Commands and menu callbacks before the catch-all flow text handler
    dp.include_router(common.router)
    dp.include_router(booking.router)
    dp.include_router(onboarding.router)
    dp.include_router(flows.router)
    return dp


async def run() -> None:
    if not settings.TELEGRAM_BOT_TOKEN:
        raise RuntimeError("TELEGRAM_BOT_TOKEN is not set")

    bot = Bot(
        token=settings.TELEGRAM_BOT_TOKEN,
        default=DefaultBotProperties(parse_mode=ParseMode.HTML),
    )
    dp = build_dispatcher()

    if not await get_checkout().load():
        logger.error("Payments disabled: %s", get_checkout().error)

    server = uvicorn.Server(uvicorn.Config(
        create_app(),
        host=settings.CHECKOUT_HOST,
        port=settings.CHECKOUT_PORT,
        log_level=settings.LOG_LEVEL.lower(),
    ))
    logger.info("🚀 %s bot starting (checkout page on :%s)", settings.BRAND_NAME, settings.CHECKOUT_PORT)

    async def polling() -> None:
        try:
            await dp.start_polling(bot)
        finally:
            server.should_exit = True

    try:
        await asyncio.gather(server.serve(), polling())
    finally:
        await bot.session.close()
        logger.info("🛑 %s bot shut down.", settings.BRAND_NAME)


def main() -> None:
    logging.basicConfig(
        level=settings.LOG_LEVEL,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    asyncio.run(run())


if __name__ == "__main__":
    main()
