"""
Bot Loader
==========

Lazily built ``Bot`` and ``Dispatcher`` plus the polling and webhook
lifecycles used by the application lifespan.
"""

import asyncio
import logging
from typing import Optional

from aiogram import Bot, Dispatcher
from aiogram.client.default import DefaultBotProperties
from aiogram.enums import ParseMode
from aiogram.types import BotCommand, Update

from karma_diary.bot.handlers import router
from karma_diary.config import settings

logger = logging.getLogger(__name__)

WEBHOOK_PATH = "/api/telegram/webhook"

_bot: Optional[Bot] = None
_dispatcher: Optional[Dispatcher] = None
_polling_task: Optional[asyncio.Task] = None

BOT_COMMANDS = [
    BotCommand(command="start", description="Головне меню"),
    BotCommand(command="stats", description="Моя статистика"),
    BotCommand(command="help", description="Довідка"),
]


def get_bot() -> Optional[Bot]:
    """The shared bot, or None when Telegram is not configured."""
    global _bot

    if _bot is None and settings.telegram_enabled:
        _bot = Bot(
            token=settings.TELEGRAM_BOT_TOKEN,
            default=DefaultBotProperties(parse_mode=ParseMode.HTML),
        )
    return _bot


def get_dispatcher() -> Dispatcher:
    global _dispatcher

    if _dispatcher is None:
        _dispatcher = Dispatcher()
        _dispatcher.include_router(router)
    return _dispatcher


async def start_bot() -> None:
    """Start long polling or register the webhook, depending on BOT_MODE."""
    global _polling_task

    bot = get_bot()
    if bot is None:
        logger.info("Telegram bot disabled (no token or BOT_MODE=disabled)")
        return

    await bot.set_my_commands(BOT_COMMANDS)
    dispatcher = get_dispatcher()

    if settings.BOT_MODE.lower() == "webhook":
        url = f"{settings.API_BASE_URL}{WEBHOOK_PATH}"
        await bot.set_webhook(
            url,
            secret_token=settings.WEBHOOK_SECRET or None,
            drop_pending_updates=True,
        )
        logger.info("Telegram webhook set to %s", url)
        return

    await bot.delete_webhook(drop_pending_updates=True)
    _polling_task = asyncio.create_task(
        dispatcher.start_polling(bot, handle_signals=False, close_bot_session=False)
    )
    logger.info("Telegram bot polling started")


async def feed_webhook_update(payload: dict) -> None:
    """Dispatch one update received on the webhook endpoint."""
    bot = get_bot()
    if bot is None:
        return
    update = Update.model_validate(payload, context={"bot": bot})
    await get_dispatcher().feed_update(bot, update)


async def stop_bot() -> None:
    global _bot, _polling_task

    if _polling_task is not None:
        _polling_task.cancel()
        try:
            await _polling_task
        except asyncio.CancelledError:
            pass
        _polling_task = None

    if _bot is not None:
        await _bot.session.close()
        _bot = None
        logger.info("Telegram bot stopped")
