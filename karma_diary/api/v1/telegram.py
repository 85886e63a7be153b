"""
Telegram Webhook Endpoint
=========================

Receives bot updates when ``BOT_MODE=webhook``.

Telegram echoes the ``secret_token`` given to ``setWebhook`` in the
``X-Telegram-Bot-Api-Secret-Token`` header; when WEBHOOK_SECRET is set
requests without it are rejected.
"""

import hmac
import logging

from fastapi import APIRouter, Header, Request

from karma_diary.bot.loader import feed_webhook_update
from karma_diary.config import settings
from karma_diary.core.errors import ForbiddenError

logger = logging.getLogger(__name__)

router = APIRouter()


def secret_matches(received: str, expected: str) -> bool:
    if not expected:
        return True
    return hmac.compare_digest(received.encode(), expected.encode())


@router.post("/webhook")
async def telegram_webhook(
    request: Request,
    secret_token: str = Header(default="", alias="X-Telegram-Bot-Api-Secret-Token"),
):
    if not secret_matches(secret_token, settings.WEBHOOK_SECRET):
        logger.warning("Telegram webhook call with a wrong secret token")
        raise ForbiddenError(message="Invalid webhook secret")

    await feed_webhook_update(await request.json())
    return {"ok": True}
