"""
Notification Senders
====================

Delivery channels for reminders. The reminder service only knows the
``NotificationSender`` protocol; each channel decides whether a user is
reachable through it.
"""

import asyncio
from dataclasses import dataclass, field
import html
import json
import logging
from typing import Optional, Protocol

from aiogram import Bot
from aiogram.exceptions import TelegramForbiddenError
from aiogram.types import InlineKeyboardButton, InlineKeyboardMarkup
from pywebpush import WebPushException, webpush
from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from karma_diary.config import settings
from karma_diary.models.notification import PushSubscription
from karma_diary.models.user import User

logger = logging.getLogger(__name__)

PUSH_ICON = "/logo-192.png"
GONE_STATUSES = (404, 410)


@dataclass
class ReminderMessage:
    """Channel-neutral reminder content."""
    title: str
    body: str
    url: str = "/"
    # Rows of (text, callback_data)
    buttons: list[list[tuple[str, str]]] = field(default_factory=list)

    def to_html(self) -> str:
        return f"<b>{html.escape(self.title)}</b>\n\n{html.escape(self.body)}"

    def to_push_payload(self) -> str:
        return json.dumps(
            {"title": self.title, "body": self.body, "icon": PUSH_ICON, "url": self.url},
            ensure_ascii=False,
        )


class NotificationSender(Protocol):
    name: str

    async def send(self, user: User, message: ReminderMessage) -> bool:
        """Deliver ``message``. False when the user is not reachable here."""
        ...


class TelegramSender:
    """Sends reminders as bot messages with an inline keyboard."""

    name = "telegram"

    def __init__(self, bot: Bot):
        self.bot = bot

    async def send(self, user: User, message: ReminderMessage) -> bool:
        if not user.telegram_chat_id:
            return False

        markup = None
        if message.buttons:
            markup = InlineKeyboardMarkup(inline_keyboard=[
                [InlineKeyboardButton(text=text, callback_data=data) for text, data in row]
                for row in message.buttons
            ])

        try:
            await self.bot.send_message(
                chat_id=user.telegram_chat_id,
                text=message.to_html(),
                parse_mode="HTML",
                reply_markup=markup,
            )
        except TelegramForbiddenError:
            logger.info("User %s blocked the bot, skipping", user.user_id)
            return False
        return True


class WebPushSender:
    """
    Sends reminders to every stored browser subscription of a user.

    pywebpush is blocking, so each push runs in a worker thread.
    Subscriptions the push service reports as gone are deleted.
    """

    name = "webpush"

    def __init__(self, db: AsyncSession):
        self.db = db

    async def _push(self, subscription: PushSubscription, payload: str) -> bool:
        try:
            await asyncio.to_thread(
                webpush,
                subscription_info=subscription.to_webpush_info(),
                data=payload,
                vapid_private_key=settings.VAPID_PRIVATE_KEY,
                vapid_claims={"sub": settings.VAPID_SUBJECT},
            )
            return True
        except WebPushException as e:
            status_code = e.response.status_code if e.response is not None else None
            if status_code in GONE_STATUSES:
                logger.info("Removing expired push subscription %s", subscription.push_subscription_id)
                await self.db.execute(
                    delete(PushSubscription).where(PushSubscription.endpoint == subscription.endpoint)
                )
            else:
                logger.warning("Push to %s failed: %s", subscription.push_subscription_id, e)
            return False

    async def send(self, user: User, message: ReminderMessage) -> bool:
        if not settings.push_enabled:
            return False

        result = await self.db.execute(
            select(PushSubscription).where(PushSubscription.user_id == user.user_id)
        )
        subscriptions = list(result.scalars().all())
        if not subscriptions:
            return False

        payload = message.to_push_payload()
        delivered = [await self._push(subscription, payload) for subscription in subscriptions]
        return any(delivered)


def build_senders(db: AsyncSession, bot: Optional[Bot] = None) -> list[NotificationSender]:
    """Channels available in this process."""
    senders: list[NotificationSender] = []
    if bot is not None:
        senders.append(TelegramSender(bot))
    if settings.push_enabled:
        senders.append(WebPushSender(db))
    return senders
