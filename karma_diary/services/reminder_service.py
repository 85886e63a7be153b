"""
Reminder Service
================

Fan-out of principle reminders to every configured channel.

Two entry points feed it:
- ``send_slot`` for the fixed morning/afternoon/evening broadcasts
  (and their antidote pre-reminders), gated by ``notification_type``
- ``send_due_schedules`` for users with a custom schedule, checked every
  minute against each user's local wall clock

A failure for one user or one channel is logged and counted; the batch
always runs to the end.
"""

import logging
from datetime import datetime, timezone
from typing import Optional, Sequence
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from karma_diary.config import settings
from karma_diary.core.errors import ErrorCodes, ValidationError
from karma_diary.core.reminder_modes import (
    NotificationType,
    ReminderSlot,
    ReminderType,
    slot_allows,
)
from karma_diary.db.retry import retry_database_operation
from karma_diary.models.notification import ReminderSchedule
from karma_diary.models.user import User
from karma_diary.services.notifications import NotificationSender, ReminderMessage
from karma_diary.services.principle_service import PrincipleService

logger = logging.getLogger(__name__)


def build_reminder_message(
    user: User,
    principle_number: int,
    principle_title: str,
    kind: str,
) -> ReminderMessage:
    """
    Reminder text for a slot or schedule kind.

    ``kind`` is a ``ReminderSlot`` value or a ``ReminderType`` value; it
    travels in the button callback data so replies know what they answer.
    """
    name = user.display_name
    if kind.endswith("_antidote"):
        title = "Антидот дня"
        body = (
            f"{name}, перед наступним нагадуванням пригадай принцип {principle_number} "
            f"«{principle_title}». Де сьогодні ти діяв навпаки і як це виправити?"
        )
    elif kind in (ReminderType.REFLECTION.value, ReminderSlot.EVENING.value):
        title = "Час для рефлексії 🪷"
        body = (
            f"{name}, як пройшов день з принципом {principle_number} «{principle_title}»? "
            "Запиши кілька думок у щоденник."
        )
    else:
        title = "Нагадування про принцип 🌟"
        body = (
            f"Привіт, {name}! Сьогоднішній принцип {principle_number}: «{principle_title}». "
            "Як ти можеш застосувати його сьогодні?"
        )

    return ReminderMessage(
        title=title,
        body=body,
        url=f"{settings.FRONTEND_URL}/journal",
        buttons=[[
            ("✍️ Записати", f"write_{principle_number}_{kind}"),
            ("⏭ Пропустити", f"skip_{principle_number}_{kind}"),
        ]],
    )


def local_hhmm(now: datetime, tz_name: Optional[str]) -> str:
    """``now`` as HH:MM in the user's zone, falling back to the scheduler zone."""
    try:
        tz = ZoneInfo(tz_name or settings.SCHEDULER_TIMEZONE)
    except (ZoneInfoNotFoundError, ValueError):
        tz = ZoneInfo(settings.SCHEDULER_TIMEZONE)
    return now.astimezone(tz).strftime("%H:%M")


def sent_this_minute(last_sent: Optional[datetime], now: datetime) -> bool:
    if last_sent is None:
        return False
    return last_sent.replace(second=0, microsecond=0) == now.replace(second=0, microsecond=0)


class ReminderService:
    """Sends reminders through injected notification senders."""

    def __init__(self, db: AsyncSession, senders: Sequence[NotificationSender]):
        self.db = db
        self.senders = list(senders)

    async def _load_recipients(self) -> list[User]:
        async def _query() -> list[User]:
            result = await self.db.execute(
                select(User).where(
                    User.is_active.is_(True),
                    User.reminders_enabled.is_(True),
                )
            )
            return list(result.scalars().all())

        return await retry_database_operation(_query)

    async def _deliver(self, user: User, message: ReminderMessage) -> bool:
        """Send through every channel; True if any channel delivered."""
        delivered = False
        for sender in self.senders:
            try:
                if await sender.send(user, message):
                    delivered = True
            except Exception:
                logger.exception("Reminder via %s failed for user %s", sender.name, user.user_id)
        return delivered

    async def _remind(self, user: User, kind: str, now: datetime) -> bool:
        principles = PrincipleService(self.db)
        title = await principles.get_title(user.current_principle)
        message = build_reminder_message(user, user.current_principle, title, kind)
        delivered = await self._deliver(user, message)
        if delivered:
            user.last_reminder_sent = now
        return delivered

    async def send_slot(self, slot: ReminderSlot, now: Optional[datetime] = None) -> dict:
        """
        Broadcast one fixed slot to every user whose preference admits it.

        Returns:
            Summary of the run
        """
        now = now or datetime.now(timezone.utc)
        users = await self._load_recipients()
        recipients = [u for u in users if slot_allows(u.notification_type, slot)]

        sent = failed = 0
        for user in recipients:
            try:
                if await self._remind(user, slot.value, now):
                    sent += 1
                else:
                    failed += 1
            except Exception:
                logger.exception("Reminder for user %s in slot %s failed", user.user_id, slot.value)
                failed += 1

        await self.db.flush()
        logger.info("Slot %s: %d users, %d sent, %d failed", slot.value, len(recipients), sent, failed)
        return {
            "job": "send_slot",
            "slot": slot.value,
            "users": len(recipients),
            "sent": sent,
            "failed": failed,
            "run_at": now.isoformat(),
        }

    async def send_due_schedules(self, now: Optional[datetime] = None) -> dict:
        """
        Send custom-schedule reminders whose time matches the user's local minute.
        """
        now = now or datetime.now(timezone.utc)

        async def _query():
            result = await self.db.execute(
                select(User, ReminderSchedule)
                .join(ReminderSchedule, ReminderSchedule.user_id == User.user_id)
                .where(
                    User.is_active.is_(True),
                    User.reminders_enabled.is_(True),
                    User.notification_type == NotificationType.CUSTOM.value,
                    ReminderSchedule.enabled.is_(True),
                )
            )
            return list(result.all())

        rows = await retry_database_operation(_query)

        sent = failed = matched = 0
        for user, schedule in rows:
            if schedule.time != local_hhmm(now, user.timezone):
                continue
            if sent_this_minute(user.last_reminder_sent, now):
                continue
            matched += 1
            try:
                if await self._remind(user, schedule.type, now):
                    sent += 1
                else:
                    failed += 1
            except Exception:
                logger.exception("Scheduled reminder for user %s failed", user.user_id)
                failed += 1

        await self.db.flush()
        if matched:
            logger.info("Custom schedules: %d due, %d sent, %d failed", matched, sent, failed)
        return {
            "job": "send_due_schedules",
            "users": matched,
            "sent": sent,
            "failed": failed,
            "run_at": now.isoformat(),
        }

    async def send_test_reminder(self, user: User) -> dict:
        """Send the current principle reminder right now, reporting per channel."""
        if not self.senders:
            raise ValidationError(
                message="No notification channel is configured",
                code=ErrorCodes.REMINDER_NO_CHANNEL,
            )

        principles = PrincipleService(self.db)
        title = await principles.get_title(user.current_principle)
        message = build_reminder_message(user, user.current_principle, title, ReminderType.PRINCIPLE.value)

        channels = {}
        for sender in self.senders:
            try:
                channels[sender.name] = await sender.send(user, message)
            except Exception:
                logger.exception("Test reminder via %s failed for user %s", sender.name, user.user_id)
                channels[sender.name] = False

        return {"sent": any(channels.values()), "channels": channels}
