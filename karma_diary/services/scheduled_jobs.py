"""
Scheduled Jobs
==============

Background tasks run by the scheduler:
- Trial expiration sweep (daily at 03:00)
- Fixed-slot reminder broadcasts
- Per-minute custom schedule reminders
"""

import logging
from datetime import datetime, timezone
from typing import Optional, Sequence

from sqlalchemy import update
from sqlalchemy.ext.asyncio import AsyncSession

from karma_diary.core.plans import Plan
from karma_diary.core.reminder_modes import ReminderSlot
from karma_diary.models.subscription import Subscription, SubscriptionStatus
from karma_diary.services.notifications import NotificationSender
from karma_diary.services.reminder_service import ReminderService

logger = logging.getLogger(__name__)


class ScheduledJobService:
    """Service for scheduled maintenance jobs."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def expire_trials(self, now: Optional[datetime] = None) -> dict:
        """
        Mark lapsed trials as expired in a single UPDATE.

        The plan gate already ignores expired rows, so this only keeps the
        stored status honest.

        Returns:
            Summary with the number of rows changed
        """
        now = now or datetime.now(timezone.utc)

        result = await self.db.execute(
            update(Subscription)
            .where(
                Subscription.plan == Plan.TRIAL,
                Subscription.status == SubscriptionStatus.ACTIVE,
                Subscription.expires_at < now,
            )
            .values(status=SubscriptionStatus.EXPIRED)
            .execution_options(synchronize_session=False)
        )
        processed = result.rowcount or 0

        logger.info("Trial sweep expired %d subscriptions", processed)
        return {
            "job": "expire_trials",
            "processed": processed,
            "run_at": now.isoformat(),
        }


# =============================================================================
# Job entry points
# =============================================================================

async def run_trial_expiration(db: AsyncSession) -> dict:
    """Entry point for the daily trial sweep."""
    service = ScheduledJobService(db)
    return await service.expire_trials()


async def run_slot_reminders(
    db: AsyncSession,
    slot: ReminderSlot,
    senders: Sequence[NotificationSender],
) -> dict:
    """Entry point for a fixed reminder slot."""
    service = ReminderService(db, senders)
    return await service.send_slot(slot)


async def run_custom_reminders(
    db: AsyncSession,
    senders: Sequence[NotificationSender],
) -> dict:
    """Entry point for the per-minute custom schedule tick."""
    service = ReminderService(db, senders)
    return await service.send_due_schedules()
