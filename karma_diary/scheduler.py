"""
Scheduler
=========

APScheduler wiring for the background jobs:

- Fixed reminder slots and their antidote pre-reminders
- Custom reminder schedules, checked every minute
- Trial expiration sweep at 03:00

All cron times are in ``SCHEDULER_TIMEZONE``. Each run opens its own
session and commits when the job returns.
"""

import logging
from typing import Optional

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger

from karma_diary.bot.loader import get_bot
from karma_diary.config import settings
from karma_diary.core.reminder_modes import SLOT_TIMES, ReminderSlot
from karma_diary.db.session import session_scope
from karma_diary.services.notifications import build_senders
from karma_diary.services.scheduled_jobs import (
    run_custom_reminders,
    run_slot_reminders,
    run_trial_expiration,
)

logger = logging.getLogger(__name__)

_scheduler: Optional[AsyncIOScheduler] = None


async def trial_expiration_job() -> None:
    async with session_scope() as db:
        summary = await run_trial_expiration(db)
    logger.info("Job finished: %s", summary)


async def slot_reminder_job(slot: ReminderSlot) -> None:
    async with session_scope() as db:
        summary = await run_slot_reminders(db, slot, build_senders(db, get_bot()))
    logger.info("Job finished: %s", summary)


async def custom_reminder_job() -> None:
    async with session_scope() as db:
        summary = await run_custom_reminders(db, build_senders(db, get_bot()))
    if summary["users"]:
        logger.info("Job finished: %s", summary)


def create_scheduler() -> AsyncIOScheduler:
    """Build a scheduler with every job registered but not started."""
    tz = settings.SCHEDULER_TIMEZONE
    scheduler = AsyncIOScheduler(
        timezone=tz,
        job_defaults={"coalesce": True, "max_instances": 1, "misfire_grace_time": 60},
    )

    for slot, (hour, minute) in SLOT_TIMES.items():
        scheduler.add_job(
            slot_reminder_job,
            CronTrigger(hour=hour, minute=minute, timezone=tz),
            args=[slot],
            id=f"reminders_{slot.value}",
            replace_existing=True,
        )

    scheduler.add_job(
        custom_reminder_job,
        CronTrigger(minute="*", timezone=tz),
        id="reminders_custom",
        replace_existing=True,
    )
    scheduler.add_job(
        trial_expiration_job,
        CronTrigger(hour=3, minute=0, timezone=tz),
        id="trial_expiration",
        replace_existing=True,
    )
    return scheduler


def start_scheduler() -> Optional[AsyncIOScheduler]:
    global _scheduler

    if not settings.SCHEDULER_ENABLED:
        logger.info("Scheduler disabled")
        return None

    if _scheduler is None:
        _scheduler = create_scheduler()
        _scheduler.start()
        logger.info("Scheduler started with %d jobs", len(_scheduler.get_jobs()))
    return _scheduler


def stop_scheduler() -> None:
    global _scheduler

    if _scheduler is not None:
        _scheduler.shutdown(wait=False)
        _scheduler = None
        logger.info("Scheduler stopped")
