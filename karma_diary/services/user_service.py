"""
User Service
============

Profile, settings, onboarding and the daily practice view.
"""

import logging
from datetime import datetime, timezone
from typing import Optional
import uuid
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from karma_diary.core.errors import ErrorCodes, ValidationError
from karma_diary.core.reminder_modes import (
    MAX_DAILY_PRINCIPLES,
    MIN_DAILY_PRINCIPLES,
    NotificationType,
    REMINDER_MODES,
    build_schedule,
    is_valid_time,
)
from karma_diary.models.notification import ReminderSchedule
from karma_diary.models.principle import PrincipleHistory
from karma_diary.models.user import User
from karma_diary.services.journal_service import JournalService
from karma_diary.services.principle_service import PrincipleService, next_principle_number
from karma_diary.services.stats_service import StatsService

logger = logging.getLogger(__name__)

PROFILE_FIELDS = ("first_name", "last_name", "username", "avatar_url")
SETTINGS_FIELDS = ("notification_type", "language", "timezone", "reminders_enabled", "custom_times")


def validate_timezone(name: str) -> str:
    try:
        ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError):
        raise ValidationError(message=f"Unknown time zone '{name}'", field="timezone")
    return name


def validate_times(times: list[str], field: str = "custom_times") -> list[str]:
    bad = [t for t in times if not is_valid_time(t)]
    if bad:
        raise ValidationError(
            message=f"Times must be HH:MM, got {', '.join(bad)}",
            field=field,
        )
    return sorted(set(times))


def user_to_dict(user: User) -> dict:
    return {
        "user_id": str(user.user_id),
        "telegram_id": user.telegram_id,
        "email": user.email,
        "first_name": user.first_name,
        "last_name": user.last_name,
        "username": user.username,
        "avatar_url": user.avatar_url,
        "language": user.language,
        "timezone": user.timezone,
        "current_principle": user.current_principle,
        "notification_type": user.notification_type,
        "reminder_mode": user.reminder_mode,
        "daily_principles_count": user.daily_principles_count,
        "custom_times": user.custom_times or [],
        "reminders_enabled": user.reminders_enabled,
        "has_completed_onboarding": user.has_completed_onboarding,
        "subscription_plan": user.subscription_plan,
    }


class UserService:
    """Service for user profile and preference operations."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def update_profile(self, user: User, changes: dict) -> User:
        for key in PROFILE_FIELDS:
            if changes.get(key) is not None:
                setattr(user, key, changes[key])
        await self.db.flush()
        return user

    async def update_settings(self, user: User, changes: dict) -> User:
        """
        Update reminder and locale preferences.

        Switching to ``custom`` notifications or sending new ``custom_times``
        rebuilds the reminder schedule, since the per-minute reminder job
        reads schedule rows only.
        """
        if changes.get("timezone") is not None:
            validate_timezone(changes["timezone"])
        if changes.get("custom_times") is not None:
            changes["custom_times"] = validate_times(changes["custom_times"])
        if changes.get("notification_type") is not None:
            changes["notification_type"] = NotificationType(changes["notification_type"]).value

        notification_type = changes.get("notification_type") or user.notification_type
        new_times = changes.get("custom_times")
        rebuild = notification_type == NotificationType.CUSTOM.value and (
            new_times is not None or changes.get("notification_type") is not None
        )
        if rebuild:
            if new_times is not None:
                mode, times = "custom", new_times
            else:
                mode = user.reminder_mode if user.reminder_mode in REMINDER_MODES else "custom"
                times = user.custom_times if mode == "custom" else None
            if mode == "custom" and not times:
                raise ValidationError(
                    message="Custom notifications need at least one time",
                    field="custom_times",
                )

        for key in SETTINGS_FIELDS:
            if changes.get(key) is not None:
                setattr(user, key, changes[key])

        if rebuild:
            await self._replace_schedules(user, mode, times)

        await self.db.flush()
        return user

    async def complete_onboarding(self, user: User) -> User:
        if not user.has_completed_onboarding:
            user.has_completed_onboarding = True
            self.db.add(PrincipleHistory(
                user_id=user.user_id,
                principle_number=user.current_principle,
                completed=False,
            ))
            await self.db.flush()
        return user

    # =========================================================================
    # Reminder schedules
    # =========================================================================

    async def get_schedules(self, user_id: uuid.UUID) -> list[ReminderSchedule]:
        stmt = (
            select(ReminderSchedule)
            .where(ReminderSchedule.user_id == user_id)
            .order_by(ReminderSchedule.time)
        )
        result = await self.db.execute(stmt)
        return list(result.scalars().all())

    async def _replace_schedules(
        self,
        user: User,
        reminder_mode: str,
        times: Optional[list[str]],
    ) -> list[ReminderSchedule]:
        await self.db.execute(
            delete(ReminderSchedule).where(ReminderSchedule.user_id == user.user_id)
        )

        schedules = [
            ReminderSchedule(user_id=user.user_id, time=time, type=kind.value, enabled=True)
            for time, kind in build_schedule(reminder_mode, times)
        ]
        self.db.add_all(schedules)

        user.reminder_mode = reminder_mode
        user.custom_times = times if times else [time for time, _ in build_schedule(reminder_mode)]
        return schedules

    async def setup_reminders(
        self,
        user: User,
        reminder_mode: str,
        daily_principles_count: int,
        custom_times: Optional[list[str]] = None,
    ) -> list[ReminderSchedule]:
        """
        Replace the user's reminder schedule with a preset or custom one.

        Runs inside the caller's transaction, so the delete and the inserts
        land together.
        """
        if reminder_mode not in REMINDER_MODES:
            raise ValidationError(
                message=f"Unknown reminder mode '{reminder_mode}'",
                field="reminder_mode",
                code=ErrorCodes.REMINDER_INVALID_MODE,
            )
        if not MIN_DAILY_PRINCIPLES <= daily_principles_count <= MAX_DAILY_PRINCIPLES:
            raise ValidationError(
                message=(
                    f"daily_principles_count must be between "
                    f"{MIN_DAILY_PRINCIPLES} and {MAX_DAILY_PRINCIPLES}"
                ),
                field="daily_principles_count",
            )

        times = None
        if reminder_mode == "custom":
            times = validate_times(custom_times or [])
            if not times:
                raise ValidationError(
                    message="Custom mode needs at least one time",
                    field="custom_times",
                )

        schedules = await self._replace_schedules(user, reminder_mode, times)
        user.daily_principles_count = daily_principles_count
        user.notification_type = NotificationType.CUSTOM.value
        user.reminders_enabled = True

        await self.db.flush()
        logger.info("Reminder schedule set for %s: %s (%d slots)", user.user_id, reminder_mode, len(schedules))
        return schedules

    # =========================================================================
    # Practice views
    # =========================================================================

    async def get_practice_state(self, user: User) -> dict:
        """Where the user is in the rotation and today's activity."""
        principles = PrincipleService(self.db)
        current = await principles.get_by_number(user.current_principle)
        next_number = next_principle_number(user.current_principle)
        stats = await StatsService(self.db).get_or_create_stats(user.user_id)
        entries_today = await JournalService(self.db).count_entries_today(user.user_id)

        return {
            "current_principle": user.current_principle,
            "current_title": current.title if current else None,
            "next_principle": next_number,
            "entries_today": entries_today,
            "streak_days": stats.streak_days,
            "has_completed_onboarding": user.has_completed_onboarding,
        }

    async def get_today_plan(self, user: User, now: Optional[datetime] = None) -> dict:
        """
        Today's principles in reminder order.

        The user's daily count of principles is taken from the rotation
        starting at the current principle.
        """
        now = now or datetime.now(timezone.utc)
        local_now = now.astimezone(ZoneInfo(user.timezone))
        principles = PrincipleService(self.db)

        numbers = [user.current_principle]
        while len(numbers) < user.daily_principles_count:
            numbers.append(next_principle_number(numbers[-1]))

        schedule = [time for time, _ in build_schedule(user.reminder_mode, user.custom_times)]
        items = []
        for index, number in enumerate(numbers):
            principle = await principles.get_by_number(number)
            items.append({
                "number": number,
                "title": principle.title if principle else None,
                "time": schedule[index] if index < len(schedule) else None,
            })

        entries_today = await JournalService(self.db).count_entries_today(user.user_id)
        return {
            "date": local_now.date().isoformat(),
            "reminder_mode": user.reminder_mode,
            "principles": items,
            "entries_today": entries_today,
        }
