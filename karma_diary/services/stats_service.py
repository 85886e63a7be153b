"""
Stats Service
=============

Streak arithmetic and the per-user ``UserStats`` aggregate.

``compute_streak`` and ``compute_longest_streak`` are pure functions over
entry dates; ``StatsService.recompute_stats`` rebuilds the stored row from the
journal so the aggregate can never drift from the entries.
"""

import logging
from collections import Counter
from datetime import date, datetime, timedelta, timezone
from typing import Iterable, Optional
import uuid

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from karma_diary.models.journal import JournalEntry, UserStats

logger = logging.getLogger(__name__)


# =============================================================================
# Pure streak functions
# =============================================================================

def compute_streak(dates: Iterable[date], today: date) -> int:
    """
    Current streak in days.

    The trailing run of consecutive calendar days ending at the most recent
    entry day. If that day is before yesterday the run is broken and the
    streak is 0. Multiple entries on one day count once.
    """
    days = sorted(set(dates), reverse=True)
    if not days:
        return 0

    latest = days[0]
    if (today - latest).days > 1:
        return 0

    streak = 1
    for previous, current in zip(days, days[1:]):
        if (previous - current).days == 1:
            streak += 1
        else:
            break
    return streak


def compute_longest_streak(dates: Iterable[date]) -> int:
    """Longest run of consecutive calendar days anywhere in ``dates``."""
    days = sorted(set(dates))
    if not days:
        return 0

    longest = current = 1
    for previous, day in zip(days, days[1:]):
        if (day - previous).days == 1:
            current += 1
            longest = max(longest, current)
        else:
            current = 1
    return longest


def _average(values: list[int]) -> Optional[float]:
    if not values:
        return None
    return round(sum(values) / len(values), 2)


def _local_date(moment: datetime) -> date:
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    return moment.astimezone(timezone.utc).date()


# =============================================================================
# Service
# =============================================================================

class StatsService:
    """Service for user stats and analytics."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_stats(self, user_id: uuid.UUID) -> Optional[UserStats]:
        return await self.db.get(UserStats, user_id)

    async def get_or_create_stats(self, user_id: uuid.UUID) -> UserStats:
        stats = await self.get_stats(user_id)
        if stats is None:
            stats = UserStats(
                user_id=user_id,
                total_entries=0,
                streak_days=0,
                longest_streak=0,
                principle_completions={},
                weekly_goal=7,
                monthly_goal=30,
            )
            self.db.add(stats)
            await self.db.flush()
        return stats

    async def _load_entry_facts(self, user_id: uuid.UUID) -> list[tuple]:
        stmt = select(
            JournalEntry.created_at,
            JournalEntry.mood,
            JournalEntry.energy_level,
            JournalEntry.principle_number,
            JournalEntry.is_skipped,
        ).where(JournalEntry.user_id == user_id)
        result = await self.db.execute(stmt)
        return list(result.all())

    async def recompute_stats(self, user_id: uuid.UUID, today: Optional[date] = None) -> UserStats:
        """
        Rebuild the stats row from the user's entries.

        Skipped entries count toward the total but not toward streaks,
        averages or principle completions.
        """
        today = today or datetime.now(timezone.utc).date()
        rows = await self._load_entry_facts(user_id)
        stats = await self.get_or_create_stats(user_id)

        practiced = [row for row in rows if not row.is_skipped]
        dates = [_local_date(row.created_at) for row in practiced]

        stats.total_entries = len(rows)
        stats.streak_days = compute_streak(dates, today)
        stats.longest_streak = max(
            stats.longest_streak or 0,
            compute_longest_streak(dates),
            stats.streak_days,
        )
        stats.last_entry_date = max(dates) if dates else None
        stats.average_mood = _average([r.mood for r in practiced if r.mood is not None])
        stats.average_energy = _average(
            [r.energy_level for r in practiced if r.energy_level is not None]
        )
        completions = Counter(str(r.principle_number) for r in practiced)
        stats.principle_completions = dict(completions)

        await self.db.flush()
        await self.db.refresh(stats)
        logger.debug(
            "Stats recomputed for %s: total=%d streak=%d",
            user_id, stats.total_entries, stats.streak_days,
        )
        return stats

    async def get_analytics(self, user_id: uuid.UUID, days: int = 30) -> dict:
        """
        Mood/energy trend per day and goal progress for the last ``days`` days.
        """
        now = datetime.now(timezone.utc)
        since = now - timedelta(days=days)

        day_col = func.date(JournalEntry.created_at)
        stmt = (
            select(
                day_col.label("day"),
                func.count().label("entries"),
                func.avg(JournalEntry.mood).label("mood"),
                func.avg(JournalEntry.energy_level).label("energy"),
            )
            .where(
                JournalEntry.user_id == user_id,
                JournalEntry.created_at >= since,
                JournalEntry.is_skipped.is_(False),
            )
            .group_by(day_col)
            .order_by(day_col)
        )
        result = await self.db.execute(stmt)
        trend = [
            {
                "date": row.day.isoformat() if hasattr(row.day, "isoformat") else str(row.day),
                "entries": row.entries,
                "mood": round(float(row.mood), 2) if row.mood is not None else None,
                "energy": round(float(row.energy), 2) if row.energy is not None else None,
            }
            for row in result.all()
        ]

        stats = await self.get_or_create_stats(user_id)
        today = now.date()
        week_start = today - timedelta(days=6)
        month_start = today - timedelta(days=29)
        active_days = {date.fromisoformat(point["date"]) for point in trend}

        return {
            "period_days": days,
            "trend": trend,
            "principle_completions": stats.principle_completions or {},
            "weekly_progress": {
                "goal": stats.weekly_goal,
                "days": len([d for d in active_days if d >= week_start]),
            },
            "monthly_progress": {
                "goal": stats.monthly_goal,
                "days": len([d for d in active_days if d >= month_start]),
            },
        }
