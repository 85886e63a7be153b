"""
Journal Service
===============

Business logic for journal entries.

Recording an entry also rebuilds the user's stats and checks achievements.
All three writes share the caller's session, so they commit or roll back
together.
"""

import logging
from dataclasses import dataclass, field
from typing import Optional
import uuid

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from karma_diary.core.errors import ErrorCodes, NotFoundError
from karma_diary.models.journal import (
    AchievementType,
    EntryCategory,
    EntrySource,
    JournalEntry,
    UserStats,
)
from karma_diary.models.user import User
from karma_diary.services.achievement_service import AchievementService
from karma_diary.services.principle_service import validate_principle_number
from karma_diary.services.stats_service import StatsService

logger = logging.getLogger(__name__)

MAX_PAGE_SIZE = 100

# Fields a PATCH may change
UPDATABLE_FIELDS = ("content", "category", "mood", "energy_level", "is_completed", "is_skipped")

# Fields the stats and achievements are computed from
AGGREGATE_FIELDS = {"content", "mood", "energy_level", "is_skipped"}


@dataclass
class EntryOutcome:
    """Result of recording an entry."""
    entry: JournalEntry
    stats: UserStats
    unlocked: list[AchievementType] = field(default_factory=list)


class JournalService:
    """Service for journal operations."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_entry_by_id(
        self,
        entry_id: uuid.UUID,
        user_id: uuid.UUID,
    ) -> Optional[JournalEntry]:
        """Get an entry owned by the user."""
        stmt = select(JournalEntry).where(
            JournalEntry.entry_id == entry_id,
            JournalEntry.user_id == user_id,
        )
        result = await self.db.execute(stmt)
        return result.scalar_one_or_none()

    async def get_entry_or_404(self, entry_id: uuid.UUID, user_id: uuid.UUID) -> JournalEntry:
        entry = await self.get_entry_by_id(entry_id, user_id)
        if entry is None:
            raise NotFoundError(
                code=ErrorCodes.JOURNAL_NOT_FOUND,
                message="Journal entry not found",
            )
        return entry

    async def record_entry(
        self,
        user: User,
        content: str,
        principle_number: Optional[int] = None,
        category: EntryCategory = EntryCategory.REFLECTION,
        mood: Optional[int] = None,
        energy_level: Optional[int] = None,
        source: EntrySource = EntrySource.WEB,
        is_skipped: bool = False,
    ) -> EntryOutcome:
        """
        Insert an entry, rebuild stats and unlock achievements.

        Args:
            principle_number: Defaults to the user's current principle
        """
        number = validate_principle_number(principle_number or user.current_principle)

        entry = JournalEntry(
            user_id=user.user_id,
            principle_number=number,
            content=content,
            category=category,
            mood=mood,
            energy_level=energy_level,
            is_completed=not is_skipped,
            is_skipped=is_skipped,
            source=source,
        )
        self.db.add(entry)
        await self.db.flush()
        await self.db.refresh(entry)

        stats = await StatsService(self.db).recompute_stats(user.user_id)
        unlocked = await AchievementService(self.db).check_achievements(user.user_id)

        logger.info(
            "Entry %s recorded for %s (source=%s, principle=%d)",
            entry.entry_id, user.user_id, source.value, number,
        )
        return EntryOutcome(entry=entry, stats=stats, unlocked=unlocked)

    async def update_entry(self, entry: JournalEntry, changes: dict) -> JournalEntry:
        """
        Apply allowed field changes to an entry.

        Changes that feed the aggregates rebuild the user's stats and
        re-check achievements in the same session.
        """
        applied = {
            key for key in UPDATABLE_FIELDS
            if key in changes and changes[key] is not None
        }
        for key in applied:
            setattr(entry, key, changes[key])

        if "is_skipped" in applied:
            entry.is_completed = not entry.is_skipped

        await self.db.flush()
        await self.db.refresh(entry)

        if applied & AGGREGATE_FIELDS:
            await StatsService(self.db).recompute_stats(entry.user_id)
            await AchievementService(self.db).check_achievements(entry.user_id)
        return entry

    async def get_entries_page(
        self,
        user_id: uuid.UUID,
        limit: int = 20,
        offset: int = 0,
        principle_number: Optional[int] = None,
    ) -> tuple[list[JournalEntry], int]:
        """
        Newest-first page of entries.

        Returns:
            (entries, total)
        """
        limit = max(1, min(limit, MAX_PAGE_SIZE))
        offset = max(0, offset)

        conditions = [JournalEntry.user_id == user_id]
        if principle_number is not None:
            conditions.append(JournalEntry.principle_number == principle_number)

        total = await self.db.scalar(
            select(func.count()).select_from(JournalEntry).where(*conditions)
        )

        stmt = (
            select(JournalEntry)
            .where(*conditions)
            .order_by(JournalEntry.created_at.desc())
            .offset(offset)
            .limit(limit)
        )
        result = await self.db.execute(stmt)
        return list(result.scalars().all()), total or 0

    async def count_entries_today(self, user_id: uuid.UUID) -> int:
        stmt = (
            select(func.count())
            .select_from(JournalEntry)
            .where(
                JournalEntry.user_id == user_id,
                func.date(JournalEntry.created_at) == func.current_date(),
            )
        )
        return await self.db.scalar(stmt) or 0

    async def get_recent_contents(self, user_id: uuid.UUID, limit: int = 10) -> list[JournalEntry]:
        stmt = (
            select(JournalEntry)
            .where(JournalEntry.user_id == user_id, JournalEntry.is_skipped.is_(False))
            .order_by(JournalEntry.created_at.desc())
            .limit(limit)
        )
        result = await self.db.execute(stmt)
        return list(result.scalars().all())
