"""
Achievement Service
===================

Unlocks fixed badges when simple thresholds are crossed.

Evaluation is a pure function over ``AchievementFacts``; the service
gathers the facts and inserts new rows with ``ON CONFLICT DO NOTHING`` so
repeated or concurrent checks never duplicate a badge.
"""

import logging
from dataclasses import dataclass
from datetime import date, datetime, timezone
from typing import Iterable, Optional
import uuid

from sqlalchemy import func, select
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.ext.asyncio import AsyncSession

from karma_diary.models.journal import Achievement, AchievementType, JournalEntry
from karma_diary.models.principle import PrincipleHistory
from karma_diary.services.stats_service import compute_streak

logger = logging.getLogger(__name__)

# Entries scanned per check
ENTRY_SCAN_LIMIT = 1000

GRATITUDE_KEYWORDS = ("дякую", "вдячн", "thank", "grateful", "gratitude")
GRATITUDE_THRESHOLD = 20
ROTATION_THRESHOLD = 10


ACHIEVEMENT_CATALOG = {
    AchievementType.FIRST_ENTRY: {
        "title": "Перший крок",
        "description": "Перший запис у щоденнику",
        "icon": "🌱",
    },
    AchievementType.ENTRIES_50: {
        "title": "Півсотні",
        "description": "50 записів у щоденнику",
        "icon": "📖",
    },
    AchievementType.ENTRIES_100: {
        "title": "Сотня",
        "description": "100 записів у щоденнику",
        "icon": "💯",
    },
    AchievementType.STREAK_7: {
        "title": "Тиждень практики",
        "description": "7 днів поспіль із записами",
        "icon": "🔥",
    },
    AchievementType.STREAK_30: {
        "title": "Місяць практики",
        "description": "30 днів поспіль із записами",
        "icon": "🏆",
    },
    AchievementType.GRATITUDE_MASTER: {
        "title": "Майстер вдячності",
        "description": "20 записів зі словами вдячності",
        "icon": "🙏",
    },
    AchievementType.KARMA_CHAMPION: {
        "title": "Чемпіон карми",
        "description": "Пройдено більше 10 принципів",
        "icon": "☸️",
    },
}


@dataclass(frozen=True)
class AchievementFacts:
    """Everything the thresholds look at."""
    entry_count: int
    current_streak: int
    gratitude_entries: int
    rotation_count: int


def count_gratitude_entries(contents: Iterable[str]) -> int:
    """Entries containing at least one gratitude keyword (case-insensitive)."""
    return sum(
        1 for text in contents
        if any(keyword in text.lower() for keyword in GRATITUDE_KEYWORDS)
    )


def evaluate_achievements(
    facts: AchievementFacts,
    existing: Iterable[str],
) -> list[AchievementType]:
    """Types whose threshold is crossed and that are not unlocked yet."""
    owned = set(existing)
    crossed = {
        AchievementType.FIRST_ENTRY: facts.entry_count >= 1,
        AchievementType.ENTRIES_50: facts.entry_count >= 50,
        AchievementType.ENTRIES_100: facts.entry_count >= 100,
        AchievementType.STREAK_7: facts.current_streak >= 7,
        AchievementType.STREAK_30: facts.current_streak >= 30,
        AchievementType.GRATITUDE_MASTER: facts.gratitude_entries >= GRATITUDE_THRESHOLD,
        AchievementType.KARMA_CHAMPION: facts.rotation_count > ROTATION_THRESHOLD,
    }
    return [
        kind for kind, reached in crossed.items()
        if reached and kind.value not in owned
    ]


class AchievementService:
    """Service for achievement checks and listings."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_unlocked(self, user_id: uuid.UUID) -> list[Achievement]:
        stmt = (
            select(Achievement)
            .where(Achievement.user_id == user_id)
            .order_by(Achievement.unlocked_at)
        )
        result = await self.db.execute(stmt)
        return list(result.scalars().all())

    async def gather_facts(self, user_id: uuid.UUID, today: Optional[date] = None) -> AchievementFacts:
        today = today or datetime.now(timezone.utc).date()

        stmt = (
            select(JournalEntry.content, JournalEntry.created_at)
            .where(
                JournalEntry.user_id == user_id,
                JournalEntry.is_skipped.is_(False),
            )
            .order_by(JournalEntry.created_at.desc())
            .limit(ENTRY_SCAN_LIMIT)
        )
        rows = (await self.db.execute(stmt)).all()

        rotations = await self.db.scalar(
            select(func.count())
            .select_from(PrincipleHistory)
            .where(PrincipleHistory.user_id == user_id)
        )

        return AchievementFacts(
            entry_count=len(rows),
            current_streak=compute_streak(
                (row.created_at.astimezone(timezone.utc).date() for row in rows),
                today,
            ),
            gratitude_entries=count_gratitude_entries(row.content for row in rows),
            rotation_count=rotations or 0,
        )

    async def check_achievements(self, user_id: uuid.UUID) -> list[AchievementType]:
        """
        Insert every newly crossed achievement.

        Returns:
            Types that were unlocked by this call
        """
        existing = [a.type for a in await self.get_unlocked(user_id)]
        facts = await self.gather_facts(user_id)
        new_types = evaluate_achievements(facts, existing)

        if not new_types:
            return []

        stmt = (
            pg_insert(Achievement)
            .values([
                {"achievement_id": uuid.uuid4(), "user_id": user_id, "type": kind.value}
                for kind in new_types
            ])
            .on_conflict_do_nothing(constraint="uq_achievements_user_type")
            .returning(Achievement.type)
        )
        result = await self.db.execute(stmt)
        inserted = {row[0] for row in result.all()}

        unlocked = [kind for kind in new_types if kind.value in inserted]
        if unlocked:
            logger.info(
                "Achievements unlocked for %s: %s",
                user_id, ", ".join(kind.value for kind in unlocked),
            )
        return unlocked

    async def list_with_progress(self, user_id: uuid.UUID) -> list[dict]:
        """All achievements with their unlocked state."""
        unlocked = {a.type: a for a in await self.get_unlocked(user_id)}
        items = []
        for kind, meta in ACHIEVEMENT_CATALOG.items():
            row = unlocked.get(kind.value)
            items.append({
                "type": kind.value,
                **meta,
                "unlocked": row is not None,
                "unlocked_at": row.unlocked_at.isoformat() if row else None,
            })
        return items
