"""
Achievement Tests
=================
"""

import uuid
from unittest.mock import AsyncMock, MagicMock

import pytest

from karma_diary.models.journal import Achievement, AchievementType
from karma_diary.services.achievement_service import (
    ACHIEVEMENT_CATALOG,
    AchievementFacts,
    AchievementService,
    count_gratitude_entries,
    evaluate_achievements,
)

USER_ID = uuid.UUID("00000000-0000-0000-0000-000000000001")


def _facts(entries=0, streak=0, gratitude=0, rotations=0) -> AchievementFacts:
    return AchievementFacts(
        entry_count=entries,
        current_streak=streak,
        gratitude_entries=gratitude,
        rotation_count=rotations,
    )


class TestEvaluateAchievements:

    def test_nothing_for_a_new_user(self):
        assert evaluate_achievements(_facts(), existing=[]) == []

    def test_first_entry(self):
        assert evaluate_achievements(_facts(entries=1), existing=[]) == [
            AchievementType.FIRST_ENTRY
        ]

    def test_owned_types_are_not_returned_again(self):
        result = evaluate_achievements(_facts(entries=1), existing=["first_entry"])
        assert result == []

    def test_streak_thresholds(self):
        result = evaluate_achievements(_facts(entries=30, streak=30), existing=["first_entry"])
        assert AchievementType.STREAK_7 in result
        assert AchievementType.STREAK_30 in result
        assert AchievementType.ENTRIES_50 not in result

    def test_entry_thresholds(self):
        result = evaluate_achievements(_facts(entries=100), existing=[])
        assert {
            AchievementType.FIRST_ENTRY,
            AchievementType.ENTRIES_50,
            AchievementType.ENTRIES_100,
        } <= set(result)

    def test_gratitude_master_at_twenty(self):
        assert AchievementType.GRATITUDE_MASTER not in evaluate_achievements(_facts(gratitude=19), [])
        assert AchievementType.GRATITUDE_MASTER in evaluate_achievements(_facts(gratitude=20), [])

    def test_karma_champion_needs_more_than_ten_rotations(self):
        assert AchievementType.KARMA_CHAMPION not in evaluate_achievements(_facts(rotations=10), [])
        assert AchievementType.KARMA_CHAMPION in evaluate_achievements(_facts(rotations=11), [])


class TestGratitudeCount:

    def test_keywords_are_case_insensitive(self):
        contents = [
            "Дякую мамі за підтримку",
            "I am GRATEFUL for the sun",
            "Сьогодні був важкий день",
            "Відчуваю вдячність",
        ]
        assert count_gratitude_entries(contents) == 3

    def test_one_entry_counts_once(self):
        assert count_gratitude_entries(["дякую, дякую, thank you"]) == 1


def test_catalog_covers_every_type():
    assert set(ACHIEVEMENT_CATALOG) == set(AchievementType)


class TestCheckAchievements:
    """Checks run after every entry; a badge is inserted at most once."""

    @staticmethod
    def _service(db_session, existing):
        service = AchievementService(db_session)
        service.get_unlocked = AsyncMock(return_value=[
            Achievement(user_id=USER_ID, type=kind) for kind in existing
        ])
        service.gather_facts = AsyncMock(return_value=_facts(entries=1, streak=1))
        return service

    @pytest.mark.asyncio
    async def test_first_check_inserts_first_entry(self, db_session):
        db_session.execute.return_value = MagicMock(all=MagicMock(return_value=[("first_entry",)]))

        unlocked = await self._service(db_session, existing=[]).check_achievements(USER_ID)

        assert unlocked == [AchievementType.FIRST_ENTRY]
        db_session.execute.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_repeated_check_unlocks_nothing(self, db_session):
        unlocked = await self._service(db_session, existing=["first_entry"]).check_achievements(USER_ID)

        assert unlocked == []
        db_session.execute.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_concurrent_insert_is_not_reported_twice(self, db_session):
        db_session.execute.return_value = MagicMock(all=MagicMock(return_value=[]))

        unlocked = await self._service(db_session, existing=[]).check_achievements(USER_ID)

        assert unlocked == []
