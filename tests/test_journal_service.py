"""
Journal Service Tests
=====================

Editing an entry keeps the stored aggregates in step with the journal.
"""

import uuid
from unittest.mock import AsyncMock, patch

import pytest

from karma_diary.models.journal import EntryCategory, EntrySource, JournalEntry
from karma_diary.services.journal_service import JournalService

USER_ID = uuid.UUID("00000000-0000-0000-0000-000000000001")


def _entry(**overrides) -> JournalEntry:
    values = {
        "entry_id": uuid.uuid4(),
        "user_id": USER_ID,
        "principle_number": 3,
        "content": "Допомогла сусідці з покупками",
        "category": EntryCategory.HELP,
        "mood": 4,
        "energy_level": 7,
        "is_completed": True,
        "is_skipped": False,
        "source": EntrySource.WEB,
    }
    values.update(overrides)
    return JournalEntry(**values)


@pytest.fixture
def aggregates():
    with patch("karma_diary.services.journal_service.StatsService") as stats_cls, \
            patch("karma_diary.services.journal_service.AchievementService") as achievements_cls:
        stats_cls.return_value.recompute_stats = AsyncMock()
        achievements_cls.return_value.check_achievements = AsyncMock(return_value=[])
        yield stats_cls.return_value, achievements_cls.return_value


class TestUpdateEntry:

    @pytest.mark.asyncio
    async def test_skipping_an_entry_rebuilds_stats(self, db_session, aggregates):
        stats, achievements = aggregates
        entry = _entry()

        updated = await JournalService(db_session).update_entry(entry, {"is_skipped": True, "mood": 2})

        assert updated.is_skipped is True
        assert updated.is_completed is False
        assert updated.mood == 2
        stats.recompute_stats.assert_awaited_once_with(USER_ID)
        achievements.check_achievements.assert_awaited_once_with(USER_ID)

    @pytest.mark.asyncio
    async def test_content_edit_rechecks_achievements(self, db_session, aggregates):
        stats, achievements = aggregates

        await JournalService(db_session).update_entry(_entry(), {"content": "Дякую за цей день"})

        stats.recompute_stats.assert_awaited_once_with(USER_ID)
        achievements.check_achievements.assert_awaited_once_with(USER_ID)

    @pytest.mark.asyncio
    async def test_category_only_change_leaves_aggregates(self, db_session, aggregates):
        stats, achievements = aggregates
        entry = _entry()

        await JournalService(db_session).update_entry(entry, {"category": EntryCategory.GRATITUDE})

        assert entry.category == EntryCategory.GRATITUDE
        db_session.flush.assert_awaited()
        stats.recompute_stats.assert_not_awaited()
        achievements.check_achievements.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_none_values_are_ignored(self, db_session, aggregates):
        stats, _ = aggregates
        entry = _entry()

        await JournalService(db_session).update_entry(entry, {"mood": None, "user_id": uuid.uuid4()})

        assert entry.mood == 4
        assert entry.user_id == USER_ID
        stats.recompute_stats.assert_not_awaited()
