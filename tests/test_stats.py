"""
Streak and Stats Tests
======================
"""

import uuid
from datetime import date, datetime, time, timedelta, timezone
from types import SimpleNamespace
from unittest.mock import MagicMock

import pytest

from karma_diary.models.journal import UserStats
from karma_diary.services.stats_service import StatsService, compute_longest_streak, compute_streak

USER_ID = uuid.UUID("00000000-0000-0000-0000-000000000001")
TODAY = date(2026, 3, 15)


def _days_back(*offsets: int) -> list[date]:
    return [TODAY - timedelta(days=n) for n in offsets]


class TestComputeStreak:

    def test_no_entries(self):
        assert compute_streak([], TODAY) == 0

    def test_only_today(self):
        assert compute_streak(_days_back(0), TODAY) == 1

    def test_consecutive_days_ending_today(self):
        assert compute_streak(_days_back(0, 1, 2, 3), TODAY) == 4

    def test_streak_ending_yesterday_still_counts(self):
        """Today's entry has not been written yet; the run is not broken."""
        assert compute_streak(_days_back(1, 2, 3), TODAY) == 3

    def test_gap_before_yesterday_resets(self):
        assert compute_streak(_days_back(2, 3, 4), TODAY) == 0

    def test_several_entries_per_day_count_once(self):
        dates = _days_back(0, 0, 0, 1, 1)
        assert compute_streak(dates, TODAY) == 2

    def test_stops_at_first_gap(self):
        assert compute_streak(_days_back(0, 1, 3, 4, 5), TODAY) == 2

    def test_unordered_input(self):
        assert compute_streak(_days_back(2, 0, 1), TODAY) == 3


class TestComputeLongestStreak:

    def test_empty(self):
        assert compute_longest_streak([]) == 0

    def test_single_day(self):
        assert compute_longest_streak(_days_back(10)) == 1

    def test_longest_run_in_the_past(self):
        dates = _days_back(0, 1, 10, 11, 12, 13, 20)
        assert compute_longest_streak(dates) == 4

    def test_longest_is_never_shorter_than_current(self):
        dates = _days_back(0, 1, 2, 5)
        assert compute_longest_streak(dates) >= compute_streak(dates, TODAY)


class TestRecomputeStats:
    """The stored aggregate is rebuilt from every entry of the user."""

    @staticmethod
    def _row(days_ago, mood=None, energy=None, principle=1, skipped=False):
        moment = datetime.combine(TODAY - timedelta(days=days_ago), time(9), tzinfo=timezone.utc)
        return SimpleNamespace(
            created_at=moment,
            mood=mood,
            energy_level=energy,
            principle_number=principle,
            is_skipped=skipped,
        )

    @staticmethod
    def _session(db_session, rows):
        db_session.execute.return_value = MagicMock(all=MagicMock(return_value=rows))
        db_session.get.return_value = UserStats(
            user_id=USER_ID,
            total_entries=0,
            streak_days=0,
            longest_streak=0,
            principle_completions={},
            weekly_goal=7,
            monthly_goal=30,
        )

    @pytest.mark.asyncio
    async def test_skipped_entries_count_toward_total_only(self, db_session):
        rows = [
            self._row(0, mood=4, energy=8, principle=1),
            self._row(1, mood=2, energy=6, principle=2),
            self._row(3, mood=5, energy=10, principle=2, skipped=True),
        ]
        self._session(db_session, rows)

        stats = await StatsService(db_session).recompute_stats(USER_ID, today=TODAY)

        assert stats.total_entries == 3
        assert stats.streak_days == 2
        assert stats.longest_streak == 2
        assert stats.last_entry_date == TODAY
        assert stats.average_mood == 3.0
        assert stats.average_energy == 7.0
        assert stats.principle_completions == {"1": 1, "2": 1}

    @pytest.mark.asyncio
    async def test_one_more_entry_adds_one(self, db_session):
        rows = [self._row(1, mood=3), self._row(2, skipped=True)]
        self._session(db_session, rows)
        before = (await StatsService(db_session).recompute_stats(USER_ID, today=TODAY)).total_entries

        self._session(db_session, rows + [self._row(0, mood=5)])
        after = await StatsService(db_session).recompute_stats(USER_ID, today=TODAY)

        assert after.total_entries == before + 1
        assert after.streak_days == 2

    @pytest.mark.asyncio
    async def test_longest_streak_never_shrinks(self, db_session):
        self._session(db_session, [self._row(0)])
        db_session.get.return_value.longest_streak = 12

        stats = await StatsService(db_session).recompute_stats(USER_ID, today=TODAY)

        assert stats.streak_days == 1
        assert stats.longest_streak == 12
