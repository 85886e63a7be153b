"""
Bot Text Tests
==============
"""

from datetime import datetime, timezone

import pytest

from karma_diary.bot import texts
from karma_diary.core.plans import Plan
from karma_diary.models.journal import AchievementType, EntryCategory, UserStats


@pytest.mark.parametrize("hour,expected", [
    (7, "Доброго ранку"),
    (11, "Доброго ранку"),
    (12, "Добрий день"),
    (17, "Добрий день"),
    (18, "Добрий вечір"),
    (23, "Добрий вечір"),
])
def test_greeting_depends_on_hour(hour, expected):
    assert texts.greeting("Олена", hour).startswith(expected)


def test_user_names_are_escaped():
    text = texts.main_menu_text("<b>Олег</b>", 10, 2, 3, "Щедрість & дарування")

    assert "&lt;b&gt;Олег&lt;/b&gt;" in text
    assert "Щедрість &amp; дарування" in text


def test_stats_text_without_averages():
    stats = UserStats(
        total_entries=4,
        streak_days=2,
        longest_streak=5,
        average_mood=None,
        average_energy=7.25,
    )

    text = texts.stats_text(stats)

    assert "Всього записів: 4" in text
    assert "Середній настрій: -" in text
    assert "Середня енергія: 7.2/10" in text or "Середня енергія: 7.3/10" in text


def test_entry_saved_lists_unlocked_achievements():
    text = texts.entry_saved_text(7, [AchievementType.STREAK_7])

    assert "Серія днів: 7" in text
    assert "Нові досягнення" in text


def test_entry_saved_without_achievements():
    assert "Нові досягнення" not in texts.entry_saved_text(1, [])


def test_antidote_prompt():
    assert "антидот" in texts.entry_prompt(EntryCategory.ANTIDOTE).lower()


def test_subscription_text_for_free_plan():
    assert "безкоштовний план" in texts.subscription_text(Plan.NONE, None)


def test_payment_approved_text():
    text = texts.payment_approved_text(Plan.PRO, datetime(2026, 4, 1, tzinfo=timezone.utc))

    assert "01.04.2026" in text
    assert "Pro" in text
