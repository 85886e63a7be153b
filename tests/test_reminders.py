"""
Reminder Tests
==============

Slot audiences, reminder schedules, message building and bot callback data.
"""

from datetime import datetime, timezone

import pytest

from karma_diary.bot.callbacks import build_callback_data, parse_callback_data
from karma_diary.core.reminder_modes import (
    REMINDER_MODES,
    ReminderSlot,
    ReminderType,
    build_schedule,
    is_valid_time,
    slot_allows,
)
from karma_diary.services.reminder_service import (
    build_reminder_message,
    local_hhmm,
    sent_this_minute,
)


class TestSlotAudience:

    @pytest.mark.parametrize("slot", [ReminderSlot.MORNING, ReminderSlot.EVENING])
    def test_daily_users_get_morning_and_evening(self, slot):
        assert slot_allows("daily", slot) is True
        assert slot_allows("intensive", slot) is True

    def test_afternoon_is_intensive_only(self):
        assert slot_allows("intensive", ReminderSlot.AFTERNOON) is True
        assert slot_allows("daily", ReminderSlot.AFTERNOON) is False

    def test_antidote_follows_its_parent_slot(self):
        assert ReminderSlot.AFTERNOON_ANTIDOTE.parent == ReminderSlot.AFTERNOON
        assert slot_allows("daily", ReminderSlot.AFTERNOON_ANTIDOTE) is False
        assert slot_allows("daily", ReminderSlot.MORNING_ANTIDOTE) is True

    @pytest.mark.parametrize("kind", ["custom", "off", None, "weekly"])
    def test_custom_off_and_unknown_get_no_broadcasts(self, kind):
        assert slot_allows(kind, ReminderSlot.MORNING) is False


class TestSchedules:

    def test_named_mode_uses_its_schedule(self):
        assert build_schedule("light") == list(REMINDER_MODES["light"].schedule)

    def test_custom_times_are_sorted_and_last_is_reflection(self):
        schedule = build_schedule("custom", ["20:00", "08:00", "12:30", "08:00"])
        assert schedule == [
            ("08:00", ReminderType.PRINCIPLE),
            ("12:30", ReminderType.PRINCIPLE),
            ("20:00", ReminderType.REFLECTION),
        ]

    def test_custom_without_times_is_empty(self):
        assert build_schedule("custom", []) == []

    @pytest.mark.parametrize("value,valid", [
        ("08:00", True),
        ("23:59", True),
        ("24:00", False),
        ("8:00", False),
        ("08:60", False),
        ("noon", False),
    ])
    def test_time_format(self, value, valid):
        assert is_valid_time(value) is valid


class TestReminderMessage:

    def test_principle_reminder_has_write_and_skip_buttons(self, user_factory):
        message = build_reminder_message(user_factory(), 3, "Доброта", ReminderSlot.MORNING.value)

        assert "Доброта" in message.body
        callbacks = [data for row in message.buttons for _, data in row]
        assert callbacks == ["write_3_morning", "skip_3_morning"]

    def test_evening_is_reflection(self, user_factory):
        message = build_reminder_message(user_factory(), 5, "Вдячність", ReminderSlot.EVENING.value)
        assert "рефлексії" in message.title

    def test_antidote_title(self, user_factory):
        message = build_reminder_message(user_factory(), 5, "Вдячність", "evening_antidote")
        assert message.title == "Антидот дня"

    def test_html_escapes_user_name(self, user_factory):
        user = user_factory(first_name="<b>Ігор</b>")
        html = build_reminder_message(user, 1, "Title", "morning").to_html()
        assert "<b>Ігор</b>" not in html
        assert "&lt;b&gt;Ігор&lt;/b&gt;" in html


class TestCallbackData:

    @pytest.mark.parametrize("data,expected", [
        ("main_menu", ("main_menu", None, None)),
        ("entry_kindness", ("entry_kindness", None, None)),
        ("write_3_morning", ("write", 3, "morning")),
        ("skip_10_evening_antidote", ("skip", 10, "evening_antidote")),
        ("write_7", ("write", 7, None)),
    ])
    def test_parse(self, data, expected):
        assert parse_callback_data(data) == expected

    def test_build_matches_parse(self):
        data = build_callback_data("write", 4, "afternoon")
        assert data == "write_4_afternoon"
        assert parse_callback_data(data) == ("write", 4, "afternoon")


class TestTimeHelpers:

    def test_local_time_in_user_zone(self):
        now = datetime(2026, 7, 1, 6, 15, tzinfo=timezone.utc)
        assert local_hhmm(now, "Europe/Kiev") == "09:15"

    def test_unknown_zone_falls_back(self):
        now = datetime(2026, 7, 1, 6, 15, tzinfo=timezone.utc)
        assert local_hhmm(now, "Mars/Olympus") == local_hhmm(now, None)

    def test_sent_this_minute(self):
        now = datetime(2026, 7, 1, 6, 15, 40, tzinfo=timezone.utc)
        assert sent_this_minute(datetime(2026, 7, 1, 6, 15, 2, tzinfo=timezone.utc), now) is True
        assert sent_this_minute(datetime(2026, 7, 1, 6, 14, 59, tzinfo=timezone.utc), now) is False
        assert sent_this_minute(None, now) is False
