"""
Scheduled Job Tests
===================

Trial sweep and reminder broadcasts with fake senders.
"""

from datetime import datetime, timezone
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from sqlalchemy.dialects import postgresql

from karma_diary.core.errors import ValidationError
from karma_diary.core.plans import Plan
from karma_diary.core.reminder_modes import ReminderSlot
from karma_diary.models.subscription import SubscriptionStatus
from karma_diary.services.reminder_service import ReminderService
from karma_diary.services.scheduled_jobs import ScheduledJobService

NOW = datetime(2026, 7, 1, 6, 0, tzinfo=timezone.utc)


class FakeSender:
    """Records what would have been sent."""

    def __init__(self, name: str = "fake", result: bool = True, error: Exception | None = None):
        self.name = name
        self.send = AsyncMock(return_value=result, side_effect=error)


@pytest.fixture
def principle_title():
    with patch(
        "karma_diary.services.reminder_service.PrincipleService.get_title",
        new=AsyncMock(return_value="Доброта"),
    ):
        yield


class TestTrialSweep:

    @pytest.mark.asyncio
    async def test_reports_rows_changed(self, db_session):
        db_session.execute.return_value = MagicMock(rowcount=4)

        summary = await ScheduledJobService(db_session).expire_trials(now=NOW)

        assert summary == {"job": "expire_trials", "processed": 4, "run_at": NOW.isoformat()}
        db_session.execute.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_nothing_to_expire(self, db_session):
        db_session.execute.return_value = MagicMock(rowcount=0)
        summary = await ScheduledJobService(db_session).expire_trials(now=NOW)
        assert summary["processed"] == 0

    @pytest.mark.asyncio
    async def test_only_lapsed_active_trials_are_expired(self, db_session):
        db_session.execute.return_value = MagicMock(rowcount=1)

        await ScheduledJobService(db_session).expire_trials(now=NOW)

        stmt = db_session.execute.await_args.args[0]
        conditions = {
            (clause.left.name, clause.operator.__name__): clause.right.value
            for clause in stmt.whereclause.clauses
        }
        assert conditions == {
            ("plan", "eq"): Plan.TRIAL,
            ("status", "eq"): SubscriptionStatus.ACTIVE,
            ("expires_at", "lt"): NOW,
        }
        compiled = stmt.compile(dialect=postgresql.dialect())
        assert compiled.params["status"] == SubscriptionStatus.EXPIRED


class TestSlotBroadcast:

    @pytest.mark.asyncio
    async def test_only_matching_preferences_are_reminded(self, db_session, user_factory, principle_title):
        daily = user_factory(notification_type="daily")
        custom = user_factory(notification_type="custom")
        sender = FakeSender()
        service = ReminderService(db_session, [sender])
        service._load_recipients = AsyncMock(return_value=[daily, custom])

        summary = await service.send_slot(ReminderSlot.MORNING, now=NOW)

        assert summary["users"] == 1
        assert summary["sent"] == 1
        assert sender.send.await_count == 1
        assert daily.last_reminder_sent == NOW
        assert custom.last_reminder_sent is None

    @pytest.mark.asyncio
    async def test_one_failing_channel_does_not_stop_others(self, db_session, user_factory, principle_title):
        broken = FakeSender("telegram", error=RuntimeError("chat not found"))
        working = FakeSender("webpush")
        service = ReminderService(db_session, [broken, working])
        service._load_recipients = AsyncMock(return_value=[user_factory()])

        summary = await service.send_slot(ReminderSlot.EVENING, now=NOW)

        assert summary["sent"] == 1
        assert summary["failed"] == 0
        working.send.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_undelivered_counts_as_failed(self, db_session, user_factory, principle_title):
        service = ReminderService(db_session, [FakeSender(result=False)])
        service._load_recipients = AsyncMock(return_value=[user_factory()])

        summary = await service.send_slot(ReminderSlot.MORNING, now=NOW)

        assert summary["sent"] == 0
        assert summary["failed"] == 1


class TestCustomSchedules:

    @pytest.mark.asyncio
    async def test_sends_when_local_minute_matches(self, db_session, user_factory, principle_title):
        # 06:00 UTC is 09:00 in Kyiv in July
        user = user_factory(notification_type="custom", timezone="Europe/Kiev")
        due = MagicMock(time="09:00", type="principle")
        not_due = MagicMock(time="10:00", type="principle")
        result = MagicMock()
        result.all.return_value = [(user, due), (user, not_due)]
        db_session.execute.return_value = result
        sender = FakeSender()

        summary = await ReminderService(db_session, [sender]).send_due_schedules(now=NOW)

        assert summary["users"] == 1
        assert summary["sent"] == 1
        sender.send.assert_awaited_once()


class TestTestReminder:

    @pytest.mark.asyncio
    async def test_no_channels_is_an_error(self, db_session, test_user):
        with pytest.raises(ValidationError) as exc_info:
            await ReminderService(db_session, []).send_test_reminder(test_user)
        assert exc_info.value.detail["code"] == "REMINDER_002"

    @pytest.mark.asyncio
    async def test_reports_each_channel(self, db_session, test_user, principle_title):
        service = ReminderService(db_session, [FakeSender("telegram"), FakeSender("webpush", result=False)])
        result = await service.send_test_reminder(test_user)
        assert result == {"sent": True, "channels": {"telegram": True, "webpush": False}}
