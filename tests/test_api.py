"""
API Endpoint Tests
==================

Routing, envelopes, validation and error mapping for the HTTP surface.
Service classes are patched where the route module imports them.
"""

import uuid
from datetime import datetime, timezone
from types import SimpleNamespace
from unittest.mock import AsyncMock, patch

import pytest
from httpx import AsyncClient

from karma_diary.config import settings
from karma_diary.core.errors import ErrorCodes, NotFoundError
from karma_diary.core.plans import Plan
from karma_diary.models.journal import AchievementType, EntryCategory, EntrySource, JournalEntry

ENTRY_ID = uuid.UUID("00000000-0000-0000-0000-0000000000e1")


def _entry(**overrides) -> JournalEntry:
    values = {
        "entry_id": ENTRY_ID,
        "user_id": uuid.UUID("00000000-0000-0000-0000-000000000001"),
        "principle_number": 3,
        "content": "Допоміг сусідці донести сумки",
        "category": EntryCategory.HELP,
        "mood": 8,
        "energy_level": 7,
        "is_completed": True,
        "is_skipped": False,
        "source": EntrySource.WEB,
        "created_at": datetime(2026, 3, 15, 18, 30, tzinfo=timezone.utc),
        "updated_at": datetime(2026, 3, 15, 18, 30, tzinfo=timezone.utc),
    }
    values.update(overrides)
    return JournalEntry(**values)


# ---------------------------------------------------------------------------
# Journal
# ---------------------------------------------------------------------------

class TestJournalEndpoints:

    @pytest.mark.asyncio
    async def test_create_entry(self, client: AsyncClient):
        outcome = SimpleNamespace(
            entry=_entry(),
            stats=SimpleNamespace(streak_days=3, total_entries=12),
            unlocked=[AchievementType.FIRST_ENTRY],
        )
        with patch("karma_diary.api.v1.journal.JournalService") as service_cls:
            service_cls.return_value.record_entry = AsyncMock(return_value=outcome)
            response = await client.post(
                "/api/journal/entries",
                json={"content": "Допоміг сусідці донести сумки", "category": "help", "mood": 8},
            )

        assert response.status_code == 201
        data = response.json()["data"]
        assert data["entry"]["principle_id"] == 3
        assert data["entry"]["category"] == "help"
        assert data["streak_days"] == 3
        assert data["new_achievements"][0]["type"] == "first_entry"

        kwargs = service_cls.return_value.record_entry.await_args.kwargs
        assert kwargs["category"] == EntryCategory.HELP
        assert kwargs["source"] == EntrySource.WEB
        assert kwargs["principle_number"] is None

    @pytest.mark.asyncio
    @pytest.mark.parametrize("body", [
        {"content": ""},
        {"content": "ok", "mood": 11},
        {"content": "ok", "principle_id": 0},
        {"content": "ok", "category": "anger"},
    ])
    async def test_create_entry_validation(self, client: AsyncClient, body):
        response = await client.post("/api/journal/entries", json=body)

        assert response.status_code == 422
        assert response.json()["error"]["code"] == ErrorCodes.VALIDATION_ERROR

    @pytest.mark.asyncio
    async def test_list_entries_paginates(self, client: AsyncClient):
        with patch("karma_diary.api.v1.journal.JournalService") as service_cls:
            service_cls.return_value.get_entries_page = AsyncMock(return_value=([_entry()], 21))
            response = await client.get("/api/journal/entries?limit=1&offset=5")

        assert response.status_code == 200
        body = response.json()
        assert len(body["data"]) == 1
        assert body["pagination"] == {"total": 21, "limit": 1, "offset": 5, "has_more": True}

    @pytest.mark.asyncio
    async def test_foreign_entry_is_not_found(self, client: AsyncClient):
        with patch("karma_diary.api.v1.journal.JournalService") as service_cls:
            service_cls.return_value.get_entry_or_404 = AsyncMock(
                side_effect=NotFoundError(code=ErrorCodes.JOURNAL_NOT_FOUND, message="Journal entry not found")
            )
            response = await client.get(f"/api/journal/entries/{uuid.uuid4()}")

        assert response.status_code == 404
        assert response.json()["error"]["code"] == "JOURNAL_003"

    @pytest.mark.asyncio
    async def test_update_entry(self, client: AsyncClient):
        updated = _entry(content="Виправлений запис")
        with patch("karma_diary.api.v1.journal.JournalService") as service_cls:
            service_cls.return_value.get_entry_or_404 = AsyncMock(return_value=_entry())
            service_cls.return_value.update_entry = AsyncMock(return_value=updated)
            response = await client.patch(
                f"/api/journal/entries/{ENTRY_ID}",
                json={"content": "Виправлений запис"},
            )

        assert response.status_code == 200
        assert response.json()["data"]["content"] == "Виправлений запис"
        changes = service_cls.return_value.update_entry.await_args.args[1]
        assert changes == {"content": "Виправлений запис"}


# ---------------------------------------------------------------------------
# Principles
# ---------------------------------------------------------------------------

class TestPrinciples:

    @pytest.mark.asyncio
    async def test_out_of_range_number(self, client: AsyncClient):
        response = await client.get("/api/principles/11")

        assert response.status_code == 400
        assert response.json()["error"]["code"] == "PRINCIPLE_001"


# ---------------------------------------------------------------------------
# User reminders
# ---------------------------------------------------------------------------

class TestSetupReminders:

    @pytest.mark.asyncio
    async def test_preset_mode(self, client: AsyncClient, db_session, test_user):
        response = await client.post(
            "/api/user/setup-reminders",
            json={"reminder_mode": "light", "daily_principles_count": 2},
        )

        assert response.status_code == 200
        data = response.json()["data"]
        assert data["reminder_mode"] == "light"
        assert [s["time"] for s in data["schedule"]] == ["09:00", "15:00", "20:00"]
        assert test_user.notification_type == "custom"
        db_session.execute.assert_awaited()

    @pytest.mark.asyncio
    async def test_unknown_mode(self, client: AsyncClient):
        response = await client.post(
            "/api/user/setup-reminders",
            json={"reminder_mode": "extreme", "daily_principles_count": 3},
        )
        assert response.status_code == 400
        assert response.json()["error"]["code"] == "REMINDER_001"

    @pytest.mark.asyncio
    async def test_principle_count_out_of_range(self, client: AsyncClient):
        response = await client.post(
            "/api/user/setup-reminders",
            json={"reminder_mode": "balanced", "daily_principles_count": 7},
        )
        assert response.status_code == 400
        assert response.json()["error"]["field"] == "daily_principles_count"

    @pytest.mark.asyncio
    async def test_custom_mode_rejects_bad_time(self, client: AsyncClient):
        response = await client.post(
            "/api/user/setup-reminders",
            json={"reminder_mode": "custom", "daily_principles_count": 2, "custom_times": ["25:00"]},
        )
        assert response.status_code == 400
        assert response.json()["error"]["field"] == "custom_times"


# ---------------------------------------------------------------------------
# Subscriptions
# ---------------------------------------------------------------------------

class TestSubscriptions:

    @pytest.mark.asyncio
    async def test_plans_are_public(self, anonymous_client: AsyncClient):
        response = await anonymous_client.get("/api/subscriptions/plans")

        assert response.status_code == 200
        assert [p["id"] for p in response.json()["data"]] == ["light", "plus", "pro"]

    @pytest.mark.asyncio
    async def test_subscribe_returns_payment_form(self, client: AsyncClient):
        payment = {
            "order_reference": "kd_plus_abc_1",
            "amount": "10.00",
            "currency": "EUR",
            "payment_url": "https://secure.wayforpay.com/pay",
            "payment_fields": {"orderReference": "kd_plus_abc_1"},
        }
        with patch("karma_diary.api.v1.subscription.SubscriptionService") as service_cls:
            service_cls.return_value.create_payment = AsyncMock(return_value=payment)
            response = await client.post("/api/subscriptions/subscribe", json={"plan": "plus"})

        assert response.status_code == 201
        assert response.json()["data"]["order_reference"] == "kd_plus_abc_1"

    @pytest.mark.asyncio
    async def test_subscribe_rejects_unknown_plan(self, client: AsyncClient):
        response = await client.post("/api/subscriptions/subscribe", json={"plan": "gold"})
        assert response.status_code == 422


# ---------------------------------------------------------------------------
# AI plan gate
# ---------------------------------------------------------------------------

class TestAIGate:

    @pytest.mark.asyncio
    async def test_chat_requires_pro(self, client: AsyncClient):
        with patch(
            "karma_diary.core.feature_limits.SubscriptionService.get_current_plan",
            new=AsyncMock(return_value=Plan.PLUS),
        ):
            response = await client.post("/api/ai/chat", json={"message": "Що таке карма?"})

        assert response.status_code == 402
        assert response.json()["error"]["code"] == "PLAN_UPGRADE_REQUIRED"

    @pytest.mark.asyncio
    async def test_advice_without_subscription(self, client: AsyncClient):
        with patch(
            "karma_diary.core.feature_limits.SubscriptionService.get_current_plan",
            new=AsyncMock(return_value=Plan.NONE),
        ):
            response = await client.post("/api/ai/advice")

        assert response.status_code == 402
        assert response.json()["error"]["code"] == "SUBSCRIPTION_REQUIRED"


# ---------------------------------------------------------------------------
# Telegram webhook
# ---------------------------------------------------------------------------

class TestTelegramWebhook:

    @pytest.mark.asyncio
    async def test_wrong_secret_is_forbidden(self, anonymous_client: AsyncClient, monkeypatch):
        monkeypatch.setattr(settings, "WEBHOOK_SECRET", "s3cret")

        response = await anonymous_client.post(
            "/api/telegram/webhook",
            json={"update_id": 1},
            headers={"X-Telegram-Bot-Api-Secret-Token": "wrong"},
        )

        assert response.status_code == 403
        assert response.json()["error"]["code"] == "WEBHOOK_001"

    @pytest.mark.asyncio
    async def test_update_is_dispatched(self, anonymous_client: AsyncClient, monkeypatch):
        monkeypatch.setattr(settings, "WEBHOOK_SECRET", "s3cret")

        with patch("karma_diary.api.v1.telegram.feed_webhook_update", new=AsyncMock()) as feed:
            response = await anonymous_client.post(
                "/api/telegram/webhook",
                json={"update_id": 1},
                headers={"X-Telegram-Bot-Api-Secret-Token": "s3cret"},
            )

        assert response.status_code == 200
        feed.assert_awaited_once_with({"update_id": 1})
