"""
Shared Test Fixtures
====================

The app is exercised over ``httpx.ASGITransport`` without running the
lifespan, so no database, Redis or Telegram connection is opened. The
session dependency yields an ``AsyncMock`` and services are patched per
test where a query result matters.
"""

import uuid
from datetime import datetime, timezone
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from httpx import ASGITransport, AsyncClient

from karma_diary.db.session import get_db
from karma_diary.dependencies import get_current_user
from karma_diary.main import app
from karma_diary.models.user import User

USER_ID = uuid.UUID("00000000-0000-0000-0000-000000000001")


def make_user(**overrides) -> User:
    """A detached user with every column the services read filled in."""
    values = {
        "user_id": USER_ID,
        "telegram_id": 123456789,
        "telegram_chat_id": 123456789,
        "first_name": "Олена",
        "username": "olena",
        "language": "uk",
        "timezone": "Europe/Kiev",
        "current_principle": 3,
        "has_completed_onboarding": True,
        "notification_type": "daily",
        "reminder_mode": "balanced",
        "daily_principles_count": 3,
        "custom_times": None,
        "reminders_enabled": True,
        "last_reminder_sent": None,
        "is_active": True,
        "subscription_plan": "none",
        "created_at": datetime(2026, 1, 1, tzinfo=timezone.utc),
        "updated_at": datetime(2026, 1, 1, tzinfo=timezone.utc),
    }
    values.update(overrides)
    return User(**values)


@pytest.fixture(autouse=True)
def no_redis():
    """Every Redis call fails fast, so caches miss and rate limits fail open."""
    unavailable = AsyncMock(side_effect=ConnectionError("redis disabled in tests"))
    with patch("karma_diary.services.cache.get_redis", unavailable), \
            patch("karma_diary.core.rate_limit.get_redis", unavailable):
        yield


@pytest.fixture
def db_session():
    session = AsyncMock()
    session.add = MagicMock()
    session.add_all = MagicMock()
    return session


@pytest.fixture
def test_user() -> User:
    return make_user()


@pytest.fixture
async def client(db_session, test_user):
    """Authenticated client: every request runs as ``test_user``."""
    async def _get_db():
        yield db_session

    app.dependency_overrides[get_db] = _get_db
    app.dependency_overrides[get_current_user] = lambda: test_user

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


@pytest.fixture
async def anonymous_client(db_session):
    """Client without a user override; protected routes answer 401."""
    async def _get_db():
        yield db_session

    app.dependency_overrides[get_db] = _get_db

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


@pytest.fixture
def user_factory():
    """``make_user`` for tests that need users with specific fields."""
    return make_user
