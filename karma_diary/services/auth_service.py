"""
Authentication Service
======================

User lookup and sign-in through Telegram (Login Widget or bot deep link)
and Google, plus the short-lived web login sessions confirmed by the bot.
"""

import asyncio
import logging
import secrets
from typing import Optional
import uuid

from google.auth.transport import requests as google_requests
from google.oauth2 import id_token as google_id_token
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from karma_diary.config import settings
from karma_diary.core.security import create_tokens_for_user, decode_token
from karma_diary.models.journal import UserStats
from karma_diary.models.user import User
from karma_diary.services.cache import CacheKeys, CacheManager
from karma_diary.services.subscription_service import SubscriptionService

logger = logging.getLogger(__name__)

AUTH_SESSION_TTL = 300  # 5 minutes

GOOGLE_ISSUERS = ("accounts.google.com", "https://accounts.google.com")


class AuthService:
    """Service for authentication operations."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_user_by_id(self, user_id: uuid.UUID) -> Optional[User]:
        """Get user by ID."""
        return await self.db.get(User, user_id)

    async def get_user_by_telegram_id(self, telegram_id: int) -> Optional[User]:
        stmt = select(User).where(User.telegram_id == telegram_id)
        result = await self.db.execute(stmt)
        return result.scalar_one_or_none()

    async def _register(self, user: User) -> User:
        """Persist a new user with an empty stats row and a trial."""
        self.db.add(user)
        await self.db.flush()

        self.db.add(UserStats(
            user_id=user.user_id,
            total_entries=0,
            streak_days=0,
            longest_streak=0,
            principle_completions={},
            weekly_goal=7,
            monthly_goal=30,
        ))
        await SubscriptionService(self.db).start_trial(user)
        logger.info("Registered user %s", user.user_id)
        return user

    async def get_or_create_telegram_user(
        self,
        telegram_id: int,
        first_name: Optional[str] = None,
        last_name: Optional[str] = None,
        username: Optional[str] = None,
        chat_id: Optional[int] = None,
        avatar_url: Optional[str] = None,
    ) -> tuple[User, bool]:
        """
        Find a user by Telegram ID or create one.

        Returns:
            (user, created)
        """
        user = await self.get_user_by_telegram_id(telegram_id)
        if user is not None:
            if chat_id and user.telegram_chat_id != chat_id:
                user.telegram_chat_id = chat_id
            if username and user.username != username:
                user.username = username
            if avatar_url and not user.avatar_url:
                user.avatar_url = avatar_url
            if not user.is_active:
                user.is_active = True
            return user, False

        user = User(
            telegram_id=telegram_id,
            telegram_chat_id=chat_id or telegram_id,
            first_name=first_name,
            last_name=last_name,
            username=username,
            avatar_url=avatar_url,
            current_principle=1,
            language="uk",
            timezone="Europe/Kiev",
            notification_type="daily",
            reminder_mode="balanced",
            daily_principles_count=2,
            reminders_enabled=True,
            is_active=True,
            has_completed_onboarding=False,
            subscription_plan="none",
        )
        return await self._register(user), True

    async def get_or_create_google_user(
        self,
        google_id: str,
        email: str,
        first_name: Optional[str] = None,
        last_name: Optional[str] = None,
        avatar_url: Optional[str] = None,
    ) -> tuple[User, bool]:
        stmt = select(User).where(
            (User.google_id == google_id) | (User.email == email)
        )
        result = await self.db.execute(stmt)
        user = result.scalars().first()

        if user is not None:
            if user.google_id is None:
                user.google_id = google_id
            if avatar_url and not user.avatar_url:
                user.avatar_url = avatar_url
            return user, False

        user = User(
            google_id=google_id,
            email=email,
            first_name=first_name,
            last_name=last_name,
            avatar_url=avatar_url,
            current_principle=1,
            language="uk",
            timezone="Europe/Kiev",
            notification_type="daily",
            reminder_mode="balanced",
            daily_principles_count=2,
            reminders_enabled=True,
            is_active=True,
            has_completed_onboarding=False,
            subscription_plan="none",
        )
        return await self._register(user), True

    async def verify_google_id_token(self, token: str) -> dict:
        """
        Verify a Google ID token and return its claims.

        Verification is synchronous, so it runs in a worker thread.

        Raises:
            ValueError: If the token is invalid, expired, or has a
                        wrong audience / issuer.
        """
        client_id = settings.GOOGLE_CLIENT_ID

        def _verify() -> dict:
            idinfo = google_id_token.verify_oauth2_token(
                token,
                google_requests.Request(),
                audience=client_id,
                clock_skew_in_seconds=5,
            )
            if idinfo.get("iss") not in GOOGLE_ISSUERS:
                raise ValueError("Invalid token issuer")
            return idinfo

        return await asyncio.to_thread(_verify)

    async def refresh_tokens(self, refresh_token: str) -> Optional[dict]:
        """
        Generate new tokens from a refresh token.

        Returns:
            New tokens if the refresh token is valid, None otherwise
        """
        payload = decode_token(refresh_token)
        if payload is None or payload.get("type") != "refresh":
            return None

        try:
            user_id = uuid.UUID(payload.get("sub", ""))
        except ValueError:
            return None

        user = await self.get_user_by_id(user_id)
        if user is None or not user.is_active:
            return None

        return create_tokens_for_user(user.user_id, plan=user.subscription_plan)


# =============================================================================
# Web login sessions confirmed through the bot
# =============================================================================

async def create_login_session() -> dict:
    """Start a pending web login; the user confirms it in the bot."""
    session_id = secrets.token_urlsafe(16)
    stored = await CacheManager.set(
        CacheKeys.auth_session(session_id),
        {"status": "pending"},
        ttl=AUTH_SESSION_TTL,
    )
    if not stored:
        return {}
    return {
        "session_id": session_id,
        "bot_url": f"https://t.me/{settings.TELEGRAM_BOT_USERNAME}?start=auth_{session_id}",
        "expires_in": AUTH_SESSION_TTL,
    }


async def authorize_login_session(session_id: str, user_id: uuid.UUID) -> bool:
    """Mark a pending session as confirmed by ``user_id``."""
    key = CacheKeys.auth_session(session_id)
    session = await CacheManager.get(key)
    if session is None or session.get("status") != "pending":
        return False
    return await CacheManager.set(
        key,
        {"status": "authorized", "user_id": str(user_id)},
        ttl=AUTH_SESSION_TTL,
    )


async def consume_login_session(session_id: str) -> Optional[dict]:
    """
    Current state of a session. An authorised session is deleted on read.

    Returns:
        ``{"status": ...}`` with ``user_id`` once authorised, None if unknown
    """
    key = CacheKeys.auth_session(session_id)
    session = await CacheManager.get(key)
    if session is None:
        return None
    if session.get("status") == "authorized":
        await CacheManager.delete(key)
    return session
