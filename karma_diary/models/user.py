"""
User Model
==========

SQLAlchemy model for user accounts and reminder preferences.
"""

from datetime import datetime
from typing import Optional
import uuid

from sqlalchemy import BigInteger, Boolean, DateTime, Integer, String
from sqlalchemy.dialects.postgresql import JSONB, UUID
from sqlalchemy.orm import Mapped, mapped_column

from karma_diary.db.base import Base, TimestampMixin


class User(Base, TimestampMixin):
    """
    User account model.

    A user signs in through Telegram or Google; either identity may be
    linked later.
    """

    __tablename__ = "users"

    # Primary Key
    user_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )

    # Identity
    telegram_id: Mapped[Optional[int]] = mapped_column(
        BigInteger,
        unique=True,
        nullable=True,
        index=True,
    )
    telegram_chat_id: Mapped[Optional[int]] = mapped_column(
        BigInteger,
        nullable=True,
    )
    google_id: Mapped[Optional[str]] = mapped_column(
        String(255),
        unique=True,
        nullable=True,
    )
    email: Mapped[Optional[str]] = mapped_column(
        String(255),
        unique=True,
        nullable=True,
    )

    # Profile
    first_name: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    last_name: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    username: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    avatar_url: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)
    language: Mapped[str] = mapped_column(String(5), default="uk", nullable=False)
    timezone: Mapped[str] = mapped_column(
        String(64),
        default="Europe/Kiev",
        nullable=False,
    )

    # Practice
    current_principle: Mapped[int] = mapped_column(
        Integer,
        default=1,
        nullable=False,
    )
    has_completed_onboarding: Mapped[bool] = mapped_column(
        Boolean,
        default=False,
        nullable=False,
    )

    # Reminders
    notification_type: Mapped[str] = mapped_column(
        String(20),
        default="daily",
        nullable=False,
    )
    reminder_mode: Mapped[str] = mapped_column(
        String(20),
        default="balanced",
        nullable=False,
    )
    daily_principles_count: Mapped[int] = mapped_column(
        Integer,
        default=2,
        nullable=False,
    )
    custom_times: Mapped[Optional[list]] = mapped_column(JSONB, nullable=True)
    reminders_enabled: Mapped[bool] = mapped_column(
        Boolean,
        default=True,
        nullable=False,
    )
    last_reminder_sent: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )
    is_active: Mapped[bool] = mapped_column(
        Boolean,
        default=True,
        nullable=False,
        index=True,
    )

    # Denormalised label of the current plan, refreshed on subscription change
    subscription_plan: Mapped[str] = mapped_column(
        String(20),
        default="none",
        nullable=False,
    )

    def __repr__(self) -> str:
        return f"<User(user_id={self.user_id}, telegram_id={self.telegram_id})>"

    @property
    def display_name(self) -> str:
        return self.first_name or self.username or "друже"
