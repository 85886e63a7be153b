"""
Notification Models
===================

Per-user reminder schedules and Web Push subscriptions.
"""

from datetime import datetime
from typing import Optional
import uuid

from sqlalchemy import Boolean, DateTime, ForeignKey, Index, String, Text, func
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column

from karma_diary.db.base import Base, TimestampMixin


class ReminderSchedule(Base, TimestampMixin):
    """A local wall-clock time at which a user wants a reminder."""

    __tablename__ = "reminder_schedules"

    schedule_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )
    user_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("users.user_id", ondelete="CASCADE"),
        nullable=False,
    )
    time: Mapped[str] = mapped_column(String(5), nullable=False)  # HH:MM
    type: Mapped[str] = mapped_column(String(20), default="principle", nullable=False)
    enabled: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    __table_args__ = (
        Index("idx_reminder_schedules_user", "user_id"),
    )

    def __repr__(self) -> str:
        return f"<ReminderSchedule(user_id={self.user_id}, time={self.time}, type={self.type})>"


class PushSubscription(Base):
    """Browser push endpoint with its VAPID encryption keys."""

    __tablename__ = "push_subscriptions"

    push_subscription_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )
    user_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("users.user_id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    endpoint: Mapped[str] = mapped_column(Text, unique=True, nullable=False)
    p256dh: Mapped[str] = mapped_column(Text, nullable=False)
    auth: Mapped[str] = mapped_column(Text, nullable=False)
    user_agent: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )

    def to_webpush_info(self) -> dict:
        """Subscription info in the shape pywebpush expects."""
        return {
            "endpoint": self.endpoint,
            "keys": {"p256dh": self.p256dh, "auth": self.auth},
        }
