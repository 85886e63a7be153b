"""
Journal Models
==============

SQLAlchemy models for journal entries, per-user aggregate stats and
unlocked achievements.
"""

from datetime import date, datetime
from enum import Enum
from typing import Optional
import uuid

from sqlalchemy import (
    Boolean,
    Date,
    DateTime,
    Enum as SQLEnum,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
    func,
)
from sqlalchemy.dialects.postgresql import JSONB, UUID
from sqlalchemy.orm import Mapped, mapped_column

from karma_diary.db.base import Base, TimestampMixin


class EntryCategory(str, Enum):
    """What kind of reflection an entry records."""
    REFLECTION = "reflection"
    KINDNESS = "kindness"
    GRATITUDE = "gratitude"
    HELP = "help"
    ANTIDOTE = "antidote"


class EntrySource(str, Enum):
    WEB = "web"
    TELEGRAM = "telegram"


class AchievementType(str, Enum):
    """Fixed set of unlockable badges."""
    FIRST_ENTRY = "first_entry"
    ENTRIES_50 = "entries_50"
    ENTRIES_100 = "entries_100"
    STREAK_7 = "streak_7"
    STREAK_30 = "streak_30"
    GRATITUDE_MASTER = "gratitude_master"
    KARMA_CHAMPION = "karma_champion"


class JournalEntry(Base, TimestampMixin):
    """
    A user's reflection on one principle.
    """

    __tablename__ = "journal_entries"

    entry_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )
    user_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("users.user_id", ondelete="CASCADE"),
        nullable=False,
    )
    principle_number: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("principles.number"),
        nullable=False,
    )
    content: Mapped[str] = mapped_column(Text, nullable=False)
    category: Mapped[EntryCategory] = mapped_column(
        SQLEnum(EntryCategory),
        default=EntryCategory.REFLECTION,
        nullable=False,
    )
    mood: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    energy_level: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    is_completed: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    is_skipped: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    source: Mapped[EntrySource] = mapped_column(
        SQLEnum(EntrySource),
        default=EntrySource.WEB,
        nullable=False,
    )

    __table_args__ = (
        Index("idx_journal_user_created", "user_id", "created_at"),
    )

    def __repr__(self) -> str:
        return f"<JournalEntry(user_id={self.user_id}, principle={self.principle_number})>"


class UserStats(Base):
    """
    Aggregates rebuilt from journal entries after every new entry.
    """

    __tablename__ = "user_stats"

    user_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("users.user_id", ondelete="CASCADE"),
        primary_key=True,
    )
    total_entries: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    streak_days: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    longest_streak: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    last_entry_date: Mapped[Optional[date]] = mapped_column(Date, nullable=True)
    average_mood: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    average_energy: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    principle_completions: Mapped[dict] = mapped_column(
        JSONB,
        default=dict,
        nullable=False,
    )
    weekly_goal: Mapped[int] = mapped_column(Integer, default=7, nullable=False)
    monthly_goal: Mapped[int] = mapped_column(Integer, default=30, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )

    def __repr__(self) -> str:
        return f"<UserStats(user_id={self.user_id}, total={self.total_entries}, streak={self.streak_days})>"


class Achievement(Base):
    """Unlocked badge. At most one row per (user, type)."""

    __tablename__ = "achievements"

    achievement_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )
    user_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("users.user_id", ondelete="CASCADE"),
        nullable=False,
    )
    type: Mapped[str] = mapped_column(String(50), nullable=False)
    unlocked_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )
    notified: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    __table_args__ = (
        UniqueConstraint("user_id", "type", name="uq_achievements_user_type"),
    )

    def __repr__(self) -> str:
        return f"<Achievement(user_id={self.user_id}, type={self.type})>"
