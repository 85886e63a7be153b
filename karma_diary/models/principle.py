"""
Principle Models
================

The ten rotating principles and each user's rotation history.
"""

from datetime import datetime
from typing import Optional
import uuid

from sqlalchemy import Boolean, DateTime, ForeignKey, Index, Integer, String, Text, func
from sqlalchemy.dialects.postgresql import JSONB, UUID
from sqlalchemy.orm import Mapped, mapped_column

from karma_diary.db.base import Base

PRINCIPLE_COUNT = 10


class Principle(Base):
    """One of the ten principles. Seeded, then read-only."""

    __tablename__ = "principles"

    principle_id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    number: Mapped[int] = mapped_column(Integer, unique=True, nullable=False)
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    url: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)
    reflections: Mapped[list] = mapped_column(JSONB, default=list, nullable=False)
    practical_steps: Mapped[list] = mapped_column(JSONB, default=list, nullable=False)

    def __repr__(self) -> str:
        return f"<Principle(number={self.number}, title={self.title!r})>"


class PrincipleHistory(Base):
    """A rotation step: which principle a user was assigned and when."""

    __tablename__ = "principle_history"

    history_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )
    user_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("users.user_id", ondelete="CASCADE"),
        nullable=False,
    )
    principle_number: Mapped[int] = mapped_column(Integer, nullable=False)
    assigned_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )
    completed: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    __table_args__ = (
        Index("idx_principle_history_user", "user_id", "assigned_at"),
    )
