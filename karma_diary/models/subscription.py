"""
Subscription Models
===================

SQLAlchemy model for plan subscriptions paid through WayForPay.
"""

from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Optional
import uuid

from sqlalchemy import (
    DateTime,
    Enum as SQLEnum,
    ForeignKey,
    Index,
    Numeric,
    String,
    func,
)
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column

from karma_diary.core.plans import BillingPeriod, Plan
from karma_diary.db.base import Base, TimestampMixin


class SubscriptionStatus(str, Enum):
    """Subscription status values."""
    PENDING = "pending"
    ACTIVE = "active"
    EXPIRED = "expired"
    CANCELLED = "cancelled"
    REPLACED = "replaced"


class Subscription(Base, TimestampMixin):
    """
    Subscription row. A user may own many; the current one is the most
    recently started active row that has not expired.
    """

    __tablename__ = "subscriptions"

    subscription_id: Mapped[uuid.UUID] = mapped_column(
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

    plan: Mapped[Plan] = mapped_column(
        SQLEnum(Plan, values_callable=lambda e: [m.value for m in e]),
        default=Plan.TRIAL,
        nullable=False,
    )
    billing_period: Mapped[Optional[BillingPeriod]] = mapped_column(
        SQLEnum(BillingPeriod, values_callable=lambda e: [m.value for m in e]),
        nullable=True,
    )
    status: Mapped[SubscriptionStatus] = mapped_column(
        SQLEnum(SubscriptionStatus, values_callable=lambda e: [m.value for m in e]),
        default=SubscriptionStatus.ACTIVE,
        nullable=False,
    )
    started_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )
    expires_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
    )
    cancelled_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )

    # Payment/Order Fields
    payment_order_id: Mapped[Optional[str]] = mapped_column(
        String(100),
        unique=True,
        nullable=True,
    )
    amount: Mapped[Optional[Decimal]] = mapped_column(Numeric(10, 2), nullable=True)
    currency: Mapped[str] = mapped_column(String(3), default="EUR", nullable=False)

    __table_args__ = (
        Index("idx_subscription_user_status", "user_id", "status"),
        Index("idx_subscription_plan_status_expires", "plan", "status", "expires_at"),
    )

    def __repr__(self) -> str:
        return f"<Subscription(user_id={self.user_id}, plan={self.plan}, status={self.status})>"
