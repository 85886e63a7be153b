"""
Subscription Service
====================

Plan resolution, trials, WayForPay checkout and activation.
"""

import logging
import time
from datetime import datetime, timedelta, timezone
from typing import Optional
import uuid

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from karma_diary.config import settings
from karma_diary.core.errors import ErrorCodes, NotFoundError, ServiceUnavailableError, ValidationError
from karma_diary.core.plans import (
    CURRENCY,
    PLAN_CATALOG,
    BillingPeriod,
    Plan,
    get_plan_price,
)
from karma_diary.models.subscription import Subscription, SubscriptionStatus
from karma_diary.models.user import User
from karma_diary.services import wayforpay
from karma_diary.services.cache import CacheKeys, CacheManager

logger = logging.getLogger(__name__)

PERIOD_LENGTH = {
    BillingPeriod.MONTHLY: timedelta(days=30),
    BillingPeriod.YEARLY: timedelta(days=365),
}


def build_order_reference(user_id: uuid.UUID, plan: Plan, now: Optional[float] = None) -> str:
    timestamp = int((now or time.time()) * 1000)
    return f"kd_{plan.value}_{user_id.hex}_{timestamp}"


def plan_cache_ttl(subscription: Optional[Subscription], now: datetime) -> int:
    """Seconds the resolved plan may be cached: at most until the row expires."""
    if subscription is None:
        return CacheManager.TTL_SHORT
    remaining = int((subscription.expires_at - now).total_seconds())
    return max(1, min(CacheManager.TTL_SHORT, remaining))


class SubscriptionService:
    """Service for subscription operations."""

    def __init__(self, db: AsyncSession):
        self.db = db

    # =========================================================================
    # Resolution
    # =========================================================================

    async def get_current_subscription(
        self,
        user_id: uuid.UUID,
        now: Optional[datetime] = None,
    ) -> Optional[Subscription]:
        now = now or datetime.now(timezone.utc)
        stmt = (
            select(Subscription)
            .where(
                Subscription.user_id == user_id,
                Subscription.status == SubscriptionStatus.ACTIVE,
                Subscription.expires_at > now,
            )
            .order_by(Subscription.started_at.desc())
            .limit(1)
        )
        result = await self.db.execute(stmt)
        return result.scalar_one_or_none()

    async def get_current_plan(self, user_id: uuid.UUID) -> Plan:
        """
        Current plan, cached for a few minutes.

        The cache entry never outlives the subscription it was read from.
        """
        cache_key = CacheKeys.current_plan(str(user_id))
        cached = await CacheManager.get(cache_key)
        if cached is not None:
            return Plan(cached)

        now = datetime.now(timezone.utc)
        subscription = await self.get_current_subscription(user_id, now)
        plan = subscription.plan if subscription else Plan.NONE
        await CacheManager.set(cache_key, plan.value, ttl=plan_cache_ttl(subscription, now))
        return plan

    async def refresh_user_plan_label(self, user: User) -> Plan:
        subscription = await self.get_current_subscription(user.user_id)
        plan = subscription.plan if subscription else Plan.NONE
        user.subscription_plan = plan.value
        return plan

    # =========================================================================
    # Trials
    # =========================================================================

    async def start_trial(self, user: User, days: Optional[int] = None) -> Subscription:
        """Give a new user a trial subscription."""
        now = datetime.now(timezone.utc)
        subscription = Subscription(
            user_id=user.user_id,
            plan=Plan.TRIAL,
            status=SubscriptionStatus.ACTIVE,
            started_at=now,
            expires_at=now + timedelta(days=days or settings.TRIAL_DAYS),
            currency=CURRENCY,
        )
        self.db.add(subscription)
        user.subscription_plan = Plan.TRIAL.value
        await self.db.flush()
        return subscription

    # =========================================================================
    # Checkout
    # =========================================================================

    async def create_payment(
        self,
        user: User,
        plan: Plan,
        billing_period: BillingPeriod,
    ) -> dict:
        """
        Store a pending subscription and return the signed checkout form.
        """
        if not settings.payments_enabled:
            raise ServiceUnavailableError(
                code=ErrorCodes.SUB_PAYMENTS_DISABLED,
                message="Payments are not configured",
            )

        amount = get_plan_price(plan, billing_period)
        if amount is None:
            raise ValidationError(
                message=f"Plan '{plan.value}' cannot be purchased",
                field="plan",
                code=ErrorCodes.SUB_INVALID_PLAN,
            )

        now = datetime.now(timezone.utc)
        order_reference = build_order_reference(user.user_id, plan)
        subscription = Subscription(
            user_id=user.user_id,
            plan=plan,
            billing_period=billing_period,
            status=SubscriptionStatus.PENDING,
            started_at=now,
            expires_at=now + PERIOD_LENGTH[billing_period],
            payment_order_id=order_reference,
            amount=amount,
            currency=CURRENCY,
        )
        self.db.add(subscription)
        await self.db.flush()

        product_name = f"Karmic Diary {PLAN_CATALOG[plan]['name']} ({billing_period.value})"
        form = wayforpay.build_payment_form(
            order_reference=order_reference,
            amount=amount,
            currency=CURRENCY,
            product_name=product_name,
            order_date=int(now.timestamp()),
        )
        logger.info("Payment created: order=%s user=%s plan=%s", order_reference, user.user_id, plan.value)

        return {
            "order_reference": order_reference,
            "amount": str(amount),
            "currency": CURRENCY,
            "payment_url": form["url"],
            "payment_fields": form["fields"],
        }

    async def get_by_order_reference(self, order_reference: str) -> Optional[Subscription]:
        stmt = select(Subscription).where(Subscription.payment_order_id == order_reference)
        result = await self.db.execute(stmt)
        return result.scalar_one_or_none()

    async def activate_order(self, order_reference: str) -> tuple[Optional[Subscription], bool]:
        """
        Activate a paid order.

        Only a ``pending`` row is activated; other active rows of the user
        become ``replaced``. A row in any other status is returned unchanged,
        so a redelivered callback can never revive a cancelled, replaced or
        expired order.

        Returns:
            (subscription, activated). The subscription is None for an
            unknown order; activated is True only when this call activated it
        """
        subscription = await self.get_by_order_reference(order_reference)
        if subscription is None:
            logger.warning("Payment for unknown order %s", order_reference)
            return None, False

        if subscription.status != SubscriptionStatus.PENDING:
            logger.info(
                "Order %s already processed (status=%s)",
                order_reference,
                subscription.status.value,
            )
            return subscription, False

        now = datetime.now(timezone.utc)
        await self.db.execute(
            update(Subscription)
            .where(
                Subscription.user_id == subscription.user_id,
                Subscription.status == SubscriptionStatus.ACTIVE,
                Subscription.subscription_id != subscription.subscription_id,
            )
            .values(status=SubscriptionStatus.REPLACED)
        )

        period = subscription.billing_period or BillingPeriod.MONTHLY
        subscription.status = SubscriptionStatus.ACTIVE
        subscription.started_at = now
        subscription.expires_at = now + PERIOD_LENGTH[period]

        user = await self.db.get(User, subscription.user_id)
        if user is not None:
            user.subscription_plan = subscription.plan.value

        await self.db.flush()
        logger.info("Subscription activated: order=%s plan=%s", order_reference, subscription.plan.value)
        return subscription, True

    async def cancel(self, user: User) -> Subscription:
        """Cancel the current paid subscription immediately."""
        subscription = await self.get_current_subscription(user.user_id)
        if subscription is None:
            raise NotFoundError(
                code=ErrorCodes.SUB_NO_ACTIVE_SUB,
                message="No active subscription",
            )

        subscription.status = SubscriptionStatus.CANCELLED
        subscription.cancelled_at = datetime.now(timezone.utc)
        await self.db.flush()

        await self.refresh_user_plan_label(user)
        return subscription
