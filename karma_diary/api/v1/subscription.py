"""
Subscription API Endpoints
==========================

Plan catalog, current plan, WayForPay checkout and cancellation.
"""

import logging
from typing import Optional

from fastapi import APIRouter, status

from karma_diary.core.plans import Plan, get_feature_limits, list_plans
from karma_diary.dependencies import CurrentUser, DBSession
from karma_diary.models.subscription import Subscription
from karma_diary.schemas.common import BaseResponse, DataResponse
from karma_diary.schemas.subscription import SubscribeRequest
from karma_diary.services.cache import CacheInvalidator
from karma_diary.services.subscription_service import SubscriptionService

logger = logging.getLogger(__name__)

router = APIRouter()


def subscription_to_dict(subscription: Optional[Subscription]) -> Optional[dict]:
    if subscription is None:
        return None
    return {
        "subscription_id": str(subscription.subscription_id),
        "plan": subscription.plan.value,
        "billing_period": subscription.billing_period.value if subscription.billing_period else None,
        "status": subscription.status.value,
        "started_at": subscription.started_at.isoformat(),
        "expires_at": subscription.expires_at.isoformat(),
        "cancelled_at": subscription.cancelled_at.isoformat() if subscription.cancelled_at else None,
        "amount": str(subscription.amount) if subscription.amount is not None else None,
        "currency": subscription.currency,
    }


@router.get("/plans", response_model=BaseResponse[list[dict]])
async def get_plans():
    """Purchasable plans with prices and feature limits."""
    return BaseResponse(data=list_plans())


@router.get("/current", response_model=DataResponse)
async def get_current(current_user: CurrentUser, db: DBSession):
    subscription = await SubscriptionService(db).get_current_subscription(current_user.user_id)
    plan = subscription.plan if subscription else Plan.NONE
    return DataResponse(data={
        "plan": plan.value,
        "subscription": subscription_to_dict(subscription),
        "feature_limits": get_feature_limits(plan),
    })


@router.post("/subscribe", response_model=DataResponse, status_code=status.HTTP_201_CREATED)
async def subscribe(request: SubscribeRequest, current_user: CurrentUser, db: DBSession):
    """
    Create a pending subscription and a signed WayForPay form.

    The plan is activated by the payment webhook, not here.
    """
    payment = await SubscriptionService(db).create_payment(
        current_user,
        plan=request.plan,
        billing_period=request.billing_period,
    )
    return DataResponse(data=payment)


@router.post("/cancel", response_model=DataResponse)
async def cancel(current_user: CurrentUser, db: DBSession):
    subscription = await SubscriptionService(db).cancel(current_user)
    await db.commit()
    await CacheInvalidator.on_subscription_change(str(current_user.user_id))
    return DataResponse(data=subscription_to_dict(subscription), message="Subscription cancelled")
