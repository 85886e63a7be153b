"""
Push API Endpoints
==================

Web Push subscription management for the PWA.
"""

import logging

from fastapi import APIRouter, status

from karma_diary.config import settings
from karma_diary.core.errors import ErrorCodes, NotFoundError, ServiceUnavailableError
from karma_diary.dependencies import CurrentUser, DBSession
from karma_diary.models.notification import PushSubscription
from karma_diary.schemas.common import BaseResponse, DataResponse
from karma_diary.schemas.push import PushSubscribeRequest, PushUnsubscribeRequest
from karma_diary.services.notifications import ReminderMessage, WebPushSender
from karma_diary.services.push_service import PushService

logger = logging.getLogger(__name__)

router = APIRouter()


def _require_push() -> None:
    if not settings.push_enabled:
        raise ServiceUnavailableError(
            code=ErrorCodes.PUSH_DISABLED,
            message="Web Push is not configured",
        )


def push_subscription_to_dict(subscription: PushSubscription) -> dict:
    return {
        "push_subscription_id": str(subscription.push_subscription_id),
        "endpoint": subscription.endpoint,
        "user_agent": subscription.user_agent,
        "created_at": subscription.created_at.isoformat() if subscription.created_at else None,
    }


@router.get("/vapid-public-key", response_model=DataResponse)
async def vapid_public_key():
    _require_push()
    return DataResponse(data={"public_key": settings.VAPID_PUBLIC_KEY})


@router.post("/subscribe", response_model=DataResponse, status_code=status.HTTP_201_CREATED)
async def subscribe(request: PushSubscribeRequest, current_user: CurrentUser, db: DBSession):
    _require_push()
    subscription = await PushService(db).subscribe(
        current_user.user_id,
        endpoint=request.endpoint,
        p256dh=request.keys.p256dh,
        auth=request.keys.auth,
        user_agent=request.user_agent,
    )
    return DataResponse(data=push_subscription_to_dict(subscription), message="Subscribed")


@router.post("/unsubscribe", response_model=DataResponse)
async def unsubscribe(request: PushUnsubscribeRequest, current_user: CurrentUser, db: DBSession):
    removed = await PushService(db).unsubscribe(current_user.user_id, request.endpoint)
    if not removed:
        raise NotFoundError(message="Push subscription not found")
    return DataResponse(data={"endpoint": request.endpoint}, message="Unsubscribed")


@router.get("/subscriptions", response_model=BaseResponse[list[dict]])
async def list_subscriptions(current_user: CurrentUser, db: DBSession):
    subscriptions = await PushService(db).list_subscriptions(current_user.user_id)
    return BaseResponse(data=[push_subscription_to_dict(s) for s in subscriptions])


@router.post("/test", response_model=DataResponse)
async def send_test_push(current_user: CurrentUser, db: DBSession):
    _require_push()
    message = ReminderMessage(
        title="Кармічний щоденник",
        body="Тестове сповіщення: push працює 🙏",
    )
    delivered = await WebPushSender(db).send(current_user, message)
    return DataResponse(data={"sent": delivered})
