"""
Webhooks API Endpoints
======================

Handles payment callbacks from WayForPay.

Authentication:
    WayForPay signs every callback with ``merchantSignature`` (MD5 over the
    callback fields and the merchant secret). Unsigned or mis-signed
    callbacks are rejected with 400.

Idempotency:
    Approved order references are stored in Redis (with TTL) after a
    successful commit. Only a pending order is ever activated, so a Redis
    outage only costs a repeated lookup.
"""

import json
import logging
from typing import Annotated

from aiogram.exceptions import TelegramAPIError
from fastapi import APIRouter, Depends, HTTPException, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from karma_diary.bot import texts
from karma_diary.bot.loader import get_bot
from karma_diary.db.session import get_db
from karma_diary.models.subscription import Subscription
from karma_diary.models.user import User
from karma_diary.services.cache import CacheInvalidator, CacheKeys, CacheManager
from karma_diary.services.subscription_service import SubscriptionService
from karma_diary.services.wayforpay import (
    STATUS_APPROVED,
    build_callback_response,
    verify_callback_signature,
)

logger = logging.getLogger(__name__)

router = APIRouter()

_PAYMENT_IDEM_TTL = 86400 * 7  # 7 days


async def _notify_payment(db: AsyncSession, subscription: Subscription) -> None:
    """Tell the user in Telegram that the plan is active."""
    bot = get_bot()
    if bot is None:
        return

    user = await db.get(User, subscription.user_id)
    chat_id = user.telegram_chat_id or user.telegram_id if user else None
    if not chat_id:
        return

    try:
        await bot.send_message(
            chat_id,
            texts.payment_approved_text(subscription.plan, subscription.expires_at),
        )
    except TelegramAPIError as e:
        logger.warning("Payment notification to %s failed: %s", subscription.user_id, e)


@router.post("/wayforpay")
async def wayforpay_webhook(
    request: Request,
    db: Annotated[AsyncSession, Depends(get_db)],
):
    """
    Handle a WayForPay service callback.

    ``Approved`` activates the order's pending subscription and answers
    ``accept``. Any other status, or an unknown order, answers ``decline``.
    """
    try:
        payload = json.loads((await request.body()).decode("utf-8"))
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        logger.error("Invalid WayForPay payload: %s", e)
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Invalid JSON payload",
        )

    if not isinstance(payload, dict) or not verify_callback_signature(payload):
        logger.warning("Invalid WayForPay signature")
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Invalid signature",
        )

    order_reference = str(payload.get("orderReference", ""))
    transaction_status = payload.get("transactionStatus")
    logger.info(
        "WayForPay callback: order=%s status=%s reason=%s",
        order_reference,
        transaction_status,
        payload.get("reasonCode"),
    )

    if transaction_status != STATUS_APPROVED:
        return build_callback_response(order_reference, accept=False)

    idem_key = CacheKeys.payment_processed(order_reference)
    if await CacheManager.get(idem_key) is not None:
        logger.info("Duplicate WayForPay callback for %s, skipping", order_reference)
        return build_callback_response(order_reference, accept=True)

    try:
        subscription, activated = await SubscriptionService(db).activate_order(order_reference)
        if subscription is None:
            return build_callback_response(order_reference, accept=False)
        await db.commit()
    except Exception:
        logger.exception("Subscription activation failed for %s", order_reference)
        await db.rollback()
        # 500 makes WayForPay retry
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to activate subscription",
        )

    await CacheManager.set(idem_key, True, ttl=_PAYMENT_IDEM_TTL)
    if activated:
        await CacheInvalidator.on_subscription_change(str(subscription.user_id))
        await _notify_payment(db, subscription)
    return build_callback_response(order_reference, accept=True)
