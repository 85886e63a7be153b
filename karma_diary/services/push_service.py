"""
Push Subscription Service
=========================

Storage of browser push subscriptions.
"""

import logging
from typing import Optional
import uuid

from sqlalchemy import delete, select
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.ext.asyncio import AsyncSession

from karma_diary.models.notification import PushSubscription

logger = logging.getLogger(__name__)


class PushService:
    """Service for push subscription operations."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def subscribe(
        self,
        user_id: uuid.UUID,
        endpoint: str,
        p256dh: str,
        auth: str,
        user_agent: Optional[str] = None,
    ) -> PushSubscription:
        """
        Store a subscription. A known endpoint is re-bound to the caller
        with fresh keys.
        """
        stmt = (
            pg_insert(PushSubscription)
            .values(
                push_subscription_id=uuid.uuid4(),
                user_id=user_id,
                endpoint=endpoint,
                p256dh=p256dh,
                auth=auth,
                user_agent=user_agent,
            )
            .on_conflict_do_update(
                index_elements=[PushSubscription.endpoint],
                set_={
                    "user_id": user_id,
                    "p256dh": p256dh,
                    "auth": auth,
                    "user_agent": user_agent,
                },
            )
            .returning(PushSubscription)
        )
        result = await self.db.execute(stmt)
        subscription = result.scalar_one()
        logger.info("Push subscription stored for %s", user_id)
        return subscription

    async def unsubscribe(self, user_id: uuid.UUID, endpoint: str) -> bool:
        result = await self.db.execute(
            delete(PushSubscription).where(
                PushSubscription.user_id == user_id,
                PushSubscription.endpoint == endpoint,
            )
        )
        return result.rowcount > 0

    async def list_subscriptions(self, user_id: uuid.UUID) -> list[PushSubscription]:
        result = await self.db.execute(
            select(PushSubscription)
            .where(PushSubscription.user_id == user_id)
            .order_by(PushSubscription.created_at.desc())
        )
        return list(result.scalars().all())
