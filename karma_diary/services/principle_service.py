"""
Principle Service
=================

Read access to the ten principles and the per-user rotation.
"""

import logging
from typing import Optional

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from karma_diary.core.errors import ErrorCodes, NotFoundError, ValidationError
from karma_diary.models.principle import PRINCIPLE_COUNT, Principle, PrincipleHistory
from karma_diary.models.user import User
from karma_diary.services.cache import CacheKeys, CacheManager

logger = logging.getLogger(__name__)

FALLBACK_PRINCIPLE_TITLE = "Принцип дня"


def next_principle_number(current: int) -> int:
    """Rotation 1 → 2 → … → 10 → 1. Out-of-range values restart at 1."""
    if not 1 <= current <= PRINCIPLE_COUNT:
        return 1
    return (current % PRINCIPLE_COUNT) + 1


def validate_principle_number(number: int) -> int:
    if not 1 <= number <= PRINCIPLE_COUNT:
        raise ValidationError(
            message=f"Principle number must be between 1 and {PRINCIPLE_COUNT}",
            field="number",
            code=ErrorCodes.PRINCIPLE_INVALID_NUMBER,
        )
    return number


def principle_to_dict(principle: Principle) -> dict:
    return {
        "number": principle.number,
        "title": principle.title,
        "description": principle.description,
        "url": principle.url,
        "reflections": principle.reflections or [],
        "practical_steps": principle.practical_steps or [],
    }


class PrincipleService:
    """Service for principle reads and rotation."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def list_principles(self) -> list[dict]:
        cached = await CacheManager.get(CacheKeys.principles())
        if cached is not None:
            return cached

        result = await self.db.execute(select(Principle).order_by(Principle.number))
        principles = [principle_to_dict(p) for p in result.scalars().all()]
        if principles:
            await CacheManager.set(CacheKeys.principles(), principles, ttl=CacheManager.TTL_DAY)
        return principles

    async def get_by_number(self, number: int) -> Optional[Principle]:
        stmt = select(Principle).where(Principle.number == number)
        result = await self.db.execute(stmt)
        return result.scalar_one_or_none()

    async def get_by_number_or_404(self, number: int) -> Principle:
        validate_principle_number(number)
        principle = await self.get_by_number(number)
        if principle is None:
            raise NotFoundError(
                code=ErrorCodes.PRINCIPLE_NOT_FOUND,
                message="Principle not found",
            )
        return principle

    async def get_title(self, number: int) -> str:
        """Title for messages; never fails."""
        principle = await self.get_by_number(number)
        return principle.title if principle else FALLBACK_PRINCIPLE_TITLE

    async def advance(self, user: User) -> int:
        """
        Move a user to the next principle and record the rotation step.

        Returns:
            The new principle number
        """
        previous = user.current_principle
        await self.db.execute(
            update(PrincipleHistory)
            .where(
                PrincipleHistory.user_id == user.user_id,
                PrincipleHistory.principle_number == previous,
                PrincipleHistory.completed.is_(False),
            )
            .values(completed=True)
        )

        user.current_principle = next_principle_number(previous)
        self.db.add(PrincipleHistory(
            user_id=user.user_id,
            principle_number=user.current_principle,
            completed=False,
        ))
        await self.db.flush()

        logger.info("User %s advanced from principle %d to %d", user.user_id, previous, user.current_principle)
        return user.current_principle
