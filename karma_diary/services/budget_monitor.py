"""
AI Budget Monitor
=================

Global monthly spend cap for OpenAI calls.

Every call is priced from a per-1k-token table and appended to the
``ai_requests`` ledger; the month's sum decides whether another call fits.
"""

import logging
from datetime import datetime, timezone
from decimal import ROUND_UP, Decimal
from typing import Optional
import uuid

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from karma_diary.config import settings
from karma_diary.models.ai import AIRequest

logger = logging.getLogger(__name__)

# USD per 1k tokens
COST_PER_1K_TOKENS = {
    "gpt-3.5-turbo": 0.0015,
    "gpt-4": 0.03,
    "gpt-4o": 0.005,
    "gpt-4o-mini": 0.00015,
}
DEFAULT_PRICED_MODEL = "gpt-4o"

USAGE_WARNING_PERCENT = 80

# Scale of ai_requests.cost
LEDGER_PRECISION = Decimal("0.0001")


def estimate_cost(tokens: int, model: str = DEFAULT_PRICED_MODEL) -> float:
    """Price ``tokens`` for ``model``; unknown models use the gpt-4o rate."""
    rate = COST_PER_1K_TOKENS.get(model, COST_PER_1K_TOKENS[DEFAULT_PRICED_MODEL])
    return (tokens / 1000) * rate


def ledger_cost(tokens: int, model: str = DEFAULT_PRICED_MODEL) -> Decimal:
    """
    Cost as stored in the ledger, rounded up to the column scale. A call
    with any tokens is never recorded as free.
    """
    rate = Decimal(str(COST_PER_1K_TOKENS.get(model, COST_PER_1K_TOKENS[DEFAULT_PRICED_MODEL])))
    return (rate * tokens / 1000).quantize(LEDGER_PRECISION, rounding=ROUND_UP)


def summarize_budget(used: float, limit: float) -> dict:
    remaining = max(0.0, limit - used)
    percentage = (used / limit) * 100 if limit > 0 else 100.0
    return {
        "used": round(used, 4),
        "limit": limit,
        "remaining": round(remaining, 4),
        "percentage": round(percentage, 2),
    }


def alert_level(percentage: float) -> str:
    if percentage > 90:
        return "critical"
    if percentage > 75:
        return "warning"
    return "normal"


def start_of_month(now: Optional[datetime] = None) -> datetime:
    now = now or datetime.now(timezone.utc)
    return now.replace(day=1, hour=0, minute=0, second=0, microsecond=0)


class BudgetMonitor:
    """Monthly AI spend tracking against ``AI_MONTHLY_BUDGET_USD``."""

    def __init__(self, db: AsyncSession, monthly_limit: Optional[float] = None):
        self.db = db
        self.monthly_limit = (
            monthly_limit if monthly_limit is not None else settings.AI_MONTHLY_BUDGET_USD
        )

    async def _month_spend(self) -> float:
        stmt = select(func.coalesce(func.sum(AIRequest.cost), 0)).where(
            AIRequest.created_at >= start_of_month()
        )
        used = await self.db.scalar(stmt)
        return float(used or 0)

    async def check_monthly_budget(self) -> dict:
        """
        Spend since the first day of the current month (UTC).

        Returns:
            used, limit, remaining (never negative), percentage
        """
        return summarize_budget(await self._month_spend(), self.monthly_limit)

    async def can_make_request(
        self,
        estimated_tokens: int = 200,
        model: str = DEFAULT_PRICED_MODEL,
    ) -> bool:
        budget = await self.check_monthly_budget()
        if budget["used"] >= self.monthly_limit:
            logger.warning("AI budget exhausted: $%.2f of $%.2f", budget["used"], self.monthly_limit)
            return False

        if budget["remaining"] < estimate_cost(estimated_tokens, model):
            logger.warning("AI budget nearly exhausted, $%.4f left", budget["remaining"])
            return False
        return True

    async def record_usage(
        self,
        user_id: Optional[uuid.UUID],
        request_type: str,
        tokens: int,
        model: str = DEFAULT_PRICED_MODEL,
    ) -> AIRequest:
        """Append a ledger row and warn once spend passes 80 %."""
        request = AIRequest(
            user_id=user_id,
            request_type=request_type,
            model=model,
            tokens_used=tokens,
            cost=ledger_cost(tokens, model),
        )
        self.db.add(request)
        await self.db.flush()

        budget = await self.check_monthly_budget()
        if budget["percentage"] > USAGE_WARNING_PERCENT:
            logger.warning(
                "AI budget at %.0f%% ($%.2f/$%.2f)",
                budget["percentage"], budget["used"], self.monthly_limit,
            )
        return request

    async def get_user_monthly_usage(self, user_id: uuid.UUID) -> dict:
        stmt = select(
            func.count(AIRequest.request_id),
            func.coalesce(func.sum(AIRequest.tokens_used), 0),
            func.coalesce(func.sum(AIRequest.cost), 0),
        ).where(
            AIRequest.user_id == user_id,
            AIRequest.created_at >= start_of_month(),
        )
        count, tokens, cost = (await self.db.execute(stmt)).one()
        return {"count": int(count or 0), "tokens": int(tokens or 0), "cost": float(cost or 0)}

    async def get_budget_status(self) -> dict:
        budget = await self.check_monthly_budget()
        budget["alert_level"] = alert_level(budget["percentage"])
        return budget
