"""
Subscription Plans
==================

Single authority for plan ordering, the plan catalog and per-plan
feature limits. Every gate in the application compares plans through
``plan_satisfies``.
"""

from decimal import Decimal
from enum import Enum
from typing import Optional, Union


class Plan(str, Enum):
    """Subscription plans in ascending order of access."""
    NONE = "none"
    TRIAL = "trial"
    LIGHT = "light"
    PLUS = "plus"
    PRO = "pro"

    @property
    def level(self) -> int:
        return PLAN_LEVELS[self]


class BillingPeriod(str, Enum):
    """Billing period for paid plans."""
    MONTHLY = "monthly"
    YEARLY = "yearly"


PLAN_LEVELS = {
    Plan.NONE: 0,
    Plan.TRIAL: 1,
    Plan.LIGHT: 2,
    Plan.PLUS: 3,
    Plan.PRO: 4,
}

# Unlimited marker for numeric limits
UNLIMITED = -1


def coerce_plan(value: Union[str, Plan, None]) -> Plan:
    """Map stored labels to a Plan; unknown labels count as no plan."""
    if isinstance(value, Plan):
        return value
    try:
        return Plan(value)
    except ValueError:
        return Plan.NONE


def plan_satisfies(current: Union[str, Plan, None], required: Union[str, Plan]) -> bool:
    """True when ``current`` is at least ``required``."""
    return coerce_plan(current).level >= coerce_plan(required).level


# =============================================================================
# Catalog
# =============================================================================

PLAN_CATALOG = {
    Plan.LIGHT: {
        "name": "Light",
        "prices": {
            BillingPeriod.MONTHLY: Decimal("5.00"),
            BillingPeriod.YEARLY: Decimal("50.00"),
        },
    },
    Plan.PLUS: {
        "name": "Plus",
        "prices": {
            BillingPeriod.MONTHLY: Decimal("10.00"),
            BillingPeriod.YEARLY: Decimal("100.00"),
        },
    },
    Plan.PRO: {
        "name": "Pro",
        "prices": {
            BillingPeriod.MONTHLY: Decimal("20.00"),
            BillingPeriod.YEARLY: Decimal("200.00"),
        },
    },
}

CURRENCY = "EUR"


FEATURE_LIMITS = {
    Plan.NONE: {
        "ai_requests_per_month": 0,
        "ai_insights": False,
        "ai_chat": False,
        "extended_analytics": False,
        "telegram_reminders": True,
        "push_reminders": True,
        "priority_support": False,
    },
    Plan.TRIAL: {
        "ai_requests_per_month": 0,
        "ai_insights": False,
        "ai_chat": False,
        "extended_analytics": False,
        "telegram_reminders": True,
        "push_reminders": True,
        "priority_support": False,
    },
    Plan.LIGHT: {
        "ai_requests_per_month": 0,
        "ai_insights": False,
        "ai_chat": False,
        "extended_analytics": True,
        "telegram_reminders": True,
        "push_reminders": True,
        "priority_support": False,
    },
    Plan.PLUS: {
        "ai_requests_per_month": 5,
        "ai_insights": True,
        "ai_chat": False,
        "extended_analytics": True,
        "telegram_reminders": True,
        "push_reminders": True,
        "priority_support": False,
    },
    Plan.PRO: {
        "ai_requests_per_month": UNLIMITED,
        "ai_insights": True,
        "ai_chat": True,
        "extended_analytics": True,
        "telegram_reminders": True,
        "push_reminders": True,
        "priority_support": True,
    },
}


def get_feature_limits(plan: Union[str, Plan, None]) -> dict:
    """Get feature limits for a plan."""
    return FEATURE_LIMITS[coerce_plan(plan)]


def get_plan_price(plan: Plan, period: BillingPeriod) -> Optional[Decimal]:
    entry = PLAN_CATALOG.get(plan)
    if entry is None:
        return None
    return entry["prices"][period]


def list_plans() -> list[dict]:
    """Public plan catalog with prices and features."""
    return [
        {
            "id": plan.value,
            "name": entry["name"],
            "price_monthly": str(entry["prices"][BillingPeriod.MONTHLY]),
            "price_yearly": str(entry["prices"][BillingPeriod.YEARLY]),
            "currency": CURRENCY,
            "features": FEATURE_LIMITS[plan],
        }
        for plan, entry in PLAN_CATALOG.items()
    ]
