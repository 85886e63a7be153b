"""
Subscription Schemas
====================

Pydantic schemas for plan checkout.
"""

from pydantic import BaseModel

from karma_diary.core.plans import BillingPeriod, Plan


class SubscribeRequest(BaseModel):
    """Request schema for POST /subscriptions/subscribe."""

    plan: Plan
    billing_period: BillingPeriod = BillingPeriod.MONTHLY
