"""
Feature Limits
==============

Plan gates for protecting endpoints.

All denials are 402 with ``SUBSCRIPTION_REQUIRED`` (no plan at all) or
``PLAN_UPGRADE_REQUIRED`` (plan below the required one).
"""

from karma_diary.core.errors import ErrorCodes, PaymentRequiredError
from karma_diary.core.plans import Plan, plan_satisfies
from karma_diary.dependencies import CurrentUser, DBSession
from karma_diary.services.subscription_service import SubscriptionService


def ensure_plan(current: Plan, required: Plan) -> None:
    """Raise the 402 gate error unless ``current`` reaches ``required``."""
    if plan_satisfies(current, required):
        return

    if current == Plan.NONE:
        raise PaymentRequiredError(
            code=ErrorCodes.SUBSCRIPTION_REQUIRED,
            message="An active subscription is required",
            current_plan=current.value,
            required_plan=required.value,
            upgrade_url="/api/subscriptions/plans",
        )

    raise PaymentRequiredError(
        code=ErrorCodes.PLAN_UPGRADE_REQUIRED,
        message=f"This feature requires the {required.value} plan",
        current_plan=current.value,
        required_plan=required.value,
        upgrade_url="/api/subscriptions/plans",
    )


class PlanGate:
    """
    Dependency that resolves the caller's current plan and enforces a minimum.

    Usage:
        @router.post("/chat")
        async def chat(plan: Annotated[Plan, Depends(PlanGate(Plan.PRO))]):
            ...
    """

    def __init__(self, required: Plan):
        self.required = required

    async def __call__(self, current_user: CurrentUser, db: DBSession) -> Plan:
        current = await SubscriptionService(db).get_current_plan(current_user.user_id)
        ensure_plan(current, self.required)
        return current


def require_plan(required: Plan) -> PlanGate:
    return PlanGate(required)
