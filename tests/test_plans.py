"""
Plan Gate Tests
===============
"""

import pytest

from karma_diary.core.errors import PaymentRequiredError
from karma_diary.core.feature_limits import ensure_plan
from karma_diary.core.plans import (
    UNLIMITED,
    BillingPeriod,
    Plan,
    coerce_plan,
    get_feature_limits,
    get_plan_price,
    list_plans,
    plan_satisfies,
)


class TestPlanOrdering:

    @pytest.mark.parametrize(
        "current,required,expected",
        [
            (Plan.PRO, Plan.PLUS, True),
            (Plan.PLUS, Plan.PLUS, True),
            (Plan.LIGHT, Plan.PLUS, False),
            (Plan.TRIAL, Plan.LIGHT, False),
            (Plan.NONE, Plan.TRIAL, False),
            ("pro", "light", True),
        ],
    )
    def test_plan_satisfies(self, current, required, expected):
        assert plan_satisfies(current, required) is expected

    def test_unknown_labels_count_as_no_plan(self):
        assert coerce_plan("platinum") == Plan.NONE
        assert coerce_plan(None) == Plan.NONE


class TestEnsurePlan:

    def test_passes_when_plan_is_high_enough(self):
        ensure_plan(Plan.PRO, Plan.PLUS)

    def test_no_plan_asks_for_subscription(self):
        with pytest.raises(PaymentRequiredError) as exc_info:
            ensure_plan(Plan.NONE, Plan.PLUS)
        assert exc_info.value.status_code == 402
        assert exc_info.value.detail["code"] == "SUBSCRIPTION_REQUIRED"

    def test_lower_plan_asks_for_upgrade(self):
        with pytest.raises(PaymentRequiredError) as exc_info:
            ensure_plan(Plan.LIGHT, Plan.PRO)
        assert exc_info.value.detail["code"] == "PLAN_UPGRADE_REQUIRED"
        assert exc_info.value.detail["required_plan"] == "pro"


class TestFeatureLimits:

    def test_pro_has_unlimited_ai(self):
        assert get_feature_limits(Plan.PRO)["ai_requests_per_month"] == UNLIMITED

    def test_plus_has_monthly_quota(self):
        assert get_feature_limits("plus")["ai_requests_per_month"] == 5

    def test_trial_has_no_extended_analytics(self):
        assert get_feature_limits(Plan.TRIAL)["extended_analytics"] is False

    def test_free_plans_are_not_purchasable(self):
        assert get_plan_price(Plan.TRIAL, BillingPeriod.MONTHLY) is None
        assert {p["id"] for p in list_plans()} == {"light", "plus", "pro"}
