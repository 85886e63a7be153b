"""
AI API Endpoints
================

OpenAI-backed insights, journal advice and mentor chat.

Access:
    - ``/insight/{n}`` and ``/advice`` need Plus or higher
    - ``/chat`` needs Pro
    - monthly request quotas per plan are enforced by ``AIService``
"""

import logging
from typing import Annotated

from fastapi import APIRouter, Depends

from karma_diary.core.feature_limits import require_plan
from karma_diary.core.plans import Plan
from karma_diary.core.rate_limit import create_rate_limit_dependency
from karma_diary.dependencies import CurrentUser, DBSession
from karma_diary.schemas.ai import ChatRequest
from karma_diary.schemas.common import DataResponse
from karma_diary.services.ai_service import AIService
from karma_diary.services.subscription_service import SubscriptionService

logger = logging.getLogger(__name__)

router = APIRouter(dependencies=[Depends(create_rate_limit_dependency("ai"))])

PlusPlan = Annotated[Plan, Depends(require_plan(Plan.PLUS))]
ProPlan = Annotated[Plan, Depends(require_plan(Plan.PRO))]


@router.get("/insight/{principle_number}", response_model=DataResponse)
async def personalized_insight(
    principle_number: int,
    current_user: CurrentUser,
    db: DBSession,
    plan: PlusPlan,
):
    result = await AIService(db).personalized_insight(current_user, plan, principle_number)
    return DataResponse(data=result)


@router.post("/advice", response_model=DataResponse)
async def journal_advice(current_user: CurrentUser, db: DBSession, plan: PlusPlan):
    """Advice drawn from the last ten journal entries."""
    return DataResponse(data=await AIService(db).analyze_entries(current_user, plan))


@router.post("/chat", response_model=DataResponse)
async def chat(request: ChatRequest, current_user: CurrentUser, db: DBSession, plan: ProPlan):
    result = await AIService(db).chat(current_user, plan, request.message, request.language)
    return DataResponse(data=result)


@router.get("/usage", response_model=DataResponse)
async def usage(current_user: CurrentUser, db: DBSession):
    """The caller's requests, tokens and cost this month against the plan quota."""
    plan = await SubscriptionService(db).get_current_plan(current_user.user_id)
    return DataResponse(data=await AIService(db).get_usage(current_user.user_id, plan))


@router.get("/budget", response_model=DataResponse)
async def budget(current_user: CurrentUser, db: DBSession):
    return DataResponse(data=await AIService(db).budget.get_budget_status())
