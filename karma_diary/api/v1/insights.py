"""
Insights API Endpoints
======================

Daily principle insight, available on every plan. Falls back to a fixed
text when OpenAI is unavailable.
"""

from fastapi import APIRouter, Depends, Query

from karma_diary.core.rate_limit import create_rate_limit_dependency
from karma_diary.dependencies import CurrentUser, DBSession
from karma_diary.schemas.common import DataResponse
from karma_diary.services.ai_service import AIService

router = APIRouter(dependencies=[Depends(create_rate_limit_dependency("ai"))])


@router.get("/daily/{principle_number}", response_model=DataResponse)
async def daily_insight(
    principle_number: int,
    current_user: CurrentUser,
    db: DBSession,
    regenerate: bool = Query(default=False),
):
    result = await AIService(db).get_daily_insight(current_user, principle_number, regenerate=regenerate)
    return DataResponse(data=result)
