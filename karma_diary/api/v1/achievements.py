"""
Achievements API Endpoints
==========================
"""

from fastapi import APIRouter

from karma_diary.dependencies import CurrentUser, DBSession
from karma_diary.schemas.common import BaseResponse
from karma_diary.services.achievement_service import AchievementService

router = APIRouter()


@router.get("", response_model=BaseResponse[list[dict]])
async def list_achievements(current_user: CurrentUser, db: DBSession):
    """Every achievement with its unlock state and progress."""
    items = await AchievementService(db).list_with_progress(current_user.user_id)
    return BaseResponse(data=items)
