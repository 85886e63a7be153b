"""
Dashboard API Endpoints
=======================
"""

from fastapi import APIRouter

from karma_diary.dependencies import CurrentUser, DBSession
from karma_diary.schemas.common import DataResponse
from karma_diary.services.user_service import UserService

router = APIRouter()


@router.get("/today-plan", response_model=DataResponse)
async def today_plan(current_user: CurrentUser, db: DBSession):
    """Today's principles with their reminder times."""
    return DataResponse(data=await UserService(db).get_today_plan(current_user))
