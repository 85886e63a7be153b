"""
Principles API Endpoints
========================

Public read access to the ten principles.
"""

from fastapi import APIRouter

from karma_diary.dependencies import DBSession
from karma_diary.schemas.common import BaseResponse, DataResponse
from karma_diary.services.principle_service import PrincipleService, principle_to_dict

router = APIRouter()


@router.get("", response_model=BaseResponse[list[dict]])
async def list_principles(db: DBSession):
    return BaseResponse(data=await PrincipleService(db).list_principles())


@router.get("/{number}", response_model=DataResponse)
async def get_principle(number: int, db: DBSession):
    """One principle; 400 outside 1..10, 404 when not seeded."""
    principle = await PrincipleService(db).get_by_number_or_404(number)
    return DataResponse(data=principle_to_dict(principle))
