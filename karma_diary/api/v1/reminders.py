"""
Reminders API Endpoints
=======================

Reminder mode catalog and on-demand test reminders.
"""

import logging

from fastapi import APIRouter

from karma_diary.bot.loader import get_bot
from karma_diary.core.reminder_modes import (
    MAX_DAILY_PRINCIPLES,
    MIN_DAILY_PRINCIPLES,
    REMINDER_MODES,
)
from karma_diary.dependencies import CurrentUser, DBSession
from karma_diary.schemas.common import DataResponse
from karma_diary.services.notifications import build_senders
from karma_diary.services.reminder_service import ReminderService

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/modes", response_model=DataResponse)
async def list_modes():
    return DataResponse(data={
        "modes": [mode.to_dict() for mode in REMINDER_MODES.values()],
        "daily_principles": {"min": MIN_DAILY_PRINCIPLES, "max": MAX_DAILY_PRINCIPLES},
    })


@router.post("/test", response_model=DataResponse)
async def send_test(current_user: CurrentUser, db: DBSession):
    """Send the current principle reminder through every configured channel."""
    service = ReminderService(db, build_senders(db, get_bot()))
    result = await service.send_test_reminder(current_user)
    logger.info("Test reminder for %s: %s", current_user.user_id, result["channels"])
    return DataResponse(data=result)
