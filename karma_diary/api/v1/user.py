"""
User API Endpoints
==================

Profile, settings, stats and reminder setup for the current user.
"""

import logging

from fastapi import APIRouter, Query

from karma_diary.core.plans import get_feature_limits
from karma_diary.core.reminder_modes import REMINDER_MODES
from karma_diary.dependencies import CurrentUser, DBSession
from karma_diary.models.journal import UserStats
from karma_diary.schemas.common import DataResponse
from karma_diary.schemas.user import ProfileUpdate, ReminderSetupRequest, SettingsUpdate
from karma_diary.services.principle_service import PrincipleService
from karma_diary.services.stats_service import StatsService
from karma_diary.services.subscription_service import SubscriptionService
from karma_diary.services.user_service import UserService, user_to_dict

logger = logging.getLogger(__name__)

router = APIRouter()


def stats_to_dict(stats: UserStats) -> dict:
    return {
        "total_entries": stats.total_entries,
        "streak_days": stats.streak_days,
        "longest_streak": stats.longest_streak,
        "last_entry_date": stats.last_entry_date.isoformat() if stats.last_entry_date else None,
        "average_mood": stats.average_mood,
        "average_energy": stats.average_energy,
        "principle_completions": stats.principle_completions or {},
        "weekly_goal": stats.weekly_goal,
        "monthly_goal": stats.monthly_goal,
    }


def schedule_to_dict(schedule) -> dict:
    return {"time": schedule.time, "type": schedule.type, "enabled": schedule.enabled}


@router.get("/me", response_model=DataResponse)
async def get_me(current_user: CurrentUser, db: DBSession):
    """Current user with plan and feature limits."""
    plan = await SubscriptionService(db).get_current_plan(current_user.user_id)
    return DataResponse(data={
        "user": user_to_dict(current_user),
        "plan": plan.value,
        "feature_limits": get_feature_limits(plan),
    })


@router.patch("/profile", response_model=DataResponse)
async def update_profile(request: ProfileUpdate, current_user: CurrentUser, db: DBSession):
    user = await UserService(db).update_profile(current_user, request.model_dump(exclude_unset=True))
    return DataResponse(data={"user": user_to_dict(user)}, message="Profile updated")


@router.patch("/settings", response_model=DataResponse)
async def update_settings(request: SettingsUpdate, current_user: CurrentUser, db: DBSession):
    user = await UserService(db).update_settings(current_user, request.model_dump(exclude_unset=True))
    return DataResponse(data={"user": user_to_dict(user)}, message="Settings updated")


@router.patch("/onboarding/complete", response_model=DataResponse)
async def complete_onboarding(current_user: CurrentUser, db: DBSession):
    user = await UserService(db).complete_onboarding(current_user)
    return DataResponse(data={"user": user_to_dict(user)})


@router.post("/next-principle", response_model=DataResponse)
async def next_principle(current_user: CurrentUser, db: DBSession):
    """Advance the user to the next principle in the rotation."""
    principles = PrincipleService(db)
    number = await principles.advance(current_user)
    title = await principles.get_title(number)
    return DataResponse(data={"current_principle": number, "title": title})


@router.get("/practice-state", response_model=DataResponse)
async def practice_state(current_user: CurrentUser, db: DBSession):
    return DataResponse(data=await UserService(db).get_practice_state(current_user))


@router.get("/stats", response_model=DataResponse)
async def get_stats(current_user: CurrentUser, db: DBSession):
    stats = await StatsService(db).get_or_create_stats(current_user.user_id)
    return DataResponse(data=stats_to_dict(stats))


@router.get("/analytics", response_model=DataResponse)
async def get_analytics(
    current_user: CurrentUser,
    db: DBSession,
    days: int = Query(default=30, ge=1, le=365),
):
    """
    Mood and energy trend with goal progress.

    Without extended analytics the window is capped at 7 days.
    """
    plan = await SubscriptionService(db).get_current_plan(current_user.user_id)
    extended = get_feature_limits(plan)["extended_analytics"]
    if not extended:
        days = min(days, 7)
    analytics = await StatsService(db).get_analytics(current_user.user_id, days=days)
    analytics["extended"] = extended
    return DataResponse(data=analytics)


@router.get("/reminder-settings", response_model=DataResponse)
async def reminder_settings(current_user: CurrentUser, db: DBSession):
    schedules = await UserService(db).get_schedules(current_user.user_id)
    return DataResponse(data={
        "reminder_mode": current_user.reminder_mode,
        "daily_principles_count": current_user.daily_principles_count,
        "notification_type": current_user.notification_type,
        "reminders_enabled": current_user.reminders_enabled,
        "timezone": current_user.timezone,
        "schedule": [schedule_to_dict(s) for s in schedules],
        "available_modes": [mode.to_dict() for mode in REMINDER_MODES.values()],
    })


@router.post("/setup-reminders", response_model=DataResponse)
async def setup_reminders(request: ReminderSetupRequest, current_user: CurrentUser, db: DBSession):
    """Replace the reminder schedule with a preset or custom one."""
    schedules = await UserService(db).setup_reminders(
        current_user,
        reminder_mode=request.reminder_mode,
        daily_principles_count=request.daily_principles_count,
        custom_times=request.custom_times,
    )
    return DataResponse(
        data={
            "reminder_mode": current_user.reminder_mode,
            "daily_principles_count": current_user.daily_principles_count,
            "schedule": [schedule_to_dict(s) for s in schedules],
        },
        message="Reminders configured",
    )
