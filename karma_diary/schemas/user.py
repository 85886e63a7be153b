"""
User Schemas
============

Pydantic schemas for profile, settings and reminder setup.
"""

from typing import Optional

from pydantic import BaseModel, Field

from karma_diary.core.reminder_modes import (
    MAX_DAILY_PRINCIPLES,
    MIN_DAILY_PRINCIPLES,
    NotificationType,
)


class ProfileUpdate(BaseModel):
    """Request schema for PATCH /user/profile."""

    first_name: Optional[str] = Field(None, max_length=100)
    last_name: Optional[str] = Field(None, max_length=100)
    username: Optional[str] = Field(None, max_length=100)
    avatar_url: Optional[str] = Field(None, max_length=500)


class SettingsUpdate(BaseModel):
    """Request schema for PATCH /user/settings."""

    notification_type: Optional[NotificationType] = None
    custom_times: Optional[list[str]] = Field(None, max_length=24)
    language: Optional[str] = Field(None, min_length=2, max_length=5)
    timezone: Optional[str] = Field(None, max_length=50)
    reminders_enabled: Optional[bool] = None


class ReminderSetupRequest(BaseModel):
    """Request schema for POST /user/setup-reminders."""

    reminder_mode: str
    daily_principles_count: int = Field(..., description=f"{MIN_DAILY_PRINCIPLES}..{MAX_DAILY_PRINCIPLES}")
    custom_times: Optional[list[str]] = Field(None, max_length=24)
