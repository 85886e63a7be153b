"""
Journal Schemas
===============

Pydantic schemas for journal entry endpoints.
"""

from datetime import datetime
from typing import Optional
import uuid

from pydantic import BaseModel, ConfigDict, Field

from karma_diary.models.journal import EntryCategory, EntrySource


class JournalEntryCreate(BaseModel):
    """Request schema for creating a journal entry."""

    content: str = Field(..., min_length=1, max_length=5000)
    principle_id: Optional[int] = Field(None, ge=1, le=10, description="Defaults to the current principle")
    category: EntryCategory = EntryCategory.REFLECTION
    mood: Optional[int] = Field(None, ge=1, le=10)
    energy_level: Optional[int] = Field(None, ge=1, le=10)
    is_skipped: bool = False


class JournalEntryUpdate(BaseModel):
    """Request schema for updating a journal entry."""

    content: Optional[str] = Field(None, min_length=1, max_length=5000)
    category: Optional[EntryCategory] = None
    mood: Optional[int] = Field(None, ge=1, le=10)
    energy_level: Optional[int] = Field(None, ge=1, le=10)
    is_completed: Optional[bool] = None
    is_skipped: Optional[bool] = None


class JournalEntryResponse(BaseModel):
    """Response schema for a journal entry."""

    model_config = ConfigDict(from_attributes=True, populate_by_name=True)

    entry_id: uuid.UUID
    principle_id: int = Field(validation_alias="principle_number")
    content: str
    category: EntryCategory
    mood: Optional[int] = None
    energy_level: Optional[int] = None
    is_completed: bool
    is_skipped: bool
    source: EntrySource
    created_at: datetime
