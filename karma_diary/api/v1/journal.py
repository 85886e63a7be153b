"""
Journal API Endpoints
=====================

Journal entry listing, creation and editing.
"""

import logging
from typing import Optional
import uuid

from fastapi import APIRouter, Query, status

from karma_diary.dependencies import CurrentUser, DBSession
from karma_diary.models.journal import EntrySource, JournalEntry
from karma_diary.schemas.common import DataResponse, PaginatedResponse, PaginationMeta
from karma_diary.schemas.journal import (
    JournalEntryCreate,
    JournalEntryResponse,
    JournalEntryUpdate,
)
from karma_diary.services.achievement_service import ACHIEVEMENT_CATALOG
from karma_diary.services.journal_service import MAX_PAGE_SIZE, JournalService

logger = logging.getLogger(__name__)

router = APIRouter()


def entry_to_dict(entry: JournalEntry) -> dict:
    return JournalEntryResponse.model_validate(entry).model_dump(mode="json")


@router.get("/entries", response_model=PaginatedResponse[JournalEntryResponse])
async def list_entries(
    current_user: CurrentUser,
    db: DBSession,
    limit: int = Query(default=20, ge=1, le=MAX_PAGE_SIZE),
    offset: int = Query(default=0, ge=0),
    principle_id: Optional[int] = Query(default=None, ge=1, le=10),
):
    """Newest-first page of the user's entries."""
    entries, total = await JournalService(db).get_entries_page(
        current_user.user_id,
        limit=limit,
        offset=offset,
        principle_number=principle_id,
    )
    return PaginatedResponse[JournalEntryResponse](
        data=[JournalEntryResponse.model_validate(e) for e in entries],
        pagination=PaginationMeta(
            total=total,
            limit=limit,
            offset=offset,
            has_more=offset + len(entries) < total,
        ),
    )


@router.post("/entries", response_model=DataResponse, status_code=status.HTTP_201_CREATED)
async def create_entry(request: JournalEntryCreate, current_user: CurrentUser, db: DBSession):
    """
    Record an entry.

    Stats and achievements are updated in the same transaction.
    """
    outcome = await JournalService(db).record_entry(
        current_user,
        content=request.content,
        principle_number=request.principle_id,
        category=request.category,
        mood=request.mood,
        energy_level=request.energy_level,
        source=EntrySource.WEB,
        is_skipped=request.is_skipped,
    )
    return DataResponse(
        data={
            "entry": entry_to_dict(outcome.entry),
            "streak_days": outcome.stats.streak_days,
            "total_entries": outcome.stats.total_entries,
            "new_achievements": [
                {"type": kind.value, **ACHIEVEMENT_CATALOG[kind]} for kind in outcome.unlocked
            ],
        },
        message="Journal entry created",
    )


@router.get("/entries/{entry_id}", response_model=DataResponse)
async def get_entry(entry_id: uuid.UUID, current_user: CurrentUser, db: DBSession):
    entry = await JournalService(db).get_entry_or_404(entry_id, current_user.user_id)
    return DataResponse(data=entry_to_dict(entry))


@router.patch("/entries/{entry_id}", response_model=DataResponse)
async def update_entry(
    entry_id: uuid.UUID,
    request: JournalEntryUpdate,
    current_user: CurrentUser,
    db: DBSession,
):
    """Edit an entry owned by the caller; other users' entries are 404."""
    journal_service = JournalService(db)
    entry = await journal_service.get_entry_or_404(entry_id, current_user.user_id)
    entry = await journal_service.update_entry(entry, request.model_dump(exclude_unset=True))
    return DataResponse(data=entry_to_dict(entry), message="Journal entry updated")
