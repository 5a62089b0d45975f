"""
Quick Log API Router
Endpoint for the daily due / taken medication view
"""

from typing import Optional
from datetime import date, datetime, timezone, tzinfo
from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from api.deps import get_db, get_timezone, services
from api.schemas.quick_log import (
    DailySnapshotResponse,
    ScheduledOccurrenceResponse,
    AsNeededItemResponse,
)


router = APIRouter(prefix="/journals", tags=["quick-log"])


@router.get("/{journal_id}/quick-log", response_model=DailySnapshotResponse)
async def get_quick_log(
    journal_id: str,
    day: Optional[date] = Query(None, description="Calendar day in tz; defaults to today"),
    tz: tzinfo = Depends(get_timezone),
    db: Session = Depends(get_db)
):
    """
    Doses due on a day with their taken state, plus as-needed medications
    """
    quick_log_service = services.get_quick_log_service()
    selected = day or datetime.now(timezone.utc).astimezone(tz).date()

    snapshot = await quick_log_service.get_snapshot(journal_id, selected, tz=tz, db=db)

    return DailySnapshotResponse(
        journal_id=journal_id,
        day=snapshot.day,
        timezone=str(tz),
        has_medications=snapshot.has_medications,
        taken_count=snapshot.taken_count,
        pending_count=snapshot.pending_count,
        scheduled=[ScheduledOccurrenceResponse.model_validate(o) for o in snapshot.scheduled],
        as_needed=[AsNeededItemResponse.model_validate(i) for i in snapshot.as_needed]
    )
