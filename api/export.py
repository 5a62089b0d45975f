"""
Export API Router
Endpoint for the structured journal export
"""

from datetime import tzinfo
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from api.deps import get_db, get_timezone, services
from api.schemas.export import ExportResponse


router = APIRouter(prefix="/journals", tags=["export"])


@router.get("/{journal_id}/export", response_model=ExportResponse)
async def export_journal(
    journal_id: str,
    tz: tzinfo = Depends(get_timezone),
    db: Session = Depends(get_db)
):
    """
    Export entries, medications, schedules and intakes

    Intakes logged without an entry are linked to the nearest entry of the same day
    (**entry_link_inferred** marks those links).
    """
    export_service = services.get_export_service()
    bundle = await export_service.build_export(journal_id, tz=tz, db=db)
    return ExportResponse(**bundle)
