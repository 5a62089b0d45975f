"""
Journals API Router
Endpoints for journals and symptom entries
"""

from typing import Optional
from datetime import datetime
from fastapi import APIRouter, Depends, HTTPException, status, Query
from sqlalchemy.orm import Session

from api.deps import get_db, pagination_params, services
from api.schemas.journal import (
    JournalCreate,
    JournalResponse,
    EntryCreate,
    EntryUpdate,
    EntryResponse,
    EntryList,
    NoteCreate,
    NoteResponse,
    NoteList,
)


router = APIRouter(prefix="/journals", tags=["journals"])


@router.post("/", response_model=JournalResponse, status_code=status.HTTP_201_CREATED)
async def create_journal(
    journal_data: JournalCreate,
    db: Session = Depends(get_db)
):
    """
    Create a new journal
    """
    journal_service = services.get_journal_service()
    return await journal_service.create_journal(title=journal_data.title, db=db)


@router.get("/{journal_id}", response_model=JournalResponse)
async def get_journal(
    journal_id: str,
    db: Session = Depends(get_db)
):
    """
    Get a journal by ID
    """
    journal_service = services.get_journal_service()
    journal = await journal_service.get_journal(journal_id, db=db)
    if not journal:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Journal {journal_id} not found"
        )
    return journal


@router.delete("/{journal_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_journal(
    journal_id: str,
    db: Session = Depends(get_db)
):
    """
    Delete a journal and everything in it
    """
    journal_service = services.get_journal_service()
    if not await journal_service.delete_journal(journal_id, db=db):
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Journal {journal_id} not found"
        )


# ==================== ENTRIES ====================

@router.post("/{journal_id}/entries", response_model=EntryResponse, status_code=status.HTTP_201_CREATED)
async def create_entry(
    journal_id: str,
    entry_data: EntryCreate,
    db: Session = Depends(get_db)
):
    """
    Record a symptom entry

    - **severity**: Overall severity 0-10 (0 = not rated)
    - **headache / nausea / anxiety**: Optional sub-scores 0-10
    - **is_menstruating**: Cycle flag used by trend correlation
    """
    journal_service = services.get_journal_service()
    return await journal_service.add_entry(
        journal_id=journal_id,
        **entry_data.model_dump(),
        db=db
    )


@router.get("/{journal_id}/entries", response_model=EntryList)
async def list_entries(
    journal_id: str,
    start: Optional[datetime] = Query(None),
    end: Optional[datetime] = Query(None),
    pagination: dict = Depends(pagination_params),
    db: Session = Depends(get_db)
):
    """
    List entries of a journal in chronological order
    """
    journal_service = services.get_journal_service()
    entries = await journal_service.list_entries(journal_id, start=start, end=end, db=db)
    page = entries[pagination["offset"]:pagination["offset"] + pagination["page_size"]]
    return EntryList(
        journal_id=journal_id,
        entries=[EntryResponse.model_validate(e) for e in page],
        total=len(entries)
    )


@router.patch("/entries/{entry_id}", response_model=EntryResponse)
async def update_entry(
    entry_id: str,
    entry_data: EntryUpdate,
    db: Session = Depends(get_db)
):
    """
    Update a symptom entry
    """
    journal_service = services.get_journal_service()
    entry = await journal_service.update_entry(
        entry_id, entry_data.model_dump(exclude_unset=True), db=db
    )
    if not entry:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Entry {entry_id} not found"
        )
    return entry


@router.delete("/entries/{entry_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_entry(
    entry_id: str,
    db: Session = Depends(get_db)
):
    """
    Delete a symptom entry; linked intakes are kept
    """
    journal_service = services.get_journal_service()
    if not await journal_service.delete_entry(entry_id, db=db):
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Entry {entry_id} not found"
        )


# ==================== COLLABORATOR NOTES ====================

@router.post("/{journal_id}/notes", response_model=NoteResponse, status_code=status.HTTP_201_CREATED)
async def create_note(
    journal_id: str,
    note_data: NoteCreate,
    db: Session = Depends(get_db)
):
    """
    Leave a collaborator note

    - **entry_id**: Optional entry of this journal the note is about
    - **author_name**: Optional attribution
    """
    journal_service = services.get_journal_service()
    return await journal_service.add_note(
        journal_id=journal_id,
        **note_data.model_dump(),
        db=db
    )


@router.get("/{journal_id}/notes", response_model=NoteList)
async def list_notes(
    journal_id: str,
    entry_id: Optional[str] = Query(None, description="Only notes about this entry"),
    db: Session = Depends(get_db)
):
    """
    Collaborator notes of a journal, oldest first
    """
    journal_service = services.get_journal_service()
    notes = await journal_service.list_notes(journal_id, entry_id=entry_id, db=db)
    return NoteList(
        journal_id=journal_id,
        notes=[NoteResponse.model_validate(n) for n in notes],
        total=len(notes)
    )
