"""
Journal Service
Business logic for journals and symptom entries
"""

import logging
from typing import Dict, List, Optional, Any
from datetime import datetime, timezone
from sqlalchemy.orm import Session

from database import get_db_context
import models
from exceptions import InvariantViolation
from services.journal_store import JournalStore, StoreChange


logger = logging.getLogger(__name__)


ENTRY_FIELDS = {
    "timestamp", "severity", "headache", "nausea", "anxiety",
    "is_menstruating", "note", "sentiment_label", "sentiment_score"
}


class JournalService:
    """
    Service for journals and their symptom entries
    """

    async def create_journal(
        self,
        title: Optional[str] = None,
        db: Optional[Session] = None
    ) -> models.Journal:
        """Create an empty journal"""
        def _create(session: Session) -> models.Journal:
            store = JournalStore(session)
            journal = store.add(models.Journal(title=title))
            store.commit(StoreChange("journal.created", journal.id, (journal.id,)))
            logger.info(f"Created journal: {journal.id}")
            return journal

        if db:
            return _create(db)

        with get_db_context() as session:
            return _create(session)

    async def get_journal(
        self,
        journal_id: str,
        db: Optional[Session] = None
    ) -> Optional[models.Journal]:
        """Get journal by ID"""
        def _get(session: Session) -> Optional[models.Journal]:
            return JournalStore(session).get(models.Journal, journal_id)

        if db:
            return _get(db)

        with get_db_context() as session:
            return _get(session)

    async def list_journals(self, db: Optional[Session] = None) -> List[models.Journal]:
        def _list(session: Session) -> List[models.Journal]:
            return JournalStore(session).journals()

        if db:
            return _list(db)

        with get_db_context() as session:
            return _list(session)

    async def delete_journal(
        self,
        journal_id: str,
        db: Optional[Session] = None
    ) -> bool:
        """Delete a journal with all medications, schedules, intakes and entries"""
        def _delete(session: Session) -> bool:
            store = JournalStore(session)
            journal = store.get(models.Journal, journal_id)
            if not journal:
                return False
            store.delete(journal)
            store.commit(StoreChange("journal.deleted", journal_id, (journal_id,)))
            logger.info(f"Deleted journal: {journal_id}")
            return True

        if db:
            return _delete(db)

        with get_db_context() as session:
            return _delete(session)

    # ==================== ENTRIES ====================

    async def add_entry(
        self,
        journal_id: str,
        severity: int = 0,
        timestamp: Optional[datetime] = None,
        headache: Optional[int] = None,
        nausea: Optional[int] = None,
        anxiety: Optional[int] = None,
        is_menstruating: bool = False,
        note: Optional[str] = None,
        sentiment_label: Optional[str] = None,
        sentiment_score: Optional[float] = None,
        db: Optional[Session] = None
    ) -> models.SymptomEntry:
        """
        Record a symptom entry

        Args:
            journal_id: Owning journal
            severity: Overall severity 0-10 (0 = not rated)
            timestamp: When the symptoms were observed (defaults to now)
            headache: Optional headache score 0-10
            nausea: Optional nausea score 0-10
            anxiety: Optional anxiety score 0-10
            is_menstruating: Cycle flag
            note: Free-text note
            sentiment_label: Label from note analysis, if any
            sentiment_score: Score from note analysis, -1..1
            db: Database session

        Returns:
            Created SymptomEntry
        """
        def _add(session: Session) -> models.SymptomEntry:
            store = JournalStore(session)
            store.require(models.Journal, journal_id)

            entry = store.add(models.SymptomEntry(
                journal_id=journal_id,
                timestamp=timestamp or datetime.now(timezone.utc),
                severity=severity,
                headache=headache,
                nausea=nausea,
                anxiety=anxiety,
                is_menstruating=is_menstruating,
                note=note,
                sentiment_label=sentiment_label,
                sentiment_score=sentiment_score
            ))
            store.commit(StoreChange("entry.created", journal_id, (entry.id,)))
            logger.info(f"Added entry {entry.id} to journal {journal_id} (severity {entry.severity})")
            return entry

        if db:
            return _add(db)

        with get_db_context() as session:
            return _add(session)

    async def get_entry(
        self,
        entry_id: str,
        db: Optional[Session] = None
    ) -> Optional[models.SymptomEntry]:
        def _get(session: Session) -> Optional[models.SymptomEntry]:
            return JournalStore(session).get(models.SymptomEntry, entry_id)

        if db:
            return _get(db)

        with get_db_context() as session:
            return _get(session)

    async def list_entries(
        self,
        journal_id: str,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
        db: Optional[Session] = None
    ) -> List[models.SymptomEntry]:
        """Entries in chronological order, optionally bounded"""
        def _list(session: Session) -> List[models.SymptomEntry]:
            store = JournalStore(session)
            store.require(models.Journal, journal_id)
            return store.entries_for(journal_id, start, end)

        if db:
            return _list(db)

        with get_db_context() as session:
            return _list(session)

    async def update_entry(
        self,
        entry_id: str,
        updates: Dict[str, Any],
        db: Optional[Session] = None
    ) -> Optional[models.SymptomEntry]:
        """Update entry fields; unknown fields are rejected"""
        def _update(session: Session) -> Optional[models.SymptomEntry]:
            unknown = sorted(set(updates) - ENTRY_FIELDS)
            if unknown:
                raise InvariantViolation(f"Entry fields are not editable: {', '.join(unknown)}")

            store = JournalStore(session)
            entry = store.get(models.SymptomEntry, entry_id)
            if not entry:
                return None

            for field, value in updates.items():
                if field == "timestamp" and value is None:
                    raise InvariantViolation("Entry timestamp cannot be cleared")
                setattr(entry, field, value)

            store.commit(StoreChange("entry.updated", entry.journal_id, (entry.id,)))
            logger.info(f"Updated entry: {entry_id}")
            return entry

        if db:
            return _update(db)

        with get_db_context() as session:
            return _update(session)

    async def delete_entry(
        self,
        entry_id: str,
        db: Optional[Session] = None
    ) -> bool:
        """Delete an entry; linked intakes keep existing without the link"""
        def _delete(session: Session) -> bool:
            store = JournalStore(session)
            entry = store.get(models.SymptomEntry, entry_id)
            if not entry:
                return False
            journal_id = entry.journal_id
            store.delete(entry)
            store.commit(StoreChange("entry.deleted", journal_id, (entry_id,)))
            logger.info(f"Deleted entry: {entry_id}")
            return True

        if db:
            return _delete(db)

        with get_db_context() as session:
            return _delete(session)

    # ==================== COLLABORATOR NOTES ====================

    async def add_note(
        self,
        journal_id: str,
        text: str,
        entry_id: Optional[str] = None,
        author_name: Optional[str] = None,
        timestamp: Optional[datetime] = None,
        db: Optional[Session] = None
    ) -> models.CollaboratorNote:
        """
        Leave a collaborator note on a journal

        Args:
            journal_id: Journal the note belongs to
            text: Note body (trimmed, must not be blank)
            entry_id: Optional entry of the same journal the note is about
            author_name: Optional attribution; blank means anonymous
            timestamp: When the note was written (defaults to now)
            db: Database session

        Returns:
            Created CollaboratorNote
        """
        def _add(session: Session) -> models.CollaboratorNote:
            store = JournalStore(session)
            store.require(models.Journal, journal_id)
            if entry_id is not None:
                entry = store.require(models.SymptomEntry, entry_id)
                if entry.journal_id != journal_id:
                    raise InvariantViolation("Entry belongs to a different journal")

            note = store.add(models.CollaboratorNote(
                journal_id=journal_id,
                entry_id=entry_id,
                author_name=author_name,
                text=text,
                timestamp=timestamp or datetime.now(timezone.utc)
            ))
            store.commit(StoreChange("note.created", journal_id, (note.id,)))
            logger.info(f"Added collaborator note {note.id} to journal {journal_id}")
            return note

        if db:
            return _add(db)

        with get_db_context() as session:
            return _add(session)

    async def list_notes(
        self,
        journal_id: str,
        entry_id: Optional[str] = None,
        db: Optional[Session] = None
    ) -> List[models.CollaboratorNote]:
        """Notes of a journal, oldest first"""
        def _list(session: Session) -> List[models.CollaboratorNote]:
            store = JournalStore(session)
            store.require(models.Journal, journal_id)
            return store.notes_for(journal_id, entry_id)

        if db:
            return _list(db)

        with get_db_context() as session:
            return _list(session)


# Singleton instance
journal_service = JournalService()
