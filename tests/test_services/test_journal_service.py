"""
Tests for Journal Service and Journal Store
Entries, cascades, store errors and change notification
"""

import pytest
from datetime import datetime, timedelta, timezone

from exceptions import ConflictError, InvariantViolation, NotFoundError
from models import CollaboratorNote, Journal, Medication, MedicationIntake, SymptomEntry
from services.journal_service import JournalService
from services.journal_store import ChangeNotifier, JournalStore, StoreChange, change_notifier


UTC = timezone.utc


@pytest.fixture
def journal_service():
    """Create journal service instance"""
    return JournalService()


# =============================================================================
# Journals and Entries
# =============================================================================

class TestJournals:

    @pytest.mark.asyncio
    @pytest.mark.database
    async def test_create_and_list(self, journal_service, db_session):
        journal = await journal_service.create_journal("Headaches", db=db_session)
        journals = await journal_service.list_journals(db=db_session)
        assert [j.id for j in journals] == [journal.id]
        assert journal.title == "Headaches"

    @pytest.mark.asyncio
    @pytest.mark.database
    async def test_delete_cascades(self, journal_service, db_session, test_journal, intake_history, test_entry):
        assert await journal_service.delete_journal(test_journal.id, db=db_session)
        assert db_session.query(Medication).count() == 0
        assert db_session.query(MedicationIntake).count() == 0
        assert db_session.query(SymptomEntry).count() == 0
        assert not await journal_service.delete_journal(test_journal.id, db=db_session)


class TestEntries:

    @pytest.mark.asyncio
    @pytest.mark.database
    async def test_add_entry(self, journal_service, db_session, test_journal):
        stamp = datetime(2024, 3, 4, 9, 0, tzinfo=UTC)
        entry = await journal_service.add_entry(
            test_journal.id, severity=7, timestamp=stamp, headache=8, is_menstruating=True, db=db_session
        )
        assert entry.timestamp == stamp
        assert entry.severity == 7
        assert entry.is_menstruating

    @pytest.mark.asyncio
    @pytest.mark.database
    async def test_out_of_range_score_rejected(self, journal_service, db_session, test_journal):
        with pytest.raises(InvariantViolation):
            await journal_service.add_entry(test_journal.id, severity=11, db=db_session)

    @pytest.mark.asyncio
    @pytest.mark.database
    async def test_add_to_missing_journal(self, journal_service, db_session):
        with pytest.raises(NotFoundError):
            await journal_service.add_entry("missing", severity=3, db=db_session)

    @pytest.mark.asyncio
    @pytest.mark.database
    async def test_list_entries_bounded_and_ordered(self, journal_service, db_session, test_journal):
        base = datetime(2024, 3, 1, 9, 0, tzinfo=UTC)
        for offset in (2, 0, 1, 5):
            await journal_service.add_entry(
                test_journal.id, severity=offset + 1, timestamp=base + timedelta(days=offset), db=db_session
            )

        entries = await journal_service.list_entries(
            test_journal.id, start=base, end=base + timedelta(days=2), db=db_session
        )
        assert [e.severity for e in entries] == [1, 2, 3]

    @pytest.mark.asyncio
    @pytest.mark.database
    async def test_update_entry(self, journal_service, db_session, test_entry):
        updated = await journal_service.update_entry(
            test_entry.id, {"severity": 2, "note": "Better after lunch"}, db=db_session
        )
        assert updated.severity == 2
        assert updated.note == "Better after lunch"

        with pytest.raises(InvariantViolation):
            await journal_service.update_entry(test_entry.id, {"journal_id": "x"}, db=db_session)

    @pytest.mark.asyncio
    @pytest.mark.database
    async def test_delete_entry_unlinks_intakes(self, journal_service, db_session, intake_history, test_entry):
        intake = intake_history[0]
        intake.entry_id = test_entry.id
        db_session.commit()

        assert await journal_service.delete_entry(test_entry.id, db=db_session)

        db_session.expire_all()
        assert db_session.get(MedicationIntake, intake.id).entry_id is None


class TestCollaboratorNotes:

    @pytest.mark.asyncio
    @pytest.mark.database
    async def test_add_and_list_oldest_first(self, journal_service, db_session, test_journal, test_entry):
        later = await journal_service.add_note(
            test_journal.id, "Try moving the dose earlier",
            timestamp=datetime(2024, 3, 6, 10, 0, tzinfo=UTC), db=db_session
        )
        earlier = await journal_service.add_note(
            test_journal.id, "  Worst day this week  ", entry_id=test_entry.id, author_name="Sam",
            timestamp=datetime(2024, 3, 4, 20, 0, tzinfo=UTC), db=db_session
        )

        notes = await journal_service.list_notes(test_journal.id, db=db_session)
        assert [n.id for n in notes] == [earlier.id, later.id]
        assert earlier.text == "Worst day this week"
        assert earlier.author_name == "Sam"

        on_entry = await journal_service.list_notes(test_journal.id, entry_id=test_entry.id, db=db_session)
        assert [n.id for n in on_entry] == [earlier.id]

    @pytest.mark.asyncio
    @pytest.mark.database
    async def test_blank_text_rejected(self, journal_service, db_session, test_journal):
        with pytest.raises(InvariantViolation):
            await journal_service.add_note(test_journal.id, "   ", db=db_session)

    @pytest.mark.asyncio
    @pytest.mark.database
    async def test_blank_author_is_anonymous(self, journal_service, db_session, test_journal):
        note = await journal_service.add_note(test_journal.id, "Checked in", author_name="  ", db=db_session)
        assert note.author_name is None

    @pytest.mark.asyncio
    @pytest.mark.database
    async def test_entry_of_other_journal_rejected(self, journal_service, db_session, test_entry):
        other = await journal_service.create_journal("Other", db=db_session)
        with pytest.raises(InvariantViolation):
            await journal_service.add_note(other.id, "Wrong place", entry_id=test_entry.id, db=db_session)

    @pytest.mark.asyncio
    @pytest.mark.database
    async def test_missing_journal_or_entry(self, journal_service, db_session, test_journal):
        with pytest.raises(NotFoundError):
            await journal_service.add_note("missing", "Hello", db=db_session)
        with pytest.raises(NotFoundError):
            await journal_service.add_note(test_journal.id, "Hello", entry_id="missing", db=db_session)
        with pytest.raises(NotFoundError):
            await journal_service.list_notes("missing", db=db_session)

    @pytest.mark.asyncio
    @pytest.mark.database
    async def test_entry_delete_keeps_note(self, journal_service, db_session, test_journal, test_entry):
        note = await journal_service.add_note(
            test_journal.id, "Linked to the entry", entry_id=test_entry.id, db=db_session
        )

        assert await journal_service.delete_entry(test_entry.id, db=db_session)

        db_session.expire_all()
        kept = db_session.get(CollaboratorNote, note.id)
        assert kept is not None
        assert kept.entry_id is None

    @pytest.mark.asyncio
    @pytest.mark.database
    async def test_journal_delete_removes_notes(self, journal_service, db_session, test_journal):
        await journal_service.add_note(test_journal.id, "Goes with the journal", db=db_session)

        assert await journal_service.delete_journal(test_journal.id, db=db_session)
        assert db_session.query(CollaboratorNote).count() == 0


# =============================================================================
# Store
# =============================================================================

class TestJournalStore:

    @pytest.mark.database
    def test_require_missing(self, db_session):
        with pytest.raises(NotFoundError) as exc_info:
            JournalStore(db_session).require(Journal, "missing")
        assert exc_info.value.record_id == "missing"

    @pytest.mark.database
    def test_duplicate_occurrence_becomes_conflict(self, db_session, intake_history):
        original = intake_history[0]
        store = JournalStore(db_session)
        with pytest.raises(ConflictError):
            store.add(MedicationIntake(
                medication_id=original.medication_id,
                schedule_id=original.schedule_id,
                timestamp=original.timestamp,
                scheduled_date=original.scheduled_date,
                origin=original.origin
            ))
        store.rollback()

    @pytest.mark.database
    def test_latest_intake_times(self, db_session, test_medication, intake_history):
        latest = JournalStore(db_session).latest_intake_times([test_medication.id, "other"])
        assert latest == {test_medication.id: max(i.timestamp for i in intake_history)}

    @pytest.mark.database
    def test_commit_publishes_change(self, db_session):
        notifier = ChangeNotifier()
        received = []
        unsubscribe = notifier.subscribe(received.append)

        store = JournalStore(db_session, notifier=notifier)
        journal = store.add(Journal(title="Observed"))
        store.commit(StoreChange("journal.created", journal.id, (journal.id,)))

        assert received == [StoreChange("journal.created", journal.id, (journal.id,))]
        unsubscribe()
        assert notifier.subscriber_count == 0

    @pytest.mark.database
    def test_failing_subscriber_does_not_break_commit(self, db_session):
        notifier = ChangeNotifier()
        received = []

        def broken(change):
            raise RuntimeError("observer failure")

        notifier.subscribe(broken)
        notifier.subscribe(received.append)

        store = JournalStore(db_session, notifier=notifier)
        journal = store.add(Journal(title="Observed"))
        store.commit(StoreChange("journal.created", journal.id))

        assert len(received) == 1
        assert db_session.get(Journal, journal.id) is not None

    @pytest.mark.asyncio
    @pytest.mark.database
    async def test_services_publish_on_shared_notifier(self, journal_service, db_session):
        received = []
        unsubscribe = change_notifier.subscribe(received.append)
        try:
            journal = await journal_service.create_journal("Shared", db=db_session)
        finally:
            unsubscribe()

        assert [c.kind for c in received] == ["journal.created"]
        assert received[0].journal_id == journal.id
