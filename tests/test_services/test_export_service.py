"""
Tests for Export Service
"""

import pytest
from datetime import datetime, timezone

from exceptions import NotFoundError
from models import CollaboratorNote, SymptomEntry
from services.export_service import ExportService


UTC = timezone.utc


@pytest.fixture
def export_service():
    return ExportService()


class TestBuildExport:

    @pytest.mark.asyncio
    @pytest.mark.database
    async def test_export_structure(self, export_service, db_session, test_journal, intake_history, test_entry):
        bundle = await export_service.build_export(test_journal.id, tz=UTC, db=db_session)

        assert bundle["journal_id"] == test_journal.id
        assert bundle["summary"] == {
            "exported_entries": 1,
            "exported_medications": 1,
            "exported_schedules": 1,
            "exported_intakes": 4,
            "exported_notes": 0,
        }
        assert bundle["collaborator_notes"] == []
        medication = bundle["medications"][0]
        assert medication["name"] == "Sertraline"
        assert medication["schedules"][0]["weekdays"] == ""
        assert len(medication["intakes"]) == 4

    @pytest.mark.asyncio
    @pytest.mark.database
    async def test_orphan_intake_linked_to_same_day_entry(
        self, export_service, db_session, test_journal, intake_history, test_entry
    ):
        same_day = next(i for i in intake_history if i.scheduled_date.day == 4)

        bundle = await export_service.build_export(test_journal.id, tz=UTC, db=db_session)

        records = {r["id"]: r for r in bundle["medications"][0]["intakes"]}
        assert records[same_day.id]["entry_id"] == test_entry.id
        assert records[same_day.id]["entry_link_inferred"] is True
        assert bundle["entries"][0]["medication_intake_ids"] == [same_day.id]

        others = [r for r in records.values() if r["id"] != same_day.id]
        assert all(r["entry_id"] is None for r in others)

    @pytest.mark.asyncio
    @pytest.mark.database
    async def test_explicit_link_not_marked_inferred(
        self, export_service, db_session, test_journal, intake_history, test_entry
    ):
        late_entry = SymptomEntry(
            journal_id=test_journal.id,
            timestamp=datetime(2024, 3, 5, 20, 0, tzinfo=UTC),
            severity=2
        )
        db_session.add(late_entry)
        db_session.flush()
        linked = next(i for i in intake_history if i.scheduled_date.day == 5)
        linked.entry_id = late_entry.id
        db_session.commit()

        bundle = await export_service.build_export(test_journal.id, tz=UTC, db=db_session)

        records = {r["id"]: r for r in bundle["medications"][0]["intakes"]}
        assert records[linked.id]["entry_id"] == late_entry.id
        assert records[linked.id]["entry_link_inferred"] is False
        assert records[linked.id]["origin"] == "scheduled"

    @pytest.mark.asyncio
    @pytest.mark.database
    async def test_collaborator_notes_exported_oldest_first(
        self, export_service, db_session, test_journal, test_entry
    ):
        db_session.add_all([
            CollaboratorNote(
                journal_id=test_journal.id,
                text="Ask about the afternoon dip",
                timestamp=datetime(2024, 3, 5, 9, 0, tzinfo=UTC)
            ),
            CollaboratorNote(
                journal_id=test_journal.id,
                entry_id=test_entry.id,
                author_name="Dr. Okafor",
                text="Severity looks stable",
                timestamp=datetime(2024, 3, 4, 18, 0, tzinfo=UTC)
            ),
        ])
        db_session.commit()

        bundle = await export_service.build_export(test_journal.id, tz=UTC, db=db_session)

        notes = bundle["collaborator_notes"]
        assert [n["text"] for n in notes] == ["Severity looks stable", "Ask about the afternoon dip"]
        assert notes[0]["entry_id"] == test_entry.id
        assert notes[0]["author_name"] == "Dr. Okafor"
        assert notes[1]["entry_id"] is None
        assert bundle["summary"]["exported_notes"] == 2

    @pytest.mark.asyncio
    @pytest.mark.database
    async def test_missing_journal(self, export_service, db_session):
        with pytest.raises(NotFoundError):
            await export_service.build_export("missing", tz=UTC, db=db_session)
