"""
Export Service
Builds a structured export of a journal with reconciled intake/entry links
"""

import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional
from datetime import datetime, timezone, tzinfo
from sqlalchemy.orm import Session

from database import get_db_context
import models
from services.journal_store import JournalStore
from tools.reconciliation import ReconciliationResolver
from tools.schedule_engine import resolve_timezone
from tools.weekdays import WeekdaySet


logger = logging.getLogger(__name__)


@dataclass
class ExportSummary:
    exported_entries: int
    exported_medications: int
    exported_schedules: int
    exported_intakes: int
    exported_notes: int = 0

    def to_dict(self) -> Dict[str, int]:
        return {
            "exported_entries": self.exported_entries,
            "exported_medications": self.exported_medications,
            "exported_schedules": self.exported_schedules,
            "exported_intakes": self.exported_intakes,
            "exported_notes": self.exported_notes,
        }


def _entry_record(entry: models.SymptomEntry, intake_ids: List[str]) -> Dict[str, Any]:
    return {
        "id": entry.id,
        "journal_id": entry.journal_id,
        "timestamp": entry.timestamp,
        "severity": entry.severity,
        "headache": entry.headache,
        "nausea": entry.nausea,
        "anxiety": entry.anxiety,
        "is_menstruating": entry.is_menstruating,
        "note": entry.note,
        "sentiment_label": entry.sentiment_label,
        "sentiment_score": entry.sentiment_score,
        "medication_intake_ids": intake_ids,
    }


def _schedule_record(schedule: models.MedicationSchedule) -> Dict[str, Any]:
    return {
        "id": schedule.id,
        "medication_id": schedule.medication_id,
        "label": schedule.label,
        "amount": schedule.amount,
        "unit": schedule.unit,
        "cadence": schedule.cadence,
        "interval": schedule.interval,
        "weekday_mask": schedule.weekday_mask,
        "weekdays": str(WeekdaySet(schedule.weekday_mask or 0)),
        "hour": schedule.hour,
        "minute": schedule.minute,
        "timezone_identifier": schedule.timezone_identifier,
        "start_date": schedule.start_date,
        "is_active": schedule.is_active,
        "sort_order": schedule.sort_order,
    }


def _note_record(note: models.CollaboratorNote) -> Dict[str, Any]:
    return {
        "id": note.id,
        "journal_id": note.journal_id,
        "entry_id": note.entry_id,
        "author_name": note.author_name,
        "text": note.text,
        "timestamp": note.timestamp,
    }


def _intake_record(intake: models.MedicationIntake, entry_id: Optional[str]) -> Dict[str, Any]:
    return {
        "id": intake.id,
        "medication_id": intake.medication_id,
        "schedule_id": intake.schedule_id,
        "entry_id": entry_id,
        "entry_link_inferred": entry_id is not None and intake.entry_id is None,
        "amount": intake.amount,
        "unit": intake.unit,
        "timestamp": intake.timestamp,
        "scheduled_date": intake.scheduled_date,
        "origin": intake.origin.value if hasattr(intake.origin, "value") else intake.origin,
        "notes": intake.notes,
    }


class ExportService:
    """
    Service for journal data export
    """

    async def build_export(
        self,
        journal_id: str,
        tz: Optional[tzinfo] = None,
        db: Optional[Session] = None
    ) -> Dict[str, Any]:
        """
        Collect entries, notes, medications, schedules and intakes of a journal

        Intakes without an explicit entry link are assigned to the nearest entry on
        the same day.

        Returns:
            Dict with generated_at, journal_id, entries, collaborator_notes, medications and summary
        """
        def _export(session: Session) -> Dict[str, Any]:
            store = JournalStore(session)
            store.require(models.Journal, journal_id)
            zone = resolve_timezone(None, tz)

            entries = store.entries_for(journal_id)
            medications = store.medications_for(journal_id)
            medication_ids = [m.id for m in medications]
            schedules_by_medication = store.schedules_by_medication(medication_ids)
            intakes = store.intakes_in(medication_ids)
            notes = store.notes_for(journal_id)

            schedules_by_id = {
                s.id: s for group in schedules_by_medication.values() for s in group
            }
            assignments = ReconciliationResolver(zone).assign(
                intakes,
                entries,
                {m.id: m for m in medications},
                schedules_by_id,
            )

            intakes_by_entry: Dict[str, List[str]] = {}
            for intake in intakes:
                entry_id = assignments.get(intake.id)
                if entry_id:
                    intakes_by_entry.setdefault(entry_id, []).append(intake.id)

            intakes_by_medication: Dict[str, List[models.MedicationIntake]] = {}
            for intake in intakes:
                intakes_by_medication.setdefault(intake.medication_id, []).append(intake)

            medication_records = []
            for medication in medications:
                medication_records.append({
                    "id": medication.id,
                    "name": medication.name,
                    "created_at": medication.created_at,
                    "default_amount": medication.default_amount,
                    "default_unit": medication.default_unit,
                    "use_case": medication.use_case_label,
                    "notes": medication.notes,
                    "is_as_needed": medication.is_as_needed,
                    "schedules": [
                        _schedule_record(s) for s in schedules_by_medication.get(medication.id, [])
                    ],
                    "intakes": [
                        _intake_record(i, assignments.get(i.id))
                        for i in intakes_by_medication.get(medication.id, [])
                    ],
                })

            summary = ExportSummary(
                exported_entries=len(entries),
                exported_medications=len(medications),
                exported_schedules=len(schedules_by_id),
                exported_intakes=len(intakes),
                exported_notes=len(notes),
            )
            inferred = sum(1 for i in intakes if i.entry_id is None and i.id in assignments)
            logger.info(
                f"Exported journal {journal_id}: {summary.exported_entries} entries, "
                f"{summary.exported_medications} medications, {summary.exported_intakes} intakes "
                f"({inferred} entry links inferred)"
            )

            return {
                "generated_at": datetime.now(timezone.utc),
                "journal_id": journal_id,
                "entries": [
                    _entry_record(e, intakes_by_entry.get(e.id, [])) for e in entries
                ],
                "collaborator_notes": [_note_record(n) for n in notes],
                "medications": medication_records,
                "summary": summary.to_dict(),
            }

        if db:
            return _export(db)

        with get_db_context() as session:
            return _export(session)


# Singleton instance
export_service = ExportService()
