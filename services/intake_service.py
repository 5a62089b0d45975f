"""
Intake Service
Idempotent "taken" toggles, as-needed logging and intake edits
"""

import logging
from dataclasses import dataclass
from typing import Dict, List, Optional, Any
from datetime import datetime, date, timezone, tzinfo
from decimal import Decimal
from sqlalchemy.orm import Session

from database import get_db_context
import models
from exceptions import ConflictError, InvariantViolation
from services.journal_store import JournalStore, StoreChange
from tools.intake_matching import IntakeMatcher, IntakeOrigin, MedicationDefaultsUpdate, intake_matcher
from tools.schedule_engine import (
    ExplicitSchedule,
    ScheduleEngine,
    ScheduleSource,
    SyntheticSchedule,
    day_bounds,
    resolve_timezone,
    rule_of,
    schedule_engine,
)


logger = logging.getLogger(__name__)


@dataclass
class AsNeededLogResult:
    """A new as-needed intake and the medication defaults it wrote back"""
    intake: models.MedicationIntake
    defaults_update: MedicationDefaultsUpdate


def _now() -> datetime:
    return datetime.now(timezone.utc)


class IntakeService:
    """
    Service for recording and editing medication intakes
    """

    def __init__(
        self,
        engine: Optional[ScheduleEngine] = None,
        matcher: Optional[IntakeMatcher] = None
    ):
        self.engine = engine or schedule_engine
        self.matcher = matcher or intake_matcher

    # ==================== SCHEDULED ====================

    def _occurrence(
        self,
        schedule: models.MedicationSchedule,
        day: date,
        tz: Optional[tzinfo]
    ) -> Optional[datetime]:
        return self.engine.occurrence(schedule, day, tz)

    def _match(
        self,
        store: JournalStore,
        schedule: models.MedicationSchedule,
        occurrence: datetime
    ) -> Optional[models.MedicationIntake]:
        tolerance = self.matcher.tolerance
        candidates = store.scheduled_intakes_between(
            schedule.id, occurrence - tolerance, occurrence + tolerance
        )
        return self.matcher.find_scheduled_intake(candidates, schedule.id, occurrence)

    async def find_scheduled_intake(
        self,
        schedule_id: str,
        day: date,
        tz: Optional[tzinfo] = None,
        db: Optional[Session] = None
    ) -> Optional[models.MedicationIntake]:
        """Intake recorded for a schedule's occurrence on a day, if any"""
        def _find(session: Session) -> Optional[models.MedicationIntake]:
            store = JournalStore(session)
            schedule = store.get(models.MedicationSchedule, schedule_id)
            if schedule is None:
                return None
            occurrence = self._occurrence(schedule, day, tz)
            if occurrence is None:
                return None
            return self._match(store, schedule, occurrence)

        if db:
            return _find(db)

        with get_db_context() as session:
            return _find(session)

    async def set_scheduled_intake(
        self,
        schedule_id: str,
        day: date,
        taken: bool,
        logged_at: Optional[datetime] = None,
        tz: Optional[tzinfo] = None,
        db: Optional[Session] = None
    ) -> Optional[models.MedicationIntake]:
        """
        Mark a schedule occurrence as taken or not taken

        Repeating a call with the same arguments changes nothing.

        Args:
            schedule_id: Schedule to toggle
            day: Calendar day of the occurrence
            taken: Desired state
            logged_at: When the dose was taken (defaults to now)
            tz: Fallback zone for schedules without one
            db: Database session

        Returns:
            The intake for a taken occurrence, None otherwise
        """
        def _set(session: Session) -> Optional[models.MedicationIntake]:
            store = JournalStore(session)
            schedule = store.get(models.MedicationSchedule, schedule_id)
            if schedule is None:
                logger.warning(f"Ignoring intake toggle for missing schedule {schedule_id}")
                return None

            occurrence = self._occurrence(schedule, day, tz)
            if occurrence is None:
                logger.debug(f"Schedule {schedule_id} has no occurrence on {day}")
                return None

            medication = schedule.medication
            existing = self._match(store, schedule, occurrence)

            if taken:
                if existing is not None:
                    return existing

                dose = self.matcher.scheduled_dose(schedule, medication)
                intake = models.MedicationIntake(
                    medication_id=medication.id,
                    schedule_id=schedule.id,
                    amount=dose.amount,
                    unit=dose.unit,
                    timestamp=logged_at or _now(),
                    scheduled_date=occurrence,
                    origin=IntakeOrigin.SCHEDULED
                )
                try:
                    store.add(intake)
                    medication.touch()
                    store.commit(StoreChange("intake.created", medication.journal_id, (intake.id,)))
                except ConflictError:
                    store.rollback()
                    winner = self._match(store, schedule, occurrence)
                    logger.info(f"Concurrent toggle for schedule {schedule_id} on {day}; kept existing intake")
                    return winner

                logger.info(f"Recorded scheduled intake {intake.id} for schedule {schedule_id} on {day}")
                return intake

            if existing is None:
                return None

            intake_id = existing.id
            store.delete(existing)
            medication.touch()
            store.commit(StoreChange("intake.deleted", medication.journal_id, (intake_id,)))
            logger.info(f"Removed scheduled intake {intake_id} for schedule {schedule_id} on {day}")
            return None

        if db:
            return _set(db)

        with get_db_context() as session:
            return _set(session)

    async def set_synthetic_intake(
        self,
        medication_id: str,
        day: date,
        taken: bool,
        logged_at: Optional[datetime] = None,
        tz: Optional[tzinfo] = None,
        db: Optional[Session] = None
    ) -> Optional[models.MedicationIntake]:
        """
        Toggle the implicit daily dose of a medication that has no schedules

        Taking it reuses any unscheduled intake of that day or records a manual one;
        un-taking it removes every unscheduled intake of that day.
        """
        def _set(session: Session) -> Optional[models.MedicationIntake]:
            store = JournalStore(session)
            medication = store.get(models.Medication, medication_id)
            if medication is None:
                logger.warning(f"Ignoring intake toggle for missing medication {medication_id}")
                return None
            if medication.is_as_needed:
                raise InvariantViolation("As-needed medications have no daily dose to toggle")
            if store.schedules_for(medication_id):
                raise InvariantViolation("Medication has schedules; toggle a schedule instead")

            zone = resolve_timezone(None, tz)
            start, end = day_bounds(day, zone)
            existing = store.unscheduled_intakes_in(medication_id, start, end)

            if taken:
                if existing:
                    return existing[-1]
                intake = store.add(models.MedicationIntake(
                    medication_id=medication_id,
                    amount=medication.default_amount,
                    unit=medication.default_unit,
                    timestamp=logged_at or _now(),
                    origin=IntakeOrigin.MANUAL
                ))
                medication.touch()
                store.commit(StoreChange("intake.created", medication.journal_id, (intake.id,)))
                logger.info(f"Recorded daily intake {intake.id} for medication {medication_id} on {day}")
                return intake

            if not existing:
                return None
            removed = tuple(i.id for i in existing)
            for intake in existing:
                store.delete(intake)
            medication.touch()
            store.commit(StoreChange("intake.deleted", medication.journal_id, removed))
            logger.info(f"Removed {len(removed)} daily intakes for medication {medication_id} on {day}")
            return None

        if db:
            return _set(db)

        with get_db_context() as session:
            return _set(session)

    async def set_occurrence_taken(
        self,
        source: ScheduleSource,
        day: date,
        taken: bool,
        logged_at: Optional[datetime] = None,
        tz: Optional[tzinfo] = None,
        now: Optional[datetime] = None,
        db: Optional[Session] = None
    ) -> Optional[models.MedicationIntake]:
        """
        Quick-log toggle for either kind of schedule source

        Without an explicit logged_at, today's doses are stamped now and past days
        at their nominal time.
        """
        zone = resolve_timezone(None, tz)
        if logged_at is None:
            occurrence = self.engine.occurrence(rule_of(source), day, zone)
            logged_at = self.matcher.suggested_log_time(day, occurrence, now or _now(), zone)

        if isinstance(source, ExplicitSchedule):
            return await self.set_scheduled_intake(
                source.key, day, taken, logged_at=logged_at, tz=zone, db=db
            )
        elif isinstance(source, SyntheticSchedule):
            return await self.set_synthetic_intake(
                source.medication_id, day, taken, logged_at=logged_at, tz=zone, db=db
            )
        else:
            raise InvariantViolation(f"Unknown schedule source: {source!r}")

    async def resolve_source(
        self,
        medication_id: str,
        schedule_id: Optional[str] = None,
        db: Optional[Session] = None
    ) -> ScheduleSource:
        """Schedule source for a toggle request"""
        def _resolve(session: Session) -> ScheduleSource:
            store = JournalStore(session)
            if schedule_id:
                schedule = store.require(models.MedicationSchedule, schedule_id)
                if schedule.medication_id != medication_id:
                    raise InvariantViolation("Schedule does not belong to medication")
                return ExplicitSchedule(schedule)
            store.require(models.Medication, medication_id)
            return SyntheticSchedule(medication_id=medication_id)

        if db:
            return _resolve(db)

        with get_db_context() as session:
            return _resolve(session)

    # ==================== AS-NEEDED ====================

    async def log_as_needed(
        self,
        medication_id: str,
        amount: Optional[Decimal] = None,
        unit: Optional[str] = None,
        at: Optional[datetime] = None,
        notes: Optional[str] = None,
        db: Optional[Session] = None
    ) -> Optional[AsNeededLogResult]:
        """
        Log an ad hoc dose

        The amount and unit used become the medication's new defaults, in the same
        transaction as the intake.
        """
        def _log(session: Session) -> Optional[AsNeededLogResult]:
            store = JournalStore(session)
            medication = store.get(models.Medication, medication_id)
            if medication is None:
                logger.warning(f"Ignoring as-needed log for missing medication {medication_id}")
                return None

            draft = self.matcher.resolve_as_needed(
                medication,
                store.schedules_for(medication_id),
                amount,
                unit,
                at or _now()
            )
            intake = store.add(models.MedicationIntake(
                medication_id=medication_id,
                amount=draft.amount,
                unit=draft.unit,
                timestamp=draft.timestamp,
                origin=draft.origin,
                notes=notes
            ))
            draft.defaults_update.apply(medication)
            medication.touch()
            store.commit(StoreChange("intake.created", medication.journal_id, (intake.id,)))

            logger.info(
                f"Logged as-needed intake {intake.id} for {medication.name}: "
                f"{draft.amount} {draft.unit or ''}".rstrip()
            )
            return AsNeededLogResult(intake=intake, defaults_update=draft.defaults_update)

        if db:
            return _log(db)

        with get_db_context() as session:
            return _log(session)

    # ==================== EDITS ====================

    async def get_intake(
        self,
        intake_id: str,
        db: Optional[Session] = None
    ) -> Optional[models.MedicationIntake]:
        def _get(session: Session) -> Optional[models.MedicationIntake]:
            return JournalStore(session).get(models.MedicationIntake, intake_id)

        if db:
            return _get(db)

        with get_db_context() as session:
            return _get(session)

    async def list_intakes(
        self,
        medication_id: str,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
        db: Optional[Session] = None
    ) -> List[models.MedicationIntake]:
        """Intakes of a medication with timestamp in [start, end)"""
        def _list(session: Session) -> List[models.MedicationIntake]:
            store = JournalStore(session)
            store.require(models.Medication, medication_id)
            return store.intakes_in([medication_id], start, end)

        if db:
            return _list(db)

        with get_db_context() as session:
            return _list(session)

    async def update_intake(
        self,
        intake_id: str,
        changes: Dict[str, Any],
        db: Optional[Session] = None
    ) -> Optional[models.MedicationIntake]:
        """Edit amount, unit, timestamp or notes; identity and links are preserved"""
        def _update(session: Session) -> Optional[models.MedicationIntake]:
            store = JournalStore(session)
            intake = store.get(models.MedicationIntake, intake_id)
            if intake is None:
                return None

            result = self.matcher.merge_editable_fields(intake, changes)
            if not result.has_changes:
                return intake

            intake.medication.touch()
            store.commit(StoreChange("intake.updated", intake.medication.journal_id, (intake.id,)))
            logger.info(f"Updated intake {intake_id}: {', '.join(sorted(result.changed))}")
            return intake

        if db:
            return _update(db)

        with get_db_context() as session:
            return _update(session)

    async def delete_intake(
        self,
        intake_id: str,
        db: Optional[Session] = None
    ) -> bool:
        def _delete(session: Session) -> bool:
            store = JournalStore(session)
            intake = store.get(models.MedicationIntake, intake_id)
            if intake is None:
                return False
            medication = intake.medication
            store.delete(intake)
            medication.touch()
            store.commit(StoreChange("intake.deleted", medication.journal_id, (intake_id,)))
            logger.info(f"Deleted intake: {intake_id}")
            return True

        if db:
            return _delete(db)

        with get_db_context() as session:
            return _delete(session)

    async def link_intake_to_entry(
        self,
        intake_id: str,
        entry_id: Optional[str],
        db: Optional[Session] = None
    ) -> Optional[models.MedicationIntake]:
        """Attach an intake to a symptom entry of the same journal (None detaches)"""
        def _link(session: Session) -> Optional[models.MedicationIntake]:
            store = JournalStore(session)
            intake = store.get(models.MedicationIntake, intake_id)
            if intake is None:
                return None
            journal_id = intake.medication.journal_id
            if entry_id is not None:
                entry = store.require(models.SymptomEntry, entry_id)
                if entry.journal_id != journal_id:
                    raise InvariantViolation("Entry belongs to a different journal")
            intake.entry_id = entry_id
            store.commit(StoreChange("intake.updated", journal_id, (intake.id,)))
            return intake

        if db:
            return _link(db)

        with get_db_context() as session:
            return _link(session)


# Singleton instance
intake_service = IntakeService()
