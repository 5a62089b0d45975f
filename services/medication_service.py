"""
Medication Service
Business logic for medications and their schedules
"""

import logging
from typing import Dict, List, Optional, Any
from datetime import date
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError
from decimal import Decimal
from sqlalchemy.orm import Session

from database import get_db_context
import models
from exceptions import InvariantViolation
from services.journal_store import JournalStore, StoreChange
from tools.intake_matching import IntakeOrigin
from tools.schedule_engine import Cadence


logger = logging.getLogger(__name__)


MEDICATION_FIELDS = {"name", "default_amount", "default_unit", "is_as_needed", "use_case_label", "notes"}
SCHEDULE_FIELDS = {
    "label", "amount", "unit", "cadence", "interval", "weekday_mask", "hour", "minute",
    "timezone_identifier", "start_date", "is_active", "sort_order"
}


def _validate_schedule(schedule: models.MedicationSchedule) -> None:
    """Checks that need the whole row, before it reaches the database"""
    schedule.check_invariants()
    if schedule.hour is None or schedule.minute is None:
        raise InvariantViolation("Schedules need an hour and minute")
    if schedule.timezone_identifier:
        try:
            ZoneInfo(schedule.timezone_identifier)
        except (ZoneInfoNotFoundError, ValueError) as exc:
            raise InvariantViolation(f"Unknown timezone: {schedule.timezone_identifier}") from exc


class MedicationService:
    """
    Service for medication and schedule management
    """

    async def add_medication(
        self,
        journal_id: str,
        name: str,
        default_amount: Optional[Decimal] = None,
        default_unit: Optional[str] = None,
        is_as_needed: bool = False,
        use_case_label: Optional[str] = None,
        notes: Optional[str] = None,
        db: Optional[Session] = None
    ) -> models.Medication:
        """
        Add a medication to a journal

        Args:
            journal_id: Owning journal
            name: Display name
            default_amount: Dose used when a schedule carries no override
            default_unit: Unit for the default dose
            is_as_needed: Logged ad hoc instead of on a schedule
            use_case_label: Grouping label for as-needed usage (e.g. "Migraine")
            notes: Free-text notes
            db: Database session

        Returns:
            Created Medication
        """
        def _add(session: Session) -> models.Medication:
            store = JournalStore(session)
            store.require(models.Journal, journal_id)

            medication = store.add(models.Medication(
                journal_id=journal_id,
                name=name,
                default_amount=default_amount,
                default_unit=default_unit,
                is_as_needed=is_as_needed,
                use_case_label=use_case_label,
                notes=notes
            ))
            store.commit(StoreChange("medication.created", journal_id, (medication.id,)))
            logger.info(f"Added medication {medication.name} ({medication.id}) to journal {journal_id}")
            return medication

        if db:
            return _add(db)

        with get_db_context() as session:
            return _add(session)

    async def get_medication(
        self,
        medication_id: str,
        db: Optional[Session] = None
    ) -> Optional[models.Medication]:
        """Get medication by ID"""
        def _get(session: Session) -> Optional[models.Medication]:
            return JournalStore(session).get(models.Medication, medication_id)

        if db:
            return _get(db)

        with get_db_context() as session:
            return _get(session)

    async def get_journal_medications(
        self,
        journal_id: str,
        db: Optional[Session] = None
    ) -> List[models.Medication]:
        """All medications of a journal, by name"""
        def _get(session: Session) -> List[models.Medication]:
            store = JournalStore(session)
            store.require(models.Journal, journal_id)
            return store.medications_for(journal_id)

        if db:
            return _get(db)

        with get_db_context() as session:
            return _get(session)

    async def update_medication(
        self,
        medication_id: str,
        updates: Dict[str, Any],
        db: Optional[Session] = None
    ) -> Optional[models.Medication]:
        """
        Update medication fields

        Raises:
            InvariantViolation: unknown fields, or switching to as-needed while schedules exist
        """
        def _update(session: Session) -> Optional[models.Medication]:
            unknown = sorted(set(updates) - MEDICATION_FIELDS)
            if unknown:
                raise InvariantViolation(f"Medication fields are not editable: {', '.join(unknown)}")

            store = JournalStore(session)
            medication = store.get(models.Medication, medication_id)
            if not medication:
                return None

            if updates.get("is_as_needed") and store.schedules_for(medication_id):
                raise InvariantViolation("Remove schedules before marking a medication as-needed")

            for field, value in updates.items():
                setattr(medication, field, value)
            medication.touch()

            store.commit(StoreChange("medication.updated", medication.journal_id, (medication.id,)))
            logger.info(f"Updated medication: {medication_id}")
            return medication

        if db:
            return _update(db)

        with get_db_context() as session:
            return _update(session)

    async def delete_medication(
        self,
        medication_id: str,
        db: Optional[Session] = None
    ) -> bool:
        """Delete a medication together with its schedules and intakes"""
        def _delete(session: Session) -> bool:
            store = JournalStore(session)
            medication = store.get(models.Medication, medication_id)
            if not medication:
                return False

            journal_id = medication.journal_id
            schedule_count = len(medication.schedules)
            intake_count = len(medication.intakes)
            store.delete(medication)
            store.commit(StoreChange("medication.deleted", journal_id, (medication_id,)))

            logger.info(
                f"Deleted medication {medication_id} with {schedule_count} schedules "
                f"and {intake_count} intakes"
            )
            return True

        if db:
            return _delete(db)

        with get_db_context() as session:
            return _delete(session)

    # ==================== SCHEDULES ====================

    async def add_schedule(
        self,
        medication_id: str,
        hour: int,
        minute: int,
        cadence: Cadence = Cadence.DAILY,
        interval: int = 1,
        weekday_mask: int = 0,
        timezone_identifier: Optional[str] = None,
        start_date: Optional[date] = None,
        label: Optional[str] = None,
        amount: Optional[Decimal] = None,
        unit: Optional[str] = None,
        is_active: bool = True,
        sort_order: Optional[int] = None,
        db: Optional[Session] = None
    ) -> models.MedicationSchedule:
        """
        Add a recurrence rule to a scheduled medication

        Raises:
            InvariantViolation: as-needed medication, bad time, or interval without start date
        """
        def _add(session: Session) -> models.MedicationSchedule:
            store = JournalStore(session)
            medication = store.require(models.Medication, medication_id)
            if medication.is_as_needed:
                raise InvariantViolation("As-needed medications cannot have schedules")

            existing = store.schedules_for(medication_id)
            order = sort_order
            if order is None:
                order = max((s.sort_order or 0 for s in existing), default=-1) + 1

            schedule = models.MedicationSchedule(
                medication_id=medication_id,
                label=label,
                amount=amount,
                unit=unit,
                cadence=cadence,
                interval=interval,
                weekday_mask=weekday_mask,
                hour=hour,
                minute=minute,
                timezone_identifier=timezone_identifier,
                start_date=start_date,
                is_active=is_active,
                sort_order=order
            )
            _validate_schedule(schedule)

            store.add(schedule)
            medication.touch()
            store.commit(StoreChange("schedule.created", medication.journal_id, (schedule.id,)))

            logger.info(
                f"Added {schedule.cadence} schedule {schedule.id} at "
                f"{hour:02d}:{minute:02d} for medication {medication_id}"
            )
            return schedule

        if db:
            return _add(db)

        with get_db_context() as session:
            return _add(session)

    async def get_schedules(
        self,
        medication_id: str,
        db: Optional[Session] = None
    ) -> List[models.MedicationSchedule]:
        """Schedules ordered by sort order, hour, minute"""
        def _get(session: Session) -> List[models.MedicationSchedule]:
            store = JournalStore(session)
            store.require(models.Medication, medication_id)
            return store.schedules_for(medication_id)

        if db:
            return _get(db)

        with get_db_context() as session:
            return _get(session)

    async def update_schedule(
        self,
        schedule_id: str,
        updates: Dict[str, Any],
        db: Optional[Session] = None
    ) -> Optional[models.MedicationSchedule]:
        """Update schedule fields and re-check the recurrence invariants"""
        def _update(session: Session) -> Optional[models.MedicationSchedule]:
            unknown = sorted(set(updates) - SCHEDULE_FIELDS)
            if unknown:
                raise InvariantViolation(f"Schedule fields are not editable: {', '.join(unknown)}")

            store = JournalStore(session)
            schedule = store.get(models.MedicationSchedule, schedule_id)
            if not schedule:
                return None

            for field, value in updates.items():
                setattr(schedule, field, value)
            try:
                _validate_schedule(schedule)
            except InvariantViolation:
                store.rollback()
                raise

            schedule.medication.touch()
            store.commit(StoreChange("schedule.updated", schedule.medication.journal_id, (schedule.id,)))
            logger.info(f"Updated schedule: {schedule_id}")
            return schedule

        if db:
            return _update(db)

        with get_db_context() as session:
            return _update(session)

    async def delete_schedule(
        self,
        schedule_id: str,
        db: Optional[Session] = None
    ) -> bool:
        """
        Delete a schedule

        Intakes logged against it are kept as manual intakes so history survives.
        """
        def _delete(session: Session) -> bool:
            store = JournalStore(session)
            schedule = store.get(models.MedicationSchedule, schedule_id)
            if not schedule:
                return False

            medication = schedule.medication
            detached = 0
            for intake in list(schedule.intakes):
                intake.schedule_id = None
                intake.schedule = None
                intake.scheduled_date = None
                intake.origin = IntakeOrigin.MANUAL
                detached += 1

            store.delete(schedule)
            medication.touch()
            store.commit(StoreChange("schedule.deleted", medication.journal_id, (schedule_id,)))

            logger.info(f"Deleted schedule {schedule_id}; {detached} intakes kept as manual")
            return True

        if db:
            return _delete(db)

        with get_db_context() as session:
            return _delete(session)


# Singleton instance
medication_service = MedicationService()
