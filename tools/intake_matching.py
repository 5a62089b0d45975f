"""
Intake Matching Tool
Pure rules for pairing logged doses with schedule occurrences and resolving dose defaults
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime, date, timedelta, timezone, tzinfo
from decimal import Decimal
from enum import Enum
from typing import Any, Dict, Iterable, List, Optional, Sequence

from config import engine_config
from exceptions import InvariantViolation
from tools.schedule_engine import local_day


logger = logging.getLogger(__name__)


class IntakeOrigin(str, Enum):
    """How an intake came to be recorded"""
    SCHEDULED = "scheduled"   # toggled against a schedule occurrence
    AS_NEEDED = "as_needed"   # logged ad hoc for an as-needed medication
    MANUAL = "manual"         # logged without a schedule (synthetic daily dose, imports)


# Fields a user may change on an existing intake; linkage stays untouched
EDITABLE_INTAKE_FIELDS = ("amount", "unit", "timestamp", "notes")


def default_tolerance() -> timedelta:
    return timedelta(minutes=engine_config.INTAKE_MATCH_TOLERANCE_MINUTES)


def as_utc(instant: Optional[datetime]) -> Optional[datetime]:
    """Normalize an instant to aware UTC (naive values are read as UTC)"""
    if instant is None:
        return None
    if instant.tzinfo is None:
        return instant.replace(tzinfo=timezone.utc)
    return instant.astimezone(timezone.utc)


@dataclass
class MedicationDefaultsUpdate:
    """Defaults to write back to a medication after an as-needed log"""
    medication_id: str
    default_amount: Optional[Decimal]
    default_unit: Optional[str]

    def apply(self, medication: Any) -> bool:
        """Copy onto the medication; returns True when anything changed"""
        changed = (
            medication.default_amount != self.default_amount
            or medication.default_unit != self.default_unit
        )
        medication.default_amount = self.default_amount
        medication.default_unit = self.default_unit
        return changed


@dataclass
class AsNeededDraft:
    """Values for a new as-needed intake plus the defaults it implies"""
    medication_id: str
    amount: Optional[Decimal]
    unit: Optional[str]
    timestamp: datetime
    origin: IntakeOrigin = IntakeOrigin.AS_NEEDED
    defaults_update: Optional[MedicationDefaultsUpdate] = None


@dataclass
class ScheduledDose:
    """Amount and unit a scheduled occurrence should record"""
    amount: Optional[Decimal] = None
    unit: Optional[str] = None


@dataclass
class IntakeEditResult:
    """Which editable fields an edit actually changed"""
    intake_id: str
    changed: Dict[str, Any] = field(default_factory=dict)

    @property
    def has_changes(self) -> bool:
        return bool(self.changed)


def _ordered_schedules(schedules: Iterable[Any]) -> List[Any]:
    return sorted(
        schedules,
        key=lambda s: (s.sort_order or 0, s.hour or 0, s.minute or 0, s.id or "")
    )


class IntakeMatcher:
    """
    Pure matching and defaulting logic for medication intakes
    """

    def __init__(self, tolerance: Optional[timedelta] = None):
        self.tolerance = tolerance or default_tolerance()

    def find_scheduled_intake(
        self,
        intakes: Iterable[Any],
        schedule_id: str,
        occurrence: datetime,
        tolerance: Optional[timedelta] = None
    ) -> Optional[Any]:
        """
        Scheduled intake for a schedule whose nominal time is within tolerance

        The closest candidate wins; equal distances go to the smallest id.
        """
        tolerance = tolerance or self.tolerance
        occurrence = as_utc(occurrence)
        best = None
        best_key = None

        for intake in intakes:
            if intake.schedule_id != schedule_id or intake.scheduled_date is None:
                continue
            distance = abs(as_utc(intake.scheduled_date) - occurrence)
            if distance > tolerance:
                continue
            key = (distance, intake.id or "")
            if best_key is None or key < best_key:
                best, best_key = intake, key

        return best

    def scheduled_dose(self, schedule: Any, medication: Any) -> ScheduledDose:
        """Schedule override first, then the medication default"""
        amount = getattr(schedule, "amount", None)
        unit = getattr(schedule, "unit", None)
        if amount is None:
            amount = medication.default_amount
        if not unit:
            unit = medication.default_unit
        return ScheduledDose(amount=amount, unit=unit)

    def resolve_as_needed(
        self,
        medication: Any,
        schedules: Sequence[Any],
        amount: Optional[Decimal],
        unit: Optional[str],
        at: datetime
    ) -> AsNeededDraft:
        """
        Work out amount/unit for an as-needed log.

        Amount: explicit, else medication default.
        Unit: explicit, else medication default, else the first schedule's unit.
        """
        resolved_amount = amount if amount is not None else medication.default_amount

        resolved_unit = unit.strip() if unit and unit.strip() else None
        if resolved_unit is None:
            resolved_unit = medication.default_unit or None
        if resolved_unit is None:
            for schedule in _ordered_schedules(schedules):
                if schedule.unit:
                    resolved_unit = schedule.unit
                    break

        return AsNeededDraft(
            medication_id=medication.id,
            amount=resolved_amount,
            unit=resolved_unit,
            timestamp=as_utc(at),
            defaults_update=MedicationDefaultsUpdate(
                medication_id=medication.id,
                default_amount=resolved_amount,
                default_unit=resolved_unit,
            ),
        )

    def build_taken_index(
        self,
        intakes: Iterable[Any],
        day_start: datetime,
        day_end: datetime
    ) -> Dict[str, Any]:
        """
        Map schedule id (or medication id for unscheduled intakes) to the intake taken that day.

        Only intakes with timestamp in [day_start, day_end) count; on collision the
        latest (timestamp, id) wins.
        """
        index: Dict[str, Any] = {}
        for intake in intakes:
            stamp = as_utc(intake.timestamp)
            if stamp is None or not (day_start <= stamp < day_end):
                continue
            key = intake.schedule_id or intake.medication_id
            current = index.get(key)
            if current is None or (stamp, intake.id or "") > (as_utc(current.timestamp), current.id or ""):
                index[key] = intake
        return index

    def suggested_log_time(
        self,
        selected_day: date,
        occurrence: Optional[datetime],
        now: datetime,
        tz: tzinfo
    ) -> datetime:
        """Today logs at the current time; a past day logs at the nominal occurrence"""
        now = as_utc(now)
        if occurrence is None or selected_day == local_day(now, tz):
            return now
        return as_utc(occurrence)

    def merge_editable_fields(self, intake: Any, changes: Dict[str, Any]) -> IntakeEditResult:
        """
        Apply user edits to an intake, keeping its identity and linkage.

        Raises:
            InvariantViolation: when a non-editable field is supplied
        """
        forbidden = sorted(set(changes) - set(EDITABLE_INTAKE_FIELDS))
        if forbidden:
            raise InvariantViolation(f"Intake fields are not editable: {', '.join(forbidden)}")

        result = IntakeEditResult(intake_id=intake.id)
        for name, value in changes.items():
            if name == "timestamp":
                if value is None:
                    raise InvariantViolation("Intake timestamp cannot be cleared")
                value = as_utc(value)
            if name == "unit" and value is not None:
                value = value.strip() or None
            if getattr(intake, name) != value:
                setattr(intake, name, value)
                result.changed[name] = value
        return result


# Singleton instance
intake_matcher = IntakeMatcher()


def find_scheduled_intake(
    intakes: Iterable[Any],
    schedule_id: str,
    occurrence: datetime,
    tolerance: Optional[timedelta] = None
) -> Optional[Any]:
    """Convenience function to match a scheduled intake"""
    return intake_matcher.find_scheduled_intake(intakes, schedule_id, occurrence, tolerance)
