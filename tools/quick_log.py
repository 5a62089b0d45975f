"""
Quick Log Aggregator Tool
Builds the one-day "due / taken" snapshot of a journal's medications
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime, date, timezone, tzinfo
from decimal import Decimal
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence

from tools.formatting import format_dose
from tools.intake_matching import IntakeMatcher, intake_matcher, as_utc
from tools.schedule_engine import (
    ExplicitSchedule,
    ScheduleEngine,
    ScheduleSource,
    SyntheticSchedule,
    day_bounds,
    rule_of,
    schedule_engine,
)


logger = logging.getLogger(__name__)

DISTANT_PAST = datetime.min.replace(tzinfo=timezone.utc)


@dataclass
class ScheduledOccurrence:
    """One due dose on the snapshot day"""
    id: str
    source_kind: str  # "explicit" or "synthetic"
    schedule_id: Optional[str]
    medication_id: str
    medication_name: str
    scheduled_at: datetime
    use_case: Optional[str] = None
    schedule_label: Optional[str] = None
    amount: Optional[Decimal] = None
    unit: Optional[str] = None
    intake_id: Optional[str] = None
    intake_timestamp: Optional[datetime] = None
    taken: bool = False

    @property
    def display_amount(self) -> Optional[str]:
        return format_dose(self.amount, self.unit)


@dataclass
class AsNeededItem:
    """An as-needed medication offered for ad hoc logging"""
    medication_id: str
    name: str
    use_case: Optional[str] = None
    default_amount: Optional[Decimal] = None
    default_unit: Optional[str] = None
    last_logged_at: Optional[datetime] = None

    @property
    def display_amount(self) -> Optional[str]:
        return format_dose(self.default_amount, self.default_unit)


@dataclass
class DailySnapshot:
    """Everything the quick-log surface shows for one day"""
    day: date
    scheduled: List[ScheduledOccurrence] = field(default_factory=list)
    as_needed: List[AsNeededItem] = field(default_factory=list)
    has_medications: bool = False

    @property
    def taken_count(self) -> int:
        return sum(1 for item in self.scheduled if item.taken)

    @property
    def pending_count(self) -> int:
        return len(self.scheduled) - self.taken_count


def schedule_sources(medication: Any, schedules: Sequence[Any]) -> List[ScheduleSource]:
    """Persisted schedules of a medication, or a synthetic daily dose when it has none"""
    if medication.is_as_needed:
        return []
    if not schedules:
        return [SyntheticSchedule(medication_id=medication.id)]
    return [ExplicitSchedule(schedule) for schedule in schedules]


class QuickLogAggregator:
    """
    Computes the daily snapshot from store snapshots; no I/O
    """

    def __init__(
        self,
        engine: Optional[ScheduleEngine] = None,
        matcher: Optional[IntakeMatcher] = None
    ):
        self.engine = engine or schedule_engine
        self.matcher = matcher or intake_matcher

    def build(
        self,
        day: date,
        tz: tzinfo,
        medications: Sequence[Any],
        schedules_by_medication: Mapping[str, Sequence[Any]],
        day_intakes: Iterable[Any],
        last_logged: Optional[Mapping[str, datetime]] = None
    ) -> DailySnapshot:
        """
        Build the snapshot for a calendar day

        Args:
            day: Selected calendar day (in tz)
            tz: Viewer timezone, also the fallback for schedules without one
            medications: All medications of the journal
            schedules_by_medication: Persisted schedules keyed by medication id
            day_intakes: Intakes that may belong to the day (extra rows are filtered);
                scheduled rows match by nominal time, unscheduled rows by timestamp
            last_logged: Most recent intake time per as-needed medication

        Returns:
            DailySnapshot with sorted scheduled and as-needed rows
        """
        last_logged = last_logged or {}
        start, end = day_bounds(day, tz)
        day_intakes = list(day_intakes)
        taken = self.matcher.build_taken_index(day_intakes, start, end)

        scheduled: List[ScheduledOccurrence] = []
        as_needed: List[AsNeededItem] = []

        for medication in medications:
            if medication.is_as_needed:
                as_needed.append(AsNeededItem(
                    medication_id=medication.id,
                    name=medication.name,
                    use_case=medication.use_case_label,
                    default_amount=medication.default_amount,
                    default_unit=medication.default_unit,
                    last_logged_at=as_utc(last_logged.get(medication.id)),
                ))
                continue

            schedules = schedules_by_medication.get(medication.id, [])
            for source in schedule_sources(medication, schedules):
                rule = rule_of(source)
                instant = self.engine.occurrence(rule, day, tz)
                if instant is None:
                    continue

                dose = self.matcher.scheduled_dose(rule, medication)
                explicit = isinstance(source, ExplicitSchedule)
                if explicit:
                    intake = self.matcher.find_scheduled_intake(day_intakes, source.key, instant)
                else:
                    intake = taken.get(source.key)

                scheduled.append(ScheduledOccurrence(
                    id=f"{source.key}-{day.isoformat()}",
                    source_kind="explicit" if explicit else "synthetic",
                    schedule_id=source.key if explicit else None,
                    medication_id=medication.id,
                    medication_name=medication.name,
                    use_case=medication.use_case_label,
                    schedule_label=getattr(rule, "label", None),
                    scheduled_at=instant,
                    amount=dose.amount,
                    unit=dose.unit,
                    intake_id=intake.id if intake else None,
                    intake_timestamp=as_utc(intake.timestamp) if intake else None,
                    taken=intake is not None,
                ))

        scheduled.sort(key=lambda o: (o.scheduled_at, o.medication_name, o.id))
        as_needed.sort(key=lambda i: (i.name, i.last_logged_at or DISTANT_PAST, i.medication_id))

        logger.debug(
            f"Quick log for {day}: {len(scheduled)} scheduled, {len(as_needed)} as-needed"
        )

        return DailySnapshot(
            day=day,
            scheduled=scheduled,
            as_needed=as_needed,
            has_medications=bool(medications),
        )


# Singleton instance
quick_log_aggregator = QuickLogAggregator()
