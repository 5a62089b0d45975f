"""
Adherence Calculator Tool
Counts due versus taken doses per medication over a date range
"""

import logging
from collections import Counter
from dataclasses import dataclass
from datetime import datetime, tzinfo
from decimal import Decimal
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence

from tools.formatting import format_dose
from tools.intake_matching import IntakeMatcher, intake_matcher, as_utc
from tools.schedule_engine import ScheduleEngine, schedule_engine


logger = logging.getLogger(__name__)


@dataclass
class AdherenceReport:
    """Adherence figures for one medication"""
    medication_id: str
    medication_name: str
    is_as_needed: bool
    scheduled_count: int
    taken_count: int
    scheduled_taken_count: int = 0
    average_dose: Optional[str] = None

    @property
    def adherence_rate(self) -> float:
        if self.scheduled_count > 0:
            return min(self.taken_count / self.scheduled_count, 1.0)
        return 1.0 if self.taken_count > 0 else 0.0

    @property
    def missed_count(self) -> int:
        return max(self.scheduled_count - self.scheduled_taken_count, 0)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "medication_id": self.medication_id,
            "medication_name": self.medication_name,
            "is_as_needed": self.is_as_needed,
            "scheduled_count": self.scheduled_count,
            "taken_count": self.taken_count,
            "missed_count": self.missed_count,
            "adherence_rate": round(self.adherence_rate, 4),
            "average_dose": self.average_dose,
        }


def _in_range(instant: Optional[datetime], start: datetime, end: datetime) -> bool:
    instant = as_utc(instant)
    return instant is not None and start <= instant <= end


class AdherenceCalculator:
    """
    Walks a date range per medication counting scheduled and taken occurrences
    """

    def __init__(
        self,
        engine: Optional[ScheduleEngine] = None,
        matcher: Optional[IntakeMatcher] = None
    ):
        self.engine = engine or schedule_engine
        self.matcher = matcher or intake_matcher

    def _average_dose(self, medication: Any, intakes: Sequence[Any]) -> Optional[str]:
        amounts = [Decimal(str(i.amount)) for i in intakes if i.amount is not None]
        if not amounts:
            return None
        mean = sum(amounts, Decimal(0)) / len(amounts)

        units = Counter(i.unit for i in intakes if i.unit)
        unit = units.most_common(1)[0][0] if units else medication.default_unit
        return format_dose(mean, unit)

    def calculate(
        self,
        medication: Any,
        schedules: Sequence[Any],
        intakes: Iterable[Any],
        start: datetime,
        now: datetime,
        tz: tzinfo
    ) -> Optional[AdherenceReport]:
        """
        Adherence for a single medication over [start, now]

        Returns:
            AdherenceReport, or None when nothing was due and nothing was taken
        """
        start, now = as_utc(start), as_utc(now)
        own = sorted(
            (i for i in intakes if i.medication_id == medication.id),
            key=lambda i: (as_utc(i.timestamp), i.id or "")
        )
        in_range = [i for i in own if _in_range(i.timestamp, start, now)]

        scheduled_count = 0
        scheduled_taken = 0
        taken_count = 0

        if medication.is_as_needed:
            taken_count = len(in_range)
        else:
            scheduled_intakes = [i for i in own if i.schedule_id is not None]
            for schedule in schedules:
                for occurrence in self.engine.occurrences_between(schedule, start, now, tz):
                    scheduled_count += 1
                    match = self.matcher.find_scheduled_intake(
                        scheduled_intakes, schedule.id, occurrence
                    )
                    if match is not None and _in_range(match.timestamp, start, now):
                        scheduled_taken += 1

            unscheduled = sum(1 for i in in_range if i.schedule_id is None)
            taken_count = scheduled_taken + unscheduled

        if scheduled_count == 0 and taken_count == 0:
            return None

        return AdherenceReport(
            medication_id=medication.id,
            medication_name=medication.name,
            is_as_needed=bool(medication.is_as_needed),
            scheduled_count=scheduled_count,
            taken_count=taken_count,
            scheduled_taken_count=scheduled_taken,
            average_dose=self._average_dose(medication, in_range),
        )

    def calculate_all(
        self,
        medications: Sequence[Any],
        schedules_by_medication: Mapping[str, Sequence[Any]],
        intakes: Sequence[Any],
        start: datetime,
        now: datetime,
        tz: tzinfo
    ) -> List[AdherenceReport]:
        """Reports for every medication with activity, most-scheduled first"""
        by_medication: Dict[str, List[Any]] = {}
        for intake in intakes:
            by_medication.setdefault(intake.medication_id, []).append(intake)

        reports = []
        for medication in medications:
            report = self.calculate(
                medication,
                schedules_by_medication.get(medication.id, []),
                by_medication.get(medication.id, []),
                start,
                now,
                tz,
            )
            if report is not None:
                reports.append(report)

        reports.sort(key=lambda r: (-r.scheduled_count, r.medication_name, r.medication_id))
        return reports


# Singleton instance
adherence_calculator = AdherenceCalculator()
