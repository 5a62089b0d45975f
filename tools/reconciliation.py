"""
Reconciliation Resolver Tool
Assigns export-time symptom entries to intakes that were logged without an entry link
"""

import logging
from collections import defaultdict
from dataclasses import dataclass
from datetime import date, datetime, tzinfo
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence

from tools.intake_matching import as_utc
from tools.schedule_engine import local_day


logger = logging.getLogger(__name__)


@dataclass
class _Candidate:
    entry_id: str
    timestamp: datetime


class ReconciliationResolver:
    """
    Nearest-entry-on-the-same-day heuristic for orphan intakes
    """

    def __init__(self, tz: tzinfo):
        self.tz = tz

    def _journal_for(
        self,
        intake: Any,
        medications: Mapping[str, Any],
        schedules: Mapping[str, Any]
    ) -> Optional[str]:
        medication = medications.get(intake.medication_id)
        if medication is None and intake.schedule_id:
            schedule = schedules.get(intake.schedule_id)
            if schedule is not None:
                medication = medications.get(schedule.medication_id)
        return medication.journal_id if medication is not None else None

    def effective_moment(self, intake: Any) -> Optional[datetime]:
        """When the dose happened: logged time, else nominal scheduled time"""
        return as_utc(intake.timestamp) or as_utc(intake.scheduled_date)

    def assign(
        self,
        intakes: Iterable[Any],
        entries: Iterable[Any],
        medications: Mapping[str, Any],
        schedules: Optional[Mapping[str, Any]] = None
    ) -> Dict[str, str]:
        """
        Map intake id to entry id

        Args:
            intakes: Intakes to reconcile
            entries: Candidate symptom entries (any journal)
            medications: Medications keyed by id
            schedules: Schedules keyed by id, used when an intake's medication is unknown

        Returns:
            {intake_id: entry_id}; intakes with no candidate are absent
        """
        schedules = schedules or {}

        by_journal_day: Dict[str, Dict[date, List[_Candidate]]] = defaultdict(lambda: defaultdict(list))
        for entry in entries:
            stamp = as_utc(entry.timestamp)
            by_journal_day[entry.journal_id][local_day(stamp, self.tz)].append(
                _Candidate(entry_id=entry.id, timestamp=stamp)
            )

        assignments: Dict[str, str] = {}
        unresolved = 0
        for intake in intakes:
            if intake.entry_id:
                assignments[intake.id] = intake.entry_id
                continue

            journal_id = self._journal_for(intake, medications, schedules)
            moment = self.effective_moment(intake)
            if journal_id is None or moment is None:
                unresolved += 1
                continue

            candidates = by_journal_day.get(journal_id, {}).get(local_day(moment, self.tz), [])
            if not candidates:
                unresolved += 1
                continue

            best = min(candidates, key=lambda c: (abs(c.timestamp - moment), c.entry_id))
            assignments[intake.id] = best.entry_id

        if unresolved:
            logger.debug(f"{unresolved} intakes left without an entry during reconciliation")
        return assignments


def reconcile(
    intakes: Sequence[Any],
    entries: Sequence[Any],
    medications: Mapping[str, Any],
    tz: tzinfo,
    schedules: Optional[Mapping[str, Any]] = None
) -> Dict[str, str]:
    """Convenience function for a one-off reconciliation"""
    return ReconciliationResolver(tz).assign(intakes, entries, medications, schedules)
