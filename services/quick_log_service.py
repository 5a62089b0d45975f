"""
Quick Log Service
Loads store snapshots and builds the daily medication quick-log view
"""

import logging
from typing import Optional
from datetime import date, timedelta, tzinfo
from sqlalchemy.orm import Session

from database import get_db_context
import models
from services.journal_store import JournalStore
from tools.quick_log import DailySnapshot, QuickLogAggregator, quick_log_aggregator
from tools.schedule_engine import day_bounds, resolve_timezone


logger = logging.getLogger(__name__)

# A calendar day in any schedule zone lies within this margin of the viewer's day
OCCURRENCE_MARGIN = timedelta(days=2)


class QuickLogService:
    """
    Service for the one-day quick-log snapshot
    """

    def __init__(self, aggregator: Optional[QuickLogAggregator] = None):
        self.aggregator = aggregator or quick_log_aggregator

    async def get_snapshot(
        self,
        journal_id: str,
        day: date,
        tz: Optional[tzinfo] = None,
        db: Optional[Session] = None
    ) -> DailySnapshot:
        """
        Due and as-needed doses of a journal for a day

        Args:
            journal_id: Journal to summarize
            day: Calendar day in tz
            tz: Viewer timezone (defaults to the configured zone)
            db: Database session

        Returns:
            DailySnapshot
        """
        def _snapshot(session: Session) -> DailySnapshot:
            store = JournalStore(session)
            store.require(models.Journal, journal_id)
            zone = resolve_timezone(None, tz)

            medications = store.medications_for(journal_id)
            medication_ids = [m.id for m in medications]
            as_needed_ids = [m.id for m in medications if m.is_as_needed]

            start, end = day_bounds(day, zone)
            day_intakes = {i.id: i for i in store.intakes_in(medication_ids, start, end)}
            for intake in store.scheduled_intakes_in(
                medication_ids, start - OCCURRENCE_MARGIN, end + OCCURRENCE_MARGIN
            ):
                day_intakes.setdefault(intake.id, intake)

            snapshot = self.aggregator.build(
                day=day,
                tz=zone,
                medications=medications,
                schedules_by_medication=store.schedules_by_medication(medication_ids),
                day_intakes=list(day_intakes.values()),
                last_logged=store.latest_intake_times(as_needed_ids),
            )

            logger.info(
                f"Quick log for journal {journal_id} on {day}: "
                f"{snapshot.taken_count}/{len(snapshot.scheduled)} taken, "
                f"{len(snapshot.as_needed)} as-needed"
            )
            return snapshot

        if db:
            return _snapshot(db)

        with get_db_context() as session:
            return _snapshot(session)


# Singleton instance
quick_log_service = QuickLogService()
