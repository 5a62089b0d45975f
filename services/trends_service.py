"""
Trends Service
Adherence reports and symptom trend summaries over a date range
"""

import logging
from typing import List, Optional
from datetime import datetime, timezone, tzinfo
from sqlalchemy.orm import Session

from database import get_db_context
import models
from exceptions import InvariantViolation
from services.journal_store import JournalStore
from tools.adherence_calculator import AdherenceCalculator, AdherenceReport, adherence_calculator
from tools.intake_matching import as_utc
from tools.schedule_engine import resolve_timezone
from tools.trend_correlator import TrendCorrelator, TrendRange, TrendSummary


logger = logging.getLogger(__name__)


class TrendsService:
    """
    Service for adherence and trend analytics
    """

    def __init__(self, calculator: Optional[AdherenceCalculator] = None):
        self.calculator = calculator or adherence_calculator

    async def get_adherence(
        self,
        journal_id: str,
        start: datetime,
        now: Optional[datetime] = None,
        tz: Optional[tzinfo] = None,
        db: Optional[Session] = None
    ) -> List[AdherenceReport]:
        """
        Per-medication adherence over [start, now]

        Medications with nothing due and nothing taken are left out.
        """
        def _adherence(session: Session) -> List[AdherenceReport]:
            store = JournalStore(session)
            store.require(models.Journal, journal_id)
            zone = resolve_timezone(None, tz)
            end = as_utc(now) or datetime.now(timezone.utc)
            begin = as_utc(start)
            if begin > end:
                raise InvariantViolation("Adherence range starts after it ends")

            medications = store.medications_for(journal_id)
            medication_ids = [m.id for m in medications]
            reports = self.calculator.calculate_all(
                medications,
                store.schedules_by_medication(medication_ids),
                store.intakes_in(medication_ids, begin, None),
                begin,
                end,
                zone,
            )

            logger.info(
                f"Adherence for journal {journal_id} from {begin:%Y-%m-%d} to {end:%Y-%m-%d}: "
                f"{len(reports)} medications"
            )
            return reports

        if db:
            return _adherence(db)

        with get_db_context() as session:
            return _adherence(session)

    async def get_trend_summary(
        self,
        journal_id: str,
        trend_range: TrendRange = TrendRange.THIRTY,
        now: Optional[datetime] = None,
        tz: Optional[tzinfo] = None,
        db: Optional[Session] = None
    ) -> TrendSummary:
        """Severity series, correlations and insights for a look-back window"""
        def _summary(session: Session) -> TrendSummary:
            store = JournalStore(session)
            store.require(models.Journal, journal_id)
            zone = resolve_timezone(None, tz)
            end = as_utc(now) or datetime.now(timezone.utc)
            begin, end = trend_range.window(end)

            medications = store.medications_for(journal_id)
            summary = TrendCorrelator(zone).summarize(
                trend_range,
                end,
                store.entries_for(journal_id, begin, end),
                store.intakes_in([m.id for m in medications], begin, None),
                medications,
            )

            logger.info(
                f"Trend summary for journal {journal_id} ({trend_range.value}): "
                f"{len(summary.insights)} insights"
            )
            return summary

        if db:
            return _summary(db)

        with get_db_context() as session:
            return _summary(session)


# Singleton instance
trends_service = TrendsService()
