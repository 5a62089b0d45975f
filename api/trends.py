"""
Trends API Router
Endpoints for adherence reports and symptom trend summaries
"""

from typing import Optional
from datetime import datetime, timezone, tzinfo
from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from api.deps import get_db, get_timezone, services
from api.schemas.trends import (
    AdherenceResponse,
    MedicationAdherenceResponse,
    DailySeverityPointResponse,
    HeatmapCellResponse,
    MedicationEffectResponse,
    LabeledAverageResponse,
    AsNeededUsageResponse,
    SentimentOverviewResponse,
    TrendInsightResponse,
    TrendSummaryResponse,
)
from tools.trend_correlator import TrendRange


router = APIRouter(prefix="/journals", tags=["trends"])


@router.get("/{journal_id}/adherence", response_model=AdherenceResponse)
async def get_adherence(
    journal_id: str,
    range: TrendRange = Query(TrendRange.THIRTY, description="Look-back window"),
    start: Optional[datetime] = Query(None, description="Explicit start; overrides range"),
    tz: tzinfo = Depends(get_timezone),
    db: Session = Depends(get_db)
):
    """
    Scheduled versus taken doses per medication

    Medications with nothing due and nothing taken are omitted.
    """
    trends_service = services.get_trends_service()
    now = datetime.now(timezone.utc)
    begin = start or range.window(now)[0]

    reports = await trends_service.get_adherence(journal_id, begin, now=now, tz=tz, db=db)

    return AdherenceResponse(
        journal_id=journal_id,
        start=begin,
        end=now,
        medications=[MedicationAdherenceResponse(**r.to_dict()) for r in reports]
    )


@router.get("/{journal_id}/trends", response_model=TrendSummaryResponse)
async def get_trends(
    journal_id: str,
    range: TrendRange = Query(TrendRange.THIRTY, description="Look-back window"),
    tz: tzinfo = Depends(get_timezone),
    db: Session = Depends(get_db)
):
    """
    Severity series, medication correlations, cycle split and insights
    """
    trends_service = services.get_trends_service()
    summary = await trends_service.get_trend_summary(journal_id, range, tz=tz, db=db)

    sentiment = None
    if summary.sentiment is not None:
        sentiment = SentimentOverviewResponse(
            average_score=summary.sentiment.average_score,
            labeled_count=summary.sentiment.labeled_count,
            pending_analysis_count=summary.sentiment.pending_analysis_count,
            tone=summary.sentiment.tone,
            description=summary.sentiment.description
        )

    return TrendSummaryResponse(
        journal_id=journal_id,
        range=summary.range.value,
        start=summary.start,
        end=summary.end,
        daily_severity=[DailySeverityPointResponse.model_validate(p) for p in summary.daily_severity],
        heatmap=[HeatmapCellResponse.model_validate(c) for c in summary.heatmap],
        medication_effects=[MedicationEffectResponse.model_validate(e) for e in summary.medication_effects],
        menstruation=[LabeledAverageResponse.model_validate(m) for m in summary.menstruation],
        menstruation_delta_description=summary.menstruation_delta_description,
        symptom_breakdown=[LabeledAverageResponse.model_validate(s) for s in summary.symptom_breakdown],
        as_needed_usage=[AsNeededUsageResponse.model_validate(u) for u in summary.as_needed_usage],
        sentiment=sentiment,
        insights=[TrendInsightResponse.model_validate(i) for i in summary.insights]
    )
