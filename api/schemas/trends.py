"""
Trend Schemas
Pydantic models for adherence reports and symptom trend summaries
"""

from typing import Optional, List
from datetime import datetime, date
from pydantic import BaseModel, ConfigDict


class MedicationAdherenceResponse(BaseModel):
    """Adherence of one medication over the requested range"""
    medication_id: str
    medication_name: str
    is_as_needed: bool
    scheduled_count: int
    taken_count: int
    missed_count: int
    adherence_rate: float
    average_dose: Optional[str] = None

    model_config = ConfigDict(from_attributes=True)


class AdherenceResponse(BaseModel):
    journal_id: str
    start: datetime
    end: datetime
    medications: List[MedicationAdherenceResponse]


class DailySeverityPointResponse(BaseModel):
    day: date
    value: float

    model_config = ConfigDict(from_attributes=True)


class HeatmapCellResponse(BaseModel):
    weekday: int  # Sunday = 0
    hour: int
    value: float

    model_config = ConfigDict(from_attributes=True)


class MedicationEffectResponse(BaseModel):
    medication_id: str
    name: str
    delta: float

    model_config = ConfigDict(from_attributes=True)


class LabeledAverageResponse(BaseModel):
    label: str
    value: float
    count: Optional[int] = None

    model_config = ConfigDict(from_attributes=True)


class AsNeededUsageResponse(BaseModel):
    label: str
    count: int
    medication_names: List[str]

    model_config = ConfigDict(from_attributes=True)


class SentimentOverviewResponse(BaseModel):
    average_score: Optional[float] = None
    labeled_count: int
    pending_analysis_count: int
    tone: Optional[str] = None
    description: str

    model_config = ConfigDict(from_attributes=True)


class TrendInsightResponse(BaseModel):
    kind: str
    title: str
    detail: Optional[str] = None

    model_config = ConfigDict(from_attributes=True)


class TrendSummaryResponse(BaseModel):
    """All trend rollups for one look-back window"""
    journal_id: str
    range: str
    start: datetime
    end: datetime
    daily_severity: List[DailySeverityPointResponse]
    heatmap: List[HeatmapCellResponse]
    medication_effects: List[MedicationEffectResponse]
    menstruation: List[LabeledAverageResponse]
    menstruation_delta_description: Optional[str] = None
    symptom_breakdown: List[LabeledAverageResponse]
    as_needed_usage: List[AsNeededUsageResponse]
    sentiment: Optional[SentimentOverviewResponse] = None
    insights: List[TrendInsightResponse]
