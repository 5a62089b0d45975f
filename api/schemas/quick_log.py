"""
Quick Log Schemas
Pydantic models for the daily quick-log snapshot
"""

from typing import Optional, List
from datetime import datetime, date
from decimal import Decimal
from pydantic import BaseModel, ConfigDict


class ScheduledOccurrenceResponse(BaseModel):
    """A due dose on the selected day"""
    id: str
    source_kind: str
    schedule_id: Optional[str] = None
    medication_id: str
    medication_name: str
    use_case: Optional[str] = None
    schedule_label: Optional[str] = None
    scheduled_at: datetime
    amount: Optional[Decimal] = None
    unit: Optional[str] = None
    display_amount: Optional[str] = None
    intake_id: Optional[str] = None
    intake_timestamp: Optional[datetime] = None
    taken: bool

    model_config = ConfigDict(from_attributes=True)


class AsNeededItemResponse(BaseModel):
    """An as-needed medication available for logging"""
    medication_id: str
    name: str
    use_case: Optional[str] = None
    default_amount: Optional[Decimal] = None
    default_unit: Optional[str] = None
    display_amount: Optional[str] = None
    last_logged_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class DailySnapshotResponse(BaseModel):
    """Everything due and available on one day"""
    journal_id: str
    day: date
    timezone: str
    has_medications: bool
    taken_count: int
    pending_count: int
    scheduled: List[ScheduledOccurrenceResponse]
    as_needed: List[AsNeededItemResponse]
