"""
Export Schemas
Pydantic models for the structured journal export
"""

from typing import Optional, List
from datetime import datetime, date
from decimal import Decimal
from pydantic import BaseModel


class EntryExport(BaseModel):
    id: str
    journal_id: str
    timestamp: datetime
    severity: int
    headache: Optional[int] = None
    nausea: Optional[int] = None
    anxiety: Optional[int] = None
    is_menstruating: bool
    note: Optional[str] = None
    sentiment_label: Optional[str] = None
    sentiment_score: Optional[float] = None
    medication_intake_ids: List[str]


class ScheduleExport(BaseModel):
    id: str
    medication_id: str
    label: Optional[str] = None
    amount: Optional[Decimal] = None
    unit: Optional[str] = None
    cadence: str
    interval: int
    weekday_mask: int
    weekdays: str
    hour: Optional[int] = None
    minute: Optional[int] = None
    timezone_identifier: Optional[str] = None
    start_date: Optional[date] = None
    is_active: bool
    sort_order: int


class IntakeExport(BaseModel):
    id: str
    medication_id: str
    schedule_id: Optional[str] = None
    entry_id: Optional[str] = None
    entry_link_inferred: bool
    amount: Optional[Decimal] = None
    unit: Optional[str] = None
    timestamp: datetime
    scheduled_date: Optional[datetime] = None
    origin: str
    notes: Optional[str] = None


class NoteExport(BaseModel):
    id: str
    journal_id: str
    entry_id: Optional[str] = None
    author_name: Optional[str] = None
    text: str
    timestamp: datetime


class MedicationExport(BaseModel):
    id: str
    name: str
    created_at: datetime
    default_amount: Optional[Decimal] = None
    default_unit: Optional[str] = None
    use_case: Optional[str] = None
    notes: Optional[str] = None
    is_as_needed: bool
    schedules: List[ScheduleExport]
    intakes: List[IntakeExport]


class ExportSummaryResponse(BaseModel):
    exported_entries: int
    exported_medications: int
    exported_schedules: int
    exported_intakes: int
    exported_notes: int


class ExportResponse(BaseModel):
    """Full journal export"""
    generated_at: datetime
    journal_id: str
    entries: List[EntryExport]
    collaborator_notes: List[NoteExport]
    medications: List[MedicationExport]
    summary: ExportSummaryResponse
