"""
Medication Schemas
Pydantic models for medication and schedule API requests and responses
"""

from typing import Optional, List
from datetime import datetime, date
from decimal import Decimal
from pydantic import BaseModel, Field, ConfigDict, model_validator

from tools.schedule_engine import Cadence
from tools.weekdays import Weekday, WeekdaySet


# ==================== REQUEST SCHEMAS ====================

class MedicationBase(BaseModel):
    """Base medication schema"""
    name: str = Field(..., min_length=1, max_length=255)
    default_amount: Optional[Decimal] = Field(None, ge=0)
    default_unit: Optional[str] = Field(None, max_length=50)
    is_as_needed: bool = False
    use_case_label: Optional[str] = Field(None, max_length=255)
    notes: Optional[str] = None


class MedicationCreate(MedicationBase):
    """Schema for adding a medication to a journal"""
    pass


class MedicationUpdate(BaseModel):
    """Schema for updating a medication; only provided fields change"""
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    default_amount: Optional[Decimal] = Field(None, ge=0)
    default_unit: Optional[str] = Field(None, max_length=50)
    is_as_needed: Optional[bool] = None
    use_case_label: Optional[str] = Field(None, max_length=255)
    notes: Optional[str] = None


class ScheduleBase(BaseModel):
    """Base schedule schema"""
    label: Optional[str] = Field(None, max_length=255)
    amount: Optional[Decimal] = Field(None, ge=0)
    unit: Optional[str] = Field(None, max_length=50)
    cadence: Cadence = Cadence.DAILY
    interval: int = Field(default=1, ge=1)
    weekday_mask: int = Field(default=0, ge=0, le=127, description="Sunday = bit 0")
    hour: int = Field(..., ge=0, le=23)
    minute: int = Field(..., ge=0, le=59)
    timezone_identifier: Optional[str] = Field(None, max_length=64)
    start_date: Optional[date] = None
    is_active: bool = True


class ScheduleCreate(ScheduleBase):
    """Schema for adding a schedule; weekdays may be given by name instead of a mask"""
    weekdays: Optional[List[Weekday]] = None
    sort_order: Optional[int] = None

    @model_validator(mode="after")
    def check_recurrence(self):
        if self.weekdays is not None:
            self.weekday_mask = WeekdaySet.from_days(self.weekdays).mask
        if self.cadence == Cadence.INTERVAL and self.start_date is None:
            raise ValueError("interval schedules require start_date")
        return self


class ScheduleUpdate(BaseModel):
    """Schema for updating a schedule; only provided fields change"""
    label: Optional[str] = Field(None, max_length=255)
    amount: Optional[Decimal] = Field(None, ge=0)
    unit: Optional[str] = Field(None, max_length=50)
    cadence: Optional[Cadence] = None
    interval: Optional[int] = Field(None, ge=1)
    weekday_mask: Optional[int] = Field(None, ge=0, le=127)
    hour: Optional[int] = Field(None, ge=0, le=23)
    minute: Optional[int] = Field(None, ge=0, le=59)
    timezone_identifier: Optional[str] = Field(None, max_length=64)
    start_date: Optional[date] = None
    is_active: Optional[bool] = None
    sort_order: Optional[int] = None


# ==================== RESPONSE SCHEMAS ====================

class ScheduleResponse(ScheduleBase):
    """Schema for schedule response"""
    id: str
    medication_id: str
    cadence: str
    sort_order: int = 0

    model_config = ConfigDict(from_attributes=True)


class MedicationResponse(MedicationBase):
    """Schema for medication response"""
    id: str
    journal_id: str
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class MedicationDetail(MedicationResponse):
    """Medication with its schedules"""
    schedules: List[ScheduleResponse] = []


class MedicationList(BaseModel):
    """List of medications"""
    journal_id: str
    medications: List[MedicationDetail]
    total: int
