"""
Intake Schemas
Pydantic models for dose toggles, as-needed logs and intake edits
"""

from typing import Optional, List
from datetime import datetime, date
from decimal import Decimal
from pydantic import BaseModel, Field, ConfigDict

from tools.intake_matching import IntakeOrigin


# ==================== REQUEST SCHEMAS ====================

class IntakeToggle(BaseModel):
    """
    Mark a day's dose taken or not taken.

    Without schedule_id the medication's implicit daily dose is toggled.
    """
    medication_id: str
    schedule_id: Optional[str] = None
    day: date
    taken: bool
    logged_at: Optional[datetime] = None


class AsNeededLog(BaseModel):
    """Schema for logging an as-needed dose"""
    amount: Optional[Decimal] = Field(None, ge=0)
    unit: Optional[str] = Field(None, max_length=50)
    at: Optional[datetime] = None
    notes: Optional[str] = None


class IntakeUpdate(BaseModel):
    """Editable intake fields; only provided fields change"""
    amount: Optional[Decimal] = Field(None, ge=0)
    unit: Optional[str] = Field(None, max_length=50)
    timestamp: Optional[datetime] = None
    notes: Optional[str] = None


class IntakeLink(BaseModel):
    """Attach an intake to a symptom entry (null detaches)"""
    entry_id: Optional[str] = None


# ==================== RESPONSE SCHEMAS ====================

class IntakeResponse(BaseModel):
    """Schema for intake response"""
    id: str
    medication_id: str
    schedule_id: Optional[str] = None
    entry_id: Optional[str] = None
    amount: Optional[Decimal] = None
    unit: Optional[str] = None
    timestamp: datetime
    scheduled_date: Optional[datetime] = None
    origin: IntakeOrigin
    notes: Optional[str] = None

    model_config = ConfigDict(from_attributes=True)


class ToggleResponse(BaseModel):
    """Result of a toggle; intake is null when the dose is not taken"""
    taken: bool
    intake: Optional[IntakeResponse] = None


class MedicationDefaults(BaseModel):
    """Defaults written back to the medication"""
    medication_id: str
    default_amount: Optional[Decimal] = None
    default_unit: Optional[str] = None

    model_config = ConfigDict(from_attributes=True)


class AsNeededLogResponse(BaseModel):
    """New as-needed intake and the updated medication defaults"""
    intake: IntakeResponse
    defaults: MedicationDefaults


class IntakeList(BaseModel):
    medication_id: str
    intakes: List[IntakeResponse]
    total: int
