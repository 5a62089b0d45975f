"""
Journal Schemas
Pydantic models for journal and symptom entry API requests and responses
"""

from typing import Optional, List
from datetime import datetime
from pydantic import BaseModel, Field, ConfigDict


# ==================== REQUEST SCHEMAS ====================

class JournalCreate(BaseModel):
    """Schema for creating a journal"""
    title: Optional[str] = Field(None, max_length=255)


class EntryBase(BaseModel):
    """Shared symptom entry fields"""
    severity: int = Field(default=0, ge=0, le=10, description="0 means not rated")
    headache: Optional[int] = Field(None, ge=0, le=10)
    nausea: Optional[int] = Field(None, ge=0, le=10)
    anxiety: Optional[int] = Field(None, ge=0, le=10)
    is_menstruating: bool = False
    note: Optional[str] = None
    sentiment_label: Optional[str] = Field(None, max_length=50)
    sentiment_score: Optional[float] = Field(None, ge=-1.0, le=1.0)


class EntryCreate(EntryBase):
    """Schema for recording a symptom entry"""
    timestamp: Optional[datetime] = None


class EntryUpdate(BaseModel):
    """Schema for editing a symptom entry; only provided fields change"""
    timestamp: Optional[datetime] = None
    severity: Optional[int] = Field(None, ge=0, le=10)
    headache: Optional[int] = Field(None, ge=0, le=10)
    nausea: Optional[int] = Field(None, ge=0, le=10)
    anxiety: Optional[int] = Field(None, ge=0, le=10)
    is_menstruating: Optional[bool] = None
    note: Optional[str] = None
    sentiment_label: Optional[str] = Field(None, max_length=50)
    sentiment_score: Optional[float] = Field(None, ge=-1.0, le=1.0)


# ==================== RESPONSE SCHEMAS ====================

class JournalResponse(BaseModel):
    """Schema for journal response"""
    id: str
    title: Optional[str] = None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class EntryResponse(EntryBase):
    """Schema for symptom entry response"""
    id: str
    journal_id: str
    timestamp: datetime

    model_config = ConfigDict(from_attributes=True)


class EntryList(BaseModel):
    """List of symptom entries"""
    journal_id: str
    entries: List[EntryResponse]
    total: int


# ==================== COLLABORATOR NOTES ====================

class NoteCreate(BaseModel):
    """Schema for leaving a collaborator note"""
    text: str = Field(..., min_length=1)
    entry_id: Optional[str] = None
    author_name: Optional[str] = Field(None, max_length=255)
    timestamp: Optional[datetime] = None


class NoteResponse(BaseModel):
    """Schema for collaborator note response"""
    id: str
    journal_id: str
    entry_id: Optional[str] = None
    author_name: Optional[str] = None
    text: str
    timestamp: datetime

    model_config = ConfigDict(from_attributes=True)


class NoteList(BaseModel):
    """Collaborator notes of a journal"""
    journal_id: str
    notes: List[NoteResponse]
    total: int
