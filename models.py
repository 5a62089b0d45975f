"""
Database Models
SQLAlchemy ORM models for Auralyst
"""

import uuid
from sqlalchemy import (
    Column, Integer, String, Boolean, Float, DateTime, ForeignKey, Text, Date,
    Enum, Index, Numeric, UniqueConstraint, event
)
from sqlalchemy.orm import relationship, validates
from sqlalchemy.types import TypeDecorator
from datetime import datetime, timezone

from config import TableNames
from database import Base
from exceptions import InvariantViolation
from tools.intake_matching import IntakeOrigin
from tools.schedule_engine import Cadence
from tools.weekdays import WeekdaySet, ALL_DAYS_MASK


def _new_id() -> str:
    return str(uuid.uuid4())


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class UTCDateTime(TypeDecorator):
    """Stores naive UTC, returns aware UTC"""
    impl = DateTime
    cache_ok = True

    def process_bind_param(self, value, dialect):
        if value is None:
            return None
        if value.tzinfo is None:
            return value
        return value.astimezone(timezone.utc).replace(tzinfo=None)

    def process_result_value(self, value, dialect):
        if value is None:
            return None
        return value.replace(tzinfo=timezone.utc)


# ==================== MODELS ====================

class Journal(Base):
    """A personal symptom journal; owns medications and entries"""
    __tablename__ = TableNames.JOURNALS

    id = Column(String(36), primary_key=True, default=_new_id)
    title = Column(String(255))
    created_at = Column(UTCDateTime, default=_utcnow, nullable=False)

    # Relationships
    medications = relationship("Medication", back_populates="journal", cascade="all, delete-orphan")
    entries = relationship("SymptomEntry", back_populates="journal", cascade="all, delete-orphan")
    notes = relationship("CollaboratorNote", back_populates="journal", cascade="all, delete-orphan")


class Medication(Base):
    """A medication tracked in a journal, scheduled or as-needed"""
    __tablename__ = TableNames.MEDICATIONS

    id = Column(String(36), primary_key=True, default=_new_id)
    journal_id = Column(String(36), ForeignKey("journals.id", ondelete="CASCADE"), nullable=False)

    name = Column(String(255), nullable=False)
    default_amount = Column(Numeric(12, 4, asdecimal=True))
    default_unit = Column(String(50))
    is_as_needed = Column(Boolean, default=False, nullable=False)
    use_case_label = Column(String(255))  # e.g. "Migraine rescue"
    notes = Column(Text)

    created_at = Column(UTCDateTime, default=_utcnow, nullable=False)
    updated_at = Column(UTCDateTime, default=_utcnow, onupdate=_utcnow, nullable=False)

    # Relationships
    journal = relationship("Journal", back_populates="medications")
    schedules = relationship(
        "MedicationSchedule",
        back_populates="medication",
        cascade="all, delete-orphan",
        order_by=lambda: [MedicationSchedule.sort_order, MedicationSchedule.hour, MedicationSchedule.minute]
    )
    intakes = relationship("MedicationIntake", back_populates="medication", cascade="all, delete-orphan")

    __table_args__ = (
        Index("ix_medications_journal", "journal_id"),
    )

    @validates("use_case_label")
    def validate_use_case_label(self, key, value):
        if value is None:
            return None
        value = value.strip()
        return value or None

    @validates("name")
    def validate_name(self, key, value):
        if value is None or not value.strip():
            raise InvariantViolation("Medication name is required")
        return value.strip()

    def touch(self) -> None:
        self.updated_at = _utcnow()


class MedicationSchedule(Base):
    """Recurrence rule for a scheduled medication"""
    __tablename__ = TableNames.SCHEDULES

    id = Column(String(36), primary_key=True, default=_new_id)
    medication_id = Column(String(36), ForeignKey("medications.id", ondelete="CASCADE"), nullable=False)

    label = Column(String(255))  # e.g. "Morning"
    amount = Column(Numeric(12, 4, asdecimal=True))  # overrides medication default
    unit = Column(String(50))

    cadence = Column(String(20), default=Cadence.DAILY.value, nullable=False)
    interval = Column(Integer, default=1, nullable=False)
    weekday_mask = Column(Integer, default=0, nullable=False)  # Sunday = bit 0
    hour = Column(Integer)
    minute = Column(Integer)
    timezone_identifier = Column(String(64))  # IANA name
    start_date = Column(Date)  # anchor day for interval cadence

    is_active = Column(Boolean, default=True, nullable=False)
    sort_order = Column(Integer, default=0, nullable=False)

    # Relationships
    medication = relationship("Medication", back_populates="schedules")
    intakes = relationship("MedicationIntake", back_populates="schedule")

    __table_args__ = (
        Index("ix_schedules_medication", "medication_id"),
    )

    @property
    def cadence_kind(self) -> Cadence:
        return Cadence.parse(self.cadence)

    @property
    def weekdays(self) -> WeekdaySet:
        return WeekdaySet(self.weekday_mask or 0)

    @weekdays.setter
    def weekdays(self, value: WeekdaySet) -> None:
        self.weekday_mask = value.mask

    @validates("cadence")
    def validate_cadence(self, key, value):
        return Cadence.parse(value).value

    @validates("interval")
    def validate_interval(self, key, value):
        if value is None:
            return 1
        if value < 1:
            raise InvariantViolation(f"Schedule interval must be >= 1, got {value}")
        return value

    @validates("weekday_mask")
    def validate_weekday_mask(self, key, value):
        value = value or 0
        if not 0 <= value <= ALL_DAYS_MASK:
            raise InvariantViolation(f"Weekday mask must be within 0..127, got {value}")
        return value

    @validates("hour")
    def validate_hour(self, key, value):
        if value is not None and not 0 <= value <= 23:
            raise InvariantViolation(f"Schedule hour must be within 0..23, got {value}")
        return value

    @validates("minute")
    def validate_minute(self, key, value):
        if value is not None and not 0 <= value <= 59:
            raise InvariantViolation(f"Schedule minute must be within 0..59, got {value}")
        return value

    def check_invariants(self) -> None:
        if self.cadence_kind == Cadence.INTERVAL and self.start_date is None:
            raise InvariantViolation("Interval schedules require a start date")


class MedicationIntake(Base):
    """A logged dose"""
    __tablename__ = TableNames.INTAKES

    id = Column(String(36), primary_key=True, default=_new_id)
    medication_id = Column(String(36), ForeignKey("medications.id", ondelete="CASCADE"), nullable=False)
    schedule_id = Column(String(36), ForeignKey("medication_schedules.id", ondelete="SET NULL"))
    entry_id = Column(String(36), ForeignKey("symptom_entries.id", ondelete="SET NULL"))

    amount = Column(Numeric(12, 4, asdecimal=True))
    unit = Column(String(50))
    timestamp = Column(UTCDateTime, default=_utcnow, nullable=False)  # when actually logged
    scheduled_date = Column(UTCDateTime)  # nominal occurrence, scheduled origin only
    origin = Column(Enum(IntakeOrigin), default=IntakeOrigin.MANUAL, nullable=False)
    notes = Column(Text)

    # Relationships
    medication = relationship("Medication", back_populates="intakes")
    schedule = relationship("MedicationSchedule", back_populates="intakes")
    entry = relationship("SymptomEntry", back_populates="intakes")

    __table_args__ = (
        UniqueConstraint("schedule_id", "scheduled_date", name="uq_intake_schedule_occurrence"),
        Index("ix_intakes_medication_timestamp", "medication_id", "timestamp"),
    )

    def check_invariants(self) -> None:
        origin = IntakeOrigin(self.origin or IntakeOrigin.MANUAL)
        is_scheduled = origin == IntakeOrigin.SCHEDULED
        if is_scheduled and not self.schedule_id:
            raise InvariantViolation("Scheduled intakes must reference a schedule")
        if not is_scheduled and self.schedule_id:
            raise InvariantViolation(f"{origin.value} intakes cannot reference a schedule")
        if not is_scheduled and self.scheduled_date is not None:
            raise InvariantViolation("Only scheduled intakes carry a scheduled date")


class SymptomEntry(Base):
    """A symptom journal entry"""
    __tablename__ = TableNames.ENTRIES

    id = Column(String(36), primary_key=True, default=_new_id)
    journal_id = Column(String(36), ForeignKey("journals.id", ondelete="CASCADE"), nullable=False)
    timestamp = Column(UTCDateTime, default=_utcnow, nullable=False)

    severity = Column(Integer, default=0, nullable=False)  # 0-10, 0 = unset
    headache = Column(Integer)  # 0-10
    nausea = Column(Integer)    # 0-10
    anxiety = Column(Integer)   # 0-10
    is_menstruating = Column(Boolean, default=False, nullable=False)
    note = Column(Text)
    sentiment_label = Column(String(50))
    sentiment_score = Column(Float)  # -1..1

    # Relationships
    journal = relationship("Journal", back_populates="entries")
    intakes = relationship("MedicationIntake", back_populates="entry")
    notes = relationship("CollaboratorNote", back_populates="entry")

    __table_args__ = (
        Index("ix_entries_journal_timestamp", "journal_id", "timestamp"),
    )

    @validates("severity", "headache", "nausea", "anxiety")
    def validate_score(self, key, value):
        if value is None:
            return 0 if key == "severity" else None
        if not 0 <= value <= 10:
            raise InvariantViolation(f"{key} must be within 0..10, got {value}")
        return value


class CollaboratorNote(Base):
    """A note left on a journal, optionally about one entry"""
    __tablename__ = TableNames.NOTES

    id = Column(String(36), primary_key=True, default=_new_id)
    journal_id = Column(String(36), ForeignKey("journals.id", ondelete="CASCADE"), nullable=False)
    entry_id = Column(String(36), ForeignKey("symptom_entries.id", ondelete="SET NULL"))
    author_name = Column(String(255))
    text = Column(Text, nullable=False)
    timestamp = Column(UTCDateTime, default=_utcnow, nullable=False)

    # Relationships
    journal = relationship("Journal", back_populates="notes")
    entry = relationship("SymptomEntry", back_populates="notes")

    __table_args__ = (
        Index("ix_notes_journal_timestamp", "journal_id", "timestamp"),
    )

    @validates("text")
    def validate_text(self, key, value):
        text = (value or "").strip()
        if not text:
            raise InvariantViolation("Note text is required")
        return text

    @validates("author_name")
    def validate_author_name(self, key, value):
        if value is None:
            return None
        return value.strip() or None


# ==================== INVARIANT HOOKS ====================

@event.listens_for(MedicationSchedule, "before_insert")
@event.listens_for(MedicationSchedule, "before_update")
def _check_schedule(mapper, connection, target):
    target.check_invariants()


@event.listens_for(MedicationIntake, "before_insert")
@event.listens_for(MedicationIntake, "before_update")
def _check_intake(mapper, connection, target):
    target.check_invariants()
