"""
Pytest Configuration and Shared Fixtures
========================================

This module provides shared fixtures for all Auralyst tests.
Fixtures include database sessions, test clients and sample journal data.
"""

import os
import sys
from datetime import datetime, date, timedelta, timezone
from decimal import Decimal
from typing import Generator, Dict, Any, List
from zoneinfo import ZoneInfo

import pytest

# Keep the app's own engine off the working directory
os.environ.setdefault("DATABASE_URL", "sqlite:///:memory:")

from fastapi.testclient import TestClient
from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker, Session
from sqlalchemy.pool import StaticPool

# Add parent directory to path for imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from database import Base, get_db
from models import (
    Journal, Medication, MedicationSchedule, MedicationIntake, SymptomEntry
)
from tools.intake_matching import IntakeOrigin
from app import app


UTC = timezone.utc


# ==================== DATABASE FIXTURES ====================

@pytest.fixture(scope="function")
def test_engine():
    """Create a test database engine with in-memory SQLite"""
    engine = create_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
        echo=False
    )

    # Enable foreign keys for SQLite
    @event.listens_for(engine, "connect")
    def set_sqlite_pragma(dbapi_connection, connection_record):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    # Create all tables
    Base.metadata.create_all(bind=engine)

    yield engine

    # Cleanup
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture(scope="function")
def db_session(test_engine) -> Generator[Session, None, None]:
    """Create a test database session"""
    TestingSessionLocal = sessionmaker(
        autocommit=False,
        autoflush=False,
        expire_on_commit=False,
        bind=test_engine
    )

    session = TestingSessionLocal()

    try:
        yield session
    finally:
        session.rollback()
        session.close()


@pytest.fixture(scope="function")
def client(db_session: Session) -> Generator[TestClient, None, None]:
    """Create a FastAPI test client with database override"""

    def override_get_db():
        try:
            yield db_session
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db

    with TestClient(app) as test_client:
        yield test_client

    app.dependency_overrides.clear()


# ==================== SAMPLE DATA FIXTURES ====================

@pytest.fixture
def utc() -> timezone:
    return UTC


@pytest.fixture
def berlin() -> ZoneInfo:
    return ZoneInfo("Europe/Berlin")


@pytest.fixture
def sample_medication_data() -> Dict[str, Any]:
    """Sample data for a scheduled medication"""
    return {
        "name": "Sertraline",
        "default_amount": Decimal("50"),
        "default_unit": "mg",
        "is_as_needed": False,
        "notes": "Take with breakfast"
    }


@pytest.fixture
def test_journal(db_session: Session) -> Journal:
    """Create and return a test journal"""
    journal = Journal(title="Migraine diary")
    db_session.add(journal)
    db_session.commit()
    db_session.refresh(journal)
    return journal


@pytest.fixture
def test_medication(db_session: Session, test_journal: Journal, sample_medication_data: Dict) -> Medication:
    """Create and return a scheduled medication without schedules"""
    medication = Medication(journal_id=test_journal.id, **sample_medication_data)
    db_session.add(medication)
    db_session.commit()
    db_session.refresh(medication)
    return medication


@pytest.fixture
def test_schedule(db_session: Session, test_medication: Medication) -> MedicationSchedule:
    """Daily 08:00 UTC schedule for the test medication"""
    schedule = MedicationSchedule(
        medication_id=test_medication.id,
        label="Morning",
        cadence="daily",
        hour=8,
        minute=0,
        timezone_identifier="UTC",
        sort_order=0
    )
    db_session.add(schedule)
    db_session.commit()
    db_session.refresh(schedule)
    return schedule


@pytest.fixture
def as_needed_medication(db_session: Session, test_journal: Journal) -> Medication:
    """Create and return an as-needed rescue medication"""
    medication = Medication(
        journal_id=test_journal.id,
        name="Sumatriptan",
        default_amount=Decimal("50"),
        default_unit="mg",
        is_as_needed=True,
        use_case_label="Migraine rescue"
    )
    db_session.add(medication)
    db_session.commit()
    db_session.refresh(medication)
    return medication


@pytest.fixture
def test_entry(db_session: Session, test_journal: Journal) -> SymptomEntry:
    """Create and return a symptom entry"""
    entry = SymptomEntry(
        journal_id=test_journal.id,
        timestamp=datetime(2024, 3, 4, 9, 0, tzinfo=UTC),
        severity=6,
        headache=7,
        note="Woke up with a headache"
    )
    db_session.add(entry)
    db_session.commit()
    db_session.refresh(entry)
    return entry


@pytest.fixture
def intake_history(db_session: Session, test_schedule: MedicationSchedule) -> List[MedicationIntake]:
    """Scheduled intakes for the five days ending 2024-03-05, with 2024-03-03 missed"""
    intakes = []
    for offset in range(5):
        day = date(2024, 3, 1) + timedelta(days=offset)
        if day == date(2024, 3, 3):
            continue
        nominal = datetime(day.year, day.month, day.day, 8, 0, tzinfo=UTC)
        intake = MedicationIntake(
            medication_id=test_schedule.medication_id,
            schedule_id=test_schedule.id,
            amount=Decimal("50"),
            unit="mg",
            timestamp=nominal + timedelta(minutes=5),
            scheduled_date=nominal,
            origin=IntakeOrigin.SCHEDULED
        )
        db_session.add(intake)
        intakes.append(intake)

    db_session.commit()
    for intake in intakes:
        db_session.refresh(intake)
    return intakes


# ==================== MARKERS ====================

def pytest_configure(config):
    """Register custom markers"""
    config.addinivalue_line("markers", "unit: mark test as a unit test")
    config.addinivalue_line("markers", "integration: mark test as an integration test")
    config.addinivalue_line("markers", "api: mark test as an API test")
    config.addinivalue_line("markers", "database: mark test as requiring database")
