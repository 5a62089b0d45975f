"""
Tests for Medication Service
Medication lifecycle and schedule validation
"""

import pytest
from datetime import date
from decimal import Decimal

from exceptions import InvariantViolation, NotFoundError
from models import MedicationIntake, MedicationSchedule
from services.medication_service import MedicationService
from tools.intake_matching import IntakeOrigin
from tools.schedule_engine import Cadence


@pytest.fixture
def medication_service():
    """Create medication service instance"""
    return MedicationService()


class TestMedications:

    @pytest.mark.asyncio
    @pytest.mark.database
    async def test_add_medication(self, medication_service, db_session, test_journal):
        medication = await medication_service.add_medication(
            journal_id=test_journal.id,
            name="  Propranolol ",
            default_amount=Decimal("40"),
            default_unit="mg",
            use_case_label="   ",
            db=db_session
        )
        assert medication.id
        assert medication.name == "Propranolol"
        assert medication.use_case_label is None
        assert not medication.is_as_needed

    @pytest.mark.asyncio
    @pytest.mark.database
    async def test_add_to_missing_journal(self, medication_service, db_session):
        with pytest.raises(NotFoundError):
            await medication_service.add_medication(journal_id="missing", name="X", db=db_session)

    @pytest.mark.asyncio
    @pytest.mark.database
    async def test_blank_name_rejected(self, medication_service, db_session, test_journal):
        with pytest.raises(InvariantViolation):
            await medication_service.add_medication(journal_id=test_journal.id, name="  ", db=db_session)

    @pytest.mark.asyncio
    @pytest.mark.database
    async def test_journal_medications_sorted_by_name(
        self, medication_service, db_session, test_medication, as_needed_medication
    ):
        medications = await medication_service.get_journal_medications(test_medication.journal_id, db=db_session)
        assert [m.name for m in medications] == ["Sertraline", "Sumatriptan"]

    @pytest.mark.asyncio
    @pytest.mark.database
    async def test_update_rejects_as_needed_with_schedules(self, medication_service, db_session, test_schedule):
        with pytest.raises(InvariantViolation):
            await medication_service.update_medication(
                test_schedule.medication_id, {"is_as_needed": True}, db=db_session
            )

    @pytest.mark.asyncio
    @pytest.mark.database
    async def test_update_unknown_field(self, medication_service, db_session, test_medication):
        with pytest.raises(InvariantViolation):
            await medication_service.update_medication(test_medication.id, {"journal_id": "x"}, db=db_session)

    @pytest.mark.asyncio
    @pytest.mark.database
    async def test_update_missing(self, medication_service, db_session):
        assert await medication_service.update_medication("missing", {"notes": "x"}, db=db_session) is None

    @pytest.mark.asyncio
    @pytest.mark.database
    async def test_delete_cascades(self, medication_service, db_session, test_medication, intake_history):
        assert await medication_service.delete_medication(test_medication.id, db=db_session)
        assert db_session.query(MedicationSchedule).count() == 0
        assert db_session.query(MedicationIntake).count() == 0


class TestSchedules:

    @pytest.mark.asyncio
    @pytest.mark.database
    async def test_sort_order_assigned(self, medication_service, db_session, test_medication):
        morning = await medication_service.add_schedule(test_medication.id, hour=8, minute=0, db=db_session)
        evening = await medication_service.add_schedule(test_medication.id, hour=20, minute=0, db=db_session)

        assert (morning.sort_order, evening.sort_order) == (0, 1)
        schedules = await medication_service.get_schedules(test_medication.id, db=db_session)
        assert [s.id for s in schedules] == [morning.id, evening.id]

    @pytest.mark.asyncio
    @pytest.mark.database
    async def test_interval_requires_start_date(self, medication_service, db_session, test_medication):
        with pytest.raises(InvariantViolation):
            await medication_service.add_schedule(
                test_medication.id, hour=8, minute=0, cadence=Cadence.INTERVAL, interval=3, db=db_session
            )

    @pytest.mark.asyncio
    @pytest.mark.database
    async def test_interval_with_start_date(self, medication_service, db_session, test_medication):
        schedule = await medication_service.add_schedule(
            test_medication.id, hour=8, minute=0, cadence=Cadence.INTERVAL, interval=3,
            start_date=date(2024, 1, 1), db=db_session
        )
        assert schedule.cadence == "interval"
        assert schedule.cadence_kind == Cadence.INTERVAL

    @pytest.mark.asyncio
    @pytest.mark.database
    @pytest.mark.parametrize("overrides", [
        {"hour": 24},
        {"minute": 60},
        {"interval": 0},
        {"weekday_mask": 128},
        {"timezone_identifier": "Mars/Olympus"},
    ])
    async def test_invalid_schedule_rejected(self, medication_service, db_session, test_medication, overrides):
        values = {"hour": 8, "minute": 0}
        values.update(overrides)
        with pytest.raises(InvariantViolation):
            await medication_service.add_schedule(test_medication.id, **values, db=db_session)

    @pytest.mark.asyncio
    @pytest.mark.database
    async def test_as_needed_cannot_have_schedules(self, medication_service, db_session, as_needed_medication):
        with pytest.raises(InvariantViolation):
            await medication_service.add_schedule(as_needed_medication.id, hour=8, minute=0, db=db_session)

    @pytest.mark.asyncio
    @pytest.mark.database
    async def test_update_schedule(self, medication_service, db_session, test_schedule):
        updated = await medication_service.update_schedule(
            test_schedule.id, {"cadence": "weekly", "weekday_mask": 0b10}, db=db_session
        )
        assert updated.cadence == "weekly"
        assert updated.weekday_mask == 0b10

    @pytest.mark.asyncio
    @pytest.mark.database
    async def test_update_to_interval_without_anchor_rejected(self, medication_service, db_session, test_schedule):
        with pytest.raises(InvariantViolation):
            await medication_service.update_schedule(test_schedule.id, {"cadence": "interval"}, db=db_session)

    @pytest.mark.asyncio
    @pytest.mark.database
    async def test_delete_schedule_keeps_intakes_as_manual(
        self, medication_service, db_session, test_schedule, intake_history
    ):
        assert await medication_service.delete_schedule(test_schedule.id, db=db_session)

        db_session.expire_all()
        intakes = db_session.query(MedicationIntake).all()
        assert len(intakes) == len(intake_history)
        assert all(i.schedule_id is None for i in intakes)
        assert all(i.scheduled_date is None for i in intakes)
        assert all(i.origin == IntakeOrigin.MANUAL for i in intakes)
