"""
Medications API Router
Endpoints for medication and schedule management
"""

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from api.deps import get_db, services
from api.schemas.medication import (
    MedicationCreate,
    MedicationUpdate,
    MedicationResponse,
    MedicationDetail,
    MedicationList,
    ScheduleCreate,
    ScheduleUpdate,
    ScheduleResponse,
)


router = APIRouter(tags=["medications"])


@router.post(
    "/journals/{journal_id}/medications",
    response_model=MedicationResponse,
    status_code=status.HTTP_201_CREATED
)
async def create_medication(
    journal_id: str,
    medication_data: MedicationCreate,
    db: Session = Depends(get_db)
):
    """
    Add a medication to a journal

    - **name**: Medication name
    - **default_amount / default_unit**: Dose used when a schedule has no override
    - **is_as_needed**: Logged ad hoc; such medications cannot have schedules
    """
    medication_service = services.get_medication_service()
    return await medication_service.add_medication(
        journal_id=journal_id,
        **medication_data.model_dump(),
        db=db
    )


@router.get("/journals/{journal_id}/medications", response_model=MedicationList)
async def list_medications(
    journal_id: str,
    db: Session = Depends(get_db)
):
    """
    Get all medications of a journal with their schedules
    """
    medication_service = services.get_medication_service()
    medications = await medication_service.get_journal_medications(journal_id, db=db)
    return MedicationList(
        journal_id=journal_id,
        medications=[MedicationDetail.model_validate(m) for m in medications],
        total=len(medications)
    )


@router.get("/medications/{medication_id}", response_model=MedicationDetail)
async def get_medication(
    medication_id: str,
    db: Session = Depends(get_db)
):
    """
    Get a medication with its schedules
    """
    medication_service = services.get_medication_service()
    medication = await medication_service.get_medication(medication_id, db=db)
    if not medication:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Medication {medication_id} not found"
        )
    return medication


@router.patch("/medications/{medication_id}", response_model=MedicationResponse)
async def update_medication(
    medication_id: str,
    medication_data: MedicationUpdate,
    db: Session = Depends(get_db)
):
    """
    Update medication information
    """
    medication_service = services.get_medication_service()
    medication = await medication_service.update_medication(
        medication_id, medication_data.model_dump(exclude_unset=True), db=db
    )
    if not medication:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Medication {medication_id} not found"
        )
    return medication


@router.delete("/medications/{medication_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_medication(
    medication_id: str,
    db: Session = Depends(get_db)
):
    """
    Delete a medication with its schedules and intake history
    """
    medication_service = services.get_medication_service()
    if not await medication_service.delete_medication(medication_id, db=db):
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Medication {medication_id} not found"
        )


# ==================== SCHEDULES ====================

@router.post(
    "/medications/{medication_id}/schedules",
    response_model=ScheduleResponse,
    status_code=status.HTTP_201_CREATED
)
async def create_schedule(
    medication_id: str,
    schedule_data: ScheduleCreate,
    db: Session = Depends(get_db)
):
    """
    Add a recurrence rule

    - **cadence**: daily, weekly, interval or custom
    - **weekday_mask / weekdays**: Days for weekly and custom cadences (Sunday = 0)
    - **interval / start_date**: Every N days from the anchor day
    """
    medication_service = services.get_medication_service()
    data = schedule_data.model_dump(exclude={"weekdays"})
    return await medication_service.add_schedule(medication_id=medication_id, **data, db=db)


@router.get("/medications/{medication_id}/schedules", response_model=list[ScheduleResponse])
async def list_schedules(
    medication_id: str,
    db: Session = Depends(get_db)
):
    """
    Get schedules ordered by sort order and time of day
    """
    medication_service = services.get_medication_service()
    return await medication_service.get_schedules(medication_id, db=db)


@router.patch("/schedules/{schedule_id}", response_model=ScheduleResponse)
async def update_schedule(
    schedule_id: str,
    schedule_data: ScheduleUpdate,
    db: Session = Depends(get_db)
):
    """
    Update a schedule
    """
    medication_service = services.get_medication_service()
    schedule = await medication_service.update_schedule(
        schedule_id, schedule_data.model_dump(exclude_unset=True), db=db
    )
    if not schedule:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Schedule {schedule_id} not found"
        )
    return schedule


@router.delete("/schedules/{schedule_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_schedule(
    schedule_id: str,
    db: Session = Depends(get_db)
):
    """
    Delete a schedule; its intakes are kept as manual intakes
    """
    medication_service = services.get_medication_service()
    if not await medication_service.delete_schedule(schedule_id, db=db):
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Schedule {schedule_id} not found"
        )
