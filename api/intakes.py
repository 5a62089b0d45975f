"""
Intakes API Router
Endpoints for dose toggles, as-needed logging and intake edits
"""

from typing import Optional
from datetime import datetime, tzinfo
from fastapi import APIRouter, Depends, HTTPException, status, Query
from sqlalchemy.orm import Session

from api.deps import get_db, get_timezone, services
from api.schemas.intake import (
    IntakeToggle,
    AsNeededLog,
    IntakeUpdate,
    IntakeLink,
    IntakeResponse,
    IntakeList,
    ToggleResponse,
    AsNeededLogResponse,
    MedicationDefaults,
)


router = APIRouter(tags=["intakes"])


@router.post("/intakes/toggle", response_model=ToggleResponse)
async def toggle_intake(
    toggle: IntakeToggle,
    tz: tzinfo = Depends(get_timezone),
    db: Session = Depends(get_db)
):
    """
    Mark a day's dose taken or not taken

    Idempotent: repeating a request leaves the same state. Without **logged_at**,
    doses for today are stamped now and past days at their scheduled time.
    """
    intake_service = services.get_intake_service()
    source = await intake_service.resolve_source(
        toggle.medication_id, toggle.schedule_id, db=db
    )
    intake = await intake_service.set_occurrence_taken(
        source,
        toggle.day,
        toggle.taken,
        logged_at=toggle.logged_at,
        tz=tz,
        db=db
    )
    return ToggleResponse(
        taken=intake is not None,
        intake=IntakeResponse.model_validate(intake) if intake else None
    )


@router.post(
    "/medications/{medication_id}/as-needed",
    response_model=AsNeededLogResponse,
    status_code=status.HTTP_201_CREATED
)
async def log_as_needed(
    medication_id: str,
    log_data: AsNeededLog,
    db: Session = Depends(get_db)
):
    """
    Log an as-needed dose

    Missing amount/unit fall back to the medication defaults; the values used
    become the new defaults.
    """
    intake_service = services.get_intake_service()
    result = await intake_service.log_as_needed(
        medication_id,
        amount=log_data.amount,
        unit=log_data.unit,
        at=log_data.at,
        notes=log_data.notes,
        db=db
    )
    if result is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Medication {medication_id} not found"
        )
    return AsNeededLogResponse(
        intake=IntakeResponse.model_validate(result.intake),
        defaults=MedicationDefaults.model_validate(result.defaults_update)
    )


@router.get("/medications/{medication_id}/intakes", response_model=IntakeList)
async def list_intakes(
    medication_id: str,
    start: Optional[datetime] = Query(None),
    end: Optional[datetime] = Query(None),
    db: Session = Depends(get_db)
):
    """
    Intake history of a medication
    """
    intake_service = services.get_intake_service()
    intakes = await intake_service.list_intakes(medication_id, start=start, end=end, db=db)
    return IntakeList(
        medication_id=medication_id,
        intakes=[IntakeResponse.model_validate(i) for i in intakes],
        total=len(intakes)
    )


@router.patch("/intakes/{intake_id}", response_model=IntakeResponse)
async def update_intake(
    intake_id: str,
    intake_data: IntakeUpdate,
    db: Session = Depends(get_db)
):
    """
    Edit amount, unit, timestamp or notes of an intake
    """
    intake_service = services.get_intake_service()
    intake = await intake_service.update_intake(
        intake_id, intake_data.model_dump(exclude_unset=True), db=db
    )
    if not intake:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Intake {intake_id} not found"
        )
    return intake


@router.put("/intakes/{intake_id}/entry", response_model=IntakeResponse)
async def link_intake(
    intake_id: str,
    link: IntakeLink,
    db: Session = Depends(get_db)
):
    """
    Attach an intake to a symptom entry
    """
    intake_service = services.get_intake_service()
    intake = await intake_service.link_intake_to_entry(intake_id, link.entry_id, db=db)
    if not intake:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Intake {intake_id} not found"
        )
    return intake


@router.delete("/intakes/{intake_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_intake(
    intake_id: str,
    db: Session = Depends(get_db)
):
    """
    Delete an intake
    """
    intake_service = services.get_intake_service()
    if not await intake_service.delete_intake(intake_id, db=db):
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Intake {intake_id} not found"
        )
