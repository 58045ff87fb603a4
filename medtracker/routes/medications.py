"""Read-only medication routes with the display helpers the UI renders."""

from datetime import date
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel

from ..config import get_settings
from ..models.medication import DosageForm, Medication
from ..services.background_services import BackgroundServiceManager, get_background_manager
from ..services.notifications import display_time, has_explicit_time, resolve_dose_times

router = APIRouter(prefix="/medications", tags=["medications"])


class MedicationView(BaseModel):
    """Medication plus the derived fields shown in lists and popovers."""
    medication: Medication
    display_time: str
    dosage_text: str
    frequency_text: str
    days_until_refill: Optional[int] = None
    expired: bool = False
    validation_errors: List[str] = []


class MedicationListResponse(BaseModel):
    medications: List[MedicationView]


class ScheduleResponse(BaseModel):
    medication_id: str
    times: List[str]
    display_time: str
    explicit: bool


@router.get("", response_model=MedicationListResponse)
async def list_medications(
    user_id: Optional[str] = None,
    active: Optional[bool] = None,
    search: Optional[str] = None,
    dosage_form: Optional[DosageForm] = None,
    manager: BackgroundServiceManager = Depends(get_background_manager),
) -> MedicationListResponse:
    user_id = user_id or get_settings().default_user_id
    medications = await manager.repository.list_medications(
        user_id, is_active=active, search_term=search, dosage_form=dosage_form
    )
    preferences = await manager.preference_store.get_preferences(user_id)
    today = date.today()

    return MedicationListResponse(medications=[
        MedicationView(
            medication=medication,
            display_time=display_time(medication, preferences.default_time),
            dosage_text=medication.dosage_string(),
            frequency_text=medication.frequency_string(),
            days_until_refill=medication.days_until_refill(today),
            expired=medication.is_expired(today),
            validation_errors=medication.validation_errors(),
        )
        for medication in medications
    ])


@router.get("/{medication_id}/schedule", response_model=ScheduleResponse)
async def get_schedule(
    medication_id: str,
    manager: BackgroundServiceManager = Depends(get_background_manager),
) -> ScheduleResponse:
    """Dose times resolved exactly as the reminder engine resolves them."""
    medication = await manager.repository.get_medication(medication_id)
    if medication is None:
        raise HTTPException(status_code=404, detail=f"Unknown medication: {medication_id}")

    preferences = await manager.preference_store.get_preferences(medication.user_id or get_settings().default_user_id)
    return ScheduleResponse(
        medication_id=medication.id,
        times=resolve_dose_times(medication, preferences.default_time),
        display_time=display_time(medication, preferences.default_time),
        explicit=has_explicit_time(medication),
    )


__all__ = ["router"]
