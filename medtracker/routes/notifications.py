"""Notification feed and reminder intent routes."""

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field

from ..config import get_settings
from ..logging_config import get_logger
from ..models.notifications import IntentResult
from ..services.background_services import BackgroundServiceManager, get_background_manager
from ..services.notifications import NotificationSession, UnknownMedicationError

logger = get_logger(__name__)

router = APIRouter(prefix="/notifications", tags=["notifications"])


def _default_user_id() -> str:
    return get_settings().default_user_id


class EntryRequest(BaseModel):
    """Intent on a feed entry."""
    entry_id: str
    user_id: str = Field(default_factory=_default_user_id)


class MedicationIntentRequest(BaseModel):
    """Intent on a medication's reminder."""
    medication_id: str
    user_id: str = Field(default_factory=_default_user_id)


class SnoozeRequest(MedicationIntentRequest):
    duration_minutes: Optional[int] = Field(default=None, ge=1, le=60)


async def _session(manager: BackgroundServiceManager, user_id: str) -> NotificationSession:
    return await manager.get_session(user_id)


@router.get("/feed", response_model=IntentResult)
async def get_feed(
    user_id: Optional[str] = None,
    manager: BackgroundServiceManager = Depends(get_background_manager),
) -> IntentResult:
    """Pending reminders in display order."""
    session = await _session(manager, user_id or _default_user_id())
    return IntentResult(entries=session.entries())


@router.post("/dismiss", response_model=IntentResult)
async def dismiss(
    request: EntryRequest,
    manager: BackgroundServiceManager = Depends(get_background_manager),
) -> IntentResult:
    session = await _session(manager, request.user_id)
    return await session.dismiss(request.entry_id)


@router.post("/snooze", response_model=IntentResult)
async def snooze_dose(
    request: SnoozeRequest,
    manager: BackgroundServiceManager = Depends(get_background_manager),
) -> IntentResult:
    session = await _session(manager, request.user_id)
    try:
        return await session.snooze_dose(request.medication_id, request.duration_minutes)
    except UnknownMedicationError as e:
        raise HTTPException(status_code=404, detail=str(e))


@router.post("/taken", response_model=IntentResult)
async def mark_taken(
    request: MedicationIntentRequest,
    manager: BackgroundServiceManager = Depends(get_background_manager),
) -> IntentResult:
    session = await _session(manager, request.user_id)
    try:
        return await session.mark_taken(request.medication_id)
    except UnknownMedicationError as e:
        raise HTTPException(status_code=404, detail=str(e))


@router.post("/refill/snooze", response_model=IntentResult)
async def snooze_refill(
    request: MedicationIntentRequest,
    manager: BackgroundServiceManager = Depends(get_background_manager),
) -> IntentResult:
    session = await _session(manager, request.user_id)
    try:
        return await session.snooze_refill(request.medication_id)
    except UnknownMedicationError as e:
        raise HTTPException(status_code=404, detail=str(e))


@router.post("/refilled", response_model=IntentResult)
async def mark_refilled(
    request: MedicationIntentRequest,
    manager: BackgroundServiceManager = Depends(get_background_manager),
) -> IntentResult:
    session = await _session(manager, request.user_id)
    try:
        return await session.mark_refilled(request.medication_id)
    except UnknownMedicationError as e:
        raise HTTPException(status_code=404, detail=str(e))


@router.post("/no-longer-taking", response_model=IntentResult)
async def no_longer_taking(
    request: MedicationIntentRequest,
    manager: BackgroundServiceManager = Depends(get_background_manager),
) -> IntentResult:
    """Hide the reminder while the user confirms deactivation."""
    session = await _session(manager, request.user_id)
    try:
        return await session.no_longer_taking(request.medication_id)
    except UnknownMedicationError as e:
        raise HTTPException(status_code=404, detail=str(e))


@router.post("/no-longer-taking/cancel", response_model=IntentResult)
async def cancel_no_longer_taking(
    request: MedicationIntentRequest,
    manager: BackgroundServiceManager = Depends(get_background_manager),
) -> IntentResult:
    session = await _session(manager, request.user_id)
    return await session.cancel_no_longer_taking(request.medication_id)


@router.post("/no-longer-taking/confirm", response_model=IntentResult)
async def confirm_no_longer_taking(
    request: MedicationIntentRequest,
    manager: BackgroundServiceManager = Depends(get_background_manager),
) -> IntentResult:
    session = await _session(manager, request.user_id)
    logger.info(f"🌐 WEB API: {request.user_id} stopped taking {request.medication_id}")
    return await session.confirm_no_longer_taking(request.medication_id)


__all__ = ["router"]
