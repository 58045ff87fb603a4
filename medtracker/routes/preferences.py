"""User preference routes; the only place preferences are validated and saved."""

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, status

from ..config import get_settings
from ..logging_config import get_logger
from ..models.preferences import UserPreferences
from ..services.background_services import BackgroundServiceManager, get_background_manager
from ..services.medications import MedicationStoreError

logger = get_logger(__name__)

router = APIRouter(prefix="/preferences", tags=["preferences"])


@router.get("", response_model=UserPreferences)
async def get_preferences(
    user_id: Optional[str] = None,
    manager: BackgroundServiceManager = Depends(get_background_manager),
) -> UserPreferences:
    return await manager.preference_store.get_preferences(user_id or get_settings().default_user_id)


@router.put("", response_model=UserPreferences)
async def save_preferences(
    preferences: UserPreferences,
    user_id: Optional[str] = None,
    manager: BackgroundServiceManager = Depends(get_background_manager),
) -> UserPreferences:
    """Save settings; malformed values are rejected with 422 before reaching the store."""
    user_id = user_id or get_settings().default_user_id
    try:
        return await manager.preference_store.save_preferences(user_id, preferences)
    except MedicationStoreError as e:
        logger.error(f"Error saving preferences: {e}")
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=str(e))


__all__ = ["router"]
