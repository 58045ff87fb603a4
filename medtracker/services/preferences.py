"""User preference storage in the Supabase ``user_preferences`` table."""

from pydantic import ValidationError

from ..logging_config import get_logger
from ..models.preferences import UserPreferences
from .medications import MedicationStoreError
from .supabase_client import get_supabase_client

logger = get_logger(__name__)


class UserPreferenceStore:
    """Reads fall back to defaults; saves raise ``MedicationStoreError``."""

    table_name = "user_preferences"

    def __init__(self, client=None):
        self.client = client if client is not None else get_supabase_client()
        self._last_good = {}

    async def get_preferences(self, user_id: str) -> UserPreferences:
        if not self.client:
            return self._last_good.get(user_id, UserPreferences())

        try:
            result = (
                self.client
                .table(self.table_name)
                .select('default_time, snooze_duration, refill_reminder_days_before')
                .eq('user_id', user_id)
                .limit(1)
                .execute()
            )
        except Exception as e:
            logger.error(f"Failed to read preferences for {user_id}: {e}")
            return self._last_good.get(user_id, UserPreferences())

        row = result.data[0] if result.data else {}
        try:
            preferences = UserPreferences.model_validate({k: v for k, v in row.items() if v is not None})
        except ValidationError as e:
            logger.warning(f"Stored preferences for {user_id} are invalid, using defaults: {e}")
            preferences = UserPreferences()

        self._last_good[user_id] = preferences
        return preferences

    async def save_preferences(self, user_id: str, preferences: UserPreferences) -> UserPreferences:
        if not self.client:
            raise MedicationStoreError("Cannot save preferences: store not configured")

        data = {"user_id": user_id, **preferences.model_dump()}
        try:
            self.client.table(self.table_name).upsert(data, on_conflict='user_id').execute()
        except Exception as e:
            logger.error(f"Failed to save preferences for {user_id}: {e}")
            raise MedicationStoreError("Failed to save settings") from e

        self._last_good[user_id] = preferences
        logger.info(f"Saved preferences for {user_id}: {data}")
        return preferences
