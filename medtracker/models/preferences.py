"""User-level reminder preferences."""

from pydantic import BaseModel, Field, field_validator

from ..utils.times import is_valid_time

DEFAULT_DOSE_TIME = "09:00"
DEFAULT_SNOOZE_MINUTES = 1
DEFAULT_REFILL_DAYS_BEFORE = 1


class UserPreferences(BaseModel):
    """Preferences validated at the settings boundary.

    Construction rejects malformed values, so the notification engine can
    trust every instance it receives.
    """
    default_time: str = DEFAULT_DOSE_TIME
    snooze_duration: int = Field(default=DEFAULT_SNOOZE_MINUTES, ge=1, le=60)
    refill_reminder_days_before: int = Field(default=DEFAULT_REFILL_DAYS_BEFORE, ge=0, le=30)

    @field_validator("default_time")
    @classmethod
    def _check_time(cls, value: str) -> str:
        if not is_valid_time(value):
            raise ValueError("Invalid time format. Please use HH:MM format (e.g., 09:00)")
        return value
