"""Medication records as read from the document store."""

from datetime import date, datetime
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field, field_validator

from ..utils.times import days_between

# Every new medication is created with this schedule; the resolver reads the
# singleton as "no time chosen" unless another explicit time is present.
DEFAULT_SPECIFIC_TIMES = ("09:00",)
LEGACY_MEDICATION_DEFAULT_TIME = "09:00"


class FrequencyType(str, Enum):
    """How often a medication is taken."""
    DAILY = "daily"
    WEEKLY = "weekly"
    AS_NEEDED = "as_needed"
    CUSTOM = "custom"


class DayOfWeek(str, Enum):
    MONDAY = "monday"
    TUESDAY = "tuesday"
    WEDNESDAY = "wednesday"
    THURSDAY = "thursday"
    FRIDAY = "friday"
    SATURDAY = "saturday"
    SUNDAY = "sunday"


class DosageUnit(str, Enum):
    MG = "mg"
    G = "g"
    ML = "ml"
    TABLETS = "tablets"
    CAPSULES = "capsules"
    PUFFS = "puffs"
    UNITS = "units"


class DosageForm(str, Enum):
    TABLET = "tablet"
    CAPSULE = "capsule"
    LIQUID = "liquid"
    INJECTION = "injection"
    INHALER = "inhaler"
    PATCH = "patch"
    CREAM = "cream"


class Dosage(BaseModel):
    """Strength per unit and how many units make one dose."""
    amount: float = 1
    unit: DosageUnit = DosageUnit.MG
    form: DosageForm = DosageForm.TABLET
    quantity: int = 1

    @field_validator("quantity", mode="before")
    @classmethod
    def _default_quantity(cls, value):
        return value or 1


class Frequency(BaseModel):
    """Schedule descriptor; ``time_of_day`` overrides every variant when set."""
    type: FrequencyType = FrequencyType.DAILY
    times_per_day: Optional[int] = 1
    days_of_week: Optional[List[DayOfWeek]] = None
    interval: Optional[int] = None  # hours
    specific_times: Optional[List[str]] = Field(default_factory=lambda: list(DEFAULT_SPECIFIC_TIMES))
    time_of_day: Optional[str] = None


def _coerce_date(value):
    # The store hands back full timestamps for calendar-date columns
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, str) and "T" in value:
        return datetime.fromisoformat(value.replace("Z", "+00:00")).date()
    return value


class Medication(BaseModel):
    """Medication snapshot; the notification engine never mutates it."""
    id: str
    user_id: str = ""
    name: str = ""
    generic_name: Optional[str] = None
    dosage: Dosage = Field(default_factory=Dosage)
    frequency: Frequency = Field(default_factory=Frequency)
    instructions: Optional[str] = None
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    refill_date: Optional[date] = None
    is_active: bool = True
    side_effects: List[str] = Field(default_factory=list)
    notes: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    last_taken_at: Optional[datetime] = None
    # Legacy per-medication default; superseded by the user's default time
    default_time: str = LEGACY_MEDICATION_DEFAULT_TIME
    preferred_time: Optional[str] = None

    @field_validator("start_date", "end_date", "refill_date", mode="before")
    @classmethod
    def _calendar_date(cls, value):
        return _coerce_date(value)

    @field_validator("frequency", mode="before")
    @classmethod
    def _default_frequency(cls, value):
        return Frequency() if value is None else value

    @field_validator("default_time", mode="before")
    @classmethod
    def _default_time(cls, value):
        return value or LEGACY_MEDICATION_DEFAULT_TIME

    def dosage_string(self) -> str:
        """Human readable dose, e.g. ``2 tablets of 5 mg each``."""
        amount = f"{self.dosage.amount:g}"
        strength = f"{amount} {self.dosage.unit.value}"
        if self.dosage.quantity and self.dosage.quantity > 1:
            quantity = f"{self.dosage.quantity} {self.dosage.form.value}s"
        else:
            quantity = f"1 {self.dosage.form.value}"
        return f"{quantity} of {strength} each"

    def frequency_string(self) -> str:
        frequency = self.frequency
        if frequency.type == FrequencyType.DAILY:
            return f"{frequency.times_per_day} time(s) daily"
        if frequency.type == FrequencyType.WEEKLY:
            days = ", ".join(day.value for day in frequency.days_of_week or [])
            return f"Weekly on {days}"
        if frequency.type == FrequencyType.AS_NEEDED:
            return "As needed"
        if frequency.interval:
            return f"Every {frequency.interval} hours"
        if frequency.specific_times:
            return f"At {', '.join(frequency.specific_times)}"
        return "Custom schedule"

    def days_until_refill(self, today: date) -> Optional[int]:
        if self.refill_date is None:
            return None
        return days_between(today, self.refill_date)

    def is_expired(self, today: date) -> bool:
        return self.end_date is not None and today > self.end_date

    def validation_errors(self) -> List[str]:
        """Return the reasons this record cannot be saved, empty when valid."""
        errors = []
        if not self.user_id:
            errors.append("User ID is required")
        if not self.name.strip():
            errors.append("Medication name is required")
        if self.dosage.amount <= 0:
            errors.append("Dosage amount must be greater than 0")
        if self.frequency.type == FrequencyType.DAILY and not (self.frequency.times_per_day or 0) > 0:
            errors.append("Times per day must be specified for daily frequency")
        if self.frequency.type == FrequencyType.WEEKLY and not self.frequency.days_of_week:
            errors.append("Days of week must be specified for weekly frequency")
        if self.end_date and self.start_date and self.end_date <= self.start_date:
            errors.append("End date must be after start date")
        return errors
