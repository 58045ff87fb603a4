"""Data models for medications, preferences and notifications."""

from .medication import (
    DEFAULT_SPECIFIC_TIMES,
    DayOfWeek,
    Dosage,
    DosageForm,
    DosageUnit,
    Frequency,
    FrequencyType,
    Medication,
)
from .notifications import FeedDelta, FeedEntry, IntentResult, NotificationKind, entry_id_for
from .preferences import UserPreferences

__all__ = [
    "DEFAULT_SPECIFIC_TIMES",
    "DayOfWeek",
    "Dosage",
    "DosageForm",
    "DosageUnit",
    "Frequency",
    "FrequencyType",
    "Medication",
    "FeedDelta",
    "FeedEntry",
    "IntentResult",
    "NotificationKind",
    "entry_id_for",
    "UserPreferences",
]
