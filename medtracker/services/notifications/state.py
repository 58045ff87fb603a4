"""Mutable tracking state owned by a single notification engine."""

from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Dict, Iterable, Optional, Set, Tuple

from ...models.medication import Medication
from ...models.preferences import UserPreferences

DoseKey = Tuple[str, str, str]  # (medication_id, iso date, HH:MM)
RefillKey = Tuple[str, str]  # (medication_id, iso date)


@dataclass
class TrackingState:
    """Process-lifetime reminder bookkeeping, never persisted."""

    notified_today: Set[DoseKey] = field(default_factory=set)
    snoozed_dose: Dict[str, datetime] = field(default_factory=dict)
    refill_notified: Set[RefillKey] = field(default_factory=set)
    snoozed_refill: Dict[str, datetime] = field(default_factory=dict)
    previous_refill_date: Dict[str, date] = field(default_factory=dict)
    previous_default_time: Optional[str] = None

    def clear_daily(self) -> None:
        """Forget everything that is scoped to the current calendar day."""
        self.notified_today.clear()
        self.snoozed_dose.clear()
        self.refill_notified.clear()
        self.snoozed_refill.clear()

    def forget_dose_keys(self, medication_id: str, day: str) -> int:
        stale = {key for key in self.notified_today if key[0] == medication_id and key[1] == day}
        self.notified_today -= stale
        return len(stale)


class MedicationSnapshot:
    """Latest medication list and preferences seen by a tick.

    Timer callbacks read from here so they act on current data rather than
    the values captured when the timer was armed.
    """

    def __init__(self):
        self._medications: Dict[str, Medication] = {}
        self.preferences = UserPreferences()

    def update(self, medications: Iterable[Medication], preferences: UserPreferences) -> None:
        self._medications = {medication.id: medication for medication in medications}
        self.preferences = preferences

    def get(self, medication_id: str) -> Optional[Medication]:
        return self._medications.get(medication_id)

    def __contains__(self, medication_id: str) -> bool:
        return medication_id in self._medications
