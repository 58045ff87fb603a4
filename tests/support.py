"""Test helpers: a controllable clock, manual timers and in-memory stores."""

import asyncio
import itertools
import unittest
from datetime import date, datetime, timedelta
from typing import Callable, Dict, List, Optional

from medtracker.models import Frequency, Medication, UserPreferences
from medtracker.services.medications import MedicationStoreError
from medtracker.services.notifications import NotificationEngine, TimerRegistry

START = datetime(2026, 3, 10, 8, 59, 0)


class ManualClock:
    def __init__(self, now: datetime = START):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def set(self, hour: int, minute: int, second: int = 0, day_offset: int = 0) -> datetime:
        day = START.date() + timedelta(days=day_offset)
        self.now = datetime(day.year, day.month, day.day, hour, minute, second)
        return self.now


class ManualTimers(TimerRegistry):
    """Timers that only fire when the test advances the clock."""

    def __init__(self, clock: ManualClock):
        self.clock = clock
        self._timers: Dict[str, tuple] = {}
        self._seq = itertools.count()

    def schedule(self, key: str, delay_seconds: float, callback: Callable[[], None]) -> None:
        due = self.clock.now + timedelta(seconds=delay_seconds)
        self._timers[key] = (due, next(self._seq), callback)

    def cancel(self, key: str) -> bool:
        return self._timers.pop(key, None) is not None

    def is_pending(self, key: str) -> bool:
        return key in self._timers

    def cancel_all(self) -> None:
        self._timers.clear()

    def due(self, key: str) -> Optional[datetime]:
        timer = self._timers.get(key)
        return timer[0] if timer else None

    def advance(self, seconds: float) -> None:
        self.advance_to(self.clock.now + timedelta(seconds=seconds))

    def advance_to(self, target: datetime) -> None:
        while True:
            ready = [(due, seq, key) for key, (due, seq, _) in self._timers.items() if due <= target]
            if not ready:
                break
            due, _, key = min(ready)
            _, _, callback = self._timers.pop(key)
            self.clock.now = due
            callback()
        self.clock.now = target


def make_medication(medication_id: str = "med-a", **overrides) -> Medication:
    frequency = overrides.pop("frequency", None)
    data = {
        "id": medication_id,
        "user_id": "web_user",
        "name": overrides.pop("name", medication_id.title()),
        "frequency": frequency if frequency is not None else Frequency(),
    }
    data.update(overrides)
    return Medication(**data)


class FakeRepository:
    """In-memory stand-in for the Supabase medication repository."""

    def __init__(self, medications: List[Medication] = ()):
        self.medications = {m.id: m for m in medications}
        self.fail_writes = False
        self.writes: List[tuple] = []

    async def list_medications(self, user_id, is_active=None, search_term=None, dosage_form=None):
        medications = [m for m in self.medications.values() if m.user_id == user_id]
        if is_active is not None:
            medications = [m for m in medications if m.is_active == is_active]
        if search_term:
            medications = [m for m in medications if search_term.lower() in m.name.lower()]
        return medications

    async def get_active_medications(self, user_id):
        return await self.list_medications(user_id, is_active=True)

    async def get_medication(self, medication_id):
        return self.medications.get(medication_id)

    async def _update(self, medication_id, action, **changes):
        if self.fail_writes:
            raise MedicationStoreError(f"Failed to {action}")
        self.writes.append((action, medication_id))
        self.medications[medication_id] = self.medications[medication_id].model_copy(update=changes)

    async def record_dose_taken(self, medication_id, taken_at):
        await self._update(medication_id, "record dose taken", last_taken_at=taken_at)

    async def clear_refill_date(self, medication_id):
        await self._update(medication_id, "clear refill date", refill_date=None)

    async def deactivate(self, medication_id):
        await self._update(medication_id, "deactivate medication", is_active=False)


class FakePreferenceStore:
    def __init__(self, preferences: Optional[UserPreferences] = None):
        self.preferences = preferences or UserPreferences()
        self.fail_writes = False

    async def get_preferences(self, user_id):
        return self.preferences

    async def save_preferences(self, user_id, preferences):
        if self.fail_writes:
            raise MedicationStoreError("Failed to save settings")
        self.preferences = preferences
        return preferences


def days_from_start(days: int) -> date:
    return START.date() + timedelta(days=days)


def run_async(coro):
    return asyncio.run(coro)


class EngineTestCase(unittest.TestCase):
    """Started engine on a manual clock at 08:59 on 2026-03-10."""

    def setUp(self):
        self.clock = ManualClock()
        self.timers = ManualTimers(self.clock)
        self.engine = NotificationEngine(self.timers, clock=self.clock, refill_settle_seconds=30)
        self.engine.start()
        self.preferences = UserPreferences(default_time="09:00", snooze_duration=5, refill_reminder_days_before=3)

    def tick(self, medications, preferences=None):
        return self.engine.tick(self.clock(), medications, preferences or self.preferences)

    def entry_ids(self, entries=None):
        return [entry.id for entry in (self.engine.entries() if entries is None else entries)]
