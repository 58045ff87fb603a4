"""Dose reminders: clock-matched, once per medication and time each day."""

from datetime import datetime, timedelta
from typing import Callable, List, Optional

from ...logging_config import get_logger
from ...models.medication import Medication
from ...models.notifications import FeedEntry, NotificationKind, entry_id_for
from ...utils.times import format_clock
from .feed import NotificationFeed
from .schedule import display_time, resolve_dose_times
from .state import MedicationSnapshot, TrackingState
from .timers import TimerRegistry, dose_snooze_key

logger = get_logger(__name__)


def build_dose_entry(medication: Medication, time: str, now: datetime) -> FeedEntry:
    return FeedEntry(
        id=entry_id_for(NotificationKind.DOSE, medication.id),
        kind=NotificationKind.DOSE,
        medication_id=medication.id,
        medication_name=medication.name,
        generic_name=medication.generic_name,
        dosage=medication.dosage_string(),
        instructions=medication.instructions,
        time=time,
        created_at=now,
    )


class DoseNotificationTracker:
    """Per (medication, resolved time) state machine: idle, notified, snoozed.

    A tick moves idle to notified when the wall clock reaches a resolved time.
    Snoozing hides the entry and re-queues it from a dedicated timer; the
    notified key for the original slot stays in place so the ordinary
    per-minute match never fires twice.
    """

    def __init__(
        self,
        state: TrackingState,
        feed: NotificationFeed,
        timers: TimerRegistry,
        snapshot: MedicationSnapshot,
        clock: Callable[[], datetime],
    ):
        self.state = state
        self.feed = feed
        self.timers = timers
        self.snapshot = snapshot
        self.clock = clock

    def evaluate(self, now: datetime, medications: List[Medication], default_time: str) -> List[FeedEntry]:
        """Push every active, un-snoozed medication whose time is ``now``."""
        current = format_clock(now)
        today = now.date().isoformat()
        fired = []

        for medication in medications:
            if not medication.is_active or self.is_snoozed(medication.id, now):
                continue

            for time in resolve_dose_times(medication, default_time):
                if time != current:
                    continue
                key = (medication.id, today, time)
                if key in self.state.notified_today:
                    continue

                self.state.notified_today.add(key)
                entry = build_dose_entry(medication, time, now)
                # A later slot supersedes an entry still pending from an earlier one
                self.feed.replace(entry)
                fired.append(entry)
                logger.info(f"💊 DOSE: {medication.name} ({medication.id}) due at {time}")

        return fired

    def is_snoozed(self, medication_id: str, now: datetime) -> bool:
        expiry = self.state.snoozed_dose.get(medication_id)
        if expiry is None:
            return False
        if expiry <= now:
            del self.state.snoozed_dose[medication_id]
            return False
        return True

    def snooze(self, medication: Medication, minutes: int) -> datetime:
        now = self.clock()
        expiry = now + timedelta(minutes=minutes)
        self.state.snoozed_dose[medication.id] = expiry
        pending = self.feed.remove(entry_id_for(NotificationKind.DOSE, medication.id))
        time = pending.time if pending is not None else None
        self.timers.schedule(
            dose_snooze_key(medication.id),
            minutes * 60,
            lambda: self._snooze_elapsed(medication.id, time),
        )
        logger.info(f"💊 DOSE: {medication.name} snoozed for {minutes} min (until {expiry:%H:%M})")
        return expiry

    def _snooze_elapsed(self, medication_id: str, time: Optional[str]) -> None:
        self.state.snoozed_dose.pop(medication_id, None)
        medication = self.snapshot.get(medication_id)
        if medication is None or not medication.is_active:
            logger.info(f"💊 DOSE: snooze elapsed for {medication_id}, medication no longer active")
            return

        # Snoozed from browsing, with no fired slot to return to
        time = time or display_time(medication, self.snapshot.preferences.default_time)
        if self.feed.add(build_dose_entry(medication, time, self.clock())):
            logger.info(f"💊 DOSE: {medication.name} back after snooze")

    def mark_taken(self, medication: Medication, default_time: str) -> None:
        today = self.clock().date().isoformat()
        for time in resolve_dose_times(medication, default_time):
            self.state.notified_today.add((medication.id, today, time))
        self.cancel(medication.id)
        logger.info(f"💊 DOSE: {medication.name} marked taken for {today}")

    def cancel_snoozes(self) -> None:
        """Cancel every pending snooze timer; the daily reset starts a clean day."""
        for medication_id in list(self.state.snoozed_dose):
            self.timers.cancel(dose_snooze_key(medication_id))

    def cancel(self, medication_id: str) -> Optional[FeedEntry]:
        """Drop the feed entry and any pending snooze for ``medication_id``."""
        self.timers.cancel(dose_snooze_key(medication_id))
        self.state.snoozed_dose.pop(medication_id, None)
        return self.feed.remove(entry_id_for(NotificationKind.DOSE, medication_id))
