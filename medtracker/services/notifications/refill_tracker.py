"""Refill reminders: armed by a refill date change, evaluated after a settle delay."""

from datetime import date, datetime, timedelta
from typing import Callable, List, Optional

from ...logging_config import get_logger
from ...models.medication import Medication
from ...models.notifications import FeedEntry, NotificationKind, entry_id_for
from ...utils.times import seconds_until_next_midnight, start_of_next_day
from .feed import NotificationFeed
from .state import MedicationSnapshot, TrackingState
from .timers import TimerRegistry, refill_settle_key, refill_snooze_key

logger = get_logger(__name__)

DEFAULT_SETTLE_SECONDS = 30.0


def in_refill_window(days_until_refill: int, days_before: int) -> bool:
    """True on the reminder day and every day after it, overdue dates included."""
    return days_until_refill <= days_before


def build_refill_entry(medication: Medication, today: date, now: datetime) -> FeedEntry:
    return FeedEntry(
        id=entry_id_for(NotificationKind.REFILL, medication.id),
        kind=NotificationKind.REFILL,
        medication_id=medication.id,
        medication_name=medication.name,
        generic_name=medication.generic_name,
        dosage=medication.dosage_string(),
        refill_date=medication.refill_date,
        days_until_refill=medication.days_until_refill(today),
        created_at=now,
    )


class RefillNotificationTracker:
    """Per medication state machine: no-refill-date, armed, fired, snoozed.

    There is no continuous poll for refills. A medication is evaluated once,
    ``settle_seconds`` after its refill date first appears or changes, and
    again the day after a snooze.
    """

    def __init__(
        self,
        state: TrackingState,
        feed: NotificationFeed,
        timers: TimerRegistry,
        snapshot: MedicationSnapshot,
        clock: Callable[[], datetime],
        settle_seconds: float = DEFAULT_SETTLE_SECONDS,
    ):
        self.state = state
        self.feed = feed
        self.timers = timers
        self.snapshot = snapshot
        self.clock = clock
        self.settle_seconds = settle_seconds

    def observe(self, medications: List[Medication]) -> None:
        """Arm a settle timer for every medication whose refill date changed."""
        seen = set()
        for medication in medications:
            seen.add(medication.id)
            if not medication.is_active or medication.refill_date is None:
                self.disarm(medication.id)
                continue

            if self.state.previous_refill_date.get(medication.id) == medication.refill_date:
                continue

            self.state.previous_refill_date[medication.id] = medication.refill_date
            self.state.snoozed_refill.pop(medication.id, None)
            self.timers.cancel(refill_snooze_key(medication.id))
            self.timers.schedule(
                refill_settle_key(medication.id),
                self.settle_seconds,
                lambda medication_id=medication.id: self.evaluate(medication_id),
            )
            logger.info(
                f"🔁 REFILL: {medication.name} refill date set to {medication.refill_date}, "
                f"checking in {self.settle_seconds:.0f}s"
            )

        # Deleted since the last tick
        for medication_id in list(self.state.previous_refill_date):
            if medication_id not in seen:
                self.disarm(medication_id)

    def disarm(self, medication_id: str) -> None:
        """Cancel pending refill timers and forget the last seen refill date."""
        self.timers.cancel(refill_settle_key(medication_id))
        self.timers.cancel(refill_snooze_key(medication_id))
        if self.state.previous_refill_date.pop(medication_id, None) is not None:
            logger.debug(f"🔁 REFILL: disarmed {medication_id}")

    def evaluate(self, medication_id: str) -> Optional[FeedEntry]:
        """Fire the refill reminder if today falls inside the reminder window."""
        medication = self.snapshot.get(medication_id)
        if medication is None or not medication.is_active or medication.refill_date is None:
            return None

        now = self.clock()
        today = now.date()
        days_until = medication.days_until_refill(today)
        days_before = self.snapshot.preferences.refill_reminder_days_before

        if not in_refill_window(days_until, days_before):
            logger.debug(f"🔁 REFILL: {medication.name} is {days_until} days out, window is {days_before}")
            return None

        expiry = self.state.snoozed_refill.get(medication_id)
        if expiry is not None:
            if expiry > now:
                return None
            del self.state.snoozed_refill[medication_id]

        key = (medication_id, today.isoformat())
        if key in self.state.refill_notified:
            return None

        self.state.refill_notified.add(key)
        entry = build_refill_entry(medication, today, now)
        self.feed.add(entry)
        logger.info(f"🔁 REFILL: {medication.name} due for refill in {days_until} day(s)")
        return entry

    def snooze(self, medication: Medication) -> datetime:
        """Defer the reminder to the next calendar day."""
        now = self.clock()
        self.feed.remove(entry_id_for(NotificationKind.REFILL, medication.id))
        self.state.refill_notified.discard((medication.id, now.date().isoformat()))

        tomorrow = start_of_next_day(now)
        self.state.snoozed_refill[medication.id] = tomorrow
        self.timers.cancel(refill_settle_key(medication.id))
        self.timers.schedule(
            refill_snooze_key(medication.id),
            seconds_until_next_midnight(now) + self.settle_seconds,
            lambda: self.evaluate(medication.id),
        )
        logger.info(f"🔁 REFILL: {medication.name} snoozed until {tomorrow:%Y-%m-%d}")
        return tomorrow

    def mark_refilled(self, medication: Medication) -> None:
        """Suppress the reminder through the current refill date."""
        today = self.clock().date()
        self.state.refill_notified.add((medication.id, today.isoformat()))
        if medication.refill_date is not None:
            day = today
            while day <= medication.refill_date:
                self.state.refill_notified.add((medication.id, day.isoformat()))
                day += timedelta(days=1)

        self.cancel(medication.id)
        logger.info(f"🔁 REFILL: {medication.name} marked refilled")

    def cancel(self, medication_id: str) -> Optional[FeedEntry]:
        self.timers.cancel(refill_settle_key(medication_id))
        self.timers.cancel(refill_snooze_key(medication_id))
        self.state.snoozed_refill.pop(medication_id, None)
        return self.feed.remove(entry_id_for(NotificationKind.REFILL, medication_id))
