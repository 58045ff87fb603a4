"""Notification scheduling engine for one user session."""

from datetime import datetime
from typing import Callable, Dict, List, Optional

from ...logging_config import get_logger
from ...models.medication import Medication
from ...models.notifications import FeedDelta, FeedEntry, NotificationKind
from ...models.preferences import UserPreferences
from .daily_reset import DailyResetScheduler
from .dose_tracker import DoseNotificationTracker
from .feed import NotificationFeed
from .preference_reactor import PreferenceChangeReactor
from .refill_tracker import DEFAULT_SETTLE_SECONDS, RefillNotificationTracker
from .schedule import resolve_dose_times
from .state import MedicationSnapshot, TrackingState
from .timers import TimerRegistry

logger = get_logger(__name__)


class UnknownMedicationError(LookupError):
    """Raised when an intent names a medication the engine has not seen."""

    def __init__(self, medication_id: str):
        super().__init__(f"Unknown medication: {medication_id}")
        self.medication_id = medication_id


class NotificationEngine:
    """Owns all reminder state for one user and serializes every change to it.

    ``tick`` is driven by a periodic poll; intent handlers are called by the
    presentation layer. Both run on the same event loop as the timers, so no
    locking is needed. The presentation layer only reads the feed.
    """

    resolve_dose_times = staticmethod(resolve_dose_times)

    def __init__(
        self,
        timers: TimerRegistry,
        clock: Callable[[], datetime] = datetime.now,
        refill_settle_seconds: float = DEFAULT_SETTLE_SECONDS,
    ):
        self.timers = timers
        self.clock = clock
        self.state = TrackingState()
        self.feed = NotificationFeed()
        self.snapshot = MedicationSnapshot()
        self.dose = DoseNotificationTracker(self.state, self.feed, timers, self.snapshot, clock)
        self.refill = RefillNotificationTracker(
            self.state, self.feed, timers, self.snapshot, clock, settle_seconds=refill_settle_seconds
        )
        self.reactor = PreferenceChangeReactor(self.state)
        self.daily_reset = DailyResetScheduler(timers, clock, self.reset)
        self._pending_removal: Dict[str, Optional[FeedEntry]] = {}

    def start(self) -> None:
        self.daily_reset.start()

    def stop(self) -> None:
        self.timers.cancel_all()

    def tick(self, now: datetime, medications: List[Medication], preferences: UserPreferences) -> FeedDelta:
        """Evaluate one poll and return what changed in the feed since the last tick."""
        self.snapshot.update(medications, preferences)
        self.reactor.react(preferences.default_time, medications, now.date())
        self.dose.evaluate(now, medications, preferences.default_time)
        self.refill.observe(medications)
        return self.feed.drain_delta()

    def reset(self) -> None:
        # Refill snooze timers stay armed; they are meant to fire after midnight
        self.dose.cancel_snoozes()
        self.state.clear_daily()
        self.feed.clear()

    def entries(self) -> List[FeedEntry]:
        return self.feed.entries()

    def _medication(self, medication_id: str) -> Medication:
        medication = self.snapshot.get(medication_id)
        if medication is None:
            raise UnknownMedicationError(medication_id)
        return medication

    def dismiss(self, entry_id: str) -> List[FeedEntry]:
        entry = self.feed.get(entry_id)
        if entry is None:
            return self.entries()

        if entry.kind == NotificationKind.DOSE:
            self.dose.cancel(entry.medication_id)
        else:
            self.refill.cancel(entry.medication_id)
        logger.info(f"Dismissed {entry_id}")
        return self.entries()

    def snooze_dose(self, medication_id: str, duration_minutes: Optional[int] = None) -> List[FeedEntry]:
        medication = self._medication(medication_id)
        minutes = duration_minutes or self.snapshot.preferences.snooze_duration
        self.dose.snooze(medication, minutes)
        return self.entries()

    def mark_taken(self, medication_id: str) -> List[FeedEntry]:
        medication = self._medication(medication_id)
        self.dose.mark_taken(medication, self.snapshot.preferences.default_time)
        return self.entries()

    def snooze_refill(self, medication_id: str) -> List[FeedEntry]:
        self.refill.snooze(self._medication(medication_id))
        return self.entries()

    def mark_refilled(self, medication_id: str) -> List[FeedEntry]:
        self.refill.mark_refilled(self._medication(medication_id))
        return self.entries()

    def no_longer_taking(self, medication_id: str) -> List[FeedEntry]:
        """Hide the dose entry while the user confirms deactivation."""
        self._medication(medication_id)
        self._pending_removal[medication_id] = self.dose.cancel(medication_id)
        return self.entries()

    def cancel_no_longer_taking(self, medication_id: str) -> List[FeedEntry]:
        entry = self._pending_removal.pop(medication_id, None)
        # None when the flow started from browsing rather than a reminder
        if entry is not None:
            self.feed.add(entry)
            logger.info(f"Restored {entry.id} after cancelled deactivation")
        return self.entries()

    def confirm_no_longer_taking(self, medication_id: str) -> List[FeedEntry]:
        self._pending_removal.pop(medication_id, None)
        self.dose.cancel(medication_id)
        self.refill.cancel(medication_id)
        self.refill.disarm(medication_id)
        return self.entries()
