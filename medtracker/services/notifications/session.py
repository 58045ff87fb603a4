"""Per-user notification session: poll loop plus intent write-through."""

import asyncio
from datetime import datetime
from typing import Awaitable, Callable, List, Optional

from ...logging_config import get_logger
from ...models.notifications import FeedDelta, FeedEntry, IntentResult
from ..medications import MedicationRepository, MedicationStoreError
from ..preferences import UserPreferenceStore
from .engine import NotificationEngine
from .timers import AsyncioTimerRegistry

logger = get_logger(__name__)

DEFAULT_POLL_INTERVAL_SECONDS = 5.0


class NotificationSession:
    """Drives one user's ``NotificationEngine`` from the document store.

    Tracker state is updated before any store write is attempted. A failed
    write is reported in the ``IntentResult`` but never rolled back, so the
    local reminder state can briefly run ahead of what is persisted.
    """

    def __init__(
        self,
        user_id: str,
        repository: MedicationRepository,
        preference_store: UserPreferenceStore,
        poll_interval: float = DEFAULT_POLL_INTERVAL_SECONDS,
        engine: Optional[NotificationEngine] = None,
        clock: Callable[[], datetime] = datetime.now,
    ):
        self.user_id = user_id
        self.repository = repository
        self.preference_store = preference_store
        self.poll_interval = poll_interval
        self.clock = clock
        self.engine = engine or NotificationEngine(AsyncioTimerRegistry(), clock=clock)
        self._running = False
        self._task: Optional[asyncio.Task] = None

    @property
    def running(self) -> bool:
        return self._running

    async def start(self) -> None:
        """Arm the daily reset and start polling."""

        if self._running:
            logger.warning(f"Notification session for {self.user_id} already running")
            return

        self._running = True
        self.engine.start()
        self._task = asyncio.create_task(self._poll_loop())
        logger.info(f"Notification session started for {self.user_id} (polling every {self.poll_interval}s)")

    async def stop(self) -> None:
        if not self._running:
            return

        self._running = False

        if self._task and not self._task.done():
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass

        self.engine.stop()
        logger.info(f"Notification session stopped for {self.user_id}")

    async def poll_once(self) -> FeedDelta:
        """Read the active medications and preferences and run one tick.

        Deactivated medications drop out of the snapshot, so their reminders
        are disarmed the same way as deleted ones.
        """
        medications = await self.repository.get_active_medications(self.user_id)
        preferences = await self.preference_store.get_preferences(self.user_id)
        delta = self.engine.tick(self.clock(), medications, preferences)

        if not delta.empty:
            logger.info(
                f"Feed for {self.user_id}: +{len(delta.added)} -{len(delta.removed)} "
                f"({len(self.engine.entries())} pending)"
            )
        return delta

    async def _poll_loop(self) -> None:
        while self._running:
            try:
                await self.poll_once()
                await asyncio.sleep(self.poll_interval)

            except asyncio.CancelledError:
                break
            except Exception as e:
                logger.error(f"Error in notification poll for {self.user_id}: {e}")
                await asyncio.sleep(self.poll_interval)

    def entries(self) -> List[FeedEntry]:
        return self.engine.entries()

    async def _ensure_known(self, medication_id: str) -> None:
        # Intents can arrive before the first poll has seen the medication
        if medication_id not in self.engine.snapshot:
            await self.poll_once()

    async def _write_through(self, entries: List[FeedEntry], write: Callable[[], Awaitable[None]]) -> IntentResult:
        try:
            await write()
        except MedicationStoreError as e:
            logger.error(f"Write-through failed for {self.user_id}: {e}")
            return IntentResult(ok=False, entries=entries, error=str(e))
        return IntentResult(entries=self.engine.entries())

    async def dismiss(self, entry_id: str) -> IntentResult:
        return IntentResult(entries=self.engine.dismiss(entry_id))

    async def snooze_dose(self, medication_id: str, duration_minutes: Optional[int] = None) -> IntentResult:
        await self._ensure_known(medication_id)
        return IntentResult(entries=self.engine.snooze_dose(medication_id, duration_minutes))

    async def mark_taken(self, medication_id: str) -> IntentResult:
        await self._ensure_known(medication_id)
        entries = self.engine.mark_taken(medication_id)
        taken_at = self.clock()
        return await self._write_through(
            entries, lambda: self.repository.record_dose_taken(medication_id, taken_at)
        )

    async def snooze_refill(self, medication_id: str) -> IntentResult:
        await self._ensure_known(medication_id)
        return IntentResult(entries=self.engine.snooze_refill(medication_id))

    async def mark_refilled(self, medication_id: str) -> IntentResult:
        await self._ensure_known(medication_id)
        entries = self.engine.mark_refilled(medication_id)
        return await self._write_through(
            entries, lambda: self.repository.clear_refill_date(medication_id)
        )

    async def no_longer_taking(self, medication_id: str) -> IntentResult:
        await self._ensure_known(medication_id)
        return IntentResult(entries=self.engine.no_longer_taking(medication_id))

    async def cancel_no_longer_taking(self, medication_id: str) -> IntentResult:
        return IntentResult(entries=self.engine.cancel_no_longer_taking(medication_id))

    async def confirm_no_longer_taking(self, medication_id: str) -> IntentResult:
        entries = self.engine.confirm_no_longer_taking(medication_id)
        return await self._write_through(
            entries, lambda: self.repository.deactivate(medication_id)
        )
