"""Midnight reset of day-scoped reminder state."""

from datetime import datetime
from typing import Callable

from ...logging_config import get_logger
from ...utils.times import seconds_until_next_midnight
from .timers import DAILY_RESET_KEY, TimerRegistry

logger = get_logger(__name__)


class DailyResetScheduler:
    """Runs ``on_reset`` at every local midnight for the life of the process.

    The delay is recomputed from the wall clock on each firing instead of
    repeating a fixed 24h interval, so clock changes do not accumulate drift.
    """

    def __init__(self, timers: TimerRegistry, clock: Callable[[], datetime], on_reset: Callable[[], None]):
        self.timers = timers
        self.clock = clock
        self.on_reset = on_reset

    def start(self) -> float:
        return self._arm()

    def stop(self) -> None:
        self.timers.cancel(DAILY_RESET_KEY)

    @property
    def armed(self) -> bool:
        return self.timers.is_pending(DAILY_RESET_KEY)

    def _arm(self) -> float:
        delay = seconds_until_next_midnight(self.clock())
        self.timers.schedule(DAILY_RESET_KEY, delay, self._fire)
        logger.debug(f"Daily reset armed in {delay:.0f}s")
        return delay

    def _fire(self) -> None:
        try:
            self.on_reset()
            logger.info("🌙 Daily reset: reminder tracking cleared")
        except Exception:
            logger.exception("Daily reset failed, re-arming anyway")
        finally:
            self._arm()
