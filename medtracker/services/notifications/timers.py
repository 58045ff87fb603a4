"""Cancellable one-shot timers keyed by purpose and medication."""

import asyncio
from abc import ABC, abstractmethod
from typing import Callable, Dict, Optional

from ...logging_config import get_logger

logger = get_logger(__name__)

DAILY_RESET_KEY = "daily-reset"


def dose_snooze_key(medication_id: str) -> str:
    return f"dose-snooze:{medication_id}"


def refill_settle_key(medication_id: str) -> str:
    return f"refill-settle:{medication_id}"


def refill_snooze_key(medication_id: str) -> str:
    return f"refill-snooze:{medication_id}"


class TimerRegistry(ABC):
    """Schedules callbacks by key; scheduling an existing key replaces it."""

    @abstractmethod
    def schedule(self, key: str, delay_seconds: float, callback: Callable[[], None]) -> None:
        ...

    @abstractmethod
    def cancel(self, key: str) -> bool:
        """Cancel a pending timer. Returns False when nothing was pending."""

    @abstractmethod
    def is_pending(self, key: str) -> bool:
        ...

    @abstractmethod
    def cancel_all(self) -> None:
        ...


class AsyncioTimerRegistry(TimerRegistry):
    """Timers backed by ``loop.call_later`` on the running event loop."""

    def __init__(self, loop: Optional[asyncio.AbstractEventLoop] = None):
        self._loop = loop
        self._handles: Dict[str, asyncio.TimerHandle] = {}

    def _get_loop(self) -> asyncio.AbstractEventLoop:
        if self._loop is None:
            self._loop = asyncio.get_running_loop()
        return self._loop

    def schedule(self, key: str, delay_seconds: float, callback: Callable[[], None]) -> None:
        self.cancel(key)
        handle = self._get_loop().call_later(max(delay_seconds, 0), self._fire, key, callback)
        self._handles[key] = handle
        logger.debug(f"Timer {key} armed for {delay_seconds:.1f}s")

    def _fire(self, key: str, callback: Callable[[], None]) -> None:
        self._handles.pop(key, None)
        try:
            callback()
        except Exception:
            logger.exception(f"Timer {key} callback failed")

    def cancel(self, key: str) -> bool:
        handle = self._handles.pop(key, None)
        if handle is None:
            return False
        handle.cancel()
        logger.debug(f"Timer {key} cancelled")
        return True

    def is_pending(self, key: str) -> bool:
        return key in self._handles

    def cancel_all(self) -> None:
        for handle in self._handles.values():
            handle.cancel()
        self._handles.clear()
