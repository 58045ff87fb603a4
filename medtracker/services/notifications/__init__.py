"""Dose and refill reminder scheduling."""

from .engine import NotificationEngine, UnknownMedicationError
from .feed import NotificationFeed
from .schedule import display_time, has_explicit_time, resolve_dose_times
from .session import NotificationSession
from .timers import AsyncioTimerRegistry, TimerRegistry

__all__ = [
    "NotificationEngine",
    "UnknownMedicationError",
    "NotificationFeed",
    "display_time",
    "has_explicit_time",
    "resolve_dose_times",
    "NotificationSession",
    "AsyncioTimerRegistry",
    "TimerRegistry",
]
