"""Clock helpers shared by the models and the notification engine."""

import re
from datetime import date, datetime, time, timedelta
from typing import Any

TIME_PATTERN = re.compile(r"^([01][0-9]|2[0-3]):[0-5][0-9]$")


def is_valid_time(value: Any) -> bool:
    """Return True for a well-formed 24h ``HH:MM`` string."""
    return isinstance(value, str) and bool(TIME_PATTERN.match(value))


def format_clock(moment: datetime) -> str:
    """Format a datetime as the ``HH:MM`` used for schedule matching."""
    return moment.strftime("%H:%M")


def start_of_next_day(moment: datetime) -> datetime:
    """Local midnight following ``moment``, keeping its tzinfo."""
    tomorrow = moment.date() + timedelta(days=1)
    return datetime.combine(tomorrow, time.min, tzinfo=moment.tzinfo)


def seconds_until_next_midnight(moment: datetime) -> float:
    """Seconds from ``moment`` to the next local midnight (always > 0)."""
    return (start_of_next_day(moment) - moment).total_seconds()


def days_between(start: date, end: date) -> int:
    """Whole calendar days from ``start`` to ``end`` (negative when end is earlier)."""
    return (end - start).days
