"""Dose time resolution.

The same resolver feeds both the dose tracker and the "Time: HH:MM" shown to
the user, so a reminder never fires at a different time than the one displayed.

Resolution order, first match wins:

1. ``frequency.time_of_day``
2. ``frequency.specific_times`` (unless it is only the creation default)
3. ``medication.preferred_time``
4. the user's default time

``Medication.default_time`` is never consulted; the user-level default is the
only fallback.
"""

from typing import List

from ...models.medication import DEFAULT_SPECIFIC_TIMES, Medication
from ...utils.times import is_valid_time


def _from_time_of_day(medication: Medication) -> List[str]:
    time_of_day = medication.frequency.time_of_day
    return [time_of_day] if is_valid_time(time_of_day) else []


def _from_specific_times(medication: Medication) -> List[str]:
    valid = [t for t in medication.frequency.specific_times or [] if is_valid_time(t)]
    # ["09:00"] with nothing else set is the creation default, not a user choice
    only_default = (
        tuple(valid) == DEFAULT_SPECIFIC_TIMES
        and not medication.preferred_time
        and not medication.frequency.time_of_day
    )
    return [] if only_default else valid


def _from_preferred_time(medication: Medication) -> List[str]:
    preferred = medication.preferred_time
    return [preferred] if is_valid_time(preferred) else []


EXPLICIT_TIME_SOURCES = (_from_time_of_day, _from_specific_times, _from_preferred_time)


def explicit_dose_times(medication: Medication) -> List[str]:
    """Times configured on the medication itself, empty when it relies on the user default."""
    for source in EXPLICIT_TIME_SOURCES:
        times = source(medication)
        if times:
            return times
    return []


def has_explicit_time(medication: Medication) -> bool:
    return bool(explicit_dose_times(medication))


def resolve_dose_times(medication: Medication, user_default_time: str) -> List[str]:
    """Ordered, non-empty list of HH:MM times to check ``medication`` today."""
    return explicit_dose_times(medication) or [user_default_time]


def display_time(medication: Medication, user_default_time: str) -> str:
    return resolve_dose_times(medication, user_default_time)[0]
