"""Reacts to a changed user default time within the same day."""

from datetime import date
from typing import List, Optional

from ...logging_config import get_logger
from ...models.medication import Medication
from .schedule import has_explicit_time
from .state import TrackingState

logger = get_logger(__name__)


class PreferenceChangeReactor:
    """Re-opens today's dose slots for medications that follow the user default."""

    def __init__(self, state: TrackingState):
        self.state = state

    def react(self, default_time: Optional[str], medications: List[Medication], today: date) -> List[str]:
        previous = self.state.previous_default_time
        cleared = []

        if previous is not None and default_time and default_time != previous:
            day = today.isoformat()
            for medication in medications:
                if not medication.is_active or has_explicit_time(medication):
                    continue
                if self.state.forget_dose_keys(medication.id, day):
                    cleared.append(medication.id)
            logger.info(
                f"Default time changed {previous} -> {default_time}; "
                f"re-opened {len(cleared)} medication(s) for today"
            )

        self.state.previous_default_time = default_time
        return cleared
