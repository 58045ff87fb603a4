"""Notification feed models."""

from datetime import date, datetime
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field


class NotificationKind(str, Enum):
    """Kinds of reminders the feed can hold."""
    DOSE = "dose"
    REFILL = "refill"


def entry_id_for(kind: NotificationKind, medication_id: str) -> str:
    return f"{kind.value}:{medication_id}"


class FeedEntry(BaseModel):
    """A pending reminder shown to the user."""
    id: str
    kind: NotificationKind
    medication_id: str
    medication_name: str
    generic_name: Optional[str] = None
    dosage: Optional[str] = None
    instructions: Optional[str] = None
    time: Optional[str] = None  # resolved HH:MM, dose entries only
    refill_date: Optional[date] = None
    days_until_refill: Optional[int] = None
    created_at: datetime


class FeedDelta(BaseModel):
    """Changes to the feed since the previous tick."""
    added: List[FeedEntry] = Field(default_factory=list)
    removed: List[str] = Field(default_factory=list)

    @property
    def empty(self) -> bool:
        return not self.added and not self.removed


class IntentResult(BaseModel):
    """Feed state after a user intent, plus any write-through failure."""
    ok: bool = True
    entries: List[FeedEntry] = Field(default_factory=list)
    error: Optional[str] = None
