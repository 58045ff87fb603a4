"""Ordered stack of pending reminders shown to the user."""

from collections import OrderedDict
from typing import List, Optional

from ...models.notifications import FeedDelta, FeedEntry


class NotificationFeed:
    """Pending feed entries in arrival order, one per entry id.

    Every change is also recorded so the next tick can report what was added
    and removed since the last one.
    """

    def __init__(self):
        self._entries: "OrderedDict[str, FeedEntry]" = OrderedDict()
        self._added: List[FeedEntry] = []
        self._removed: List[str] = []

    def add(self, entry: FeedEntry) -> bool:
        """Append ``entry``; a no-op when an entry with the same id is present."""
        if entry.id in self._entries:
            return False
        self._entries[entry.id] = entry
        self._added.append(entry)
        return True

    def replace(self, entry: FeedEntry) -> None:
        """Add ``entry``, superseding any pending entry with the same id.

        A superseded entry the caller already saw is reported as removed and
        the new one as added; the new entry moves to the end of the feed.
        """
        self.remove(entry.id)
        self.add(entry)

    def remove(self, entry_id: str) -> Optional[FeedEntry]:
        entry = self._entries.pop(entry_id, None)
        if entry is None:
            return None
        # Added and removed within the same tick: the caller never saw it
        pending = [e for e in self._added if e.id != entry_id]
        if len(pending) == len(self._added):
            self._removed.append(entry_id)
        self._added = pending
        return entry

    def clear(self) -> None:
        for entry_id in list(self._entries):
            self.remove(entry_id)

    def get(self, entry_id: str) -> Optional[FeedEntry]:
        return self._entries.get(entry_id)

    def entries(self) -> List[FeedEntry]:
        return list(self._entries.values())

    def drain_delta(self) -> FeedDelta:
        delta = FeedDelta(added=self._added, removed=self._removed)
        self._added = []
        self._removed = []
        return delta

    def __contains__(self, entry_id: str) -> bool:
        return entry_id in self._entries

    def __len__(self) -> int:
        return len(self._entries)
