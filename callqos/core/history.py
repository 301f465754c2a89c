"""
Bounded adaptation history.

FIFO ring of committed degradation changes; once full, appending evicts the
oldest entry. Readers always get an independent copy, newest last.
"""

from collections import deque
from typing import List

from .models import AdaptationHistoryEntry, DegradationLevel

MAX_HISTORY_ENTRIES = 20


class AdaptationHistory:

    def __init__(self, max_entries: int = MAX_HISTORY_ENTRIES):
        if max_entries < 1:
            raise ValueError(f"max_entries must be positive, got {max_entries}")
        self._entries: deque[AdaptationHistoryEntry] = deque(maxlen=max_entries)
        self._max_entries = max_entries

    @property
    def max_entries(self) -> int:
        return self._max_entries

    def append(self, level: DegradationLevel, reason: str, timestamp: float) -> AdaptationHistoryEntry:
        entry = AdaptationHistoryEntry(level=level, reason=reason, timestamp=timestamp)
        self._entries.append(entry)
        return entry

    def entries(self) -> List[AdaptationHistoryEntry]:
        return list(self._entries)

    def clear(self):
        self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)
