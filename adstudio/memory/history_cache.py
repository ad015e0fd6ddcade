"""Bounded, newest-first history of generated images.

Purpose of this abstraction:
    Keep the last `HISTORY_CAPACITY` generated images for inspection and quick
    retry. The buffer is process-local only; nothing is written to disk.

Ordering and eviction:
    - `append(items)` prepends a batch, keeping the batch's own order, then
      truncates the tail. Evicted entries are dropped without trace.
    - `wipe()` clears everything.

Replay:
    `replay_prerequisites(entry)` returns the stored request snapshot. It is a pure
    read and never mutates the cache.

Concurrency:
    The session appends only after a batch fully returns. A lock still guards the
    buffer so HTTP adapter threads can read while a write happens.
"""

import threading
from typing import Iterable, List, Optional

from adstudio.core.request_types import GeneratedImage, GenerationRequest


HISTORY_CAPACITY = 50


class HistoryCache:
    """Insertion-ordered history buffer, newest first."""

    def __init__(self, capacity: int = HISTORY_CAPACITY):
        if capacity < 1:
            raise ValueError("capacity must be positive")
        self.capacity = capacity
        self._entries: List[GeneratedImage] = []
        self._lock = threading.Lock()

    def append(self, items: Iterable[GeneratedImage]) -> None:
        """Prepend `items` in their given order and evict beyond capacity."""
        items = list(items)
        if not items:
            return

        with self._lock:
            self._entries = (items + self._entries)[: self.capacity]

    def wipe(self) -> None:
        with self._lock:
            self._entries = []

    def replay_prerequisites(self, entry: GeneratedImage) -> GenerationRequest:
        """Return the request snapshot that produced `entry`."""
        return entry.originating_request

    def get(self, entry_id: str) -> Optional[GeneratedImage]:
        with self._lock:
            for entry in self._entries:
                if entry.id == entry_id:
                    return entry
        return None

    def entries(self) -> List[GeneratedImage]:
        """Return a copy of the buffer, newest first."""
        with self._lock:
            return list(self._entries)

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)
