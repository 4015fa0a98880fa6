"""Registry of recordings waiting for their delayed upload."""

import itertools
import threading
from dataclasses import dataclass, field
from datetime import datetime
from typing import Protocol


class TimerHandle(Protocol):
    """Anything that can be started and (best-effort) cancelled."""

    def start(self) -> None: ...

    def cancel(self) -> None: ...


@dataclass
class PendingUpload:
    """A scheduled delayed upload for one local path."""

    local_path: str
    scheduled_at: datetime
    due_at: datetime
    generation: int
    timer: TimerHandle | None = field(default=None, repr=False, compare=False)

    def cancel(self) -> None:
        """Best-effort stop of the timer; the generation check covers late fires."""
        if self.timer is not None:
            self.timer.cancel()


class PendingRegistry:
    """Thread-safe mapping of local path to its single live PendingUpload.

    Every read-modify-write happens under one lock, so a timer checking its
    generation never observes an entry halfway through being replaced.
    """

    def __init__(self) -> None:
        self._entries: dict[str, PendingUpload] = {}
        self._lock = threading.Lock()
        self._generations = itertools.count(1)

    def next_generation(self) -> int:
        """Allocate a new, strictly increasing generation number."""
        with self._lock:
            return next(self._generations)

    def add(self, entry: PendingUpload) -> PendingUpload | None:
        """Install an entry, displacing any older one for the same path.

        An entry never displaces one with a newer generation; in that case the
        offered entry itself is returned as the loser.

        Returns:
            The entry that lost (previous or offered), or None if the path was free
        """
        with self._lock:
            current = self._entries.get(entry.local_path)
            if current is not None and current.generation > entry.generation:
                return entry
            self._entries[entry.local_path] = entry
            return current

    def get(self, path: str) -> PendingUpload | None:
        with self._lock:
            return self._entries.get(path)

    def remove(self, path: str) -> PendingUpload | None:
        """Drop the entry for a path regardless of its generation."""
        with self._lock:
            return self._entries.pop(path, None)

    def claim(self, path: str, generation: int) -> PendingUpload | None:
        """Remove and return the entry only if it still carries ``generation``."""
        with self._lock:
            current = self._entries.get(path)
            if current is None or current.generation != generation:
                return None
            del self._entries[path]
            return current

    def snapshot(self) -> list[str]:
        """Paths with an outstanding timer, in sorted order."""
        with self._lock:
            return sorted(self._entries)

    def size(self) -> int:
        with self._lock:
            return len(self._entries)

    def clear(self) -> list[PendingUpload]:
        """Drop every entry and cancel its timer (used at shutdown)."""
        with self._lock:
            dropped = list(self._entries.values())
            self._entries.clear()
        for entry in dropped:
            entry.cancel()
        return dropped
