"""File system watcher for the live-segment and recording roots.

Uses the watchdog library to observe a root, then holds every touched file
until its size and mtime have stopped changing before reporting it.
"""

from __future__ import annotations

import logging
import os
import threading
import time
from collections.abc import Callable
from pathlib import Path
from typing import Any

from watchdog.events import FileSystemEvent, FileSystemEventHandler
from watchdog.observers import Observer

from s3_uploader.services.events import EventKind, StabilizedEvent, WatchedRoot

logger = logging.getLogger(__name__)

EventCallback = Callable[[StabilizedEvent], None]


def is_hidden(path: str | Path) -> bool:
    return Path(path).name.startswith(".")


class StabilityTracker:
    """Tracks files until they have been unchanged for the root's threshold.

    The first report for a path is CREATED, later ones MODIFIED.
    """

    def __init__(
        self,
        root: WatchedRoot,
        on_event: EventCallback,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.root = root
        self._on_event = on_event
        self._clock = clock
        # path -> (last_change, size, mtime_ns)
        self._pending: dict[Path, tuple[float, int, int]] = {}
        self._known: set[Path] = set()
        self._lock = threading.Lock()
        self._stop = threading.Event()
        self._thread: threading.Thread | None = None

    def start(self) -> None:
        self._stop.clear()
        self._thread = threading.Thread(
            target=self._poll, daemon=True, name=f"StabilityTracker-{self.root.kind.value}"
        )
        self._thread.start()

    def stop(self) -> None:
        self._stop.set()
        if self._thread is not None:
            self._thread.join(timeout=5)
            self._thread = None

    def track(self, path: Path) -> None:
        """Register or refresh a file for stability tracking."""
        try:
            stat = path.stat()
        except OSError:
            return
        now = self._clock()
        with self._lock:
            previous = self._pending.get(path)
            if previous is None or previous[1:] != (stat.st_size, stat.st_mtime_ns):
                self._pending[path] = (now, stat.st_size, stat.st_mtime_ns)
        logger.debug("Tracking %s (size=%d)", path, stat.st_size)

    def forget(self, path: Path) -> None:
        """Stop tracking a file that has been removed."""
        with self._lock:
            self._pending.pop(path, None)
            self._known.discard(path)

    @property
    def pending_count(self) -> int:
        with self._lock:
            return len(self._pending)

    def check(self, now: float | None = None) -> list[StabilizedEvent]:
        """Collect the files that have settled since the last check."""
        if now is None:
            now = self._clock()
        settled: list[StabilizedEvent] = []
        with self._lock:
            for path, (last_change, last_size, last_mtime) in list(self._pending.items()):
                try:
                    stat = path.stat()
                except OSError:
                    # File vanished before it settled
                    del self._pending[path]
                    continue
                if (stat.st_size, stat.st_mtime_ns) != (last_size, last_mtime):
                    self._pending[path] = (now, stat.st_size, stat.st_mtime_ns)
                elif now - last_change >= self.root.stability_seconds:
                    del self._pending[path]
                    kind = EventKind.MODIFIED if path in self._known else EventKind.CREATED
                    self._known.add(path)
                    settled.append(StabilizedEvent(self.root, path, kind))
        return settled

    def _poll(self) -> None:
        """Periodically report files that have stabilised."""
        while not self._stop.is_set():
            for event in self.check():
                logger.debug("File stable: %s (%s)", event.local_path, event.kind.value)
                try:
                    self._on_event(event)
                except Exception:
                    logger.exception("Error handling stabilized event for %s", event.local_path)
            self._stop.wait(timeout=self.root.poll_seconds)


class RootEventHandler(FileSystemEventHandler):
    """Watchdog handler feeding writes into the tracker and reporting removals."""

    def __init__(self, tracker: StabilityTracker, on_event: EventCallback):
        super().__init__()
        self._tracker = tracker
        self._on_event = on_event

    def _track(self, src_path: str | bytes) -> None:
        path = Path(os.fsdecode(src_path))
        if not is_hidden(path):
            self._tracker.track(path)

    def _removed(self, src_path: str | bytes) -> None:
        path = Path(os.fsdecode(src_path))
        if is_hidden(path):
            return
        self._tracker.forget(path)
        try:
            self._on_event(StabilizedEvent(self._tracker.root, path, EventKind.REMOVED))
        except Exception:
            logger.exception("Error handling removal of %s", path)

    def on_created(self, event: FileSystemEvent) -> None:
        if not event.is_directory:
            self._track(event.src_path)

    def on_modified(self, event: FileSystemEvent) -> None:
        if not event.is_directory:
            self._track(event.src_path)

    def on_deleted(self, event: FileSystemEvent) -> None:
        if not event.is_directory:
            self._removed(event.src_path)

    def on_moved(self, event: FileSystemEvent) -> None:
        if event.is_directory:
            return
        self._removed(event.src_path)
        dest = Path(os.fsdecode(event.dest_path))
        if self._tracker.root.contains(dest):
            self._track(event.dest_path)


class RootWatcher:
    """High-level watcher that combines watchdog + stability tracking for one root.

    Usage:
        watcher = RootWatcher(root, dispatcher.dispatch)
        watcher.start()
        ...
        watcher.stop()
    """

    def __init__(self, root: WatchedRoot, on_event: EventCallback):
        self.root = root
        self.tracker = StabilityTracker(root, on_event)
        self.handler = RootEventHandler(self.tracker, on_event)
        self._observer: Any | None = None

    def start(self) -> None:
        """Start watching the root recursively."""
        if not self.root.path.is_dir():
            logger.error("Watched root does not exist: %s", self.root.path)
            raise FileNotFoundError(f"Watched root does not exist: {self.root.path}")

        observer = Observer()
        self._observer = observer
        observer.schedule(self.handler, str(self.root.path), recursive=True)
        observer.start()
        if self.root.report_existing:
            self._track_existing()
        self.tracker.start()
        logger.info(
            "Watching '%s' (stable=%gs, existing=%s)",
            self.root.path,
            self.root.stability_seconds,
            self.root.report_existing,
        )

    def _track_existing(self) -> None:
        for dirpath, dirnames, filenames in os.walk(self.root.path):
            dirnames[:] = [d for d in dirnames if not is_hidden(d)]
            for name in filenames:
                if not is_hidden(name):
                    self.tracker.track(Path(dirpath) / name)

    def stop(self) -> None:
        """Stop watching and release resources."""
        if self._observer:
            self._observer.stop()
            self._observer.join(timeout=5)
            self._observer = None
        self.tracker.stop()
        logger.info("Watcher for '%s' stopped.", self.root.path)

    @property
    def is_running(self) -> bool:
        """Return whether the watcher is currently active."""
        return self._observer is not None and self._observer.is_alive()
