"""Watched roots and the stabilized filesystem events they produce."""

from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum
from pathlib import Path


class RootKind(Enum):
    """Which upload policy a watched root feeds."""

    LIVE_SEGMENTS = "live_segments"
    RECORDINGS = "recordings"


class EventKind(Enum):
    """Kind of a stabilized filesystem event."""

    CREATED = "created"
    MODIFIED = "modified"
    REMOVED = "removed"


@dataclass(frozen=True)
class WatchedRoot:
    """A local directory tree mirrored to one remote key namespace."""

    kind: RootKind
    path: Path
    namespace: str
    enabled: bool = True
    stability_seconds: float = 0.5
    poll_seconds: float = 0.1
    report_existing: bool = False

    def contains(self, local_path: str | Path) -> bool:
        """Check whether a path lies strictly below this root."""
        candidate = Path(local_path)
        return candidate != self.path and candidate.is_relative_to(self.path)


@dataclass(frozen=True)
class StabilizedEvent:
    """A create/modify/remove notification for a file that has stopped changing."""

    root: WatchedRoot
    local_path: Path
    kind: EventKind
    observed_at: datetime = field(default_factory=lambda: datetime.now(UTC))
