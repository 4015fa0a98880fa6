"""Delayed upload scheduler for finished recordings."""

import logging
import os
import threading
from collections.abc import Callable
from datetime import UTC, datetime, timedelta
from pathlib import Path
from typing import Any

from mypy_boto3_s3 import S3Client

from s3_uploader.services import s3_service
from s3_uploader.services.errors import InvalidPathError, LocalReadError, TransientUploadError
from s3_uploader.services.events import EventKind, StabilizedEvent, WatchedRoot
from s3_uploader.services.log_service import get_log_service
from s3_uploader.services.path_mapper import is_recording, map_key, object_headers
from s3_uploader.services.pending_registry import PendingRegistry, PendingUpload, TimerHandle
from s3_uploader.services.utils import format_file_size, prune_empty_dirs

logger = logging.getLogger(__name__)

TimerFactory = Callable[[float, Callable[..., None], tuple[Any, ...]], TimerHandle]


def thread_timer(delay: float, function: Callable[..., None], args: tuple[Any, ...]) -> TimerHandle:
    """Create a daemon ``threading.Timer``; it is started by the caller."""
    timer = threading.Timer(delay, function, args=args)
    timer.daemon = True
    timer.name = "RecordingTimer"
    return timer


def utc_now() -> datetime:
    return datetime.now(UTC)


def format_recorded_at(dt: datetime) -> str:
    """Millisecond ISO-8601 in UTC with a trailing Z, e.g. 2024-06-15T12:00:00.000Z."""
    return dt.astimezone(UTC).isoformat(timespec="milliseconds").replace("+00:00", "Z")


class RecordingScheduler:
    """Uploads each new recording once it has been left alone for ``delay_seconds``.

    A second create for the same path before the delay elapses supersedes the
    first: a fresh generation is installed in the registry and the old timer,
    even if it still fires, finds a generation mismatch and does nothing.

    A failed upload is logged and abandoned. The pending entry is already gone
    at that point, so the file stays local with no automatic retry.
    """

    def __init__(
        self,
        client: S3Client,
        bucket: str,
        root: WatchedRoot,
        registry: PendingRegistry,
        delay_seconds: float,
        delete_after_upload: bool = True,
        timer_factory: TimerFactory = thread_timer,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self.client = client
        self.bucket = bucket
        self.root = root
        self.registry = registry
        self.delay_seconds = delay_seconds
        self.delete_after_upload = delete_after_upload
        self._timer_factory = timer_factory
        self._clock = clock

    def handle(self, event: StabilizedEvent) -> PendingUpload | None:
        """Schedule an upload for a created recording; ignore everything else."""
        if event.kind is not EventKind.CREATED or not is_recording(event.local_path):
            return None
        return self.schedule(event.local_path)

    def schedule(self, local_path: str | Path) -> PendingUpload:
        """Install a new pending upload for a path, superseding any earlier one.

        Returns:
            The newly scheduled entry
        """
        path = str(local_path)
        now = self._clock()
        generation = self.registry.next_generation()
        entry = PendingUpload(
            local_path=path,
            scheduled_at=now,
            due_at=now + timedelta(seconds=self.delay_seconds),
            generation=generation,
        )
        entry.timer = self._timer_factory(self.delay_seconds, self._fire, (path, generation))

        displaced = self.registry.add(entry)
        if displaced is not None:
            displaced.cancel()
            logger.debug("Superseded generation %d for %s", displaced.generation, path)

        if displaced is not entry and entry.timer is not None:
            entry.timer.start()

        get_log_service().info(
            "recording",
            "recording_scheduled",
            f"New file detected: {path}, will upload in "
            f"{self.delay_seconds / 60:g} minutes",
            {
                "path": path,
                "generation": generation,
                "due_at": entry.due_at.isoformat(),
                "rescheduled": displaced is not None and displaced is not entry,
            },
        )
        return entry

    def _fire(self, local_path: str, generation: int) -> None:
        """Timer callback: upload only if this generation is still current."""
        entry = self.registry.claim(local_path, generation)
        if entry is None:
            logger.debug("Stale timer for %s (generation %d) ignored", local_path, generation)
            return
        try:
            self.upload(local_path)
        except Exception:
            logger.exception("Unexpected error uploading recording %s", local_path)

    def upload(self, local_path: str | Path) -> bool:
        """Upload one recording and, if configured, remove it locally.

        Returns:
            True if the object was stored in S3
        """
        log = get_log_service()
        path = Path(local_path)

        if not path.exists():
            log.info(
                "recording",
                "recording_vanished",
                f"File no longer exists, skipping: {path}",
                {"path": str(path)},
            )
            return False

        try:
            key = map_key(self.root, path)
            size = self._put(path, key)
        except LocalReadError as e:
            log.info(
                "recording",
                "recording_vanished",
                f"File became unreadable, skipping: {path}",
                {"path": str(path), "error": str(e.cause)},
            )
            return False
        except TransientUploadError as e:
            log.error(
                "recording",
                "recording_upload_failed",
                f"Upload error: {path}: {e.cause}",
                {"path": str(path), "key": e.key, "error": str(e.cause)},
            )
            return False
        except InvalidPathError as e:
            log.error(
                "recording", "recording_invalid_path", str(e), {"path": e.path, "root": e.root}
            )
            return False

        log.info(
            "recording",
            "recording_uploaded",
            f"Uploaded: s3://{self.bucket}/{key} ({format_file_size(size)})",
            {"path": str(path), "key": key, "size": size},
        )

        if self.delete_after_upload:
            self._delete_local(path)
        return True

    def _put(self, path: Path, key: str) -> int:
        """Stream a file to S3 with its length and upload-time metadata."""
        headers = object_headers(self.root, path)
        try:
            body = open(path, "rb")
        except OSError as e:
            raise LocalReadError(path, e) from e

        with body:
            try:
                size = os.fstat(body.fileno()).st_size
            except OSError as e:
                raise LocalReadError(path, e) from e
            s3_service.put_object(
                self.client,
                self.bucket,
                key,
                body,
                content_type=headers.content_type,
                metadata={"recorded_at": format_recorded_at(self._clock())},
                content_length=size,
            )
        return size

    def _delete_local(self, path: Path) -> None:
        log = get_log_service()
        try:
            path.unlink()
        except OSError as e:
            log.warning(
                "local",
                "local_delete_failed",
                f"Could not delete {path}: {e}",
                {"path": str(path), "error": str(e)},
            )
            return

        log.info("local", "local_deleted", f"Deleted: {path}", {"path": str(path)})
        removed = prune_empty_dirs(path.parent, self.root.path)
        if removed:
            log.info(
                "local",
                "local_dirs_pruned",
                f"Removed {len(removed)} empty directories under {self.root.path}",
                {"directories": [str(d) for d in removed]},
            )
