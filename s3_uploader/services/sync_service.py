"""Assembly of watchers, upload pipelines and the pending registry."""

import threading
from typing import Any

from mypy_boto3_s3 import S3Client

from s3_uploader.config import Settings, get_package_version
from s3_uploader.services import s3_service
from s3_uploader.services.dispatcher import EventDispatcher
from s3_uploader.services.events import RootKind, WatchedRoot
from s3_uploader.services.live_uploader import LiveUploader
from s3_uploader.services.log_service import get_log_service
from s3_uploader.services.pending_registry import PendingRegistry
from s3_uploader.services.recording_scheduler import RecordingScheduler, TimerFactory, thread_timer
from s3_uploader.services.watcher import RootWatcher


def build_roots(settings: Settings) -> tuple[WatchedRoot, WatchedRoot]:
    """Create the live-segment and recordings roots from settings."""
    live_root = WatchedRoot(
        kind=RootKind.LIVE_SEGMENTS,
        path=settings.hls_dir,
        namespace=settings.hls_prefix,
        enabled=settings.upload_hls,
        stability_seconds=settings.hls_stability_seconds,
        poll_seconds=settings.hls_poll_seconds,
        report_existing=True,
    )
    recordings_root = WatchedRoot(
        kind=RootKind.RECORDINGS,
        path=settings.recordings_dir,
        namespace=settings.recordings_prefix,
        enabled=settings.upload_recordings,
        stability_seconds=settings.recordings_stability_seconds,
        poll_seconds=settings.recordings_poll_seconds,
        report_existing=False,
    )
    return live_root, recordings_root


class SyncService:
    """Owns everything that runs between the filesystem and S3.

    Lifecycle: created at startup, ``start()`` begins watching, ``stop()``
    stops the watchers and cancels every pending recording timer.
    """

    def __init__(
        self,
        settings: Settings,
        client: S3Client | None = None,
        timer_factory: TimerFactory = thread_timer,
    ) -> None:
        self.settings = settings
        self.bucket = settings.s3_bucket
        self.client = client or s3_service.create_s3_client(
            settings.aws_profile, settings.aws_region
        )
        self.registry = PendingRegistry()
        self.live_root, self.recordings_root = build_roots(settings)

        self.live: LiveUploader | None = None
        if self.live_root.enabled:
            self.live = LiveUploader(self.client, self.bucket)

        self.scheduler: RecordingScheduler | None = None
        if self.recordings_root.enabled:
            self.scheduler = RecordingScheduler(
                self.client,
                self.bucket,
                self.recordings_root,
                self.registry,
                delay_seconds=settings.recording_delay_seconds,
                delete_after_upload=settings.delete_local,
                timer_factory=timer_factory,
            )

        self.dispatcher = EventDispatcher(self.live, self.scheduler)
        self.watchers: list[RootWatcher] = []
        self._lock = threading.Lock()
        self._running = False

    @property
    def is_running(self) -> bool:
        return self._running

    def start(self) -> None:
        """Validate the bucket and start a watcher for every enabled root."""
        log = get_log_service()
        with self._lock:
            if self._running:
                return

            result = s3_service.validate_bucket_access(self.client, self.bucket)
            if not result["success"]:
                log.warning(
                    "app",
                    "bucket_unreachable",
                    f"S3 bucket check failed: {result['error']}",
                    {"bucket": self.bucket, "error": result["error"]},
                )

            for root in (self.live_root, self.recordings_root):
                if not root.enabled:
                    continue
                watcher = RootWatcher(root, self.dispatcher.dispatch)
                try:
                    watcher.start()
                except OSError as e:
                    log.error(
                        "watcher",
                        "watch_failed",
                        f"Cannot watch {root.path}: {e}",
                        {"root": str(root.path), "error": str(e)},
                    )
                    continue
                self.watchers.append(watcher)
                log.info(
                    "watcher",
                    "watch_started",
                    f"Watching {root.path} for changes",
                    {"root": str(root.path), "kind": root.kind.value},
                )

            self._running = True

        log.info(
            "app",
            "service_started",
            f"S3 uploader started (v{get_package_version()})",
            {
                "hls": self.live_root.enabled,
                "recordings": self.recordings_root.enabled,
                "recording_delay_minutes": self.settings.recording_delay_minutes,
                "bucket": self.bucket,
            },
        )

    def stop(self) -> None:
        """Stop watching and drop all pending recording timers."""
        with self._lock:
            if not self._running:
                return
            for watcher in self.watchers:
                watcher.stop()
            self.watchers.clear()
            dropped = self.registry.clear()
            self.dispatcher.shutdown(wait=True)
            self._running = False

        get_log_service().info(
            "app",
            "service_stopped",
            f"S3 uploader stopped, {len(dropped)} pending recordings dropped",
            {"dropped": [e.local_path for e in dropped]},
        )

    def health(self) -> dict[str, Any]:
        """Enablement flags and configuration for the status endpoint."""
        return {
            "status": "ok",
            "hls": self.live_root.enabled,
            "recordings": self.recordings_root.enabled,
            "recordingDelayMinutes": self.settings.recording_delay_minutes,
            "pendingRecordings": self.registry.size(),
            "bucket": self.bucket,
            "version": get_package_version(),
        }

    def pending(self) -> dict[str, Any]:
        """Paths waiting for their delayed upload."""
        files = self.registry.snapshot()
        return {"count": len(files), "files": files}
