"""Routes stabilized events to the upload pipeline of their root."""

import logging
from concurrent.futures import Future, ThreadPoolExecutor

from s3_uploader.services.events import RootKind, StabilizedEvent
from s3_uploader.services.live_uploader import LiveUploader
from s3_uploader.services.recording_scheduler import RecordingScheduler

logger = logging.getLogger(__name__)


class EventDispatcher:
    """Classifies events by root and fans them out.

    Live-segment events run on a thread pool so a slow upload never holds up
    the next notification. Recording events only touch the pending registry,
    so they are handled inline and keep their per-path arrival order.
    """

    def __init__(
        self,
        live: LiveUploader | None = None,
        recordings: RecordingScheduler | None = None,
        max_workers: int = 4,
    ) -> None:
        self.live = live
        self.recordings = recordings
        self.max_workers = max_workers
        self._executor = ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="upload")

    def dispatch(self, event: StabilizedEvent) -> Future[None] | None:
        """Hand one event to its pipeline.

        Returns:
            The future of a submitted live-segment task, or None
        """
        kind = event.root.kind
        if kind is RootKind.LIVE_SEGMENTS and self.live is not None:
            future = self._executor.submit(self.live.handle, event)
            future.add_done_callback(self._report_failure)
            return future
        if kind is RootKind.RECORDINGS and self.recordings is not None:
            try:
                self.recordings.handle(event)
            except Exception:
                logger.exception("Failed to schedule recording %s", event.local_path)
            return None
        logger.debug("No pipeline enabled for %s event on %s", kind.value, event.local_path)
        return None

    @staticmethod
    def _report_failure(future: "Future[None]") -> None:
        if future.cancelled():
            return
        exc = future.exception()
        if exc is not None:
            logger.error("Live upload task failed", exc_info=exc)

    def shutdown(self, wait: bool = True) -> None:
        self._executor.shutdown(wait=wait, cancel_futures=not wait)
