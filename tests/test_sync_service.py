"""Tests for service assembly and lifecycle."""

import time
from collections.abc import Callable
from pathlib import Path

import pytest
from mypy_boto3_s3 import S3Client
from uploader_helpers import TEST_BUCKET, FakeTimers, write_file

from s3_uploader.config import Settings, get_settings
from s3_uploader.services.events import RootKind
from s3_uploader.services.sync_service import SyncService, build_roots


@pytest.fixture
def service(settings: Settings, s3_client: S3Client, fake_timers: FakeTimers) -> SyncService:
    return SyncService(settings, client=s3_client, timer_factory=fake_timers)


def wait_for(predicate: Callable[[], bool], timeout: float = 10.0) -> bool:
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(0.05)
    return False


class TestBuildRoots:
    """Tests for build_roots function."""

    def test_roots_from_settings(self, settings: Settings) -> None:
        live, recordings = build_roots(settings)

        assert live.kind is RootKind.LIVE_SEGMENTS
        assert live.path == settings.hls_dir
        assert live.namespace == "hls"
        assert live.report_existing is True
        assert live.stability_seconds < recordings.stability_seconds
        assert recordings.kind is RootKind.RECORDINGS
        assert recordings.namespace == "recordings"
        assert recordings.report_existing is False


class TestSyncService:
    """Tests for SyncService class."""

    def test_pipelines_follow_flags(
        self, monkeypatch: pytest.MonkeyPatch, settings: Settings, s3_client: S3Client
    ) -> None:
        monkeypatch.setenv("UPLOAD_HLS", "false")
        Settings._instance = None

        service = SyncService(get_settings(), client=s3_client)

        assert service.live is None
        assert service.scheduler is not None
        assert service.scheduler.delay_seconds == 60

    def test_health(self, service: SyncService) -> None:
        health = service.health()

        assert health["status"] == "ok"
        assert health["hls"] is True
        assert health["recordings"] is True
        assert health["recordingDelayMinutes"] == 1
        assert health["pendingRecordings"] == 0
        assert health["bucket"] == TEST_BUCKET

    def test_pending_reflects_registry(self, service: SyncService, settings: Settings) -> None:
        path = write_file(settings.recordings_dir / "s1" / "a.mp4")
        assert service.scheduler is not None
        service.scheduler.schedule(path)

        assert service.pending() == {"count": 1, "files": [str(path)]}
        assert service.health()["pendingRecordings"] == 1

    def test_start_and_stop(
        self, service: SyncService, fake_timers: FakeTimers, settings: Settings
    ) -> None:
        """Test that stop cancels every pending timer and empties the registry."""
        service.start()
        assert service.is_running is True
        assert len(service.watchers) == 2

        assert service.scheduler is not None
        service.scheduler.schedule(write_file(settings.recordings_dir / "a.mp4"))

        service.stop()

        assert service.is_running is False
        assert service.watchers == []
        assert service.registry.size() == 0
        assert fake_timers.created[0].cancelled is True

    def test_missing_root_is_skipped(
        self,
        monkeypatch: pytest.MonkeyPatch,
        settings: Settings,
        s3_client: S3Client,
        tmp_path: Path,
    ) -> None:
        monkeypatch.setenv("HLS_DIR", str(tmp_path / "does-not-exist"))
        Settings._instance = None
        service = SyncService(get_settings(), client=s3_client)

        service.start()
        try:
            assert [w.root.kind for w in service.watchers] == [RootKind.RECORDINGS]
        finally:
            service.stop()


class TestEndToEnd:
    """Real watchers against moto."""

    def test_live_file_is_mirrored(
        self, service: SyncService, s3_client: S3Client, settings: Settings
    ) -> None:
        service.start()
        try:
            write_file(settings.hls_dir / "index.m3u8", b"#EXTM3U\n")

            def uploaded() -> bool:
                response = s3_client.list_objects_v2(Bucket=TEST_BUCKET, Prefix="hls/")
                return response.get("KeyCount", 0) == 1

            assert wait_for(uploaded)
        finally:
            service.stop()

    def test_new_recording_becomes_pending(
        self, service: SyncService, settings: Settings
    ) -> None:
        service.start()
        try:
            path = write_file(settings.recordings_dir / "a.mp4")
            assert wait_for(lambda: service.pending()["files"] == [str(path)])
        finally:
            service.stop()
