"""Pytest configuration and fixtures for the s3_uploader tests."""

from collections.abc import Generator
from pathlib import Path

import boto3
import pytest
from moto import mock_aws
from mypy_boto3_s3 import S3Client
from uploader_helpers import TEST_BUCKET, TEST_REGION, FakeClock, FakeTimers

from s3_uploader.config import Settings, get_settings
from s3_uploader.services import log_service
from s3_uploader.services.events import RootKind, WatchedRoot
from s3_uploader.services.pending_registry import PendingRegistry


@pytest.fixture(autouse=True)
def isolated_settings(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> Generator[None, None, None]:
    """Give every test fresh settings, a temporary log directory and fake AWS credentials."""
    monkeypatch.setenv("LOG_DIRECTORY", str(tmp_path / "logs"))
    monkeypatch.setenv("AWS_ACCESS_KEY_ID", "testing")
    monkeypatch.setenv("AWS_SECRET_ACCESS_KEY", "testing")
    monkeypatch.setenv("AWS_DEFAULT_REGION", TEST_REGION)
    monkeypatch.delenv("AWS_PROFILE", raising=False)
    Settings._instance = None
    log_service._log_service = None
    yield
    Settings._instance = None
    log_service._log_service = None


@pytest.fixture
def settings(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Settings:
    """Settings pointing both roots into the temporary directory."""
    hls_dir = tmp_path / "hls"
    recordings_dir = tmp_path / "recordings"
    hls_dir.mkdir()
    recordings_dir.mkdir()
    monkeypatch.setenv("HLS_DIR", str(hls_dir))
    monkeypatch.setenv("RECORDINGS_DIR", str(recordings_dir))
    monkeypatch.setenv("S3_BUCKET", TEST_BUCKET)
    monkeypatch.setenv("AWS_REGION", TEST_REGION)
    monkeypatch.setenv("RECORDING_DELAY_MINUTES", "1")
    Settings._instance = None
    return get_settings()


@pytest.fixture
def s3_client() -> Generator[S3Client, None, None]:
    """S3 client backed by moto with the test bucket created."""
    with mock_aws():
        client: S3Client = boto3.client("s3", region_name=TEST_REGION)
        client.create_bucket(
            Bucket=TEST_BUCKET,
            CreateBucketConfiguration={"LocationConstraint": TEST_REGION},
        )
        yield client


@pytest.fixture
def hls_root(tmp_path: Path) -> WatchedRoot:
    path = tmp_path / "hls"
    path.mkdir(exist_ok=True)
    return WatchedRoot(kind=RootKind.LIVE_SEGMENTS, path=path, namespace="hls")


@pytest.fixture
def recordings_root(tmp_path: Path) -> WatchedRoot:
    path = tmp_path / "recordings"
    path.mkdir(exist_ok=True)
    return WatchedRoot(
        kind=RootKind.RECORDINGS,
        path=path,
        namespace="recordings",
        stability_seconds=2.0,
        poll_seconds=0.5,
    )


@pytest.fixture
def registry() -> PendingRegistry:
    return PendingRegistry()


@pytest.fixture
def fake_timers() -> FakeTimers:
    return FakeTimers()


@pytest.fixture
def fake_clock() -> FakeClock:
    return FakeClock()
