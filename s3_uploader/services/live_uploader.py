"""Immediate upload pipeline for live HLS manifests and segments."""

from pathlib import Path

from mypy_boto3_s3 import S3Client

from s3_uploader.services import s3_service
from s3_uploader.services.errors import InvalidPathError, LocalReadError, TransientUploadError
from s3_uploader.services.events import EventKind, StabilizedEvent
from s3_uploader.services.log_service import get_log_service
from s3_uploader.services.path_mapper import map_key, object_headers


class LiveUploader:
    """Mirrors every stabilized change under the live-segment root to S3.

    Fire-and-forget: failures are logged and dropped. A failed upload is only
    retried when the file changes again, which manifests do every few seconds.
    Local files are only ever read, never deleted.
    """

    def __init__(self, client: S3Client, bucket: str) -> None:
        self.client = client
        self.bucket = bucket

    def handle(self, event: StabilizedEvent) -> None:
        """Upload or delete the object matching one event."""
        log = get_log_service()
        try:
            if event.kind is EventKind.REMOVED:
                self.delete(event)
            else:
                self.upload(event)
        except LocalReadError as e:
            log.warning(
                "hls",
                "hls_read_failed",
                f"Upload skipped, file unreadable: {event.local_path}",
                {"path": str(event.local_path), "error": str(e.cause)},
            )
        except TransientUploadError as e:
            log.error(
                "hls",
                f"hls_{e.operation}_failed",
                f"{e.operation.capitalize()} error: {event.local_path}: {e.cause}",
                {"path": str(event.local_path), "key": e.key, "error": str(e.cause)},
            )
        except InvalidPathError as e:
            log.error(
                "hls",
                "hls_invalid_path",
                str(e),
                {"path": e.path, "root": e.root},
            )

    def upload(self, event: StabilizedEvent) -> str:
        """Read the whole file and put it under its mapped key.

        Returns:
            The S3 key written
        """
        key = map_key(event.root, event.local_path)
        headers = object_headers(event.root, event.local_path)
        try:
            body = Path(event.local_path).read_bytes()
        except OSError as e:
            raise LocalReadError(event.local_path, e) from e

        s3_service.put_object(
            self.client,
            self.bucket,
            key,
            body,
            content_type=headers.content_type,
            cache_control=headers.cache_control,
        )
        get_log_service().info(
            "hls",
            "hls_uploaded",
            f"Uploaded: {key}",
            {"key": key, "size": len(body)},
        )
        return key

    def delete(self, event: StabilizedEvent) -> str:
        """Delete the object mirroring a removed file.

        Returns:
            The S3 key deleted
        """
        key = map_key(event.root, event.local_path)
        s3_service.delete_object(self.client, self.bucket, key)
        get_log_service().info("hls", "hls_deleted", f"Deleted: {key}", {"key": key})
        return key
