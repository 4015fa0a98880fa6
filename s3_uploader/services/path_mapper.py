"""Mapping of local file paths to S3 object keys and upload headers."""

import os
from dataclasses import dataclass
from pathlib import Path

from s3_uploader.services.errors import InvalidPathError
from s3_uploader.services.events import RootKind, WatchedRoot

MANIFEST_EXTENSION = ".m3u8"
RECORDING_EXTENSIONS = frozenset({".mp4", ".flv"})

MANIFEST_CONTENT_TYPE = "application/vnd.apple.mpegurl"
SEGMENT_CONTENT_TYPE = "video/mp2t"
RECORDING_CONTENT_TYPE = "video/mp4"

MANIFEST_CACHE_CONTROL = "no-cache, no-store"
SEGMENT_CACHE_CONTROL = "max-age=31536000"  # one year; segments never change


@dataclass(frozen=True)
class ObjectHeaders:
    """Content headers sent with an uploaded object."""

    content_type: str
    cache_control: str | None = None


def _normalize(path: str | Path) -> Path:
    return Path(os.path.normpath(os.fspath(path)))


def relative_key_path(root: WatchedRoot, local_path: str | Path) -> str:
    """Return the root-relative path of a file in POSIX form.

    Raises:
        InvalidPathError: If the path is not a descendant of the root
    """
    candidate = _normalize(local_path)
    base = _normalize(root.path)
    if candidate == base or not candidate.is_relative_to(base):
        raise InvalidPathError(local_path, root.path)
    return candidate.relative_to(base).as_posix()


def map_key(root: WatchedRoot, local_path: str | Path) -> str:
    """Map a local file path to its S3 key.

    Args:
        root: The watched root the file was reported under
        local_path: Absolute local path of the file

    Returns:
        Key like "hls/stream1/seg3.ts"

    Raises:
        InvalidPathError: If the path is not a descendant of the root
    """
    relative = relative_key_path(root, local_path)
    if not root.namespace:
        return relative
    return f"{root.namespace}/{relative}"


def is_recording(local_path: str | Path) -> bool:
    """Check whether a file has one of the accepted recording extensions."""
    return Path(local_path).suffix.lower() in RECORDING_EXTENSIONS


def object_headers(root: WatchedRoot, local_path: str | Path) -> ObjectHeaders:
    """Derive content type and cache directives from the root and file extension."""
    if root.kind is RootKind.RECORDINGS:
        return ObjectHeaders(RECORDING_CONTENT_TYPE)
    if Path(local_path).suffix.lower() == MANIFEST_EXTENSION:
        return ObjectHeaders(MANIFEST_CONTENT_TYPE, MANIFEST_CACHE_CONTROL)
    return ObjectHeaders(SEGMENT_CONTENT_TYPE, SEGMENT_CACHE_CONTROL)
