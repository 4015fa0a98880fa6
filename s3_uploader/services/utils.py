"""Shared utility functions for app services."""

import logging
import os
from pathlib import Path

from s3_uploader.services.errors import DirectoryPruneError

logger = logging.getLogger(__name__)


def format_file_size(size_bytes: int) -> str:
    """Format a file size in bytes to a human-readable string.

    Args:
        size_bytes: Size in bytes

    Returns:
        Human-readable size string (e.g., "1.5 GB")
    """
    size_float = float(size_bytes)
    for unit in ["B", "KB", "MB", "GB", "TB"]:
        if abs(size_float) < 1024.0:
            return f"{size_float:.1f} {unit}"
        size_float = size_float / 1024.0
    return f"{size_float:.1f} PB"


def remove_dir_if_empty(directory: Path) -> bool:
    """Remove a directory if it has no entries.

    Returns:
        True if the directory was removed, False if it still has entries

    Raises:
        DirectoryPruneError: If listing or removing the directory fails
    """
    try:
        if any(directory.iterdir()):
            return False
        directory.rmdir()
    except OSError as e:
        raise DirectoryPruneError(directory, e) from e
    return True


def prune_empty_dirs(start: str | Path, root: str | Path) -> list[Path]:
    """Remove empty directories from ``start`` upward, never touching ``root``.

    Stops at the first directory that still has entries, at the root, or at
    the first directory that cannot be removed. Running it again over an
    already-pruned chain is a no-op.

    Args:
        start: Directory to begin with (usually the parent of a deleted file)
        root: Watched root bounding the walk (exclusive)

    Returns:
        Directories that were removed, deepest first
    """
    base = Path(os.path.normpath(os.fspath(root)))
    current = Path(os.path.normpath(os.fspath(start)))
    removed: list[Path] = []

    while current != base and current.is_relative_to(base):
        try:
            if not remove_dir_if_empty(current):
                break
        except DirectoryPruneError as e:
            logger.debug("Stopped pruning at %s: %s", current, e.cause)
            break
        removed.append(current)
        current = current.parent

    return removed
