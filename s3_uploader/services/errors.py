"""Error hierarchy for upload handling.

None of these are fatal to the process: every failure is confined to the
single path whose event raised it.
"""

from pathlib import Path


class UploaderError(Exception):
    """Base exception for all upload handling errors."""

    def __init__(self, message: str, path: str | Path, cause: Exception | None = None) -> None:
        super().__init__(message)
        self.path = str(path)
        self.cause = cause
        self.__cause__ = cause


class TransientUploadError(UploaderError):
    """The remote store rejected or failed a put/delete call."""

    def __init__(self, key: str, operation: str, cause: Exception) -> None:
        super().__init__(f"S3 {operation} failed for {key}: {cause}", key, cause)
        self.key = key
        self.operation = operation


class LocalReadError(UploaderError):
    """A local file vanished or became unreadable before it could be uploaded."""

    def __init__(self, path: str | Path, cause: Exception) -> None:
        super().__init__(f"Cannot read {path}: {cause}", path, cause)


class InvalidPathError(UploaderError):
    """A local path does not lie under the watched root it was reported for."""

    def __init__(self, path: str | Path, root: str | Path) -> None:
        super().__init__(f"{path} is not under watched root {root}", path)
        self.root = str(root)


class DirectoryPruneError(UploaderError):
    """An empty directory could not be removed."""

    def __init__(self, path: str | Path, cause: Exception) -> None:
        super().__init__(f"Cannot remove directory {path}: {cause}", path, cause)
