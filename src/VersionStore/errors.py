"""Exception hierarchy shared across the content store, catalog, and search.

The version store spans file digesting, blob copies, SQLite persistence, and
timestamp decoding. This module groups those failure modes so callers can
react to a high-level category (for example, any :class:`VersionStoreError`)
while still having access to the offending path or digest for diagnosis.
"""

from __future__ import annotations

from typing import Optional

__all__ = [
    "VersionStoreError",
    "StoreIOError",
    "DirectoryConflictError",
    "StorageError",
    "NotOpenError",
    "NotFoundError",
    "InvalidDateError",
    "ConfigurationError",
]


class VersionStoreError(RuntimeError):
    """Base exception for version store failures."""


class StoreIOError(VersionStoreError):
    """Raised when reading, digesting, or copying a file fails."""

    def __init__(
        self,
        message: str,
        *,
        path: Optional[str] = None,
        digest: Optional[str] = None,
    ) -> None:
        super().__init__(message)
        self.path = path
        self.digest = digest


class DirectoryConflictError(StoreIOError):
    """Raised when a required directory path is occupied by a regular file."""

    def __init__(self, path: str) -> None:
        super().__init__(f"directory cannot be created because it is a file: {path}", path=path)


class StorageError(VersionStoreError):
    """Raised when the SQLite catalog cannot be read or written."""


class NotOpenError(VersionStoreError):
    """Raised when an operation is attempted on a closed store."""

    def __init__(self, message: str = "filestore is not open") -> None:
        super().__init__(message)


class NotFoundError(VersionStoreError):
    """Raised when a query yields no matching version."""

    def __init__(self, path: str) -> None:
        super().__init__(f"no version found for {path}")
        self.path = path


class InvalidDateError(VersionStoreError):
    """Raised when a persisted timestamp cannot be decoded (index corruption)."""

    def __init__(self, value: str, *, version_id: Optional[int] = None) -> None:
        detail = f" (version {version_id})" if version_id is not None else ""
        super().__init__(f"filestore entry contains invalid date {value!r}{detail}")
        self.value = value
        self.version_id = version_id


class ConfigurationError(VersionStoreError):
    """Raised when store settings are invalid."""
