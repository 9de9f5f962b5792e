"""VersionStore: append-only, content-addressed file versioning on the local disk."""

from __future__ import annotations

from VersionStore.catalog.models import FileVersion, VersionRecord
from VersionStore.catalog.phonetic import phonetic_encode
from VersionStore.catalog.search import escape_search_term
from VersionStore.errors import (
    ConfigurationError,
    DirectoryConflictError,
    InvalidDateError,
    NotFoundError,
    NotOpenError,
    StorageError,
    StoreIOError,
    VersionStoreError,
)
from VersionStore.filestore import Filestore
from VersionStore.settings import StoreSettings

__version__ = "1.0.0"
__all__ = [
    "ConfigurationError",
    "DirectoryConflictError",
    "FileVersion",
    "Filestore",
    "InvalidDateError",
    "NotFoundError",
    "NotOpenError",
    "StorageError",
    "StoreIOError",
    "StoreSettings",
    "VersionRecord",
    "VersionStoreError",
    "escape_search_term",
    "phonetic_encode",
]
