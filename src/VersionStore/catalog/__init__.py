"""
Version catalog and content-addressed blob store.

Provides persistent storage of file versions keyed by logical path, with
BLAKE2b-512 content digests for deduplication:
  - SQLite catalog of blobs (``Files``) and append-only versions (``Versions``)
  - One blob per digest under ``root/<digest>/<name>``, optionally gzipped
  - Substring, FTS5 full-text and phonetic (Metaphone) search over metadata
  - Verification of stored blobs against recorded digests
"""

from __future__ import annotations

from VersionStore.catalog.content_store import ContentStore
from VersionStore.catalog.models import ContentBlob, FileVersion, VersionRecord
from VersionStore.catalog.store import SQLiteCatalog

__all__ = [
    "ContentBlob",
    "ContentStore",
    "FileVersion",
    "SQLiteCatalog",
    "VersionRecord",
]
