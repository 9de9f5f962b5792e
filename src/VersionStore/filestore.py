"""Public facade of the version store.

:class:`Filestore` ties the blob layer, the SQLite catalog and the search
functions together behind an explicit open/close lifecycle::

    with Filestore("/data/versions") as fs:
        fs.add("docs/report.txt", "quarterly report", "1.0")
        latest = fs.latest("docs/report.txt")
        fs.restore(latest, "/tmp/out")

A readers-writer lock guards the lifecycle: :meth:`open` and :meth:`close`
take the write side, every other operation the read side.
"""

from __future__ import annotations

import logging
import os
from datetime import datetime
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Tuple

from VersionStore.catalog import fs_layout, search
from VersionStore.catalog.content_store import ContentStore
from VersionStore.catalog.io_utils import compute_digest
from VersionStore.catalog.models import FileVersion, VersionRecord
from VersionStore.catalog.rwlock import ReadWriteLock
from VersionStore.catalog.store import SQLiteCatalog
from VersionStore.catalog.verify import VerificationResult, verify_catalog
from VersionStore.errors import NotOpenError, VersionStoreError
from VersionStore.settings import StoreSettings

logger = logging.getLogger(__name__)

DEFAULT_LIMIT = 50


class Filestore:
    """Append-only, content-addressed versions of files on the local disk."""

    def __init__(
        self,
        root: str | os.PathLike[str] | None = None,
        compress: bool = False,
        *,
        wal_mode: bool = True,
        default_limit: int = DEFAULT_LIMIT,
    ):
        """Create a closed store.

        Args:
            root: Root directory for blobs and catalog; empty means ``versions``
            compress: Gzip blob content (store-wide, fixed for the store's lifetime)
            wal_mode: Open the catalog in SQLite WAL mode
            default_limit: Result limit used when a query omits one
        """
        self.root = fs_layout.resolve_root(root)
        self.compress = compress
        self.wal_mode = wal_mode
        self.default_limit = default_limit
        self._lifecycle = ReadWriteLock()
        self._catalog: Optional[SQLiteCatalog] = None
        self._content: Optional[ContentStore] = None
        self._closed = False

    @classmethod
    def from_settings(cls, settings: Optional[StoreSettings] = None) -> Filestore:
        """Build a closed store from :class:`StoreSettings`."""
        settings = settings or StoreSettings()
        return cls(
            settings.root,
            settings.compress,
            wal_mode=settings.wal_mode,
            default_limit=settings.default_limit,
        )

    @property
    def db_path(self) -> Path:
        return self.root / fs_layout.DB_FILENAME

    @property
    def is_open(self) -> bool:
        return self._catalog is not None

    # --------------------------------------------------------------- lifecycle

    def open(self) -> Filestore:
        """Create the root directory and schema if needed and prepare queries.

        Raises:
            DirectoryConflictError: If the root path is a regular file
            StorageError: If the catalog cannot be opened
            VersionStoreError: If the store is already open or was closed
        """
        with self._lifecycle.write():
            if self._catalog is not None:
                raise VersionStoreError(f"filestore at {self.root} is already open")
            if self._closed:
                raise VersionStoreError(f"filestore at {self.root} has been closed")
            fs_layout.ensure_dir(self.root)
            content = ContentStore(self.root, compress=self.compress)
            self._catalog = SQLiteCatalog(str(self.db_path), content, wal_mode=self.wal_mode)
            self._content = content
        logger.info(f"Opened filestore at {self.root} (compress={self.compress})")
        return self

    def close(self) -> None:
        """Release the catalog connection. A closed store cannot be reopened."""
        with self._lifecycle.write():
            catalog = self._require_open()
            self._catalog = None
            self._content = None
            self._closed = True
            catalog.close()
        logger.info(f"Closed filestore at {self.root}")

    def __enter__(self) -> Filestore:
        """Context manager entry."""
        return self.open()

    def __exit__(self, exc_type, exc_val, exc_tb):
        """Context manager exit."""
        if self.is_open:
            self.close()

    def _require_open(self) -> SQLiteCatalog:
        if self._catalog is None:
            raise NotOpenError()
        return self._catalog

    def _limit(self, limit: Optional[int]) -> int:
        return self.default_limit if limit is None else limit

    # ------------------------------------------------------------------ writes

    def add(self, path: str | os.PathLike[str], info: str, version: str) -> VersionRecord:
        """Store the file at ``path`` as a new version.

        The file is digested before the catalog is touched; identical content
        already in the store is referenced instead of copied again.

        Raises:
            NotOpenError: If the store is closed
            StoreIOError: If the file cannot be read or copied
            StorageError: If the catalog cannot be written
        """
        with self._lifecycle.read():
            catalog = self._require_open()
            digest = compute_digest(path)
            return catalog.add_version(os.fspath(path), info, version, digest)

    # ------------------------------------------------------------------- reads

    def has(self, path: str | os.PathLike[str]) -> bool:
        """True iff at least one version of ``path`` has been added."""
        with self._lifecycle.read():
            return self._require_open().has(os.fspath(path))

    def checksum(self, path: str | os.PathLike[str]) -> str:
        """Hex-encoded BLAKE2b-512 digest of the file at ``path``."""
        with self._lifecycle.read():
            self._require_open()
            return compute_digest(path)

    def latest(self, path: str | os.PathLike[str]) -> FileVersion:
        """Most recent version of ``path``; raises NotFoundError if none."""
        with self._lifecycle.read():
            return self._require_open().latest(os.fspath(path))

    def history(self, path: str | os.PathLike[str], limit: Optional[int] = None) -> List[FileVersion]:
        """Versions of ``path``, newest first."""
        with self._lifecycle.read():
            return self._require_open().history(os.fspath(path), self._limit(limit))

    def history_since(
        self,
        path: str | os.PathLike[str],
        after: datetime,
        limit: Optional[int] = None,
    ) -> List[FileVersion]:
        """Versions of ``path`` added strictly after ``after``, newest first."""
        with self._lifecycle.read():
            return self._require_open().history_since(os.fspath(path), after, self._limit(limit))

    def restore(self, version: FileVersion, dest_dir: str | os.PathLike[str]) -> Path:
        """Write the content of ``version`` to ``dest_dir/<name>``, overwriting."""
        with self._lifecycle.read():
            self._require_open()
            return self._content.restore(version.local, dest_dir, version.name, self.compress)

    def restore_at_source(self, version: FileVersion) -> Path:
        """Restore ``version`` over the path it was originally added from."""
        source_dir = os.path.dirname(version.path) or os.curdir
        return self.restore(version, source_dir)

    # ------------------------------------------------------------------ search

    def simple_search(self, words: Iterable[str], limit: Optional[int] = None) -> List[FileVersion]:
        """Substring search over info and version tags, oldest first."""
        with self._lifecycle.read():
            return search.simple_search(self._require_open(), words, self._limit(limit))

    def full_text_search(self, term: str, limit: Optional[int] = None) -> List[FileVersion]:
        """FTS5 query over info, version and date, newest first. ``term`` is not escaped."""
        with self._lifecycle.read():
            return search.full_text_search(self._require_open(), term, self._limit(limit))

    def fuzzy_search(self, term: str, limit: Optional[int] = None) -> List[FileVersion]:
        """Phonetic FTS5 query over info, plus version and date, newest first."""
        with self._lifecycle.read():
            return search.fuzzy_search(self._require_open(), term, self._limit(limit))

    @staticmethod
    def escape_search_term(term: str) -> str:
        """Quote ``term`` so FTS5 treats it as a literal phrase."""
        return search.escape_search_term(term)

    # ------------------------------------------------------------ maintenance

    def stats(self) -> Dict[str, int]:
        with self._lifecycle.read():
            return self._require_open().stats()

    def find_duplicates(self) -> List[Tuple[str, int]]:
        with self._lifecycle.read():
            return self._require_open().find_duplicates()

    def verify(self, limit: Optional[int] = None) -> List[VerificationResult]:
        """Re-digest stored blobs against the catalog."""
        with self._lifecycle.read():
            return verify_catalog(self._require_open(), limit)

    def rebuild_index(self) -> int:
        with self._lifecycle.read():
            return self._require_open().rebuild_index()
