"""SQLite-based implementation of the version catalog."""

from __future__ import annotations

import logging
import sqlite3
import threading
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, Iterator, List, Optional, Sequence, Tuple

from VersionStore.catalog import fs_layout
from VersionStore.catalog.content_store import ContentStore
from VersionStore.catalog.dates import decode_timestamp, encode_timestamp, utc_now
from VersionStore.catalog.models import ContentBlob, FileVersion, VersionRecord
from VersionStore.catalog.phonetic import phonetic_encode
from VersionStore.errors import InvalidDateError, NotFoundError, StorageError

logger = logging.getLogger(__name__)

# The blob of a digest is named after the first version that introduced it.
VERSION_COLUMNS = """
    v.version_id, v.path, v.info, v.fuzzy, v.version, v.date, v.file_id, f.checksum,
    (SELECT b.path FROM Versions b WHERE b.file_id = v.file_id
     ORDER BY b.version_id LIMIT 1) AS blob_path
"""

VERSION_SELECT = f"""
    SELECT {VERSION_COLUMNS}
    FROM Versions v INNER JOIN Files f ON f.file_id = v.file_id
"""

FTS_SELECT = f"""
    SELECT {VERSION_COLUMNS}
    FROM VersionsFts
    INNER JOIN Versions v ON v.version_id = VersionsFts.rowid
    INNER JOIN Files f ON f.file_id = v.file_id
"""


def db_error(e: sqlite3.Error, context: str = "") -> StorageError:
    """Wrap a SQLite error with catalog context."""
    detail = f" ({context})" if context else ""
    return StorageError(f"catalog DB error{detail}: {e}")


class SQLiteCatalog:
    """SQLite-backed, append-only catalog of file versions.

    Owns the ``Files`` and ``Versions`` tables and their FTS5 mirror. All use
    of the connection is serialized by a reentrant lock, which also makes the
    lookup-or-create-blob step of :meth:`add_version` atomic.
    """

    def __init__(self, path: str, content_store: ContentStore, wal_mode: bool = True):
        """Initialize SQLite catalog store.

        Args:
            path: Path to SQLite database file
            content_store: Blob layer used to materialize new digests
            wal_mode: If True, enable WAL mode for better concurrency

        Raises:
            StorageError: If the database cannot be opened or initialized
        """
        self.path = Path(path)
        self.content_store = content_store
        self.wal_mode = wal_mode
        self._lock = threading.RLock()

        try:
            self.conn = sqlite3.connect(str(self.path), check_same_thread=False, timeout=30.0)
            self.conn.row_factory = sqlite3.Row
            if wal_mode:
                self.conn.execute("PRAGMA journal_mode=WAL")
            self.conn.execute("PRAGMA foreign_keys=ON")
            self._init_schema()
        except sqlite3.Error as e:
            raise db_error(e, f"opening {self.path}") from e
        logger.info(f"Initialized SQLite catalog at {self.path}")

    def _init_schema(self) -> None:
        """Load and execute schema.sql."""
        schema_path = Path(__file__).parent / "schema.sql"
        schema_sql = schema_path.read_text(encoding="utf-8")
        self.conn.executescript(schema_sql)
        self.conn.commit()
        logger.debug("Schema initialized successfully")

    # ------------------------------------------------------------------ writes

    def add_version(self, path: str, info: str, version: str, digest: str) -> VersionRecord:
        """Append a version of ``path`` whose content has digest ``digest``.

        When the digest is unknown the source file at ``path`` is copied into
        the content store first. Blob row and version row are committed
        together; if the blob copy fails nothing is inserted.

        Raises:
            StoreIOError: If the blob cannot be materialized
            StorageError: If the catalog cannot be written
        """
        catalog_path = fs_layout.to_catalog_path(path)
        name = fs_layout.base_name(catalog_path)
        fuzzy = phonetic_encode(info)

        with self._lock:
            try:
                with self.conn:
                    row = self.conn.execute(
                        "SELECT file_id FROM Files WHERE checksum = ?", (digest,)
                    ).fetchone()
                    new_blob = row is None
                    if new_blob:
                        self.content_store.write(path, digest, name)
                        file_id = self.conn.execute(
                            "INSERT INTO Files(checksum) VALUES (?)", (digest,)
                        ).lastrowid
                    else:
                        file_id = row["file_id"]

                    created_at = utc_now()
                    version_id = self.conn.execute(
                        """
                        INSERT INTO Versions(path, info, fuzzy, version, date, file_id)
                        VALUES (?, ?, ?, ?, ?, ?)
                        """,
                        (catalog_path, info, fuzzy, version, encode_timestamp(created_at), file_id),
                    ).lastrowid
            except sqlite3.Error as e:
                raise db_error(e, f"adding {catalog_path}") from e

        if new_blob:
            logger.info(f"Added {catalog_path} as version {version_id} with new blob {file_id}")
        else:
            logger.info(f"Added {catalog_path} as version {version_id} (dedup hit on blob {file_id})")
        return VersionRecord(
            version_id=version_id,
            file_id=file_id,
            path=catalog_path,
            checksum=digest,
            created_at=created_at,
            new_blob=new_blob,
        )

    def rebuild_index(self) -> int:
        """Repopulate the full-text index from the Versions table.

        Returns:
            Number of version rows indexed
        """
        with self._lock:
            try:
                with self.conn:
                    self.conn.execute("INSERT INTO VersionsFts(VersionsFts) VALUES ('rebuild')")
                count = self.conn.execute("SELECT COUNT(*) FROM Versions").fetchone()[0]
            except sqlite3.Error as e:
                raise db_error(e, "rebuilding full-text index") from e
        logger.info(f"Rebuilt full-text index over {count} versions")
        return count

    # ------------------------------------------------------------------- reads

    def has(self, path: str) -> bool:
        """Return True if at least one version of ``path`` exists."""
        row = self._fetchone(
            "SELECT EXISTS (SELECT 1 FROM Versions WHERE path = ? LIMIT 1)",
            (fs_layout.to_catalog_path(path),),
        )
        return bool(row[0])

    def latest(self, path: str) -> FileVersion:
        """Return the most recent version of ``path``.

        Raises:
            NotFoundError: If no version of ``path`` exists
        """
        versions = self.history(path, 1)
        if not versions:
            raise NotFoundError(str(path))
        return versions[0]

    def history(self, path: str, limit: int) -> List[FileVersion]:
        """All versions of ``path``, newest first, truncated to ``limit``."""
        return self.query(
            VERSION_SELECT
            + " WHERE v.path = ? ORDER BY v.date DESC, v.version_id DESC LIMIT ?",
            (fs_layout.to_catalog_path(path), limit),
        )

    def history_since(self, path: str, after: datetime, limit: int) -> List[FileVersion]:
        """Versions of ``path`` stamped strictly after ``after``, newest first."""
        return self.query(
            VERSION_SELECT
            + " WHERE v.path = ? AND v.date > ? ORDER BY v.date DESC, v.version_id DESC LIMIT ?",
            (fs_layout.to_catalog_path(path), encode_timestamp(after), limit),
        )

    def query(self, sql: str, params: Sequence[Any] = ()) -> List[FileVersion]:
        """Run a version query and project every row into a :class:`FileVersion`."""
        with self._lock:
            try:
                rows = self.conn.execute(sql, tuple(params)).fetchall()
            except sqlite3.Error as e:
                raise db_error(e) from e
        return [self._row_to_version(row) for row in rows]

    def iter_blobs(self) -> Iterator[Tuple[ContentBlob, Path]]:
        """Yield every blob with its on-disk location, in insertion order."""
        with self._lock:
            try:
                rows = self.conn.execute(
                    """
                    SELECT f.file_id, f.checksum,
                           (SELECT b.path FROM Versions b WHERE b.file_id = f.file_id
                            ORDER BY b.version_id LIMIT 1) AS blob_path
                    FROM Files f ORDER BY f.file_id
                    """
                ).fetchall()
            except sqlite3.Error as e:
                raise db_error(e, "listing blobs") from e
        for row in rows:
            if row["blob_path"] is None:
                continue
            name = fs_layout.base_name(row["blob_path"])
            yield (
                ContentBlob(file_id=row["file_id"], checksum=row["checksum"]),
                self.content_store.location(row["checksum"], name),
            )

    def find_duplicates(self) -> List[Tuple[str, int]]:
        """Find (checksum, count) tuples for blobs referenced by several versions."""
        with self._lock:
            try:
                cursor = self.conn.execute(
                    """
                    SELECT f.checksum, COUNT(*) AS count
                    FROM Versions v INNER JOIN Files f ON f.file_id = v.file_id
                    GROUP BY f.checksum
                    HAVING count > 1
                    ORDER BY count DESC, f.checksum
                    """
                )
                return [(row[0], row[1]) for row in cursor.fetchall()]
            except sqlite3.Error as e:
                raise db_error(e, "finding duplicates") from e

    def stats(self) -> Dict[str, int]:
        """Return catalog statistics."""
        with self._lock:
            try:
                blobs = self.conn.execute("SELECT COUNT(*) FROM Files").fetchone()[0]
                versions = self.conn.execute("SELECT COUNT(*) FROM Versions").fetchone()[0]
                paths = self.conn.execute("SELECT COUNT(DISTINCT path) FROM Versions").fetchone()[0]
            except sqlite3.Error as e:
                raise db_error(e, "computing stats") from e
        return {
            "total_blobs": blobs,
            "total_versions": versions,
            "unique_paths": paths,
            "dedup_hits": versions - blobs,
        }

    def close(self) -> None:
        """Close the database connection."""
        with self._lock:
            try:
                self.conn.close()
            except sqlite3.Error as e:
                raise db_error(e, "closing") from e
            logger.debug("Database connection closed")

    # ----------------------------------------------------------------- helpers

    def _fetchone(self, sql: str, params: Sequence[Any]) -> Optional[sqlite3.Row]:
        with self._lock:
            try:
                return self.conn.execute(sql, tuple(params)).fetchone()
            except sqlite3.Error as e:
                raise db_error(e) from e

    def _row_to_version(self, row: sqlite3.Row) -> FileVersion:
        """Convert a database row to a FileVersion."""
        try:
            created_at = decode_timestamp(row["date"])
        except ValueError as e:
            raise InvalidDateError(row["date"], version_id=row["version_id"]) from e

        path = fs_layout.from_catalog_path(row["path"])
        name = fs_layout.base_name(row["path"])
        blob_name = fs_layout.base_name(row["blob_path"] or row["path"])
        return FileVersion(
            id=row["version_id"],
            name=name,
            path=path,
            local=self.content_store.location(row["checksum"], blob_name),
            info=row["info"],
            fuzzy=row["fuzzy"],
            version=row["version"],
            created_at=created_at,
            checksum=row["checksum"],
            file_id=row["file_id"],
        )

    def __enter__(self) -> SQLiteCatalog:
        """Context manager entry."""
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        """Context manager exit."""
        self.close()
