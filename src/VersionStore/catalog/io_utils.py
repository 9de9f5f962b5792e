# === NAVMAP v1 ===
# {
#   "module": "VersionStore.catalog.io_utils",
#   "purpose": "Digesting and atomic streaming copies into and out of the content store",
#   "sections": [
#     {
#       "id": "compute-digest",
#       "name": "compute_digest",
#       "anchor": "function-compute-digest",
#       "kind": "function"
#     },
#     {
#       "id": "atomic-copy-stream",
#       "name": "atomic_copy_stream",
#       "anchor": "function-atomic-copy-stream",
#       "kind": "function"
#     },
#     {
#       "id": "restore-copy",
#       "name": "restore_copy",
#       "anchor": "function-restore-copy",
#       "kind": "function"
#     }
#   ]
# }
# === /NAVMAP ===

"""Digest and copy primitives for the content store.

**Responsibilities**
--------------------
- Compute the BLAKE2b-512 content digest of a file in fixed-size chunks
- Copy a source file into the store atomically (temporary file + fsync +
  ``os.replace``), optionally gzip-compressing the stream
- Copy a blob back out of the store, optionally decompressing it

**Safety**
----------
- A blob is only visible under its final name once every byte is on disk
- Temporary files are removed on any failure before the error propagates
- All helpers are pure functions with no shared state
"""

from __future__ import annotations

import gzip
import hashlib
import logging
import os
import shutil
import tempfile
from pathlib import Path

from VersionStore.errors import StoreIOError

__all__ = ["CHUNK_SIZE", "compute_digest", "atomic_copy_stream", "restore_copy"]

logger = logging.getLogger(__name__)

CHUNK_SIZE = 1 << 20  # 1 MiB
DIGEST_SIZE = 64  # BLAKE2b-512


def compute_digest(path: str | os.PathLike[str], chunk_size: int = CHUNK_SIZE) -> str:
    """Return the hex-encoded BLAKE2b-512 digest of the file at ``path``.

    Raises:
        StoreIOError: If the file cannot be read
    """
    hasher = hashlib.blake2b(digest_size=DIGEST_SIZE)
    try:
        with open(path, "rb") as f:
            for chunk in iter(lambda: f.read(chunk_size), b""):
                hasher.update(chunk)
    except OSError as e:
        raise StoreIOError(f"checksum failed for {path}: {e}", path=str(path)) from e
    return hasher.hexdigest()


def atomic_copy_stream(
    src_path: str | os.PathLike[str],
    dest_path: str | os.PathLike[str],
    *,
    compress: bool = False,
    chunk_size: int = CHUNK_SIZE,
) -> int:
    """Copy ``src_path`` to ``dest_path`` so that no partial file is ever visible.

    The bytes are streamed into a temporary file in the destination directory,
    flushed and fsynced, then renamed over ``dest_path``. An existing file at
    ``dest_path`` is replaced.

    Args:
        src_path: File to copy
        dest_path: Final location; its parent directory must exist
        compress: Gzip-compress the stream while copying
        chunk_size: Buffer size for reads and writes

    Returns:
        Number of source bytes copied

    Raises:
        StoreIOError: If reading, writing, or renaming fails
    """
    dest_dir = os.path.dirname(os.fspath(dest_path)) or "."
    try:
        fd, tmp_path = tempfile.mkstemp(dir=dest_dir, prefix=".part-", suffix=".tmp")
    except OSError as e:
        raise StoreIOError(f"failed to create temporary file in {dest_dir}: {e}", path=dest_dir) from e

    bytes_copied = 0
    try:
        with os.fdopen(fd, "wb") as raw, open(src_path, "rb") as fin:
            if compress:
                with gzip.GzipFile(fileobj=raw, mode="wb", mtime=0) as fout:
                    for chunk in iter(lambda: fin.read(chunk_size), b""):
                        fout.write(chunk)
                        bytes_copied += len(chunk)
            else:
                for chunk in iter(lambda: fin.read(chunk_size), b""):
                    raw.write(chunk)
                    bytes_copied += len(chunk)
            raw.flush()
            os.fsync(raw.fileno())

        os.replace(tmp_path, dest_path)
    except OSError as e:
        try:
            os.unlink(tmp_path)
        except FileNotFoundError:
            pass
        raise StoreIOError(f"failed to copy {src_path} to {dest_path}: {e}", path=str(src_path)) from e

    logger.debug(f"Copied {bytes_copied} bytes from {src_path} to {dest_path} (compress={compress})")
    return bytes_copied


def restore_copy(
    src_path: str | os.PathLike[str],
    dest_path: str | os.PathLike[str],
    *,
    compressed: bool = False,
) -> None:
    """Copy a blob out of the store, decompressing it when ``compressed``.

    The destination is truncated and overwritten if it exists.

    Raises:
        StoreIOError: If the blob cannot be read or the destination written
    """
    try:
        opener = gzip.open if compressed else open
        with opener(src_path, "rb") as fin, open(dest_path, "wb") as fout:
            shutil.copyfileobj(fin, fout, CHUNK_SIZE)
    except (OSError, EOFError) as e:
        # gzip.BadGzipFile is an OSError subclass
        raise StoreIOError(f"failed to restore {src_path} to {dest_path}: {e}", path=str(dest_path)) from e
    logger.debug(f"Restored {src_path} to {Path(dest_path)}")
