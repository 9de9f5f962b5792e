"""Filesystem layout for content-addressed blobs.

Every distinct digest owns one directory directly below the store root::

    root/<hex-digest>/<base_name>          (plain)
    root/<hex-digest>/<base_name>.gz       (compressed store)

The base name is the name of the file that first introduced the digest.
Locations are derived on demand and never persisted in the catalog.
"""

from __future__ import annotations

import logging
import os
import posixpath
from pathlib import Path, PurePosixPath
from typing import Union

from VersionStore.errors import DirectoryConflictError, StoreIOError

logger = logging.getLogger(__name__)

DEFAULT_ROOT = "versions"
DB_FILENAME = "db.sqlite3"
COMPRESSED_SUFFIX = ".gz"
MIN_DIGEST_LENGTH = 4

PathLike = Union[str, "os.PathLike[str]"]


def ensure_dir(path: PathLike, mode: int = 0o700) -> Path:
    """Create ``path`` (and parents) unless it already exists as a directory.

    Args:
        path: Directory to create
        mode: Permission bits for newly created directories

    Returns:
        The directory as a :class:`Path`

    Raises:
        DirectoryConflictError: If ``path`` exists but is not a directory
        StoreIOError: If the directory cannot be created
    """
    target = Path(path)
    if target.exists():
        if not target.is_dir():
            raise DirectoryConflictError(str(target))
        return target
    try:
        target.mkdir(mode=mode, parents=True, exist_ok=True)
    except FileExistsError as e:
        raise DirectoryConflictError(str(target)) from e
    except OSError as e:
        raise StoreIOError(f"unable to create directory {target}: {e}", path=str(target)) from e
    logger.debug(f"Created directory {target}")
    return target


def resolve_root(root: PathLike | None) -> Path:
    """Return the store root, falling back to ``versions`` for empty input."""
    if root is None or str(root) == "":
        return Path(DEFAULT_ROOT)
    return Path(root)


def blob_path(root: PathLike, digest: str, base_name: str, compressed: bool = False) -> Path:
    """Derive the on-disk location of a blob.

    Example:
        blob_path("/data", "ab12...", "report.txt")
        -> Path("/data/ab12.../report.txt")

    Raises:
        ValueError: If the digest is too short or the base name is empty
    """
    if not digest or len(digest) < MIN_DIGEST_LENGTH:
        raise ValueError(f"Invalid digest: {digest!r}")
    if not base_name:
        raise ValueError("Blob base name must not be empty")
    name = base_name + COMPRESSED_SUFFIX if compressed else base_name
    return Path(root) / digest / name


def to_catalog_path(path: PathLike) -> str:
    """Normalize a logical path to ``/`` separators for storage."""
    text = os.fspath(path)
    if os.sep != "/":
        text = text.replace(os.sep, "/")
    return text


def from_catalog_path(path: str) -> str:
    """Turn a stored ``/``-separated path back into a native path string."""
    if os.sep != "/":
        return path.replace("/", os.sep)
    return path


def base_name(catalog_path: str) -> str:
    """Base name of a stored path, e.g. ``"/src/report.txt"`` -> ``"report.txt"``."""
    return PurePosixPath(posixpath.normpath(catalog_path)).name
