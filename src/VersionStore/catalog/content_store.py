"""Content-addressed blob layer.

The content store owns blob bytes on disk. It never decides whether a blob is
new; the catalog does that and calls :meth:`ContentStore.write` at most once
per digest under its lock.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path

from VersionStore.catalog import fs_layout
from VersionStore.catalog.io_utils import atomic_copy_stream, restore_copy

logger = logging.getLogger(__name__)


class ContentStore:
    """Maps content digests to blob files under a root directory."""

    def __init__(self, root: str | os.PathLike[str], compress: bool = False):
        """Initialize the content store.

        Args:
            root: Store root directory; blobs live in ``root/<digest>/``
            compress: Gzip blobs on write and expect gzip on restore
        """
        self.root = Path(root)
        self.compress = compress

    def location(self, digest: str, base_name: str) -> Path:
        """Deterministic blob location for ``digest`` first added as ``base_name``."""
        return fs_layout.blob_path(self.root, digest, base_name, compressed=self.compress)

    def write(self, source: str | os.PathLike[str], digest: str, base_name: str) -> Path:
        """Copy ``source`` into the store as the blob for ``digest``.

        Re-writing an existing digest replaces the blob with identical bytes.

        Raises:
            DirectoryConflictError: If the digest directory is occupied by a file
            StoreIOError: If the copy fails; no partial blob is left behind
        """
        dst = self.location(digest, base_name)
        fs_layout.ensure_dir(dst.parent)
        written = atomic_copy_stream(source, dst, compress=self.compress)
        logger.info(f"Stored blob {digest[:12]} ({written} bytes) at {dst}")
        return dst

    def restore(
        self,
        location: str | os.PathLike[str],
        dest_dir: str | os.PathLike[str],
        base_name: str,
        compressed: bool | None = None,
    ) -> Path:
        """Copy a blob to ``dest_dir/base_name``, overwriting any existing file.

        Args:
            location: Blob location as returned by :meth:`location`
            dest_dir: Target directory, created when missing
            base_name: File name to restore as
            compressed: Whether the blob is gzip data; defaults to the store option

        Returns:
            Path of the restored file
        """
        if compressed is None:
            compressed = self.compress
        target_dir = fs_layout.ensure_dir(dest_dir, mode=0o755)
        target = target_dir / base_name
        restore_copy(location, target, compressed=compressed)
        logger.info(f"Restored {base_name} to {target_dir}")
        return target
