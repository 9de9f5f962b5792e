# === NAVMAP v1 ===
# {
#   "module": "VersionStore.catalog.verify",
#   "purpose": "Re-digest stored blobs and compare them with catalog checksums.",
#   "sections": [
#     {
#       "id": "verificationresult",
#       "name": "VerificationResult",
#       "anchor": "class-verificationresult",
#       "kind": "class"
#     },
#     {
#       "id": "verify-blob",
#       "name": "verify_blob",
#       "anchor": "function-verify-blob",
#       "kind": "function"
#     },
#     {
#       "id": "verify-catalog",
#       "name": "verify_catalog",
#       "anchor": "function-verify-catalog",
#       "kind": "function"
#     }
#   ]
# }
# === /NAVMAP ===

"""Consistency checking between the catalog and the blob store.

Each blob is streamed through BLAKE2b-512 (after gunzip for compressed
stores) and compared with the checksum recorded in ``Files``.
"""

from __future__ import annotations

import gzip
import hashlib
import logging
import time
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional

from VersionStore.catalog.io_utils import CHUNK_SIZE, DIGEST_SIZE
from VersionStore.catalog.store import SQLiteCatalog

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class VerificationResult:
    """Result of verifying a single blob."""

    file_id: int
    location: Path
    expected_checksum: str
    computed_checksum: Optional[str]
    matches: bool
    error: Optional[str] = None
    elapsed_ms: int = 0


def verify_blob(
    file_id: int,
    location: Path,
    expected_checksum: str,
    compressed: bool = False,
) -> VerificationResult:
    """Recompute the digest of one blob."""
    start = time.time_ns()
    hasher = hashlib.blake2b(digest_size=DIGEST_SIZE)
    opener = gzip.open if compressed else open
    try:
        with opener(location, "rb") as f:
            for chunk in iter(lambda: f.read(CHUNK_SIZE), b""):
                hasher.update(chunk)
    except (OSError, EOFError) as e:
        return VerificationResult(
            file_id=file_id,
            location=location,
            expected_checksum=expected_checksum,
            computed_checksum=None,
            matches=False,
            error=str(e),
            elapsed_ms=int((time.time_ns() - start) / 1_000_000),
        )

    computed = hasher.hexdigest()
    return VerificationResult(
        file_id=file_id,
        location=location,
        expected_checksum=expected_checksum,
        computed_checksum=computed,
        matches=computed == expected_checksum,
        elapsed_ms=int((time.time_ns() - start) / 1_000_000),
    )


def verify_catalog(catalog: SQLiteCatalog, limit: Optional[int] = None) -> List[VerificationResult]:
    """Verify every blob referenced by the catalog (or the first ``limit``).

    Returns:
        One result per blob; failures have ``matches=False``
    """
    compressed = catalog.content_store.compress
    results: List[VerificationResult] = []
    for blob, location in catalog.iter_blobs():
        if limit is not None and len(results) >= limit:
            break
        result = verify_blob(blob.file_id, location, blob.checksum, compressed=compressed)
        if not result.matches:
            logger.warning(
                f"Blob {blob.file_id} failed verification at {location}: "
                f"{result.error or 'checksum mismatch'}"
            )
        results.append(result)

    failures = sum(1 for r in results if not r.matches)
    logger.info(f"Verified {len(results)} blobs, {failures} failures")
    return results
