"""Record types for the version catalog."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from pathlib import Path


@dataclass(frozen=True)
class ContentBlob:
    """One stored blob, unique per content digest."""

    file_id: int
    checksum: str


@dataclass(frozen=True)
class VersionRecord:
    """Identity and timestamp of a freshly appended version row."""

    version_id: int
    file_id: int
    path: str
    checksum: str
    created_at: datetime
    new_blob: bool = False


@dataclass(frozen=True)
class FileVersion:
    """Resolved view of a version: catalog row joined with its blob location.

    Attributes:
        id: Version identity (monotonic, assigned by the catalog)
        name: Base name of the file, including suffix
        path: Logical path the version was added from (native separators)
        local: Location of the blob content inside the store
        info: Free-text info string
        fuzzy: Phonetic encoding of ``info`` as stored at creation
        version: Semantic version tag
        created_at: Catalog timestamp (UTC wall clock, naive)
        checksum: Hex-encoded BLAKE2b-512 digest of the content
        file_id: Identity of the referenced blob row
    """

    id: int
    name: str
    path: str
    local: Path
    info: str
    fuzzy: str
    version: str
    created_at: datetime
    checksum: str
    file_id: int
