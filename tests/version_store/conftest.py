"""Shared fixtures for version store tests."""

from __future__ import annotations

from pathlib import Path
from typing import Callable

import pytest

from VersionStore.filestore import Filestore


@pytest.fixture
def make_file(tmp_path: Path) -> Callable[..., Path]:
    """Write a source file below ``tmp_path/src`` and return its path."""

    def _make(relative: str, content: bytes | str) -> Path:
        path = tmp_path / "src" / relative
        path.parent.mkdir(parents=True, exist_ok=True)
        if isinstance(content, str):
            content = content.encode("utf-8")
        path.write_bytes(content)
        return path

    return _make


@pytest.fixture
def store(tmp_path: Path):
    """An open, uncompressed store rooted at ``tmp_path/store``."""
    fs = Filestore(tmp_path / "store").open()
    yield fs
    if fs.is_open:
        fs.close()


@pytest.fixture
def gz_store(tmp_path: Path):
    """An open store that gzips blob content."""
    fs = Filestore(tmp_path / "gzstore", compress=True).open()
    yield fs
    if fs.is_open:
        fs.close()
