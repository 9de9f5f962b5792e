"""CLI commands for the version store.

Provides commands for managing a store:
  - add: Store a new version of a file
  - latest / history: Show versions of a path
  - restore: Restore the latest (or a given) version of a path
  - search / fts / fuzzy: Substring, full-text, and phonetic search
  - stats / dedup-report: Catalog statistics and shared blobs
  - verify: Re-digest stored blobs
  - reindex: Rebuild the full-text index
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Dict, List, Optional

import typer
from pydantic import ValidationError

from VersionStore.catalog.models import FileVersion
from VersionStore.errors import ConfigurationError, NotFoundError, VersionStoreError
from VersionStore.filestore import Filestore
from VersionStore.logging_config import setup_logging
from VersionStore.settings import StoreSettings

logger = logging.getLogger(__name__)
app = typer.Typer(help="Content-addressed file version store")

RootOption = typer.Option(None, "--root", "-r", help="Store root directory (default: $VERSIONSTORE_ROOT or ./versions)")
CompressOption = typer.Option(None, "--compress/--no-compress", help="Gzip blob content")
LimitOption = typer.Option(None, "--limit", "-n", help="Maximum number of results")


def _load_settings(root: Optional[Path], compress: Optional[bool]) -> StoreSettings:
    overrides: Dict[str, Any] = {}
    if root is not None:
        overrides["root"] = root
    if compress is not None:
        overrides["compress"] = compress
    try:
        return StoreSettings(**overrides)
    except ValidationError as e:
        raise ConfigurationError(f"invalid store settings: {e}") from e


def _open_store(root: Optional[Path], compress: Optional[bool]) -> Filestore:
    settings = _load_settings(root, compress)
    setup_logging(settings)
    return Filestore.from_settings(settings)


def _echo_version(version: FileVersion) -> None:
    typer.echo(f"  ID: {version.id}")
    typer.echo(f"  Path: {version.path}")
    typer.echo(f"  Version: {version.version}")
    typer.echo(f"  Info: {version.info}")
    typer.echo(f"  Added: {version.created_at}")
    typer.echo(f"  Checksum: {version.checksum[:16]}…")
    typer.echo(f"  Blob: {version.local}")
    typer.echo()


def _echo_versions(versions: List[FileVersion], empty: str) -> None:
    if not versions:
        typer.echo(empty)
        return
    typer.echo(f"\n{len(versions)} version(s):\n")
    for version in versions:
        _echo_version(version)


def _fail(e: Exception) -> None:
    typer.echo(f"✗ Error: {e}", err=True)
    raise typer.Exit(1)


@app.command()
def add(
    path: Path = typer.Argument(..., help="File to store"),
    info: str = typer.Option("", "--info", "-i", help="Free-text description"),
    version: str = typer.Option("", "--version", "-v", help="Semantic version tag"),
    root: Optional[Path] = RootOption,
    compress: Optional[bool] = CompressOption,
) -> None:
    """Store a new version of a file."""
    try:
        with _open_store(root, compress) as store:
            record = store.add(path, info, version)
            action = "stored new blob" if record.new_blob else "reused existing blob"
            typer.echo(f"✓ Added {record.path} as version {record.version_id} ({action})")
    except VersionStoreError as e:
        _fail(e)


@app.command()
def latest(
    path: str = typer.Argument(..., help="Logical path"),
    root: Optional[Path] = RootOption,
    compress: Optional[bool] = CompressOption,
) -> None:
    """Show the latest version of a path."""
    try:
        with _open_store(root, compress) as store:
            _echo_version(store.latest(path))
    except VersionStoreError as e:
        _fail(e)


@app.command()
def history(
    path: str = typer.Argument(..., help="Logical path"),
    limit: Optional[int] = LimitOption,
    root: Optional[Path] = RootOption,
    compress: Optional[bool] = CompressOption,
) -> None:
    """List versions of a path, newest first."""
    try:
        with _open_store(root, compress) as store:
            _echo_versions(store.history(path, limit), f"No versions found for {path}")
    except VersionStoreError as e:
        _fail(e)


@app.command()
def restore(
    path: str = typer.Argument(..., help="Logical path"),
    dest: Optional[Path] = typer.Option(
        None, "--dest", "-d", help="Destination directory (default: original location)"
    ),
    version_id: Optional[int] = typer.Option(None, "--id", help="Version ID (default: latest)"),
    root: Optional[Path] = RootOption,
    compress: Optional[bool] = CompressOption,
) -> None:
    """Restore a version of a path."""
    try:
        with _open_store(root, compress) as store:
            if version_id is None:
                target = store.latest(path)
            else:
                matches = [v for v in store.history(path, -1) if v.id == version_id]
                if not matches:
                    raise NotFoundError(f"{path} (version {version_id})")
                target = matches[0]
            if dest is None:
                written = store.restore_at_source(target)
            else:
                written = store.restore(target, dest)
            typer.echo(f"✓ Restored version {target.id} to {written}")
    except VersionStoreError as e:
        _fail(e)


@app.command()
def search(
    words: List[str] = typer.Argument(..., help="Words to look for in info and version"),
    limit: Optional[int] = LimitOption,
    root: Optional[Path] = RootOption,
    compress: Optional[bool] = CompressOption,
) -> None:
    """Substring search over info strings and version tags (oldest first)."""
    try:
        with _open_store(root, compress) as store:
            _echo_versions(store.simple_search(words, limit), "No matches")
    except VersionStoreError as e:
        _fail(e)


@app.command()
def fts(
    term: str = typer.Argument(..., help="FTS5 query"),
    literal: bool = typer.Option(False, "--literal", help="Treat the term as a literal phrase"),
    limit: Optional[int] = LimitOption,
    root: Optional[Path] = RootOption,
    compress: Optional[bool] = CompressOption,
) -> None:
    """Full-text search (FTS5 query syntax, newest first)."""
    try:
        with _open_store(root, compress) as store:
            query = store.escape_search_term(term) if literal else term
            _echo_versions(store.full_text_search(query, limit), "No matches")
    except VersionStoreError as e:
        _fail(e)


@app.command()
def fuzzy(
    term: str = typer.Argument(..., help="Words to match phonetically"),
    limit: Optional[int] = LimitOption,
    root: Optional[Path] = RootOption,
    compress: Optional[bool] = CompressOption,
) -> None:
    """Phonetic search over info strings (newest first)."""
    try:
        with _open_store(root, compress) as store:
            _echo_versions(store.fuzzy_search(term, limit), "No matches")
    except VersionStoreError as e:
        _fail(e)


@app.command()
def stats(root: Optional[Path] = RootOption) -> None:
    """Display catalog statistics."""
    try:
        with _open_store(root, None) as store:
            counts = store.stats()
            typer.echo("\nCatalog statistics:")
            typer.echo(f"  Blobs: {counts['total_blobs']}")
            typer.echo(f"  Versions: {counts['total_versions']}")
            typer.echo(f"  Paths: {counts['unique_paths']}")
            typer.echo(f"  Dedup hits: {counts['dedup_hits']}")
    except VersionStoreError as e:
        _fail(e)


@app.command()
def dedup_report(root: Optional[Path] = RootOption) -> None:
    """List blobs referenced by more than one version."""
    try:
        with _open_store(root, None) as store:
            duplicates = store.find_duplicates()
            if not duplicates:
                typer.echo("No duplicates found")
                return
            typer.echo(f"\n{len(duplicates)} shared blob(s):\n")
            for checksum, count in duplicates:
                typer.echo(f"  {checksum[:16]}…: {count} versions ({count - 1} copies saved)")
    except VersionStoreError as e:
        _fail(e)


@app.command()
def verify(
    limit: Optional[int] = typer.Option(None, "--limit", "-n", help="Verify at most N blobs"),
    root: Optional[Path] = RootOption,
    compress: Optional[bool] = CompressOption,
) -> None:
    """Re-digest stored blobs and compare with the catalog."""
    try:
        with _open_store(root, compress) as store:
            results = store.verify(limit)
    except VersionStoreError as e:
        _fail(e)
        return

    failures = [r for r in results if not r.matches]
    for result in failures:
        typer.echo(f"✗ Blob {result.file_id} at {result.location}: {result.error or 'checksum mismatch'}")
    if failures:
        typer.echo(f"✗ Verification FAILED for {len(failures)} of {len(results)} blobs")
        raise typer.Exit(1)
    typer.echo(f"✓ Verification passed for {len(results)} blobs")


@app.command()
def reindex(root: Optional[Path] = RootOption) -> None:
    """Rebuild the full-text index from the version table."""
    try:
        with _open_store(root, None) as store:
            count = store.rebuild_index()
            typer.echo(f"✓ Reindexed {count} versions")
    except VersionStoreError as e:
        _fail(e)


if __name__ == "__main__":
    app()
