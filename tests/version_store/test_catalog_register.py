"""Tests for adding versions, dedup, retrieval, and the store lifecycle."""

from __future__ import annotations

import sqlite3
import threading
from datetime import datetime, timedelta

import pytest

from VersionStore.catalog import store as store_module
from VersionStore.catalog.io_utils import compute_digest
from VersionStore.errors import (
    DirectoryConflictError,
    InvalidDateError,
    NotFoundError,
    NotOpenError,
    StoreIOError,
    VersionStoreError,
)
from VersionStore.filestore import Filestore
from VersionStore.settings import StoreSettings


def blob_dirs(fs: Filestore):
    return sorted(p for p in fs.root.iterdir() if p.is_dir())


class TestAdd:
    """Test the add path: digest, dedup, append."""

    def test_report_scenario(self, store, make_file):
        """First add creates blob 1 / version 1; a copy reuses the blob."""
        report = make_file("report.txt", "quarterly numbers\n")
        digest = compute_digest(report)

        first = store.add(report, "quarterly report", "1.0")
        assert first.version_id == 1
        assert first.file_id == 1
        assert first.new_blob
        assert (store.root / digest / "report.txt").read_bytes() == b"quarterly numbers\n"

        copy = make_file("report_copy.txt", "quarterly numbers\n")
        second = store.add(copy, "quarterly report copy", "1.0")
        assert second.version_id == 2
        assert second.file_id == 1
        assert not second.new_blob
        assert blob_dirs(store) == [store.root / digest]
        assert not (store.root / digest / "report_copy.txt").exists()

    def test_dedup_identical_content(self, store, make_file):
        """Identical content at different paths yields one blob, two versions."""
        a = make_file("a/data.bin", b"\x00\x01same")
        b = make_file("b/other.bin", b"\x00\x01same")
        store.add(a, "first", "1")
        store.add(b, "second", "1")

        stats = store.stats()
        assert stats["total_blobs"] == 1
        assert stats["total_versions"] == 2
        assert stats["unique_paths"] == 2
        assert stats["dedup_hits"] == 1
        assert store.find_duplicates() == [(compute_digest(a), 2)]

    def test_dedup_version_points_at_first_blob_name(self, store, make_file):
        """Versions sharing a blob resolve to the name the blob was stored under."""
        a = make_file("report.txt", "shared")
        b = make_file("renamed.txt", "shared")
        store.add(a, "", "")
        store.add(b, "", "")

        version = store.latest(b)
        assert version.name == "renamed.txt"
        assert version.local.name == "report.txt"
        assert version.local.exists()

    def test_changed_content_creates_new_blob(self, store, make_file):
        path = make_file("notes.txt", "v1")
        store.add(path, "notes", "1")
        path.write_text("v2")
        store.add(path, "notes", "2")
        assert store.stats()["total_blobs"] == 2
        assert len(blob_dirs(store)) == 2

    def test_missing_source(self, store, tmp_path):
        with pytest.raises(StoreIOError):
            store.add(tmp_path / "nope.txt", "missing", "1")
        assert store.stats()["total_versions"] == 0

    def test_failed_blob_write_inserts_nothing(self, store, make_file):
        """A blob directory blocked by a file aborts the add without rows."""
        path = make_file("blocked.txt", "content")
        (store.root / compute_digest(path)).write_text("squatter")

        with pytest.raises(DirectoryConflictError):
            store.add(path, "blocked", "1")
        assert not store.has(path)
        assert store.stats() == {
            "total_blobs": 0,
            "total_versions": 0,
            "unique_paths": 0,
            "dedup_hits": 0,
        }

    def test_concurrent_adds_share_one_blob(self, store, make_file):
        """Threads adding the same content race safely on the blob row."""
        paths = [make_file(f"t{i}/same.txt", "concurrent payload") for i in range(8)]
        errors = []

        def worker(p):
            try:
                store.add(p, "thread", "1")
            except Exception as e:  # pragma: no cover - surfaced below
                errors.append(e)

        threads = [threading.Thread(target=worker, args=(p,)) for p in paths]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert errors == []
        assert store.stats()["total_blobs"] == 1
        assert store.stats()["total_versions"] == 8

    def test_fuzzy_column_is_stored(self, store, make_file):
        path = make_file("people.txt", "x")
        store.add(path, "Smith", "1")
        assert store.latest(path).fuzzy == "SM0"


class TestRetrieval:
    """Test has/latest/history/history_since."""

    def test_has(self, store, make_file):
        path = make_file("doc.txt", "hello")
        assert not store.has(path)
        store.add(path, "doc", "1")
        assert store.has(path)
        assert store.has(str(path))

    def test_latest_not_found(self, store):
        with pytest.raises(NotFoundError):
            store.latest("never/added.txt")

    def test_history_order_and_limit(self, store, make_file):
        path = make_file("doc.txt", "v0")
        for i in range(5):
            path.write_text(f"v{i}")
            store.add(path, f"rev {i}", f"1.{i}")

        history = store.history(path, 3)
        assert [v.version for v in history] == ["1.4", "1.3", "1.2"]
        ids = [v.id for v in store.history(path, 10)]
        assert ids == sorted(ids, reverse=True)
        assert len(ids) == 5
        assert store.latest(path) == history[0]

    def test_history_default_limit(self, tmp_path, make_file):
        fs = Filestore(tmp_path / "limited", default_limit=2).open()
        try:
            path = make_file("doc.txt", "x")
            for i in range(4):
                fs.add(path, "", str(i))
            assert len(fs.history(path)) == 2
        finally:
            fs.close()

    def test_history_orders_by_timestamp(self, store, make_file, monkeypatch):
        """A later timestamp wins over a higher id."""
        path = make_file("doc.txt", "x")
        clock = iter([datetime(2024, 1, 2), datetime(2024, 1, 1)])
        monkeypatch.setattr(store_module, "utc_now", lambda: next(clock))
        store.add(path, "newer", "2")
        store.add(path, "older", "1")

        assert [v.info for v in store.history(path, 10)] == ["newer", "older"]
        assert store.latest(path).info == "newer"

    def test_history_since(self, store, make_file, monkeypatch):
        path = make_file("doc.txt", "x")
        base = datetime(2024, 5, 1, 12, 0, 0)
        clock = iter([base, base + timedelta(hours=1), base + timedelta(hours=2)])
        monkeypatch.setattr(store_module, "utc_now", lambda: next(clock))
        for tag in ("a", "b", "c"):
            store.add(path, tag, tag)

        since = store.history_since(path, base + timedelta(hours=1), 10)
        assert [v.version for v in since] == ["c"]
        since = store.history_since(path, base, 10)
        assert [v.version for v in since] == ["c", "b"]
        assert store.history_since(path, base + timedelta(days=1), 10) == []

    def test_file_version_fields(self, store, make_file):
        path = make_file("dir/report.txt", "hello")
        record = store.add(path, "quarterly report", "1.0")
        version = store.latest(path)

        assert version.id == record.version_id
        assert version.name == "report.txt"
        assert version.path == str(path)
        assert version.info == "quarterly report"
        assert version.version == "1.0"
        assert version.checksum == compute_digest(path)
        assert version.created_at == record.created_at
        assert version.local == store.root / version.checksum / "report.txt"

    def test_invalid_date_is_reported(self, store, make_file):
        path = make_file("doc.txt", "x")
        store.add(path, "doc", "1")
        conn = sqlite3.connect(str(store.db_path))
        with conn:
            conn.execute("UPDATE Versions SET date = 'not-a-date'")
        conn.close()

        with pytest.raises(InvalidDateError):
            store.latest(path)
        with pytest.raises(InvalidDateError):
            store.history(path, 5)
        with pytest.raises(InvalidDateError):
            store.simple_search(["doc"], 5)


class TestRestore:
    """Test restoring content out of the store."""

    @pytest.mark.parametrize("fixture", ["store", "gz_store"])
    def test_round_trip(self, request, fixture, make_file, tmp_path):
        fs = request.getfixturevalue(fixture)
        payload = bytes(range(256)) * 50
        path = make_file("bin/blob.dat", payload)
        fs.add(path, "binary", "1")

        out = fs.restore(fs.latest(path), tmp_path / "out")
        assert out == tmp_path / "out" / "blob.dat"
        assert out.read_bytes() == payload

    def test_compressed_blob_on_disk(self, gz_store, make_file):
        path = make_file("text.txt", "a" * 10000)
        gz_store.add(path, "", "")
        version = gz_store.latest(path)
        assert version.local.name == "text.txt.gz"
        assert version.local.stat().st_size < 10000

    def test_restore_old_version(self, store, make_file, tmp_path):
        path = make_file("doc.txt", "first")
        store.add(path, "", "1")
        path.write_text("second")
        store.add(path, "", "2")

        oldest = store.history(path, 10)[-1]
        store.restore(oldest, tmp_path / "old")
        assert (tmp_path / "old" / "doc.txt").read_text() == "first"

    def test_restore_at_source_overwrites(self, store, make_file):
        path = make_file("doc.txt", "original")
        store.add(path, "", "1")
        path.write_text("clobbered")

        store.restore_at_source(store.latest(path))
        assert path.read_text() == "original"


class TestLifecycle:
    """Test open/close state machine."""

    def test_operations_require_open(self, tmp_path, make_file):
        fs = Filestore(tmp_path / "closed")
        path = make_file("x.txt", "x")
        with pytest.raises(NotOpenError):
            fs.add(path, "", "")
        with pytest.raises(NotOpenError):
            fs.has(path)
        with pytest.raises(NotOpenError):
            fs.latest(path)
        with pytest.raises(NotOpenError):
            fs.history(path, 1)
        with pytest.raises(NotOpenError):
            fs.simple_search(["x"], 1)
        with pytest.raises(NotOpenError):
            fs.full_text_search("x", 1)
        with pytest.raises(NotOpenError):
            fs.checksum(path)
        with pytest.raises(NotOpenError):
            fs.close()

    def test_closed_store_cannot_reopen(self, tmp_path):
        fs = Filestore(tmp_path / "s").open()
        fs.close()
        with pytest.raises(NotOpenError):
            fs.stats()
        with pytest.raises(VersionStoreError):
            fs.open()

    def test_double_open(self, store):
        with pytest.raises(VersionStoreError):
            store.open()

    def test_reopen_preserves_data(self, tmp_path, make_file):
        path = make_file("keep.txt", "persist me")
        with Filestore(tmp_path / "s") as fs:
            fs.add(path, "keep", "1")
        with Filestore(tmp_path / "s") as fs:
            assert fs.has(path)
            assert fs.latest(path).info == "keep"
            assert fs.stats()["total_versions"] == 1

    def test_root_is_a_file(self, tmp_path):
        root = tmp_path / "root"
        root.write_text("oops")
        with pytest.raises(DirectoryConflictError):
            Filestore(root).open()

    def test_checksum(self, store, make_file):
        path = make_file("x.txt", "abc")
        assert store.checksum(path) == compute_digest(path)


class TestSettings:
    """Test settings-driven construction."""

    def test_from_env(self, tmp_path, monkeypatch):
        monkeypatch.setenv("VERSIONSTORE_ROOT", str(tmp_path / "env-root"))
        monkeypatch.setenv("VERSIONSTORE_COMPRESS", "true")
        monkeypatch.setenv("VERSIONSTORE_DEFAULT_LIMIT", "7")
        fs = Filestore.from_settings(StoreSettings())
        assert fs.root == tmp_path / "env-root"
        assert fs.compress is True
        assert fs.default_limit == 7

    def test_empty_root_defaults(self):
        assert StoreSettings(root="").root.name == "versions"
