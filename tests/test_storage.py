"""Tests for CacheStore."""

import json
import os
import stat
import threading
from pathlib import Path
from unittest.mock import patch

import pytest

from relieffinder.cache.store import CacheStore
from relieffinder.models import CacheEntry


@pytest.fixture
def cache_path(tmp_path):
    return tmp_path / "cache" / "open-status.json"


@pytest.fixture
def store(cache_path):
    return CacheStore(cache_path)


def _write(path: Path, payload) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(payload if isinstance(payload, str) else json.dumps(payload), encoding="utf-8")


class TestLoad:
    """Test CacheStore.load."""

    def test_missing_file_is_empty(self, store):
        assert store.load() == {}

    def test_corrupt_file_is_empty(self, store, cache_path, caplog):
        """A corrupt cache degrades to an empty document and is logged."""
        _write(cache_path, "{ not json")

        with caplog.at_level("WARNING"):
            assert store.load() == {}

        assert "unreadable" in caplog.text.lower()

    def test_non_object_is_empty(self, store, cache_path):
        _write(cache_path, [1, 2, 3])
        assert store.load() == {}

    def test_loads_entries(self, store, cache_path):
        _write(
            cache_path,
            {
                "id1": {
                    "openNow": False,
                    "lastUpdated": "2024-01-01T00:00:00Z",
                    "placeId": "p1",
                    "method": "findplace",
                },
                "id2": {"openNow": True},
            },
        )

        document = store.load()

        assert document["id1"] == CacheEntry(False, "2024-01-01T00:00:00Z", "p1", "findplace")
        assert document["id2"].open_now is True
        assert document["id2"].last_updated is None

    def test_skips_malformed_entries(self, store, cache_path, caplog):
        """Dropped entries are reported at WARNING since the next commit erases them."""
        _write(cache_path, {"good": {"openNow": True}, "bad": "nope"})

        with caplog.at_level("WARNING"):
            document = store.load()

        assert set(document) == {"good"}
        assert "Dropping malformed cache entry bad" in caplog.text

    def test_stat_failure_is_empty(self, store, caplog):
        """An unreadable cache directory degrades to an empty document."""
        with patch.object(Path, "exists", side_effect=PermissionError("denied")):
            with caplog.at_level("WARNING"):
                assert store.load() == {}

        assert "denied" in caplog.text

    def test_snapshot_is_load(self, store, cache_path):
        _write(cache_path, {"a": {"openNow": True}})
        assert store.snapshot() == store.load()


class TestMerge:
    """Test CacheStore.merge."""

    def test_overwrites_updated_keys(self):
        old = CacheEntry(False, "t0")
        new = CacheEntry(True, "t1", "pid", "findplace")
        keep = CacheEntry(None, "t0")

        merged = CacheStore.merge({"a": old, "b": keep}, {"a": new})

        assert merged == {"a": new, "b": keep}

    def test_does_not_mutate_input(self):
        document = {"a": CacheEntry(False, "t0")}

        merged = CacheStore.merge(document, {"b": CacheEntry(True, "t1")})

        assert set(document) == {"a"}
        assert set(merged) == {"a", "b"}


class TestPersist:
    """Test CacheStore.persist."""

    def test_writes_wire_shape(self, store, cache_path):
        ok = store.persist({"a": CacheEntry(True, "t1", "pid", "textsearch")})

        assert ok is True
        assert json.loads(cache_path.read_text(encoding="utf-8")) == {
            "a": {"openNow": True, "lastUpdated": "t1", "placeId": "pid", "method": "textsearch"}
        }

    def test_round_trip(self, store):
        document = {"a": CacheEntry(False, "t0", None, "findplace")}

        store.persist(document)

        assert store.load() == document

    def test_failure_is_reported_not_raised(self, store, caplog):
        with patch("relieffinder.cache.store.atomic_write_json", side_effect=OSError("disk full")):
            with caplog.at_level("WARNING"):
                ok = store.persist({"a": CacheEntry(True, "t1")})

        assert ok is False
        assert "disk full" in caplog.text

    def test_unwritable_location(self, tmp_path):
        blocker = tmp_path / "file"
        blocker.write_text("x")
        store = CacheStore(blocker / "cache.json")

        assert store.persist({"a": CacheEntry(True, "t1")}) is False


class TestCommit:
    """Test CacheStore.commit and transaction."""

    def test_commit_merges_with_latest_disk_state(self, store, cache_path):
        """Entries written by another batch since load are preserved."""
        _write(cache_path, {"other": {"openNow": False, "lastUpdated": "t0"}})

        assert store.commit({"mine": CacheEntry(True, "t1")}) is True

        document = store.load()
        assert set(document) == {"other", "mine"}
        assert document["other"].last_updated == "t0"

    def test_concurrent_commits_do_not_clobber(self, cache_path):
        """Parallel batches for the same document keep every entry."""
        stores = [CacheStore(cache_path) for _ in range(8)]

        threads = [
            threading.Thread(target=s.commit, args=({f"id{i}": CacheEntry(True, "t")},))
            for i, s in enumerate(stores)
        ]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert set(CacheStore(cache_path).load()) == {f"id{i}" for i in range(8)}

    def test_commit_keeps_file_mode(self, store, cache_path):
        """Committing must not tighten a readable cache to owner-only."""
        _write(cache_path, {})
        os.chmod(cache_path, 0o644)

        store.commit({"1": CacheEntry(True, "t")})

        assert stat.S_IMODE(cache_path.stat().st_mode) == 0o644

    def test_transaction_yields_current_document(self, store, cache_path):
        _write(cache_path, {"a": {"openNow": True}})

        with store.transaction() as current:
            assert set(current) == {"a"}
