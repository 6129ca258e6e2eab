"""Tests for garbage collection."""

import os
from pathlib import Path

import pytest

from fscache import PERMANENT, FileCacheStore

from .conftest import FakeClock


def item_files(store: FileCacheStore) -> list[str]:
    names = os.listdir(store.directory)
    return sorted(name for name in names if not name.startswith("."))


class TestGarbageCollection:
    """Tests for removing stale items."""

    def test_removes_expired_keeps_valid(
        self, store: FileCacheStore, clock: FakeClock
    ) -> None:
        """Test that expired items go and valid items stay."""
        store.set("expired", 1, clock.now - 1)
        store.set("fresh", 2, clock.now + 60_000)
        store.set("permanent", 3, PERMANENT)

        result = store.garbage_collection()

        assert result.scanned == 3
        assert result.removed == 1
        assert result.complete
        assert item_files(store) == ["fresh", "permanent"]

    def test_expired_after_time_passes(
        self, store: FileCacheStore, clock: FakeClock
    ) -> None:
        """Test that items become garbage once their time is up."""
        store.set("a", 1, ttl="1m")
        assert store.garbage_collection().removed == 0
        clock.advance(60_001)
        assert store.garbage_collection().removed == 1
        assert item_files(store) == []

    def test_removes_tag_invalidated(self, store: FileCacheStore) -> None:
        """Test that non-permanent items with bumped tags are removed."""
        store.set("tagged", 1, ttl="1h", tags=["node:5"])
        store.set("other", 2, ttl="1h", tags=["node:6"])
        store.invalidate_tags(["node:5"])
        store.garbage_collection()
        assert item_files(store) == ["other"]

    def test_removes_items_from_older_epoch(self, store: FileCacheStore) -> None:
        """Test that a bin-wide invalidation makes items collectable."""
        store.set("a", 1, ttl="1h")
        store.invalidate_all()
        store.set("b", 2, ttl="1h")
        store.garbage_collection()
        assert item_files(store) == ["b"]

    def test_keeps_permanent_items(self, store: FileCacheStore) -> None:
        """Test that permanent items are never collected."""
        store.set("permanent", 1, PERMANENT, tags=["node:5"])
        store.invalidate_tags(["node:5"])
        store.invalidate_all()
        store.garbage_collection()
        assert item_files(store) == ["permanent"]
        assert store.get("permanent", allow_invalid=True) is not None

    def test_invalidated_permanent_item_collected(self, store: FileCacheStore) -> None:
        """Test that explicitly invalidating a permanent item releases it."""
        store.set("permanent", 1, PERMANENT)
        store.invalidate("permanent")
        store.garbage_collection()
        assert item_files(store) == []

    def test_removes_corrupt_files(self, store: FileCacheStore) -> None:
        """Test that unreadable item files are cleaned up."""
        store.set("good", 1)
        (store.directory / "broken").write_bytes(b"\x00\x01")
        result = store.garbage_collection()
        assert result.removed == 1
        assert item_files(store) == ["good"]

    def test_leaves_registry_alone(self, store: FileCacheStore) -> None:
        """Test that the checksum files are not treated as items."""
        store.set("a", 1)
        store.invalidate_tags(["node:5"])
        result = store.garbage_collection()
        assert result.scanned == 1
        assert store.registry.checksum(["node:5"]) == {"node:5": 1}

    def test_missing_directory(self, store: FileCacheStore) -> None:
        """Test that collecting an empty bin is a no-op."""
        result = store.garbage_collection()
        assert (result.scanned, result.removed, result.complete) == (0, 0, True)


class TestTempFiles:
    """Tests for orphaned temp files."""

    def _temp_file(self, store: FileCacheStore, age_ms: int, clock: FakeClock) -> Path:
        store.set("a", 1)
        temp = store.directory / ".tmp-orphan"
        temp.write_bytes(b"partial")
        mtime = (clock.now - age_ms) / 1000
        os.utime(temp, (mtime, mtime))
        return temp

    def test_old_temp_file_removed(
        self, store: FileCacheStore, clock: FakeClock
    ) -> None:
        """Test that temp files left by crashed writers are removed."""
        temp = self._temp_file(store, 2 * 3_600_000, clock)
        result = store.garbage_collection()
        assert result.removed == 1
        assert not temp.exists()

    def test_recent_temp_file_kept(
        self, store: FileCacheStore, clock: FakeClock
    ) -> None:
        """Test that a write in progress is not disturbed."""
        temp = self._temp_file(store, 1000, clock)
        store.garbage_collection()
        assert temp.exists()


class TestBudget:
    """Tests for incremental collection."""

    def test_max_items_resumes(self, store: FileCacheStore, clock: FakeClock) -> None:
        """Test that a count budget splits the sweep over several calls."""
        for key in ("a", "b", "c", "d", "e"):
            store.set(key, 1, clock.now - 1)

        first = store.garbage_collection(max_items=2)
        assert (first.scanned, first.removed, first.complete) == (2, 2, False)
        assert item_files(store) == ["c", "d", "e"]

        second = store.garbage_collection(max_items=2)
        assert (second.scanned, second.removed, second.complete) == (2, 2, False)

        third = store.garbage_collection(max_items=2)
        assert (third.scanned, third.removed, third.complete) == (1, 1, True)
        assert item_files(store) == []

    def test_restarts_after_complete_sweep(
        self, store: FileCacheStore, clock: FakeClock
    ) -> None:
        """Test that a finished sweep starts over from the beginning."""
        store.set("a", 1, clock.now + 1000)
        store.set("b", 1, clock.now + 1000)
        assert store.garbage_collection().complete
        clock.advance(1001)
        result = store.garbage_collection(max_items=10)
        assert (result.scanned, result.removed) == (2, 2)

    def test_time_budget(self, store: FileCacheStore, clock: FakeClock) -> None:
        """Test that an exhausted time budget still makes progress."""
        for key in ("a", "b", "c"):
            store.set(key, 1, clock.now - 1)
        result = store.garbage_collection(time_budget=0)
        assert result.scanned == 1
        assert not result.complete

    def test_invalid_budget(self, store: FileCacheStore) -> None:
        """Test that a zero item budget is rejected."""
        with pytest.raises(ValueError, match="max_items"):
            store.garbage_collection(max_items=0)
