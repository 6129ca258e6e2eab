"""Shared pytest fixtures."""

from pathlib import Path

import pytest

from fscache import AsyncFileCacheStore, FileCacheStore, define_tags


class FakeClock:
    """Controllable millisecond clock."""

    def __init__(self, now: int = 1_700_000_000_000) -> None:
        self.now = now

    def __call__(self) -> int:
        return self.now

    def advance(self, ms: int) -> None:
        self.now += ms


@pytest.fixture
def clock() -> FakeClock:
    """Create a fresh clock for each test."""
    return FakeClock()


@pytest.fixture
def bin_dir(tmp_path: Path) -> Path:
    """Directory for a cache bin (not created yet)."""
    return tmp_path / "cache" / "default"


@pytest.fixture
def store(bin_dir: Path, clock: FakeClock) -> FileCacheStore:
    """Create a FileCacheStore for each test."""
    return FileCacheStore(bin_dir, clock=clock)


@pytest.fixture
def async_store(store: FileCacheStore) -> AsyncFileCacheStore:
    """Create an AsyncFileCacheStore sharing the sync store's directory."""
    return AsyncFileCacheStore(store)


@pytest.fixture
def tags() -> dict:
    """Create common tag definitions for tests."""
    return define_tags(
        {
            "node": lambda id: ("node", id),
            "user": lambda id: ("user", id),
            "node_list": lambda: ("node_list",),
        }
    )
