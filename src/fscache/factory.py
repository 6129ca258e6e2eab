"""Construction helpers for cache bins."""

from __future__ import annotations

import threading
from collections.abc import Callable, Mapping
from pathlib import Path

from fscache.duration import parse_duration
from fscache.resolver import BinDirectoryResolver, FileCacheSettings
from fscache.store import FileCacheStore
from fscache.types import Duration


class FileCacheFactory:
    """Hands out one FileCacheStore per bin name."""

    def __init__(
        self,
        resolver: BinDirectoryResolver,
        *,
        clock: Callable[[], int] | None = None,
        temp_file_max_age: Duration = "1h",
    ) -> None:
        self._resolver = resolver
        self._clock = clock
        self._temp_file_max_age = temp_file_max_age
        self._stores: dict[str, FileCacheStore] = {}
        self._lock = threading.Lock()

    @classmethod
    def from_env(
        cls,
        environ: Mapping[str, str] | None = None,
        env_file: str | Path | None = None,
        *,
        clock: Callable[[], int] | None = None,
        temp_file_max_age: Duration = "1h",
    ) -> FileCacheFactory:
        """Build a factory from FSCACHE_* environment settings."""
        settings = FileCacheSettings.from_env(environ, env_file)
        return cls(
            BinDirectoryResolver(settings),
            clock=clock,
            temp_file_max_age=temp_file_max_age,
        )

    def get(self, bin: str) -> FileCacheStore:
        """Get the store for a bin, creating it on first use."""
        with self._lock:
            store = self._stores.get(bin)
            if store is None:
                store = create_store(
                    directory=self._resolver.resolve(bin),
                    clock=self._clock,
                    temp_file_max_age=self._temp_file_max_age,
                )
                self._stores[bin] = store
            return store


def create_store(
    *,
    directory: str | Path,
    clock: Callable[[], int] | None = None,
    temp_file_max_age: Duration = "1h",
) -> FileCacheStore:
    """Create a cache store for a directory.

    Args:
        directory: Bin directory, created on first write
        clock: Returns the current Unix time in milliseconds
        temp_file_max_age: Age after which leftover temp files are garbage

    Returns:
        FileCacheStore with get, set, delete, invalidate and gc operations
    """
    if not str(directory):
        raise ValueError("directory must not be empty")
    if parse_duration(temp_file_max_age) <= 0:
        raise ValueError("temp_file_max_age must be positive")

    return FileCacheStore(
        directory,
        clock=clock,
        temp_file_max_age=temp_file_max_age,
    )


__all__ = ["FileCacheFactory", "create_store"]
