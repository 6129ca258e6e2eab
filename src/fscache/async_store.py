"""Async facade over FileCacheStore.

File system calls block, so every operation runs in a worker thread.
"""

from __future__ import annotations

import asyncio
from collections.abc import Iterable, Mapping
from pathlib import Path
from typing import Any

from fscache.store import FileCacheStore
from fscache.tags import TagLike
from fscache.types import (
    PERMANENT,
    CacheItem,
    Duration,
    GarbageCollectionResult,
    Payload,
)


class AsyncFileCacheStore:
    """Async file system cache bin."""

    def __init__(self, store: FileCacheStore) -> None:
        self._store = store

    @classmethod
    def for_directory(cls, directory: str | Path, **kwargs: Any) -> AsyncFileCacheStore:
        return cls(FileCacheStore(directory, **kwargs))

    @property
    def store(self) -> FileCacheStore:
        return self._store

    async def get(self, key: str, allow_invalid: bool = False) -> CacheItem | None:
        return await asyncio.to_thread(self._store.get, key, allow_invalid)

    async def get_multiple(
        self, keys: Iterable[str], allow_invalid: bool = False
    ) -> dict[str, CacheItem]:
        return await asyncio.to_thread(self._store.get_multiple, keys, allow_invalid)

    async def set(
        self,
        key: str,
        data: Payload,
        expire: int = PERMANENT,
        tags: Iterable[TagLike] = (),
        *,
        ttl: Duration | None = None,
    ) -> None:
        await asyncio.to_thread(self._store.set, key, data, expire, tags, ttl=ttl)

    async def set_multiple(self, items: Mapping[str, Mapping[str, Any]]) -> None:
        await asyncio.to_thread(self._store.set_multiple, items)

    async def delete(self, key: str) -> None:
        await asyncio.to_thread(self._store.delete, key)

    async def delete_multiple(self, keys: Iterable[str]) -> None:
        await asyncio.to_thread(self._store.delete_multiple, keys)

    async def delete_all(self, *, reset_checksums: bool = False) -> None:
        await asyncio.to_thread(self._store.delete_all, reset_checksums=reset_checksums)

    async def invalidate(self, key: str) -> None:
        await asyncio.to_thread(self._store.invalidate, key)

    async def invalidate_multiple(self, keys: Iterable[str]) -> None:
        await asyncio.to_thread(self._store.invalidate_multiple, keys)

    async def invalidate_all(self) -> None:
        await asyncio.to_thread(self._store.invalidate_all)

    async def invalidate_tags(self, tags: Iterable[TagLike]) -> None:
        await asyncio.to_thread(self._store.invalidate_tags, tags)

    async def garbage_collection(
        self,
        *,
        max_items: int | None = None,
        time_budget: Duration | None = None,
    ) -> GarbageCollectionResult:
        return await asyncio.to_thread(
            self._store.garbage_collection,
            max_items=max_items,
            time_budget=time_budget,
        )

    async def remove_bin(self) -> None:
        await asyncio.to_thread(self._store.remove_bin)
