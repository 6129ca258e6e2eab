"""Caller-facing cache backend protocols."""

from collections.abc import Iterable, Mapping
from typing import Any, Protocol, runtime_checkable

from fscache.tags import TagLike
from fscache.types import CacheItem, Duration, GarbageCollectionResult, Payload


@runtime_checkable
class CacheBackend(Protocol):
    """Sync cache bin interface."""

    def get(self, key: str, allow_invalid: bool = False) -> CacheItem | None:
        """Get a cache item by key."""
        ...

    def get_multiple(
        self, keys: Iterable[str], allow_invalid: bool = False
    ) -> dict[str, CacheItem]:
        """Get several cache items, pruning a list of keys to the misses."""
        ...

    def set(
        self,
        key: str,
        data: Payload,
        expire: int = ...,
        tags: Iterable[TagLike] = ...,
        *,
        ttl: Duration | None = None,
    ) -> None:
        """Store a cache item."""
        ...

    def set_multiple(self, items: Mapping[str, Mapping[str, Any]]) -> None:
        """Store several cache items."""
        ...

    def delete(self, key: str) -> None:
        """Delete a cache item."""
        ...

    def delete_multiple(self, keys: Iterable[str]) -> None:
        """Delete several cache items."""
        ...

    def delete_all(self, *, reset_checksums: bool = False) -> None:
        """Delete all cache items in the bin."""
        ...

    def invalidate(self, key: str) -> None:
        """Mark a cache item as invalid."""
        ...

    def invalidate_multiple(self, keys: Iterable[str]) -> None:
        """Mark several cache items as invalid."""
        ...

    def invalidate_all(self) -> None:
        """Mark all cache items in the bin as invalid."""
        ...

    def invalidate_tags(self, tags: Iterable[TagLike]) -> None:
        """Invalidate all cache items carrying any of the tags."""
        ...

    def garbage_collection(
        self,
        *,
        max_items: int | None = None,
        time_budget: Duration | None = None,
    ) -> GarbageCollectionResult:
        """Remove expired and invalidated cache items."""
        ...

    def remove_bin(self) -> None:
        """Remove the bin entirely."""
        ...


@runtime_checkable
class AsyncCacheBackend(Protocol):
    """Async cache bin interface."""

    async def get(self, key: str, allow_invalid: bool = False) -> CacheItem | None:
        """Get a cache item by key."""
        ...

    async def get_multiple(
        self, keys: Iterable[str], allow_invalid: bool = False
    ) -> dict[str, CacheItem]:
        """Get several cache items, pruning a list of keys to the misses."""
        ...

    async def set(
        self,
        key: str,
        data: Payload,
        expire: int = ...,
        tags: Iterable[TagLike] = ...,
        *,
        ttl: Duration | None = None,
    ) -> None:
        """Store a cache item."""
        ...

    async def set_multiple(self, items: Mapping[str, Mapping[str, Any]]) -> None:
        """Store several cache items."""
        ...

    async def delete(self, key: str) -> None:
        """Delete a cache item."""
        ...

    async def delete_multiple(self, keys: Iterable[str]) -> None:
        """Delete several cache items."""
        ...

    async def delete_all(self, *, reset_checksums: bool = False) -> None:
        """Delete all cache items in the bin."""
        ...

    async def invalidate(self, key: str) -> None:
        """Mark a cache item as invalid."""
        ...

    async def invalidate_multiple(self, keys: Iterable[str]) -> None:
        """Mark several cache items as invalid."""
        ...

    async def invalidate_all(self) -> None:
        """Mark all cache items in the bin as invalid."""
        ...

    async def invalidate_tags(self, tags: Iterable[TagLike]) -> None:
        """Invalidate all cache items carrying any of the tags."""
        ...

    async def garbage_collection(
        self,
        *,
        max_items: int | None = None,
        time_budget: Duration | None = None,
    ) -> GarbageCollectionResult:
        """Remove expired and invalidated cache items."""
        ...

    async def remove_bin(self) -> None:
        """Remove the bin entirely."""
        ...
