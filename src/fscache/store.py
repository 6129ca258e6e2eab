"""File system cache bin."""

from __future__ import annotations

import bisect
import errno
import logging
import os
import shutil
import threading
import time
from collections.abc import Callable, Iterable, Mapping
from dataclasses import replace
from pathlib import Path
from typing import Any

from fscache.checksum import ChecksumState, TagChecksumRegistry
from fscache.codec import decode_item, encode_item
from fscache.duration import now_ms, parse_duration
from fscache.errors import DecodeError, FileCacheError, SetMultipleError, StorageError
from fscache.files import (
    TEMP_PREFIX,
    ensure_directory,
    read_file,
    remove_file,
    write_atomic,
)
from fscache.keys import is_valid_name, normalize_key
from fscache.tags import TagLike
from fscache.types import (
    PERMANENT,
    CacheItem,
    Duration,
    GarbageCollectionResult,
    Payload,
)

logger = logging.getLogger(__name__)

REMOVE_BIN_RETRY_COUNT = 5


class FileCacheStore:
    """A cache bin that keeps one file per item in a directory.

    Items are validated on every read: an item is a hit while it has not
    expired and none of its tags (nor the bin as a whole) have been
    invalidated since it was written.
    """

    def __init__(
        self,
        directory: str | Path,
        *,
        registry: TagChecksumRegistry | None = None,
        clock: Callable[[], int] | None = None,
        temp_file_max_age: Duration = "1h",
    ) -> None:
        self._directory = Path(directory)
        self._clock = clock or now_ms
        self._registry = registry or TagChecksumRegistry(
            self._directory, clock=self._clock
        )
        self._temp_file_max_age = parse_duration(temp_file_max_age)
        self._gc_cursor: str | None = None
        self._lock = threading.Lock()

    def __repr__(self) -> str:
        return f"{type(self).__name__}({str(self._directory)!r})"

    @property
    def directory(self) -> Path:
        return self._directory

    @property
    def registry(self) -> TagChecksumRegistry:
        return self._registry

    def path_for(self, key: str) -> Path:
        """Path of the file that holds the item for key."""
        return self._directory / normalize_key(key)

    def get(self, key: str, allow_invalid: bool = False) -> CacheItem | None:
        """Get a cache item, or None on a miss.

        With allow_invalid, expired and invalidated items that are still on
        disk are returned too, flagged with valid=False.
        """
        item = self._read_item(key)
        if item is None:
            return None
        return self._prepare_item(item, self._registry.load(), allow_invalid)

    def get_multiple(
        self, keys: Iterable[str], allow_invalid: bool = False
    ) -> dict[str, CacheItem]:
        """Get several items at once.

        If keys is a list, it is left holding only the keys that missed.
        """
        requested = list(keys)
        found = {key: self._read_item(key) for key in dict.fromkeys(requested)}
        state = self._registry.load()

        result: dict[str, CacheItem] = {}
        for key, item in found.items():
            if item is None:
                continue
            prepared = self._prepare_item(item, state, allow_invalid)
            if prepared is not None:
                result[key] = prepared

        if isinstance(keys, list):
            keys[:] = [key for key in requested if key not in result]
        return result

    def set(
        self,
        key: str,
        data: Payload,
        expire: int = PERMANENT,
        tags: Iterable[TagLike] = (),
        *,
        ttl: Duration | None = None,
    ) -> None:
        """Store an item.

        Args:
            key: Cache key
            data: Bytes or any JSON-compatible value
            expire: Unix timestamp ms, or PERMANENT
            tags: Tags to snapshot for invalidation
            ttl: Relative alternative to expire ("5m" or milliseconds)
        """
        now = self._clock()
        if ttl is not None:
            if expire != PERMANENT:
                raise ValueError("Pass either expire or ttl, not both")
            expire = now + parse_duration(ttl)
        elif isinstance(expire, bool) or not isinstance(expire, int):
            raise ValueError(f"expire must be an integer timestamp, got {expire!r}")
        elif expire < PERMANENT:
            raise ValueError(f"Invalid expire value: {expire}")

        ensure_directory(self._directory)
        snapshot, epoch = self._registry.snapshot(tags)
        item = CacheItem(
            key=key,
            data=data,
            expire=expire,
            tags=snapshot,
            created_at=now,
            epoch=epoch,
        )
        write_atomic(self.path_for(key), encode_item(item))

    def set_multiple(self, items: Mapping[str, Mapping[str, Any]]) -> None:
        """Store several items.

        Each value is a mapping with "data" and optionally "expire", "ttl"
        and "tags". Every item is attempted; failures are collected into a
        single SetMultipleError.
        """
        failures: dict[str, Exception] = {}
        for key, entry in items.items():
            try:
                if "data" not in entry:
                    raise ValueError(f"Cache item {key!r} has no data")
                self.set(
                    key,
                    entry["data"],
                    entry.get("expire", PERMANENT),
                    entry.get("tags", ()),
                    ttl=entry.get("ttl"),
                )
            except (FileCacheError, TypeError, ValueError) as e:
                logger.warning("Failed to store cache item %r: %s", key, e)
                failures[key] = e
        if failures:
            raise SetMultipleError(failures)

    def delete(self, key: str) -> None:
        remove_file(self.path_for(key))

    def delete_multiple(self, keys: Iterable[str]) -> None:
        for key in keys:
            self.delete(key)

    def delete_all(self, *, reset_checksums: bool = False) -> None:
        """Delete every item in the bin.

        Temp files of writers still in flight are left for garbage collection.
        With reset_checksums, the tag counters are discarded as well.
        """
        for name in self._scan():
            if is_valid_name(name):
                remove_file(self._directory / name)
        if reset_checksums and self._directory.is_dir():
            self._registry.reset()

    def invalidate(self, key: str) -> None:
        """Mark an item as invalid without deleting it."""
        self.invalidate_multiple([key])

    def invalidate_multiple(self, keys: Iterable[str]) -> None:
        now = self._clock()
        for key in keys:
            item = self._read_item(key)
            if item is None or item.is_expired(now):
                continue
            try:
                expired = replace(item, expire=max(now - 1, 0))
                write_atomic(self.path_for(key), encode_item(expired))
            except StorageError as e:
                # The bin was removed underneath us
                if isinstance(e.__cause__, FileNotFoundError):
                    continue
                raise

    def invalidate_all(self) -> None:
        """Invalidate every item in the bin."""
        self._registry.invalidate_all()

    def invalidate_tags(self, tags: Iterable[TagLike]) -> None:
        """Invalidate every item carrying any of the given tags."""
        self._registry.invalidate(tags)

    def garbage_collection(
        self,
        *,
        max_items: int | None = None,
        time_budget: Duration | None = None,
    ) -> GarbageCollectionResult:
        """Remove expired, invalidated and corrupt item files.

        Permanent items are only ever removed explicitly. With a budget the
        scan stops early and the next call resumes where this one stopped.
        """
        if max_items is not None and max_items < 1:
            raise ValueError("max_items must be at least 1")
        deadline = None
        if time_budget is not None:
            deadline = time.monotonic() + parse_duration(time_budget) / 1000

        names = sorted(
            name
            for name in self._scan()
            if is_valid_name(name) or name.startswith(TEMP_PREFIX)
        )
        with self._lock:
            cursor = self._gc_cursor
        start = bisect.bisect_right(names, cursor) if cursor is not None else 0

        state = self._registry.load()
        now = self._clock()
        scanned = 0
        removed = 0
        last: str | None = None
        complete = True
        for name in names[start:]:
            if max_items is not None and scanned >= max_items:
                complete = False
                break
            if deadline is not None and scanned and time.monotonic() >= deadline:
                complete = False
                break
            scanned += 1
            last = name
            if self._collect(name, state, now):
                removed += 1

        with self._lock:
            self._gc_cursor = None if complete else last
        logger.debug(
            "Garbage collection in %s: scanned %d, removed %d, complete=%s",
            self._directory,
            scanned,
            removed,
            complete,
        )
        return GarbageCollectionResult(
            scanned=scanned, removed=removed, complete=complete
        )

    def remove_bin(self) -> None:
        """Delete the bin directory with all items and tag counters."""
        for attempt in range(REMOVE_BIN_RETRY_COUNT):
            for name in self._scan(include_dirs=True):
                path = self._directory / name
                if path.is_dir() and not path.is_symlink():
                    shutil.rmtree(path, ignore_errors=True)
                else:
                    remove_file(path)
            try:
                self._directory.rmdir()
                break
            except FileNotFoundError:
                break
            except OSError as e:
                # A concurrent writer added a file, sweep again
                if e.errno in (errno.ENOTEMPTY, errno.EEXIST) and (
                    attempt < REMOVE_BIN_RETRY_COUNT - 1
                ):
                    continue
                raise StorageError(
                    f"Could not remove cache folder {self._directory}",
                    path=self._directory,
                    cause=e,
                ) from e
        with self._lock:
            self._gc_cursor = None
        logger.debug("Removed cache bin %s", self._directory)

    # -------------------------------------------------------------------------
    # Internal helpers
    # -------------------------------------------------------------------------

    def _read_item(self, key: str) -> CacheItem | None:
        """Load the raw item for key, or None if absent or unreadable."""
        path = self.path_for(key)
        raw = read_file(path)
        if raw is None:
            return None
        try:
            item = decode_item(raw)
        except DecodeError as e:
            logger.debug("Ignoring unreadable cache file %s: %s", path, e)
            return None
        # Another key hashed to the same name
        if item.key != key:
            return None
        return item

    def _prepare_item(
        self, item: CacheItem, state: ChecksumState, allow_invalid: bool
    ) -> CacheItem | None:
        valid = not item.is_expired(self._clock()) and state.is_valid(
            item.tags, item.epoch
        )
        if not valid and not allow_invalid:
            return None
        return replace(item, valid=valid)

    def _scan(self, include_dirs: bool = False) -> list[str]:
        """Names of the entries in the bin directory."""
        try:
            with os.scandir(self._directory) as entries:
                return [
                    entry.name
                    for entry in entries
                    if include_dirs or entry.is_file(follow_symlinks=False)
                ]
        except FileNotFoundError:
            return []
        except NotADirectoryError as e:
            raise StorageError(
                f"Cache folder {self._directory} is not a directory",
                path=self._directory,
                cause=e,
            ) from e

    def _collect(self, name: str, state: ChecksumState, now: int) -> bool:
        """Remove one directory entry if it is garbage."""
        path = self._directory / name
        if name.startswith(TEMP_PREFIX):
            return self._collect_temp_file(path, now)
        if not is_valid_name(name):
            return False

        raw = read_file(path)
        if raw is None:
            return False
        try:
            item = decode_item(raw)
        except DecodeError as e:
            logger.warning("Removing corrupt cache file %s: %s", path, e)
            return remove_file(path)

        if item.is_permanent:
            return False
        if item.is_expired(now) or not state.is_valid(item.tags, item.epoch):
            return remove_file(path)
        return False

    def _collect_temp_file(self, path: Path, now: int) -> bool:
        try:
            modified = int(path.stat().st_mtime * 1000)
        except FileNotFoundError:
            return False
        if now - modified < self._temp_file_max_age:
            return False
        logger.warning("Removing orphaned temp file %s", path)
        return remove_file(path)
