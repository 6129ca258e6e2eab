"""Persisted tag invalidation counters for a cache bin.

Every tag has a counter that only ever grows. Items store the counters of
their tags at write time; an item is still valid while all of those counters
are unchanged. A bin-wide epoch counter invalidates every item at once
without having to enumerate tags.

State lives in a small JSON file inside the bin directory. Mutations are
read-modify-write cycles serialized by a cross-process file lock and saved
with an atomic rename, so reads never need the lock.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from filelock import FileLock, Timeout

from fscache.duration import now_ms
from fscache.errors import DecodeError, StorageError
from fscache.files import ensure_directory, remove_file, write_atomic
from fscache.tags import TagLike, normalize_tags
from fscache.types import TagSnapshot

logger = logging.getLogger(__name__)

REGISTRY_FILENAME = ".checksums.json"
LOCK_FILENAME = ".checksums.lock"
REGISTRY_VERSION = 1


@dataclass(frozen=True, slots=True)
class ChecksumState:
    """One consistent read of the registry."""

    epoch: int = 0
    tags: Mapping[str, int] = field(default_factory=dict)
    corrupt: bool = False

    def counter(self, tag: str) -> int:
        return self.tags.get(tag, 0)

    def is_valid(self, snapshot: TagSnapshot, epoch: int) -> bool:
        """Check that nothing was invalidated since the snapshot was taken."""
        if self.corrupt or epoch != self.epoch:
            return False
        return all(self.counter(tag) == counter for tag, counter in snapshot)


class TagChecksumRegistry:
    """Tag invalidation counters persisted in a bin directory."""

    def __init__(
        self,
        directory: str | Path,
        *,
        lock_timeout: float = 10.0,
        clock: Callable[[], int] = now_ms,
    ) -> None:
        self._directory = Path(directory)
        self._path = self._directory / REGISTRY_FILENAME
        self._lock_path = self._directory / LOCK_FILENAME
        self._lock_timeout = lock_timeout
        self._clock = clock

    @property
    def path(self) -> Path:
        return self._path

    def load(self) -> ChecksumState:
        """Read the current state without locking.

        Only a missing file means "nothing invalidated yet". A registry that
        exists but can't be read is treated like a corrupt one.
        """
        try:
            raw = self._path.read_bytes()
        except FileNotFoundError:
            return ChecksumState()
        except OSError as e:
            logger.warning("Checksum registry %s is unreadable: %s", self._path, e)
            return ChecksumState(corrupt=True)
        try:
            return _parse_state(raw)
        except DecodeError as e:
            logger.warning("Discarding corrupt checksum registry %s: %s", self._path, e)
            return ChecksumState(corrupt=True)

    def checksum(self, tags: Iterable[TagLike]) -> dict[str, int]:
        """Current counter for each tag (0 if never invalidated)."""
        state = self.load()
        return {tag: state.counter(tag) for tag in normalize_tags(tags)}

    def current_epoch(self) -> int:
        return self.load().epoch

    def snapshot(self, tags: Iterable[TagLike]) -> tuple[TagSnapshot, int]:
        """Counters and epoch to stamp on a new item."""
        names = normalize_tags(tags)
        state = self.load()
        if state.corrupt:
            state = self._mutate(lambda current: current)
        return tuple((tag, state.counter(tag)) for tag in names), state.epoch

    def is_valid(self, snapshot: TagSnapshot, epoch: int) -> bool:
        return self.load().is_valid(snapshot, epoch)

    def invalidate(self, tags: Iterable[TagLike]) -> None:
        """Increment the counter of every given tag."""
        names = normalize_tags(tags)
        if not names:
            return

        def bump(state: ChecksumState) -> ChecksumState:
            counters = dict(state.tags)
            for tag in names:
                counters[tag] = counters.get(tag, 0) + 1
            return ChecksumState(epoch=state.epoch, tags=counters)

        self._mutate(bump)

    def invalidate_all(self) -> None:
        """Bump the bin epoch, invalidating every existing item."""
        self._mutate(
            lambda state: ChecksumState(epoch=state.epoch + 1, tags=state.tags)
        )

    def reset(self) -> None:
        """Forget all tag counters.

        The epoch is bumped as well so items written before the reset can't
        become valid again once counters climb back to their old values.
        """
        self._mutate(lambda state: ChecksumState(epoch=state.epoch + 1))

    def delete(self) -> None:
        """Remove the persisted state and lock file."""
        remove_file(self._path)
        remove_file(self._lock_path)

    def _mutate(
        self, update: Callable[[ChecksumState], ChecksumState]
    ) -> ChecksumState:
        ensure_directory(self._directory)
        lock = FileLock(self._lock_path, timeout=self._lock_timeout)
        try:
            with lock:
                current = self.load()
                if current.corrupt:
                    # Old epochs are unknown, so jump past any reachable value
                    current = ChecksumState(epoch=self._clock())
                new_state = update(current)
                write_atomic(self._path, _dump_state(new_state))
                return new_state
        except Timeout as e:
            raise StorageError(
                f"Timed out waiting for checksum lock {self._lock_path}",
                path=self._lock_path,
                cause=e,
            ) from e
        except OSError as e:
            raise StorageError(
                f"Could not lock checksum registry {self._lock_path}",
                path=self._lock_path,
                cause=e,
            ) from e


def _dump_state(state: ChecksumState) -> bytes:
    record = {
        "version": REGISTRY_VERSION,
        "epoch": state.epoch,
        "tags": dict(sorted(state.tags.items())),
    }
    return json.dumps(record, sort_keys=True, separators=(",", ":")).encode("utf-8")


def _parse_state(raw: bytes) -> ChecksumState:
    try:
        obj: Any = json.loads(raw.decode("utf-8"))
    except (UnicodeDecodeError, ValueError, RecursionError) as e:
        raise DecodeError("Checksum registry is not valid JSON", cause=e) from e
    if not isinstance(obj, dict):
        raise DecodeError("Checksum registry must be an object")

    version = obj.get("version")
    epoch = obj.get("epoch")
    tags = obj.get("tags")
    if not isinstance(version, int) or version < 1:
        raise DecodeError(f"Unsupported registry version: {version!r}")
    if not isinstance(epoch, int) or isinstance(epoch, bool) or epoch < 0:
        raise DecodeError(f"Invalid registry epoch: {epoch!r}")
    if not isinstance(tags, dict):
        raise DecodeError("Registry field 'tags' must be an object")
    for tag, counter in tags.items():
        if not isinstance(counter, int) or isinstance(counter, bool) or counter < 0:
            raise DecodeError(f"Invalid counter for tag {tag!r}: {counter!r}")
    return ChecksumState(epoch=epoch, tags=tags)
