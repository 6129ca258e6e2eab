"""Core types for fscache."""

from dataclasses import dataclass, field
from typing import Any, Union

# Expiration sentinel for items that never expire
PERMANENT = -1

# Snapshot of tag counters taken when an item is written
TagSnapshot = tuple[tuple[str, int], ...]

# Bytes are stored base64-encoded, everything else as JSON
Payload = Union[bytes, str, int, float, bool, None, list[Any], dict[str, Any]]

# Duration type alias
Duration = str | int  # "30s", "5m", "2h", "1d" or milliseconds


@dataclass(frozen=True, slots=True)
class CacheItem:
    """A cached value with metadata."""

    key: str
    data: Payload
    expire: int  # Unix timestamp ms or PERMANENT
    tags: TagSnapshot
    created_at: int  # Unix timestamp ms
    epoch: int = 0  # Bin epoch at write time
    # Computed on read, never persisted
    valid: bool = field(default=True, compare=False)

    @property
    def is_permanent(self) -> bool:
        return self.expire == PERMANENT

    @property
    def tag_names(self) -> list[str]:
        return [tag for tag, _ in self.tags]

    def is_expired(self, now: int) -> bool:
        """Check if item has passed its expiration time."""
        return not self.is_permanent and self.expire < now


@dataclass(frozen=True, slots=True)
class GarbageCollectionResult:
    """Outcome of a single garbage collection pass."""

    scanned: int
    removed: int
    complete: bool  # False when a budget stopped the scan early
