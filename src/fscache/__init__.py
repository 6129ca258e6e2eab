"""fscache - File-backed cache bins with tag-based invalidation."""

import logging

# Async facade
from fscache.async_store import AsyncFileCacheStore

# Protocols
from fscache.base import AsyncCacheBackend, CacheBackend

# Tag invalidation counters
from fscache.checksum import ChecksumState, TagChecksumRegistry

# On-disk record format
from fscache.codec import decode_item, encode_item

# Duration parsing
from fscache.duration import parse_duration

# Errors
from fscache.errors import (
    ConfigError,
    DecodeError,
    FileCacheError,
    SetMultipleError,
    StorageError,
)

# Construction
from fscache.factory import FileCacheFactory, create_store

# Key normalization
from fscache.keys import normalize_key

# Bin directories
from fscache.resolver import BinDirectoryResolver, FileCacheSettings

# Store
from fscache.store import FileCacheStore
from fscache.tags import define_tags, normalize_tags, serialize_tag

# Core types
from fscache.types import (
    PERMANENT,
    CacheItem,
    Duration,
    GarbageCollectionResult,
)

logging.getLogger(__name__).addHandler(logging.NullHandler())

__version__ = "0.1.0"

__all__ = [
    "PERMANENT",
    "AsyncCacheBackend",
    "AsyncFileCacheStore",
    "BinDirectoryResolver",
    "CacheBackend",
    "CacheItem",
    "ChecksumState",
    "ConfigError",
    "DecodeError",
    "Duration",
    "FileCacheError",
    "FileCacheFactory",
    "FileCacheSettings",
    "FileCacheStore",
    "GarbageCollectionResult",
    "SetMultipleError",
    "StorageError",
    "TagChecksumRegistry",
    "create_store",
    "decode_item",
    "define_tags",
    "encode_item",
    "normalize_key",
    "normalize_tags",
    "parse_duration",
    "serialize_tag",
]
