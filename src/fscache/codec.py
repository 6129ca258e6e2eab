"""On-disk record format for cache items."""

from __future__ import annotations

import base64
import binascii
import json
from typing import Any

from fscache.errors import DecodeError
from fscache.types import PERMANENT, CacheItem

FORMAT_NAME = "fscache"
FORMAT_VERSION = 1


def encode_item(item: CacheItem) -> bytes:
    """Serialize a cache item to deterministic JSON bytes."""
    record: dict[str, Any] = {
        "format": FORMAT_NAME,
        "version": FORMAT_VERSION,
        "key": item.key,
        "expire": item.expire,
        "created_at": item.created_at,
        "epoch": item.epoch,
        "tags": [[tag, counter] for tag, counter in sorted(set(item.tags))],
    }
    if isinstance(item.data, bytes):
        record["data_b64"] = base64.b64encode(item.data).decode("ascii")
    else:
        record["data"] = item.data
    try:
        text = json.dumps(
            record, sort_keys=True, separators=(",", ":"), allow_nan=False
        )
    except (TypeError, ValueError) as e:
        raise TypeError(f"Cache data for {item.key!r} is not serializable: {e}") from e
    return text.encode("utf-8")


def decode_item(raw: bytes) -> CacheItem:
    """Deserialize bytes written by encode_item().

    Raises DecodeError for anything that isn't a complete record.
    Unknown fields are ignored.
    """
    try:
        obj = json.loads(raw.decode("utf-8"))
    except (UnicodeDecodeError, ValueError, RecursionError) as e:
        raise DecodeError("Cache record is not valid JSON", cause=e) from e

    if not isinstance(obj, dict) or obj.get("format") != FORMAT_NAME:
        raise DecodeError("Not an fscache record")
    version = obj.get("version")
    if not _is_int(version) or version < 1:
        raise DecodeError(f"Unsupported record version: {version!r}")

    key = obj.get("key")
    if not isinstance(key, str):
        raise DecodeError("Record has no key")
    expire = _require_int(obj, "expire")
    if expire < PERMANENT:
        raise DecodeError(f"Invalid expiration: {expire}")
    created_at = _require_int(obj, "created_at")
    epoch = _require_int(obj, "epoch")

    return CacheItem(
        key=key,
        data=_decode_data(obj),
        expire=expire,
        tags=_decode_tags(obj.get("tags")),
        created_at=created_at,
        epoch=epoch,
    )


def _is_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def _require_int(obj: dict[str, Any], name: str) -> int:
    value = obj.get(name)
    if not _is_int(value):
        raise DecodeError(f"Record field {name!r} must be an integer")
    return int(value)


def _decode_data(obj: dict[str, Any]) -> Any:
    if "data_b64" in obj:
        encoded = obj["data_b64"]
        if not isinstance(encoded, str):
            raise DecodeError("Record field 'data_b64' must be a string")
        try:
            return base64.b64decode(encoded, validate=True)
        except (binascii.Error, ValueError) as e:
            raise DecodeError("Record payload is not valid base64", cause=e) from e
    if "data" in obj:
        return obj["data"]
    raise DecodeError("Record has no payload")


def _decode_tags(tags: Any) -> tuple[tuple[str, int], ...]:
    if not isinstance(tags, list):
        raise DecodeError("Record field 'tags' must be a list")
    result: list[tuple[str, int]] = []
    for pair in tags:
        if (
            not isinstance(pair, list)
            or len(pair) != 2
            or not isinstance(pair[0], str)
            or not _is_int(pair[1])
        ):
            raise DecodeError(f"Invalid tag snapshot entry: {pair!r}")
        result.append((pair[0], pair[1]))
    return tuple(sorted(set(result)))
