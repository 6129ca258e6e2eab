"""Tests for the on-disk record format."""

import json

import pytest

from fscache import PERMANENT, CacheItem, DecodeError, decode_item, encode_item


def make_item(**overrides) -> CacheItem:
    fields = {
        "key": "page:1",
        "data": "<html>",
        "expire": PERMANENT,
        "tags": (("node:5", 2), ("node_list", 0)),
        "created_at": 1_700_000_000_000,
        "epoch": 3,
    }
    fields.update(overrides)
    return CacheItem(**fields)


def record(item: CacheItem) -> dict:
    return json.loads(encode_item(item))


class TestEncode:
    """Tests for encode_item."""

    def test_self_describing(self) -> None:
        """Test that the record names its format and version."""
        obj = record(make_item())
        assert obj["format"] == "fscache"
        assert obj["version"] == 1
        assert obj["key"] == "page:1"
        assert obj["tags"] == [["node:5", 2], ["node_list", 0]]

    def test_deterministic(self) -> None:
        """Test that tag order doesn't change the encoding."""
        first = make_item(tags=(("b", 1), ("a", 0)))
        second = make_item(tags=(("a", 0), ("b", 1)))
        assert encode_item(first) == encode_item(second)

    def test_bytes_payload_is_base64(self) -> None:
        """Test that bytes payloads are stored base64-encoded."""
        obj = record(make_item(data=b"\x00\xff"))
        assert obj["data_b64"] == "AP8="
        assert "data" not in obj

    def test_unserializable_payload(self) -> None:
        """Test that payloads JSON can't hold are rejected."""
        with pytest.raises(TypeError, match="not serializable"):
            encode_item(make_item(data=object()))


class TestDecode:
    """Tests for decode_item."""

    def test_roundtrip(self) -> None:
        """Test that decoding returns an equal item."""
        for data in ("<html>", b"\x00binary\xff", {"a": [1, 2.5, None]}, None, ""):
            item = make_item(data=data)
            assert decode_item(encode_item(item)) == item

    def test_roundtrip_expiring(self) -> None:
        """Test that timestamps survive the roundtrip."""
        item = make_item(expire=1_700_000_060_000, tags=())
        decoded = decode_item(encode_item(item))
        assert decoded.expire == 1_700_000_060_000
        assert decoded.tags == ()

    def test_unknown_fields_ignored(self) -> None:
        """Test that newer writers can add fields."""
        obj = record(make_item())
        obj["compression"] = "none"
        obj["version"] = 2
        assert decode_item(json.dumps(obj).encode()) == make_item()

    def test_truncated(self) -> None:
        """Test that a partially written record is rejected."""
        raw = encode_item(make_item())
        for cut in (0, 1, len(raw) // 2, len(raw) - 1):
            with pytest.raises(DecodeError):
                decode_item(raw[:cut])

    def test_garbage(self) -> None:
        """Test that non-JSON bytes are rejected."""
        with pytest.raises(DecodeError):
            decode_item(b"\xff\xfe\x00garbage")

    def test_deeply_nested(self) -> None:
        """Test that hostile nesting doesn't crash the decoder."""
        with pytest.raises(DecodeError):
            decode_item(b"[" * 100_000)

    def test_foreign_json(self) -> None:
        """Test that JSON from other programs is rejected."""
        for raw in (b"[]", b'"text"', b'{"key": "x"}', b'{"format": "other"}'):
            with pytest.raises(DecodeError):
                decode_item(raw)

    @pytest.mark.parametrize(
        ("field", "value"),
        [
            ("version", 0),
            ("key", None),
            ("expire", "never"),
            ("expire", True),
            ("expire", -5),
            ("created_at", 1.5),
            ("epoch", None),
            ("tags", "node:5"),
            ("tags", [["node:5"]]),
            ("tags", [["node:5", "2"]]),
            ("data_b64", "not base64!"),
        ],
    )
    def test_invalid_field(self, field: str, value: object) -> None:
        """Test that ill-typed required fields are rejected."""
        obj = record(make_item(data=b"payload"))
        obj[field] = value
        with pytest.raises(DecodeError):
            decode_item(json.dumps(obj).encode())

    def test_missing_payload(self) -> None:
        """Test that a record without data is rejected."""
        obj = record(make_item())
        del obj["data"]
        with pytest.raises(DecodeError, match="no payload"):
            decode_item(json.dumps(obj).encode())
