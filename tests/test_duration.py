"""Tests for duration parsing."""

import time

import pytest

from fscache import parse_duration
from fscache.duration import now_ms


class TestParseDuration:
    """Tests for parse_duration function."""

    def test_milliseconds(self) -> None:
        """Test parsing milliseconds."""
        assert parse_duration("100ms") == 100
        assert parse_duration("0ms") == 0

    def test_seconds_and_minutes(self) -> None:
        """Test parsing seconds and minutes."""
        assert parse_duration("30s") == 30_000
        assert parse_duration("5m") == 300_000

    def test_hours_days_weeks(self) -> None:
        """Test parsing the long units."""
        assert parse_duration("2h") == 7_200_000
        assert parse_duration("1d") == 86_400_000
        assert parse_duration("1w") == 604_800_000

    def test_integer_passthrough(self) -> None:
        """Test that integers pass through unchanged."""
        assert parse_duration(1000) == 1000
        assert parse_duration(0) == 0

    def test_negative_integer_rejected(self) -> None:
        """Test that negative durations are rejected."""
        with pytest.raises(ValueError, match="negative"):
            parse_duration(-1)

    def test_invalid_format(self) -> None:
        """Test that invalid formats raise ValueError."""
        for bad in ("invalid", "10x", "s10", "", "10", "-5s"):
            with pytest.raises(ValueError, match="Invalid duration"):
                parse_duration(bad)

    def test_bool_rejected(self) -> None:
        """Test that booleans are not mistaken for integers."""
        with pytest.raises(ValueError, match="Invalid duration"):
            parse_duration(True)


class TestNowMs:
    """Tests for the default clock."""

    def test_now_is_milliseconds(self) -> None:
        """Test that now_ms tracks time.time() in milliseconds."""
        before = int(time.time() * 1000)
        value = now_ms()
        after = int(time.time() * 1000)
        assert before <= value <= after
