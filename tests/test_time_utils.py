"""Tests for time utilities."""

import pytest
from datetime import datetime, timezone, timedelta

from rowgate.utils.time import parse_utc, to_utc_z


def test_parse_utc_date_only_is_midnight_utc():
    """Test that a 10-character date parses to UTC midnight."""
    result = parse_utc("2014-01-31")
    assert result == datetime(2014, 1, 31, tzinfo=timezone.utc)
    assert result.tzinfo is not None


def test_parse_utc_timestamp_with_z():
    """Test that a 24-character Z timestamp keeps its milliseconds."""
    result = parse_utc("2014-01-31T12:30:58.123Z")
    assert result == datetime(2014, 1, 31, 12, 30, 58, 123000, tzinfo=timezone.utc)


@pytest.mark.parametrize("value", ["", "2014-01", "2014-01-31T12:30:58", "2014-01-31T12:30:58.123456Z"])
def test_parse_utc_rejects_other_lengths(value):
    """Test that only 10- and 24-character strings are accepted."""
    with pytest.raises(ValueError, match="length"):
        parse_utc(value)


def test_to_utc_z_always_ends_with_z():
    """Test that to_utc_z() always ends with Z for timezone-aware datetime."""
    dt = datetime.now(timezone.utc)
    result = to_utc_z(dt)
    assert result.endswith('Z'), f"Expected result to end with 'Z', got: {result}"
    assert '+00:00Z' not in result
    assert len(result) == 24


def test_to_utc_z_raises_on_naive_datetime():
    """Test that to_utc_z() raises ValueError for naive datetime."""
    naive_dt = datetime.now()
    with pytest.raises(ValueError, match="Naive datetime not allowed"):
        to_utc_z(naive_dt)


def test_to_utc_z_converts_non_utc_timezone():
    """Test that to_utc_z() converts non-UTC timezone to UTC."""
    est = timezone(timedelta(hours=-5))
    dt_est = datetime(2025, 12, 23, 12, 0, 0, tzinfo=est)
    assert to_utc_z(dt_est) == '2025-12-23T17:00:00.000Z'


def test_to_utc_z_truncates_to_milliseconds():
    """Test that to_utc_z() keeps millisecond precision only."""
    dt = datetime(2025, 12, 23, 12, 34, 56, 123456, tzinfo=timezone.utc)
    assert to_utc_z(dt) == '2025-12-23T12:34:56.123Z'
