"""
Tests for delivery_kpi/utils/time_utils.py and utils/rates.py.

What we test
------------
parse_timestamp():
  - datetime (naive → UTC, aware → converted), date, ISO strings with Z,
    epoch seconds and milliseconds, store timestamp dicts and objects.
  - Unreadable values → None, never an exception.

minutes_between() / seconds_to_minutes() / day_key():
  - Truncation, half-up rounding, UTC calendar day.

rate() / mean():
  - None on empty denominators.
"""

from __future__ import annotations

from datetime import date, datetime, timedelta, timezone

import pytest

from delivery_kpi.utils.rates import mean, rate
from delivery_kpi.utils.time_utils import (
    day_key,
    minutes_between,
    parse_timestamp,
    seconds_to_minutes,
)

NOON = datetime(2024, 5, 14, 12, 0, tzinfo=timezone.utc)


class _StoreTimestamp:
    def __init__(self, seconds: int, nanoseconds: int = 0) -> None:
        self.seconds = seconds
        self.nanoseconds = nanoseconds


class _Convertible:
    def to_datetime(self) -> datetime:
        return datetime(2024, 5, 14, 12, 0)


# ── parse_timestamp ───────────────────────────────────────────────────────────

@pytest.mark.parametrize("raw", [
    datetime(2024, 5, 14, 12, 0),
    datetime(2024, 5, 14, 14, 0, tzinfo=timezone(timedelta(hours=2))),
    "2024-05-14T12:00:00Z",
    "2024-05-14T14:00:00+02:00",
    1715688000,
    1715688000000,
    {"seconds": 1715688000, "nanoseconds": 0},
    {"_seconds": 1715688000},
    _StoreTimestamp(1715688000),
    _Convertible(),
])
def test_parse_timestamp_accepted(raw) -> None:
    assert parse_timestamp(raw) == NOON


def test_parse_date() -> None:
    assert parse_timestamp(date(2024, 5, 14)) == NOON.replace(hour=0)


@pytest.mark.parametrize("raw", [None, "", "  ", "yesterday", True, float("nan"), {"x": 1}, object()])
def test_parse_timestamp_unreadable(raw) -> None:
    assert parse_timestamp(raw) is None


# ── Minute arithmetic ─────────────────────────────────────────────────────────

def test_minutes_between_truncates() -> None:
    assert minutes_between(NOON, NOON + timedelta(minutes=3, seconds=59)) == 3
    assert minutes_between(NOON + timedelta(minutes=5), NOON) == 5


@pytest.mark.parametrize("seconds, expected", [(None, None), (29, 0), (30, 1), (150, 3), (149.9, 2)])
def test_seconds_to_minutes(seconds, expected) -> None:
    assert seconds_to_minutes(seconds) == expected


def test_day_key_is_utc() -> None:
    late_evening_paris = datetime(2024, 5, 14, 23, 30, tzinfo=timezone(timedelta(hours=2)))
    assert day_key(late_evening_paris) == date(2024, 5, 14)
    assert day_key(datetime(2024, 5, 15, 1, 0, tzinfo=timezone(timedelta(hours=2)))) == date(2024, 5, 14)
    assert day_key(None) is None


# ── Rates ─────────────────────────────────────────────────────────────────────

def test_rate() -> None:
    assert rate(1, 4) == pytest.approx(25.0)
    assert rate(0, 4) == 0.0
    assert rate(0, 0) is None


def test_mean() -> None:
    assert mean([5, 3]) == pytest.approx(4.0)
    assert mean(iter([])) is None
