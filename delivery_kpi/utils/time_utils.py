"""
Time and date utilities for delivery records.

Key concepts:
  - Timestamp normalisation: records arrive from the document store with
    dates as ISO-8601 strings, ``datetime`` objects, epoch numbers, or
    store-native timestamp objects. ``parse_timestamp`` folds all of them
    into timezone-aware UTC datetimes, and returns ``None`` for anything it
    cannot read. It never raises on bad data.
  - Minute arithmetic: punctuality deviations are reported in whole minutes.
  - Calendar keys: rounds and tasks are grouped by UTC calendar day.
"""

from __future__ import annotations

import math
from datetime import date, datetime, time, timezone
from typing import Any, Optional

# Epoch values above this are treated as milliseconds, below as seconds.
_EPOCH_MS_THRESHOLD = 10_000_000_000


def parse_timestamp(value: Any) -> Optional[datetime]:
    """Normalise a raw date value to an aware UTC ``datetime``, or ``None``.

    Accepted inputs:
      - ``datetime`` (naive values are assumed to be UTC).
      - ``date`` (midnight UTC).
      - ISO-8601 strings, including a trailing ``Z``.
      - ``int`` / ``float`` epoch seconds or milliseconds.
      - Store-native timestamps: objects with ``to_datetime()``, objects with
        ``seconds`` (+ optional ``nanoseconds``) attributes, or dicts with
        ``seconds`` / ``_seconds`` keys.

    Args:
        value: Raw value from a record.

    Returns:
        Aware UTC datetime, or ``None`` if the value is missing or unreadable.
    """
    if value is None or isinstance(value, bool):
        return None

    if isinstance(value, datetime):
        return _as_utc(value)

    if isinstance(value, date):
        return datetime.combine(value, time.min, tzinfo=timezone.utc)

    if isinstance(value, (int, float)):
        return _from_epoch(float(value))

    if isinstance(value, str):
        return _from_iso(value)

    if isinstance(value, dict):
        seconds = value.get("seconds", value.get("_seconds"))
        nanos = value.get("nanoseconds", value.get("_nanoseconds", 0)) or 0
        if isinstance(seconds, (int, float)) and isinstance(nanos, (int, float)):
            return _from_epoch(float(seconds) + float(nanos) / 1e9, assume_seconds=True)
        return None

    to_datetime = getattr(value, "to_datetime", None)
    if callable(to_datetime):
        try:
            converted = to_datetime()
        except (TypeError, ValueError, OverflowError):
            return None
        return _as_utc(converted) if isinstance(converted, datetime) else None

    seconds = getattr(value, "seconds", None)
    if isinstance(seconds, (int, float)):
        nanos = getattr(value, "nanoseconds", 0) or 0
        return _from_epoch(float(seconds) + float(nanos) / 1e9, assume_seconds=True)

    return None


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def _from_epoch(value: float, assume_seconds: bool = False) -> Optional[datetime]:
    if not math.isfinite(value):
        return None
    if not assume_seconds and abs(value) >= _EPOCH_MS_THRESHOLD:
        value = value / 1000.0
    try:
        return datetime.fromtimestamp(value, tz=timezone.utc)
    except (OverflowError, OSError, ValueError):
        return None


def _from_iso(value: str) -> Optional[datetime]:
    text = value.strip()
    if not text:
        return None
    if text.endswith(("Z", "z")):
        text = text[:-1] + "+00:00"
    try:
        return _as_utc(datetime.fromisoformat(text))
    except ValueError:
        return None


def minutes_between(earlier: datetime, later: datetime) -> int:
    """Return whole minutes from ``earlier`` to ``later`` (truncated, never negative).

    Args:
        earlier: Start instant.
        later: End instant.

    Returns:
        ``floor(|later - earlier| / 60s)``.
    """
    seconds = abs((later - earlier).total_seconds())
    return int(seconds // 60)


def seconds_to_minutes(seconds: Optional[float]) -> Optional[int]:
    """Convert a duration in seconds to minutes, rounding halves up; ``None`` passes through."""
    if seconds is None:
        return None
    return int(math.floor(seconds / 60.0 + 0.5))


def day_key(value: Optional[datetime]) -> Optional[date]:
    """UTC calendar day of a timestamp, or ``None``."""
    if value is None:
        return None
    return value.astimezone(timezone.utc).date()


def utcnow() -> datetime:
    """Return the current UTC datetime with timezone info.

    Prefer this over ``datetime.utcnow()`` (which returns naive datetimes).
    """
    return datetime.now(tz=timezone.utc)
