"""Calendar-day keys for devstreak.

A day key is a ``YYYY-MM-DD`` string in one fixed timezone (UTC unless the
installation configures another IANA zone). Every grouping and every
"today / yesterday / N days before" decision is made on day keys, never on
raw timestamps.
"""

from __future__ import annotations

import re
from datetime import date, datetime, timedelta, timezone
from functools import lru_cache
from zoneinfo import ZoneInfo

DEFAULT_TIMEZONE = "UTC"

_DAY_KEY_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")


class MalformedDayKeyError(ValueError):
    """Raised when a value is not a valid ``YYYY-MM-DD`` calendar day."""


@lru_cache(maxsize=32)
def resolve_zone(tz: str) -> timezone | ZoneInfo:
    """Return the tzinfo for an IANA name; raises ZoneInfoNotFoundError if unknown."""
    if tz.upper() == "UTC":
        return timezone.utc
    return ZoneInfo(tz)


def to_day_key(timestamp: datetime | date, tz: str = DEFAULT_TIMEZONE) -> str:
    """Normalize a timestamp to a day key in the given timezone.

    Naive datetimes are interpreted as UTC. ``date`` objects are already
    calendar days and are formatted as-is.

    Args:
        timestamp: Instant (or calendar day) to normalize
        tz: IANA timezone name of the day-key convention

    Returns:
        Day key string (YYYY-MM-DD)
    """
    if isinstance(timestamp, datetime):
        if timestamp.tzinfo is None:
            timestamp = timestamp.replace(tzinfo=timezone.utc)
        return timestamp.astimezone(resolve_zone(tz)).strftime("%Y-%m-%d")
    if isinstance(timestamp, date):
        return timestamp.strftime("%Y-%m-%d")
    raise TypeError(f"Expected datetime or date, got {type(timestamp).__name__}")


def parse_day_key(key: str) -> date:
    """Parse a day key into a calendar date.

    Raises:
        MalformedDayKeyError: If ``key`` is not a real YYYY-MM-DD date
    """
    if not isinstance(key, str) or not _DAY_KEY_RE.match(key):
        raise MalformedDayKeyError(f"Invalid day key {key!r}. Use YYYY-MM-DD")
    try:
        return date.fromisoformat(key)
    except ValueError as e:
        raise MalformedDayKeyError(f"Invalid day key {key!r}: {e}") from e


def validate_day_key(key: str) -> str:
    parse_day_key(key)
    return key


def shift_day_key(key: str, days: int) -> str:
    """Return the day key ``days`` calendar days after ``key`` (negative for before)."""
    return (parse_day_key(key) + timedelta(days=days)).isoformat()


def previous_day_key(key: str) -> str:
    return shift_day_key(key, -1)


def days_between(later: str, earlier: str) -> int:
    """Number of calendar days from ``earlier`` to ``later``."""
    return (parse_day_key(later) - parse_day_key(earlier)).days


def today_key(now: datetime | None = None, tz: str = DEFAULT_TIMEZONE) -> str:
    if now is None:
        now = datetime.now(timezone.utc)
    return to_day_key(now, tz)


def yesterday_key(now: datetime | None = None, tz: str = DEFAULT_TIMEZONE) -> str:
    return previous_day_key(today_key(now, tz))
