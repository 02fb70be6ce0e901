"""Streak computation and dashboard statistics.

Pure functions over ledger entries: no I/O, no clock. Callers pass ``today``
as a day key so results are reproducible.
"""

from __future__ import annotations

from collections import Counter
from typing import Iterable, Literal, Union

from .daykey import days_between, parse_day_key, previous_day_key, shift_day_key
from .models.entry import MOODS, LedgerEntry
from .models.streak import DashboardStats, MoodCount, StreakSnapshot, TagCount

HistoryRange = Literal["week", "month", "year", "all"]

TOP_TAGS_COUNT = 5

_RANGE_DAYS = {"week": 7, "month": 30, "year": 365}


def _day_key_of(item: Union[LedgerEntry, str]) -> str:
    return item.day_key if isinstance(item, LedgerEntry) else item


def distinct_day_keys(items: Iterable[Union[LedgerEntry, str]]) -> list[str]:
    """Distinct day keys, newest first.

    Raises:
        MalformedDayKeyError: If any day key is not a valid YYYY-MM-DD date
    """
    keys = {_day_key_of(item) for item in items}
    for key in keys:
        parse_day_key(key)
    # ISO dates sort chronologically as strings once validated
    return sorted(keys, reverse=True)


def calculate_streak(entries: Iterable[Union[LedgerEntry, str]], today: str) -> StreakSnapshot:
    """Compute current streak, longest streak and last active day.

    Args:
        entries: Ledger entries (or bare day keys) of one owner
        today: Today's day key in the canonical timezone

    Returns:
        StreakSnapshot for the given entry set

    Raises:
        MalformedDayKeyError: If ``today`` or any entry day key is malformed
    """
    parse_day_key(today)
    days = distinct_day_keys(entries)
    if not days:
        return StreakSnapshot(current_streak=0, longest_streak=0, last_active_day=None)

    newest = days[0]

    # Active only if the newest day is today or yesterday
    current = 0
    if newest in (today, previous_day_key(today)):
        current = 1
        expected = previous_day_key(newest)
        for day in days[1:]:
            if day != expected:
                break
            current += 1
            expected = previous_day_key(day)

    longest = 1
    run = 1
    for newer, older in zip(days, days[1:]):
        if days_between(newer, older) == 1:
            run += 1
        else:
            longest = max(longest, run)
            run = 1
    longest = max(longest, run)

    return StreakSnapshot(
        current_streak=current,
        longest_streak=longest,
        last_active_day=newest,
    )


def filter_entries_by_range(
    entries: Iterable[LedgerEntry],
    history_range: HistoryRange,
    today: str,
) -> list[LedgerEntry]:
    """Keep entries whose day falls after the range cutoff.

    ``week`` keeps the last 7 days, ``month`` 30, ``year`` 365; ``all``
    keeps everything.
    """
    entries = list(entries)
    if history_range == "all":
        return entries
    if history_range not in _RANGE_DAYS:
        raise ValueError(f"Unknown history range '{history_range}'")
    cutoff = shift_day_key(today, -_RANGE_DAYS[history_range])
    return [e for e in entries if e.day_key > cutoff]


def dashboard_stats(entries: Iterable[LedgerEntry], today: str) -> DashboardStats:
    """Aggregate totals, streaks, top tags and mood trend for one owner."""
    entries = list(entries)
    snapshot = calculate_streak(entries, today)

    tag_counts = Counter(e.tag for e in entries if e.tag)
    # Counter.most_common keeps first-seen order for ties
    top_tags = [TagCount(tag=tag, count=count) for tag, count in tag_counts.most_common(TOP_TAGS_COUNT)]

    mood_counts = Counter(e.mood for e in entries if e.mood)
    mood_trend = sorted(
        (MoodCount(mood=mood, count=mood_counts[mood]) for mood in MOODS if mood_counts[mood] > 0),
        key=lambda m: m.count,
        reverse=True,
    )

    return DashboardStats(
        total_entries=len(entries),
        current_streak=snapshot.current_streak,
        longest_streak=snapshot.longest_streak,
        top_tags=top_tags,
        mood_trend=mood_trend,
    )
