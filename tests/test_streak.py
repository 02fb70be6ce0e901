"""Tests for streak computation and dashboard statistics."""

import itertools

import pytest

from devstreak.daykey import MalformedDayKeyError
from devstreak.streak import calculate_streak, dashboard_stats, filter_entries_by_range


def test_three_consecutive_days_ending_today():
    snapshot = calculate_streak(["2024-01-01", "2024-01-02", "2024-01-03"], "2024-01-03")
    assert snapshot.current_streak == 3
    assert snapshot.longest_streak == 3
    assert snapshot.last_active_day == "2024-01-03"


def test_gap_resets_current_but_not_longest():
    snapshot = calculate_streak(["2024-01-01", "2024-01-02", "2024-01-05"], "2024-01-05")
    assert snapshot.current_streak == 1
    assert snapshot.longest_streak == 2


def test_no_entries():
    snapshot = calculate_streak([], "2024-01-05")
    assert snapshot.current_streak == 0
    assert snapshot.longest_streak == 0
    assert snapshot.last_active_day is None


def test_lapsed_streak():
    snapshot = calculate_streak(["2024-01-01"], "2024-01-05")
    assert snapshot.current_streak == 0
    assert snapshot.longest_streak == 1
    assert snapshot.last_active_day == "2024-01-01"


def test_streak_still_active_when_last_entry_was_yesterday():
    snapshot = calculate_streak(["2024-01-03", "2024-01-04"], "2024-01-05")
    assert snapshot.current_streak == 2


def test_multiple_entries_same_day_count_once(make_entry):
    entries = [
        make_entry("2024-01-04", note="morning"),
        make_entry("2024-01-04", note="evening"),
        make_entry("2024-01-05"),
    ]
    snapshot = calculate_streak(entries, "2024-01-05")
    assert snapshot.current_streak == 2
    assert snapshot.longest_streak == 2


def test_streak_across_year_and_leap_day():
    days = ["2023-12-30", "2023-12-31", "2024-01-01"]
    assert calculate_streak(days, "2024-01-01").current_streak == 3
    days = ["2024-02-28", "2024-02-29", "2024-03-01"]
    assert calculate_streak(days, "2024-03-01").longest_streak == 3


def test_unordered_input():
    snapshot = calculate_streak(["2024-01-03", "2024-01-01", "2024-01-02"], "2024-01-03")
    assert snapshot.current_streak == 3


def test_longest_at_least_current_for_all_subsets():
    pool = ["2024-01-01", "2024-01-02", "2024-01-04", "2024-01-05", "2024-01-06", "2024-01-08"]
    for size in range(len(pool) + 1):
        for subset in itertools.combinations(pool, size):
            for today in ("2024-01-06", "2024-01-08", "2024-01-09"):
                snapshot = calculate_streak(subset, today)
                assert snapshot.longest_streak >= snapshot.current_streak


def test_malformed_day_key_raises():
    with pytest.raises(MalformedDayKeyError):
        calculate_streak(["2024-01-01", "2024-02-31"], "2024-03-01")
    with pytest.raises(MalformedDayKeyError):
        calculate_streak(["2024-01-01"], "today")


def test_filter_entries_by_range(make_entry):
    entries = [
        make_entry("2024-01-05"),
        make_entry("2023-12-30"),
        make_entry("2023-12-29"),
        make_entry("2023-12-01"),
        make_entry("2023-01-01"),
    ]
    week = filter_entries_by_range(entries, "week", "2024-01-05")
    assert [e.day_key for e in week] == ["2024-01-05", "2023-12-30"]

    month = filter_entries_by_range(entries, "month", "2024-01-05")
    assert len(month) == 3

    assert len(filter_entries_by_range(entries, "year", "2024-01-05")) == 4
    assert len(filter_entries_by_range(entries, "all", "2024-01-05")) == 5


def test_filter_entries_by_unknown_range(make_entry):
    with pytest.raises(ValueError, match="Unknown history range"):
        filter_entries_by_range([make_entry("2024-01-05")], "decade", "2024-01-05")


def test_dashboard_stats(make_entry):
    entries = [
        make_entry("2024-01-05", tag="python", mood="😄"),
        make_entry("2024-01-04", tag="python", mood="😊"),
        make_entry("2024-01-04", tag="rust", mood="😄"),
        make_entry("2024-01-02", tag="github-sync", mood="😄"),
        make_entry("2024-01-01"),
    ]
    stats = dashboard_stats(entries, "2024-01-05")

    assert stats.total_entries == 5
    assert stats.current_streak == 2
    assert stats.longest_streak == 2
    assert stats.top_tags[0].tag == "python"
    assert stats.top_tags[0].count == 2
    assert {t.tag for t in stats.top_tags} == {"python", "rust", "github-sync"}
    assert [(m.mood, m.count) for m in stats.mood_trend] == [("😄", 3), ("😊", 1)]


def test_dashboard_stats_caps_top_tags(make_entry):
    entries = [make_entry("2024-01-05", tag=f"tag{i}") for i in range(8)]
    stats = dashboard_stats(entries, "2024-01-05")
    assert len(stats.top_tags) == 5
    assert stats.mood_trend == []
