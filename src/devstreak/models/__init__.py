"""Pydantic models for devstreak."""

from .entry import (
    GITHUB_SYNC_TAG,
    MOODS,
    EffortUnit,
    EntryDraft,
    EntryOrigin,
    ExternalEvent,
    LedgerEntry,
    MoodType,
)
from .journal import JournalEvent, JournalEventType
from .result import NOT_AUTHENTICATED, OperationResult
from .settings import DayClosureRecord, SyncSettings, parse_sync_time
from .streak import DashboardStats, MoodCount, StreakSnapshot, TagCount

__all__ = [
    # Entries
    "EntryOrigin",
    "EffortUnit",
    "MoodType",
    "MOODS",
    "GITHUB_SYNC_TAG",
    "ExternalEvent",
    "LedgerEntry",
    "EntryDraft",
    # Derived
    "StreakSnapshot",
    "DashboardStats",
    "TagCount",
    "MoodCount",
    # Settings
    "SyncSettings",
    "DayClosureRecord",
    "parse_sync_time",
    # Results and journal
    "OperationResult",
    "NOT_AUTHENTICATED",
    "JournalEvent",
    "JournalEventType",
]
