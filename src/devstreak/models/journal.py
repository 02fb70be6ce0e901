"""Pydantic models for audit journal events."""

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, Field

JournalEventType = Literal[
    "ENTRY_CREATED",
    "ENTRY_EDITED",
    "ENTRY_DELETED",
    "SYNC_FETCHED",
    "SYNC_FETCH_FAILED",
    "SYNC_DAY_CREATED",
    "SYNC_DAY_MERGED",
    "SYNC_DAY_FAILED",
    "DAY_CLOSED",
    "DAILY_SYNC_RAN",
]


class JournalEvent(BaseModel):
    """Append-only audit record.

    Written as JSONL to <state>/journal.jsonl.
    Never mutate or delete; only append.
    """

    event_id: str = Field(description="Unique event identifier (uuid4)")
    run_id: str = Field(description="Run/session identifier (uuid4)")
    ts: datetime = Field(description="Event timestamp (ISO8601 UTC)")
    event_type: JournalEventType = Field(description="Event type")
    owner_id: str | None = Field(default=None, description="Owner the event concerns")
    payload: dict = Field(default_factory=dict, description="Event-specific data")

    model_config = {"frozen": True}
