"""Pydantic models for ledger entries and embedded external events."""

from datetime import datetime
from enum import Enum
from typing import Literal

from pydantic import BaseModel, Field, field_validator

from ..daykey import validate_day_key

MoodType = Literal["😄", "😊", "😐", "😔", "😞"]

MOODS: tuple[str, ...] = ("😄", "😊", "😐", "😔", "😞")

GITHUB_SYNC_TAG = "github-sync"


class EntryOrigin(str, Enum):
    """Where a ledger entry came from."""

    MANUAL = "manual"
    EXTERNAL_SYNC = "external_sync"


class EffortUnit(str, Enum):
    """Unit of the optional effort duration on manual entries."""

    MINUTES = "minutes"
    HOURS = "hours"


class ExternalEvent(BaseModel):
    """A single externally-sourced activity item (one GitHub commit).

    Embedded inside a LedgerEntry; ``external_id`` is the dedup key across
    the owner's whole ledger.
    """

    external_id: str = Field(..., min_length=1, description="Source-system identity (commit sha)")
    summary: str = Field(default="", description="One-line description")
    source_container: str = Field(default="", description="Repository full name")
    permalink: str = Field(default="", description="URL back to the source system")
    occurred_at: datetime = Field(..., description="Timestamp of the original event")

    model_config = {"frozen": True}


class LedgerEntry(BaseModel):
    """One calendar-day activity record for a user.

    At most one entry per (owner_id, day_key) may have
    ``origin == EntryOrigin.EXTERNAL_SYNC``; manual entries are unconstrained.
    """

    id: str | None = Field(default=None, description="Store-assigned identifier")
    owner_id: str = Field(..., min_length=1, description="Owning user")
    day_key: str = Field(..., description="Calendar day (YYYY-MM-DD) in the canonical timezone")
    note_text: str = Field(default="", description="Manual note or synthesized event summary")
    origin: EntryOrigin = Field(default=EntryOrigin.MANUAL)
    external_events: list[ExternalEvent] = Field(default_factory=list)
    created_at: datetime
    updated_at: datetime

    # Manual-entry attributes
    title: str | None = None
    effort: float | None = Field(default=None, ge=0)
    effort_unit: EffortUnit | None = None
    difficulty: int | None = Field(default=None, ge=1, le=5)
    description: str | None = None
    mood: MoodType | None = None
    tag: str | None = None

    model_config = {"frozen": False}

    @field_validator("day_key")
    @classmethod
    def _check_day_key(cls, value: str) -> str:
        return validate_day_key(value)

    def external_ids(self) -> set[str]:
        return {event.external_id for event in self.external_events}


class EntryDraft(BaseModel):
    """User-supplied fields for creating or editing a manual entry."""

    note_text: str = Field(..., min_length=1)
    title: str | None = None
    effort: float | None = Field(default=None, ge=0)
    effort_unit: EffortUnit | None = None
    difficulty: int | None = Field(default=None, ge=1, le=5)
    description: str | None = None
    mood: MoodType | None = None
    tag: str | None = None
    day_key: str | None = Field(
        default=None,
        description="Override the entry day (defaults to today)",
    )

    @field_validator("note_text")
    @classmethod
    def _strip_note(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("note_text must not be blank")
        return value

    @field_validator("day_key")
    @classmethod
    def _check_day_key(cls, value: str | None) -> str | None:
        if value is None:
            return None
        return validate_day_key(value)
