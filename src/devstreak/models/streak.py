"""Pydantic models for derived streak statistics."""

from pydantic import BaseModel, Field


class StreakSnapshot(BaseModel):
    """Derived continuity statistics; recomputed on demand, never persisted."""

    current_streak: int = Field(default=0, ge=0)
    longest_streak: int = Field(default=0, ge=0)
    last_active_day: str | None = Field(default=None, description="Newest day key with an entry")

    model_config = {"frozen": True}


class TagCount(BaseModel):
    tag: str
    count: int


class MoodCount(BaseModel):
    mood: str
    count: int


class DashboardStats(BaseModel):
    """Aggregate view of an owner's ledger."""

    total_entries: int = 0
    current_streak: int = 0
    longest_streak: int = 0
    top_tags: list[TagCount] = Field(default_factory=list)
    mood_trend: list[MoodCount] = Field(default_factory=list)
