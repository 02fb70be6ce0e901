"""Pydantic models for per-owner settings kept in the Settings Store."""

from datetime import datetime

from pydantic import BaseModel, Field, field_validator

from ..daykey import validate_day_key


def parse_sync_time(value: str) -> tuple[int, int]:
    """Parse an ``hh:mm`` wall-clock time.

    Raises:
        ValueError: If the value is not a valid 24h time
    """
    try:
        hour_str, minute_str = value.split(":")
        hour, minute = int(hour_str), int(minute_str)
    except (AttributeError, ValueError):
        raise ValueError(f"Invalid sync time '{value}'. Use hh:mm")
    if not (0 <= hour <= 23 and 0 <= minute <= 59):
        raise ValueError(f"Invalid sync time '{value}'. Use hh:mm")
    return hour, minute


class SyncSettings(BaseModel):
    """GitHub sync configuration for one owner."""

    enabled: bool = Field(default=False)
    auto_create_entries: bool = Field(default=True)
    last_sync_at: datetime | None = Field(default=None)
    daily_sync_enabled: bool = Field(default=False)
    daily_sync_time: str = Field(default="23:59", description="hh:mm local wall-clock time")
    last_daily_sync_day: str | None = Field(default=None)
    # Remote "sync now" flag pushed through the settings subscription
    sync_requested: bool = Field(default=False)

    model_config = {"frozen": False}

    @field_validator("daily_sync_time")
    @classmethod
    def _check_time(cls, value: str) -> str:
        parse_sync_time(value)
        return value

    @field_validator("last_daily_sync_day")
    @classmethod
    def _check_day(cls, value: str | None) -> str | None:
        return validate_day_key(value) if value is not None else None


class DayClosureRecord(BaseModel):
    """Most recent day the owner explicitly finalized ("Call it a Day")."""

    last_closed_day: str | None = Field(default=None)
    closed_at: datetime | None = Field(default=None)

    @field_validator("last_closed_day")
    @classmethod
    def _check_day(cls, value: str | None) -> str | None:
        return validate_day_key(value) if value is not None else None
