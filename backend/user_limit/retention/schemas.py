"""Pydantic schemas for retention settings and eviction results.

This module defines:
- ScheduleInterval: The fixed set of schedule intervals and their durations
- RetentionConfig: Retention count and schedule interval with defaults
- RetentionConfigUpdate: Partial update payload for the admin API
- EvictionResult: Outcome of one eviction run
- EvictionPreview: Dry-run summary of what a run would delete
- ScheduleStatus / ScheduleChoice: Scheduler state for the admin API
"""

from datetime import datetime
from enum import Enum
from typing import List, Optional, Union

from pydantic import BaseModel, Field, StrictInt, StrictStr


class ScheduleInterval(str, Enum):
    """Supported eviction schedules.

    Values are the tokens stored in the options table and accepted by the
    admin API.
    """
    EVERY_15_MIN = "every_15_min"
    HOURLY = "hourly"
    DAILY = "daily"
    WEEKLY = "weekly"

    @property
    def seconds(self) -> int:
        """Interval length in seconds."""
        return INTERVAL_SECONDS[self]

    @property
    def label(self) -> str:
        """Human readable name shown in schedule choices."""
        return INTERVAL_LABELS[self]

    @classmethod
    def parse(cls, value) -> "ScheduleInterval":
        """Resolve an enum member or token (case-insensitive).

        Raises:
            ValueError: If value is not a known interval
        """
        if isinstance(value, cls):
            return value
        if not isinstance(value, str):
            raise ValueError(f"Schedule interval must be a string, got {type(value).__name__}")
        return cls(value.strip().lower())


INTERVAL_SECONDS = {
    ScheduleInterval.EVERY_15_MIN: 15 * 60,
    ScheduleInterval.HOURLY: 60 * 60,
    ScheduleInterval.DAILY: 24 * 60 * 60,
    ScheduleInterval.WEEKLY: 7 * 24 * 60 * 60,
}

INTERVAL_LABELS = {
    ScheduleInterval.EVERY_15_MIN: "Every 15 Minutes",
    ScheduleInterval.HOURLY: "Hourly",
    ScheduleInterval.DAILY: "Daily",
    ScheduleInterval.WEEKLY: "Weekly",
}

DEFAULT_KEEP_COUNT = 100
DEFAULT_SCHEDULE_INTERVAL = ScheduleInterval.HOURLY


class RetentionConfig(BaseModel):
    """Retention configuration.

    keep_count is the number of longest-registered users that survive an
    eviction run. schedule_interval is how often the run fires.
    """

    keep_count: int = Field(
        default=DEFAULT_KEEP_COUNT,
        ge=1,
        description="Number of users to keep (>= 1)"
    )

    schedule_interval: ScheduleInterval = Field(
        default=DEFAULT_SCHEDULE_INTERVAL,
        description="How often the eviction job runs"
    )


class RetentionConfigUpdate(BaseModel):
    """Schema for updating retention settings (partial updates allowed).

    All fields optional. Used for PATCH /retention/settings. Coercion,
    clamping and token validation happen in the config store so every
    writer gets the same rules.
    """

    keep_count: Optional[Union[StrictInt, StrictStr]] = Field(
        None,
        description="Integer or numeric string; values below 1 are clamped to 1, booleans are rejected"
    )

    schedule_interval: Optional[str] = Field(
        None,
        description="One of every_15_min, hourly, daily, weekly"
    )


class EvictionResult(BaseModel):
    """Outcome of one eviction run."""

    keep_count: int = Field(
        description="Retention count read at the start of the run"
    )

    retained_count: int = Field(
        default=0,
        ge=0,
        description="Number of user ids in the keep list"
    )

    deleted_count: int = Field(
        default=0,
        ge=0,
        description="Number of user rows deleted"
    )

    skipped: bool = Field(
        default=False,
        description="True when the keep list was empty and nothing was deleted"
    )

    is_anomaly: bool = Field(
        default=False,
        description="Deleted count exceeded the configured anomaly threshold"
    )

    started_at: datetime
    completed_at: datetime

    duration_seconds: float = Field(
        ge=0.0,
        description="Run duration in seconds"
    )


class EvictionPreview(BaseModel):
    """What an eviction run would do right now, without deleting."""

    keep_count: int
    total_users: int = Field(ge=0)
    users_to_retain: int = Field(ge=0)
    users_to_delete: int = Field(ge=0)

    oldest_deleted_registered_at: Optional[datetime] = Field(
        default=None,
        description="Registration time of the earliest user that would be deleted"
    )


class ScheduleChoice(BaseModel):
    """One selectable schedule interval."""

    value: ScheduleInterval
    label: str
    seconds: int


class ScheduleStatus(BaseModel):
    """Current state of the eviction job."""

    scheduled: bool
    interval: Optional[ScheduleInterval] = None
    next_fire_time: Optional[datetime] = None
    running: bool = False


def schedule_choices() -> List[ScheduleChoice]:
    """All supported intervals, shortest first."""
    return [
        ScheduleChoice(value=interval, label=interval.label, seconds=interval.seconds)
        for interval in ScheduleInterval
    ]
