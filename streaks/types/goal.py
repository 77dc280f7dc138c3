"""Learning goal model and duration parameters."""

from __future__ import annotations

from datetime import datetime, timedelta
from enum import Enum

from pydantic import BaseModel, Field, field_validator

DEFAULT_TOPIC = "Swift"


class Duration(str, Enum):
    """Supported goal lengths."""

    WEEK = "Week"
    MONTH = "Month"
    YEAR = "Year"


_TOTAL_DAYS = {Duration.WEEK.value: 7, Duration.MONTH.value: 30, Duration.YEAR.value: 365}
_MAX_FREEZES = {Duration.WEEK.value: 2, Duration.MONTH.value: 8, Duration.YEAR.value: 96}


def total_days(duration: str) -> int:
    """Days in a goal; unknown durations count as a week."""
    return _TOTAL_DAYS.get(duration, 7)


def max_freezes(duration: str) -> int:
    """Freeze quota for a goal; unknown durations get the weekly quota."""
    return _MAX_FREEZES.get(duration, 2)


class Goal(BaseModel):
    """A (topic, duration) learning commitment.

    The streak fields are only filled in when the goal is archived; live
    progress is kept per identity in the progress store.
    """

    topic: str = DEFAULT_TOPIC
    duration: str = Duration.WEEK.value
    start_date: datetime
    streak_days: int = Field(default=0, ge=0)
    freezes_used: int = Field(default=0, ge=0)
    last_logged_at: datetime | None = None

    @field_validator("topic", mode="before")
    @classmethod
    def _default_blank_topic(cls, value: object) -> object:
        if value is None or (isinstance(value, str) and not value.strip()):
            return DEFAULT_TOPIC
        return value

    @field_validator("start_date", "last_logged_at")
    @classmethod
    def _assume_local_zone(cls, value: datetime | None) -> datetime | None:
        # Offset-less values were written in local time.
        if value is not None and value.tzinfo is None:
            return value.astimezone()
        return value

    @property
    def total_days(self) -> int:
        return total_days(self.duration)

    @property
    def max_freezes(self) -> int:
        return max_freezes(self.duration)

    @property
    def end_date(self) -> datetime:
        return self.start_date + timedelta(days=self.total_days)

    def is_finished(self, now: datetime) -> bool:
        return now >= self.end_date
