"""Clock capabilities injected wherever "now" is needed."""

from __future__ import annotations

from datetime import date, datetime, timedelta
from typing import Protocol


class Clock(Protocol):
    """Anything that can report the current instant."""

    def now(self) -> datetime: ...


class SystemClock:
    """Wall clock in the host's local timezone."""

    def now(self) -> datetime:
        return datetime.now().astimezone()


class FixedClock:
    """Manually driven clock for deterministic runs and tests."""

    def __init__(self, instant: datetime) -> None:
        self._instant = instant

    def now(self) -> datetime:
        return self._instant

    def set(self, instant: datetime) -> None:
        self._instant = instant

    def advance(self, **delta: float) -> datetime:
        """Move forward by timedelta keywords, e.g. ``advance(days=1, hours=2)``."""
        self._instant = self._instant + timedelta(**delta)
        return self._instant


def local_day(instant: datetime) -> date:
    """Calendar day of an instant as seen in its own (local) offset."""
    return instant.date()
