"""Read-only history across the current and archived goals."""

from __future__ import annotations

import calendar
from dataclasses import dataclass, field
from datetime import date, datetime

from storage.goal_repository import GoalRepository
from storage.progress_store import ProgressKeys, ProgressStore
from streaks.types.goal import Goal
from streaks.types.snapshot import DayState

WEEKDAY_HEADERS = ("SUN", "MON", "TUE", "WED", "THU", "FRI", "SAT")


@dataclass
class CalendarHistory:
    """Flattened learned and freezed days of every goal."""

    learned_dates: set[date] = field(default_factory=set)
    freezed_dates: set[date] = field(default_factory=set)

    def day_status(self, day: date) -> DayState:
        if day in self.learned_dates:
            return DayState.LEARNED
        if day in self.freezed_dates:
            return DayState.FREEZED
        return DayState.NOT_LEARNED


class CalendarAggregator:
    """Merges progress of all known goals for display. Never writes progress."""

    def __init__(self, goal_repository: GoalRepository, progress_store: ProgressStore) -> None:
        self.goal_repository = goal_repository
        self.progress_store = progress_store

    def load(self) -> CalendarHistory:
        history = CalendarHistory()
        # Loading the current goal may archive it; it then shows up below.
        current = self.goal_repository.load_current_goal()
        if current is not None:
            self._merge(history, current)
        for goal in self.goal_repository.load_finished_goals():
            self._merge(history, goal)
        return history

    def _merge(self, history: CalendarHistory, goal: Goal) -> None:
        keys = ProgressKeys.for_goal(goal.topic, goal.duration)
        history.learned_dates.update(self.progress_store.load_date_set(keys.learned))
        history.freezed_dates.update(self.progress_store.load_date_set(keys.freezed))


def recent_months(now: datetime, count: int = 12) -> list[tuple[int, int]]:
    """``(year, month)`` pairs for the last ``count`` months, oldest first."""
    year, month = now.year, now.month
    months: list[tuple[int, int]] = []
    for _ in range(count):
        months.append((year, month))
        month -= 1
        if month == 0:
            year, month = year - 1, 12
    months.reverse()
    return months


def month_grid(year: int, month: int) -> list[date | None]:
    """Days of a month padded with leading blanks so weeks start on Sunday."""
    first = date(year, month, 1)
    offset = (first.weekday() + 1) % 7
    _, length = calendar.monthrange(year, month)
    days: list[date | None] = [None] * offset
    days.extend(date(year, month, day) for day in range(1, length + 1))
    return days
