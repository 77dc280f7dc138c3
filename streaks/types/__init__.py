"""Typed tracker models."""

from streaks.types.goal import DEFAULT_TOPIC, Duration, Goal, max_freezes, total_days
from streaks.types.snapshot import DayState, ProgressSnapshot

__all__ = [
    "DEFAULT_TOPIC",
    "DayState",
    "Duration",
    "Goal",
    "ProgressSnapshot",
    "max_freezes",
    "total_days",
]
