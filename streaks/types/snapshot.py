"""Per-goal progress state."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum
from typing import Any


class DayState(str, Enum):
    """What today currently counts as."""

    NOT_LEARNED = "not_learned"
    LEARNED = "learned"
    FREEZED = "freezed"


@dataclass
class ProgressSnapshot:
    """Mutable progress for one goal identity."""

    learned_dates: set[date] = field(default_factory=set)
    freezed_dates: set[date] = field(default_factory=set)
    streak_days: int = 0
    freezes_used: int = 0
    last_logged_at: datetime | None = None

    def copy(self) -> ProgressSnapshot:
        return ProgressSnapshot(
            learned_dates=set(self.learned_dates),
            freezed_dates=set(self.freezed_dates),
            streak_days=self.streak_days,
            freezes_used=self.freezes_used,
            last_logged_at=self.last_logged_at,
        )

    def day_state(self, day: date) -> DayState:
        if day in self.learned_dates:
            return DayState.LEARNED
        if day in self.freezed_dates:
            return DayState.FREEZED
        return DayState.NOT_LEARNED

    def to_dict(self) -> dict[str, Any]:
        return {
            "learned_dates": sorted(d.isoformat() for d in self.learned_dates),
            "freezed_dates": sorted(d.isoformat() for d in self.freezed_dates),
            "streak_days": self.streak_days,
            "freezes_used": self.freezes_used,
            "last_logged_at": self.last_logged_at.isoformat() if self.last_logged_at else None,
        }
