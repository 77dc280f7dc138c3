"""Streak/freeze state machine for the active goal.

Every operation works on "today" as reported by the injected clock, mutates the
in-memory snapshot, writes it through the progress store and announces the
change on the event bus. Operations return a copy of the resulting snapshot.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Iterable
from datetime import date, datetime, timedelta
from typing import Any

from core.activity_logger import ActivityLogger
from core.clock import Clock, local_day
from core.event_bus import FREEZE_REJECTED, GOAL_ARCHIVED, SNAPSHOT_CHANGED, EventBus
from storage.goal_repository import GoalRepository
from storage.progress_store import ProgressKeys, ProgressStore
from streaks.types.goal import Goal, max_freezes, total_days
from streaks.types.snapshot import DayState, ProgressSnapshot

logger = logging.getLogger("st.engine")

DEFAULT_GRACE_PERIOD_HOURS = 32


def compute_streak(days: Iterable[date]) -> int:
    """Length of the consecutive run ending at the latest day.

    The run is not anchored to today: a finished run from last month still
    counts until a newer day is added.
    """
    ordered = sorted(set(days))
    if not ordered:
        return 0
    count = 1
    for previous, current in zip(ordered, ordered[1:]):
        count = count + 1 if (current - previous).days == 1 else 1
    return count


class StreakEngine:
    """Owns and mutates the progress snapshot of one goal identity."""

    def __init__(
        self,
        topic: str,
        duration: str,
        progress_store: ProgressStore,
        clock: Clock,
        goal_repository: GoalRepository | None = None,
        event_bus: EventBus | None = None,
        activity_logger: ActivityLogger | None = None,
        grace_period_hours: float = DEFAULT_GRACE_PERIOD_HOURS,
    ) -> None:
        self.topic = topic
        self.duration = duration
        self.keys = ProgressKeys.for_goal(topic, duration)
        self.progress_store = progress_store
        self.clock = clock
        self.goal_repository = goal_repository
        self.event_bus = event_bus or EventBus()
        self.activity_logger = activity_logger
        self.grace_period = timedelta(hours=grace_period_hours)
        self.snapshot = ProgressSnapshot()
        self._lock = threading.RLock()

    @classmethod
    def for_goal(cls, goal: Goal, **kwargs: Any) -> StreakEngine:
        return cls(topic=goal.topic, duration=goal.duration, **kwargs)

    # Read-only view -----------------------------------------------------
    @property
    def today(self) -> date:
        return local_day(self.clock.now())

    @property
    def day_state(self) -> DayState:
        return self.snapshot.day_state(self.today)

    @property
    def streak_days(self) -> int:
        return self.snapshot.streak_days

    @property
    def freezes_used(self) -> int:
        return self.snapshot.freezes_used

    @property
    def max_freezes(self) -> int:
        return max_freezes(self.duration)

    @property
    def total_days(self) -> int:
        return total_days(self.duration)

    @property
    def learned_dates(self) -> frozenset[date]:
        return frozenset(self.snapshot.learned_dates)

    @property
    def freezed_dates(self) -> frozenset[date]:
        return frozenset(self.snapshot.freezed_dates)

    @property
    def last_logged_at(self) -> datetime | None:
        return self.snapshot.last_logged_at

    @property
    def is_goal_completed(self) -> bool:
        logged = len(self.snapshot.learned_dates) + len(self.snapshot.freezed_dates)
        return logged >= self.total_days

    @property
    def is_freeze_disabled(self) -> bool:
        return self.snapshot.freezes_used >= self.max_freezes

    @property
    def freeze_disabled_reason(self) -> str | None:
        """Why "freeze today" would be rejected right now, if it would be."""
        if self.today in self.snapshot.freezed_dates:
            return None
        if self.is_freeze_disabled:
            return f"All {self.max_freezes} freezes for this goal are used"
        return None

    def state(self) -> dict[str, Any]:
        payload = self.snapshot.to_dict()
        payload.update(
            {
                "identity": self.keys.identity,
                "topic": self.topic,
                "duration": self.duration,
                "today": self.today.isoformat(),
                "day_state": self.day_state.value,
                "max_freezes": self.max_freezes,
                "total_days": self.total_days,
                "is_goal_completed": self.is_goal_completed,
                "freeze_disabled_reason": self.freeze_disabled_reason,
            }
        )
        return payload

    # Lifecycle ------------------------------------------------------------
    def load(self) -> ProgressSnapshot:
        """Replace the in-memory snapshot with the persisted one."""
        with self._lock:
            self.snapshot = self.progress_store.load_snapshot(self.keys)
            self.snapshot.streak_days = compute_streak(self.snapshot.learned_dates)
            logger.debug("Loaded progress for %s", self.keys.identity)
            return self.snapshot.copy()

    def on_appear(self) -> ProgressSnapshot:
        self.load()
        return self.check_expiration()

    def on_tick(self) -> ProgressSnapshot:
        return self.check_expiration()

    # Transitions ------------------------------------------------------------
    def handle_day_tap(self) -> ProgressSnapshot:
        """Primary action: learn, unlearn or unfreeze depending on today's state."""
        with self._lock:
            state = self.day_state
            if state is DayState.LEARNED:
                return self.unmark_learned()
            if state is DayState.FREEZED:
                return self.unfreeze_day()
            return self.mark_as_learned()

    def mark_as_learned(self) -> ProgressSnapshot:
        with self._lock:
            now = self.clock.now()
            today = local_day(now)
            snap = self.snapshot

            if today in snap.learned_dates:
                snap.last_logged_at = now
                self._persist("relog")
                return snap.copy()

            snap.learned_dates.add(today)
            if today in snap.freezed_dates:
                # Learning overrides a same-day freeze and refunds it.
                snap.freezed_dates.discard(today)
                snap.freezes_used = max(0, snap.freezes_used - 1)

            snap.last_logged_at = now
            snap.streak_days = compute_streak(snap.learned_dates)
            self._persist("mark_learned")
            return snap.copy()

    def unmark_learned(self) -> ProgressSnapshot:
        with self._lock:
            snap = self.snapshot
            today = self.today
            if today not in snap.learned_dates:
                return snap.copy()

            snap.learned_dates.discard(today)
            snap.streak_days = compute_streak(snap.learned_dates)
            self._persist("unmark_learned")
            return snap.copy()

    def toggle_freeze(self) -> ProgressSnapshot:
        """Freeze today, consuming one credit. Rejected silently at quota."""
        with self._lock:
            now = self.clock.now()
            today = local_day(now)
            snap = self.snapshot

            if today in snap.freezed_dates:
                return snap.copy()

            if self.is_freeze_disabled:
                logger.info(
                    "Freeze rejected for %s: %d/%d used",
                    self.keys.identity,
                    snap.freezes_used,
                    self.max_freezes,
                )
                self._record("freeze", "rejected")
                self.event_bus.emit(
                    FREEZE_REJECTED,
                    {"identity": self.keys.identity, "reason": self.freeze_disabled_reason},
                )
                return snap.copy()

            if today in snap.learned_dates:
                # No refund path: the freeze credit is spent regardless.
                snap.learned_dates.discard(today)
                snap.streak_days = compute_streak(snap.learned_dates)

            snap.freezed_dates.add(today)
            snap.freezes_used += 1
            snap.last_logged_at = now
            self._persist("freeze")
            return snap.copy()

    def unfreeze_day(self) -> ProgressSnapshot:
        with self._lock:
            snap = self.snapshot
            today = self.today
            if today in snap.freezed_dates:
                snap.freezed_dates.discard(today)
                snap.freezes_used = max(0, snap.freezes_used - 1)

            snap.streak_days = compute_streak(snap.learned_dates)
            self._persist("unfreeze")
            return snap.copy()

    def recompute_streak(self) -> int:
        with self._lock:
            self.snapshot.streak_days = compute_streak(self.snapshot.learned_dates)
            return self.snapshot.streak_days

    def check_expiration(self) -> ProgressSnapshot:
        """Cover days missed since the last log with freezes, or reset the streak.

        Only days strictly between the last logged day and today are examined,
        and nothing happens within the grace period after the last log. The
        first missed day that no freeze can cover zeroes the streak and ends
        the walk.
        """
        with self._lock:
            snap = self.snapshot
            last = snap.last_logged_at
            if last is None:
                return snap.copy()

            now = self.clock.now()
            if now - last <= self.grace_period:
                return snap.copy()

            last_day = local_day(last)
            today = local_day(now)
            days_missed = (today - last_day).days
            if days_missed <= 0:
                return snap.copy()

            remaining = max(0, self.max_freezes - snap.freezes_used)
            changed = False
            reset = False
            for offset in range(1, days_missed):
                missed = last_day + timedelta(days=offset)
                if missed in snap.learned_dates or missed in snap.freezed_dates:
                    continue
                if remaining > 0:
                    snap.freezed_dates.add(missed)
                    snap.freezes_used += 1
                    remaining -= 1
                    changed = True
                    logger.info("Auto-froze %s for %s", missed.isoformat(), self.keys.identity)
                else:
                    snap.streak_days = 0
                    changed = True
                    reset = True
                    logger.info("Streak reset for %s: %s missed", self.keys.identity, missed.isoformat())
                    break

            if changed:
                if not reset:
                    snap.streak_days = compute_streak(snap.learned_dates)
                self._persist("expiration_reset" if reset else "expiration_freeze")
            return snap.copy()

    def restart_same_goal(self) -> ProgressSnapshot:
        """Archive the current run and start the same goal over from now."""
        if self.goal_repository is None:
            raise RuntimeError("restart_same_goal needs a goal repository")
        with self._lock:
            now = self.clock.now()
            snap = self.snapshot
            # Backdated so the archived record reads as finished.
            finished = Goal(
                topic=self.topic,
                duration=self.duration,
                start_date=now - timedelta(days=self.total_days),
                streak_days=snap.streak_days,
                freezes_used=snap.freezes_used,
                last_logged_at=snap.last_logged_at,
            )
            self.goal_repository.archive_and_clear(finished)
            self.progress_store.clear(self.keys)
            self.goal_repository.save_current_goal(
                Goal(topic=self.topic, duration=self.duration, start_date=now)
            )
            self.event_bus.emit(
                GOAL_ARCHIVED,
                {"identity": self.keys.identity, "goal": finished.model_dump(mode="json")},
            )

            self.snapshot = ProgressSnapshot()
            self._persist("restart")
            return self.snapshot.copy()

    # Internal helpers -------------------------------------------------
    def _persist(self, action: str) -> None:
        self.progress_store.save_snapshot(self.keys, self.snapshot)
        payload = self.state()
        self._record(action, "applied", payload)
        self.event_bus.emit(SNAPSHOT_CHANGED, {"action": action, **payload})

    def _record(self, action: str, outcome: str, state: dict[str, Any] | None = None) -> None:
        if self.activity_logger is None:
            return
        self.activity_logger.log(
            action=action,
            identity=self.keys.identity,
            outcome=outcome,
            state=state,
        )
