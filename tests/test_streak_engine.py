"""Streak engine transition tests."""

from __future__ import annotations

import random
from datetime import UTC, date, datetime
from pathlib import Path
from typing import Any

from core.activity_logger import ActivityLogger
from core.clock import FixedClock
from core.event_bus import FREEZE_REJECTED, SNAPSHOT_CHANGED, EventBus
from storage.goal_repository import GoalRepository
from storage.progress_store import ProgressKeys, ProgressStore
from storage.stores.kv_store import KeyValueStore
from streaks.engine import StreakEngine, compute_streak
from streaks.types.goal import Goal
from streaks.types.snapshot import DayState

DAY1 = datetime(2026, 3, 2, 9, 0, tzinfo=UTC)


def build_engine(
    tmp_path: Path,
    topic: str = "Swift",
    duration: str = "Week",
    clock: FixedClock | None = None,
    event_bus: EventBus | None = None,
) -> StreakEngine:
    kv = KeyValueStore(tmp_path / "streaks.db")
    kv.create_all()
    clock = clock or FixedClock(DAY1)
    engine = StreakEngine(
        topic=topic,
        duration=duration,
        progress_store=ProgressStore(kv),
        clock=clock,
        goal_repository=GoalRepository(kv, clock=clock),
        event_bus=event_bus,
    )
    engine.on_appear()
    return engine


def days(*numbers: int) -> set[date]:
    return {date(2026, 3, n) for n in numbers}


def test_compute_streak_counts_trailing_run() -> None:
    assert compute_streak([]) == 0
    assert compute_streak(days(1, 2, 3, 5)) == 1
    assert compute_streak(days(1, 2, 3, 4, 5)) == 5
    assert compute_streak(days(1, 3, 4)) == 2


def test_streak_is_not_anchored_to_today(tmp_path: Path) -> None:
    clock = FixedClock(DAY1)
    engine = build_engine(tmp_path, clock=clock)
    engine.mark_as_learned()
    clock.advance(days=1)
    engine.mark_as_learned()

    clock.advance(hours=12)
    assert engine.recompute_streak() == 2
    assert engine.day_state is DayState.LEARNED

    clock.advance(days=1)
    assert engine.day_state is DayState.NOT_LEARNED
    assert engine.recompute_streak() == 2


def test_mark_as_learned_consecutive_days(tmp_path: Path) -> None:
    clock = FixedClock(DAY1)
    engine = build_engine(tmp_path, clock=clock)
    for _ in range(4):
        engine.mark_as_learned()
        clock.advance(days=1)

    assert engine.streak_days == 4
    assert engine.learned_dates == frozenset(days(2, 3, 4, 5))


def test_mark_twice_same_day_only_refreshes_last_logged(tmp_path: Path) -> None:
    clock = FixedClock(DAY1)
    engine = build_engine(tmp_path, clock=clock)
    engine.mark_as_learned()
    clock.advance(hours=3)
    snapshot = engine.mark_as_learned()

    assert snapshot.learned_dates == days(2)
    assert snapshot.streak_days == 1
    assert snapshot.last_logged_at == clock.now()


def test_mark_on_freezed_day_refunds_freeze(tmp_path: Path) -> None:
    engine = build_engine(tmp_path)
    engine.toggle_freeze()
    assert engine.freezes_used == 1
    assert engine.day_state is DayState.FREEZED

    snapshot = engine.mark_as_learned()

    assert snapshot.freezes_used == 0
    assert snapshot.freezed_dates == set()
    assert snapshot.learned_dates == days(2)
    assert engine.day_state is DayState.LEARNED


def test_mark_then_unmark_on_freezed_day_does_not_restore_freeze(tmp_path: Path) -> None:
    engine = build_engine(tmp_path)
    engine.toggle_freeze()
    engine.mark_as_learned()
    snapshot = engine.unmark_learned()

    assert snapshot.learned_dates == set()
    assert snapshot.freezed_dates == set()
    assert snapshot.freezes_used == 0
    assert engine.day_state is DayState.NOT_LEARNED


def test_unmark_without_learned_day_is_noop(tmp_path: Path) -> None:
    bus = EventBus()
    events: list[dict[str, Any]] = []
    bus.subscribe(SNAPSHOT_CHANGED, events.append)
    engine = build_engine(tmp_path, event_bus=bus)

    snapshot = engine.unmark_learned()

    assert snapshot.learned_dates == set()
    assert events == []


def test_freeze_on_learned_day_consumes_credit(tmp_path: Path) -> None:
    clock = FixedClock(DAY1)
    engine = build_engine(tmp_path, clock=clock)
    engine.mark_as_learned()
    clock.advance(days=1)
    engine.mark_as_learned()
    assert engine.streak_days == 2

    snapshot = engine.toggle_freeze()

    assert snapshot.learned_dates == days(2)
    assert snapshot.freezed_dates == days(3)
    assert snapshot.freezes_used == 1
    assert snapshot.streak_days == 1

    snapshot = engine.unfreeze_day()
    assert snapshot.freezes_used == 0
    assert snapshot.learned_dates == days(2)
    assert engine.day_state is DayState.NOT_LEARNED


def test_freeze_twice_same_day_is_noop(tmp_path: Path) -> None:
    engine = build_engine(tmp_path)
    engine.toggle_freeze()
    snapshot = engine.toggle_freeze()

    assert snapshot.freezes_used == 1
    assert engine.day_state is DayState.FREEZED


def test_freeze_rejected_at_quota(tmp_path: Path) -> None:
    bus = EventBus()
    rejected: list[dict[str, Any]] = []
    bus.subscribe(FREEZE_REJECTED, rejected.append)
    clock = FixedClock(DAY1)
    engine = build_engine(tmp_path, clock=clock, event_bus=bus)

    engine.toggle_freeze()
    clock.advance(days=1)
    engine.toggle_freeze()
    clock.advance(days=1)
    assert engine.freeze_disabled_reason is not None

    snapshot = engine.toggle_freeze()

    assert snapshot.freezes_used == 2
    assert snapshot.freezed_dates == days(2, 3)
    assert engine.day_state is DayState.NOT_LEARNED
    assert len(rejected) == 1


def test_unfreeze_never_goes_negative(tmp_path: Path) -> None:
    engine = build_engine(tmp_path)
    snapshot = engine.unfreeze_day()
    assert snapshot.freezes_used == 0


def test_handle_day_tap_cycles_states(tmp_path: Path) -> None:
    engine = build_engine(tmp_path)

    engine.handle_day_tap()
    assert engine.day_state is DayState.LEARNED
    engine.handle_day_tap()
    assert engine.day_state is DayState.NOT_LEARNED

    engine.toggle_freeze()
    engine.handle_day_tap()
    assert engine.day_state is DayState.NOT_LEARNED
    assert engine.freezes_used == 0


def test_goal_completed_counts_learned_and_freezed(tmp_path: Path) -> None:
    clock = FixedClock(DAY1)
    engine = build_engine(tmp_path, clock=clock)
    engine.toggle_freeze()
    clock.advance(days=1)
    engine.toggle_freeze()
    for _ in range(5):
        clock.advance(days=1)
        assert not engine.is_goal_completed
        engine.mark_as_learned()

    assert len(engine.learned_dates) == 5
    assert len(engine.freezed_dates) == 2
    assert engine.is_goal_completed


def test_unknown_duration_uses_week_parameters(tmp_path: Path) -> None:
    engine = build_engine(tmp_path, duration="Fortnight")
    assert engine.total_days == 7
    assert engine.max_freezes == 2


def test_progress_survives_reload(tmp_path: Path) -> None:
    clock = FixedClock(DAY1)
    engine = build_engine(tmp_path, clock=clock)
    engine.mark_as_learned()
    clock.advance(days=1)
    engine.toggle_freeze()

    reloaded = build_engine(tmp_path, clock=clock)

    assert reloaded.learned_dates == frozenset(days(2))
    assert reloaded.freezed_dates == frozenset(days(3))
    assert reloaded.freezes_used == 1
    assert reloaded.streak_days == 1
    assert reloaded.day_state is DayState.FREEZED


def test_topics_differing_by_case_and_whitespace_share_progress(tmp_path: Path) -> None:
    clock = FixedClock(DAY1)
    first = build_engine(tmp_path, topic="Swift ", clock=clock)
    first.mark_as_learned()

    second = build_engine(tmp_path, topic="swift", clock=clock)

    assert first.keys == second.keys
    assert second.learned_dates == frozenset(days(2))


def test_restart_same_goal_archives_and_resets(tmp_path: Path) -> None:
    clock = FixedClock(DAY1)
    engine = build_engine(tmp_path, clock=clock)
    for _ in range(3):
        engine.mark_as_learned()
        clock.advance(days=1)
    engine.toggle_freeze()

    snapshot = engine.restart_same_goal()

    assert snapshot.learned_dates == set()
    assert snapshot.freezed_dates == set()
    assert snapshot.streak_days == 0
    assert snapshot.freezes_used == 0
    assert snapshot.last_logged_at is None

    repo = engine.goal_repository
    assert repo is not None
    current = repo.load_current_goal()
    assert current is not None
    assert current.start_date == clock.now()
    assert current.streak_days == 0

    archived = repo.load_finished_goals()
    assert len(archived) == 1
    assert archived[0].streak_days == 3
    assert archived[0].freezes_used == 1
    assert archived[0].is_finished(clock.now())

    stored = engine.progress_store.load_snapshot(ProgressKeys.for_goal("Swift", "Week"))
    assert stored.learned_dates == set()
    assert stored.last_logged_at is None


def test_transitions_emit_snapshot_changed(tmp_path: Path) -> None:
    bus = EventBus()
    events: list[dict[str, Any]] = []
    bus.subscribe(SNAPSHOT_CHANGED, events.append)
    engine = build_engine(tmp_path, event_bus=bus)

    engine.mark_as_learned()
    engine.unmark_learned()
    engine.toggle_freeze()

    assert [event["action"] for event in events] == ["mark_learned", "unmark_learned", "freeze"]
    assert events[-1]["freezes_used"] == 1
    assert events[-1]["day_state"] == "freezed"


def test_activity_log_records_transitions(tmp_path: Path) -> None:
    clock = FixedClock(DAY1)
    kv = KeyValueStore(tmp_path / "streaks.db")
    kv.create_all()
    activity = ActivityLogger(tmp_path / "logs" / "activity.jsonl")
    engine = StreakEngine.for_goal(
        Goal(topic="Rust", duration="Month", start_date=DAY1),
        progress_store=ProgressStore(kv),
        clock=clock,
        activity_logger=activity,
    )
    engine.mark_as_learned()

    events = activity.tail()
    assert len(events) == 1
    assert events[0]["action"] == "mark_learned"
    assert events[0]["identity"] == "rust_month"
    assert events[0]["state"]["streak_days"] == 1


def test_random_walk_keeps_invariants(tmp_path: Path) -> None:
    rng = random.Random(7)
    clock = FixedClock(DAY1)
    engine = build_engine(tmp_path, duration="Month", clock=clock)
    actions = [
        engine.mark_as_learned,
        engine.unmark_learned,
        engine.toggle_freeze,
        engine.unfreeze_day,
        engine.handle_day_tap,
        engine.check_expiration,
    ]

    for _ in range(300):
        rng.choice(actions)()
        if rng.random() < 0.3:
            clock.advance(hours=rng.choice([6, 24, 40, 80]))

        snap = engine.snapshot
        assert not snap.learned_dates & snap.freezed_dates
        assert 0 <= snap.freezes_used <= engine.max_freezes
        assert snap.streak_days >= 0
