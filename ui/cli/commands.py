"""Typer command handlers."""

from __future__ import annotations

import json
import threading
from datetime import date
from pathlib import Path

import typer

from core.event_bus import FREEZE_REJECTED, SNAPSHOT_CHANGED
from core.orchestrator import Orchestrator, RuntimeBundle
from core.ticker import Ticker
from storage.progress_store import ProgressKeys
from streaks.calendar import WEEKDAY_HEADERS, month_grid, recent_months
from streaks.engine import StreakEngine
from streaks.types.snapshot import DayState

_DAY_MARKS = {
    DayState.LEARNED: "L",
    DayState.FREEZED: "F",
    DayState.NOT_LEARNED: ".",
}


def _runtime(root: Path | None = None) -> RuntimeBundle:
    return Orchestrator(root=root).build()


def _engine(bundle: RuntimeBundle) -> StreakEngine:
    engine = bundle.engine_for_current_goal()
    if engine is None:
        typer.echo("No active goal. Start one with: streak start <topic> --duration Week")
        raise typer.Exit(code=1)
    return engine


def _print_status(engine: StreakEngine) -> None:
    typer.echo(f"Goal: {engine.topic} ({engine.duration})")
    typer.echo(f"Today: {engine.day_state.value}")
    typer.echo(f"Streak: {engine.streak_days} day(s)")
    typer.echo(f"{engine.freezes_used} out of {engine.max_freezes} Freezes used")
    reason = engine.freeze_disabled_reason
    if reason:
        typer.echo(f"Freeze unavailable: {reason}")
    if engine.is_goal_completed:
        typer.echo("Goal completed! Run `streak restart` or set a new goal with `streak update`.")


def start(topic: str, duration: str) -> None:
    """Start a new goal, replacing any current one."""
    bundle = _runtime()
    goal = bundle.setup.start_learning(topic, duration)
    typer.echo(f"Started: {goal.topic} for a {goal.duration} ({goal.total_days} days)")


def update(topic: str, duration: str) -> None:
    """Replace the current goal if the edit differs from it."""
    bundle = _runtime()
    if not bundle.setup.has_changes(topic, duration):
        typer.echo("Nothing to update.")
        return
    goal = bundle.setup.update_goal(topic, duration)
    typer.echo(f"Updated goal: {goal.topic} ({goal.duration}). Your streak starts over.")


def status(as_json: bool = False) -> None:
    bundle = _runtime()
    engine = _engine(bundle)
    if as_json:
        typer.echo(json.dumps(engine.state(), indent=2))
        return
    _print_status(engine)


def apply_action(action: str) -> None:
    """Run one engine transition against today and print the result."""
    bundle = _runtime()
    engine = _engine(bundle)
    bundle.event_bus.subscribe(
        FREEZE_REJECTED, lambda payload: typer.echo(f"Freeze rejected: {payload.get('reason')}")
    )
    handlers = {
        "tap": engine.handle_day_tap,
        "learn": engine.mark_as_learned,
        "unlearn": engine.unmark_learned,
        "freeze": engine.toggle_freeze,
        "unfreeze": engine.unfreeze_day,
    }
    handlers[action]()
    _print_status(engine)


def restart(force: bool = False) -> None:
    bundle = _runtime()
    engine = _engine(bundle)
    if not engine.is_goal_completed and not force:
        typer.echo("Goal is not completed yet. Use --force to restart anyway.")
        raise typer.Exit(code=1)
    engine.restart_same_goal()
    typer.echo(f"Restarted {engine.topic} ({engine.duration}) from today.")


def calendar(months: int = 3) -> None:
    """Render recent months with learned (L) and freezed (F) days."""
    bundle = _runtime()
    history = bundle.calendar.load()
    now = bundle.clock.now()
    today = now.date()
    for year, month in recent_months(now, count=months):
        typer.echo(date(year, month, 1).strftime("%B %Y"))
        typer.echo(" ".join(f"{name:>5}" for name in WEEKDAY_HEADERS))
        cells = [_cell(day, today, history.day_status(day) if day else None) for day in month_grid(year, month)]
        for start in range(0, len(cells), 7):
            typer.echo(" ".join(cells[start : start + 7]))
        typer.echo("")
    typer.echo(f"Learned days: {len(history.learned_dates)} | Freezed days: {len(history.freezed_dates)}")


def _cell(day: date | None, today: date, state: DayState | None) -> str:
    if day is None or state is None:
        return " " * 5
    text = f"{day.day:>2}{_DAY_MARKS[state]}"
    return f"[{text}]" if day == today else f"{text:>5}"


def history() -> None:
    bundle = _runtime()
    finished = [goal.model_dump(mode="json") for goal in bundle.goals.load_finished_goals()]
    typer.echo(json.dumps(finished, indent=2))


def activity(limit: int = 20) -> None:
    bundle = _runtime()
    typer.echo(json.dumps(bundle.activity_logger.tail(limit=limit), indent=2))


def watch(interval: float | None = None, ticks: int = 0) -> None:
    """Keep the goal open and sweep missed days on a timer."""
    bundle = _runtime()
    engine = _engine(bundle)
    _print_status(engine)

    bundle.event_bus.subscribe(
        SNAPSHOT_CHANGED,
        lambda payload: typer.echo(
            f"[{payload['action']}] streak={payload['streak_days']} "
            f"freezes={payload['freezes_used']}/{payload['max_freezes']}"
        ),
    )
    seconds = interval or float(bundle.tracker_config.get("tick_interval_seconds", 60))
    done = threading.Event()

    def _on_tick() -> None:
        engine.on_tick()
        if ticks and ticker.ticks >= ticks:
            done.set()

    ticker = Ticker(_on_tick, interval_seconds=seconds)
    ticker.start()
    try:
        done.wait()
    except KeyboardInterrupt:
        typer.echo("stopped")
    finally:
        ticker.stop(timeout=seconds)


def reset(yes: bool = False) -> None:
    bundle = _runtime()
    if not yes and not typer.confirm("Remove the current goal and the archive?"):
        raise typer.Exit(code=1)
    current = bundle.goals.load_current_goal()
    goals = bundle.goals.load_finished_goals()
    if current is not None:
        goals.append(current)
    for goal in goals:
        bundle.progress_store.clear(ProgressKeys.for_goal(goal.topic, goal.duration))
    bundle.goals.clear_all()
    typer.echo("All goals cleared.")


def config_show() -> None:
    """Show effective runtime config."""
    bundle = _runtime()
    typer.echo(json.dumps(_json_safe(bundle.config), indent=2))


def _json_safe(payload: object) -> object:
    """Convert datetimes to strings for JSON output."""
    if isinstance(payload, dict):
        return {k: _json_safe(v) for k, v in payload.items()}
    if isinstance(payload, list):
        return [_json_safe(v) for v in payload]
    if hasattr(payload, "isoformat"):
        return payload.isoformat()
    return payload
