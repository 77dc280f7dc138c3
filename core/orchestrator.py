"""Composition root: builds and wires the tracker components."""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from core.activity_logger import ActivityLogger
from core.clock import Clock, SystemClock
from core.event_bus import EventBus
from core.policy_runtime import configure_logging, ensure_runtime_dirs, load_effective_config
from storage.goal_repository import GoalRepository
from storage.progress_store import ProgressStore
from storage.stores.kv_store import KeyValueStore
from streaks.calendar import CalendarAggregator
from streaks.engine import StreakEngine
from streaks.goal_setup import GoalSetup


@dataclass
class RuntimeBundle:
    """Holds initialized runtime components."""

    config: dict[str, Any]
    clock: Clock
    event_bus: EventBus
    activity_logger: ActivityLogger
    progress_store: ProgressStore
    goals: GoalRepository
    setup: GoalSetup
    calendar: CalendarAggregator

    @property
    def tracker_config(self) -> dict[str, Any]:
        return dict(self.config.get("tracker", {}))

    def engine_for_current_goal(self) -> StreakEngine | None:
        """Engine bound to the current goal, loaded and swept; ``None`` without a goal."""
        goal = self.goals.load_current_goal()
        if goal is None:
            return None
        engine = StreakEngine.for_goal(
            goal,
            progress_store=self.progress_store,
            clock=self.clock,
            goal_repository=self.goals,
            event_bus=self.event_bus,
            activity_logger=self.activity_logger,
            grace_period_hours=float(self.tracker_config.get("grace_period_hours", 32)),
        )
        engine.on_appear()
        return engine


def default_root() -> Path:
    """``$STREAK_HOME`` when set, else the current working directory."""
    env_root = os.environ.get("STREAK_HOME")
    return Path(env_root) if env_root else Path.cwd()


class Orchestrator:
    """Creates and wires runtime components for CLI use."""

    def __init__(self, root: Path | None = None, clock: Clock | None = None) -> None:
        self.root = (root or default_root()).resolve()
        self.clock = clock or SystemClock()

    def build(self) -> RuntimeBundle:
        config = load_effective_config(self.root)
        configure_logging(config)
        paths = ensure_runtime_dirs(self.root, config)

        kv_store = KeyValueStore(paths["db_path"])
        kv_store.create_all()

        progress_store = ProgressStore(kv_store)
        goals = GoalRepository(kv_store, clock=self.clock)
        tracker_cfg = config.get("tracker", {})
        setup = GoalSetup(
            goal_repository=goals,
            clock=self.clock,
            default_topic=str(tracker_cfg.get("default_topic", "Swift")),
            default_duration=str(tracker_cfg.get("default_duration", "Week")),
        )

        return RuntimeBundle(
            config=config,
            clock=self.clock,
            event_bus=EventBus(),
            activity_logger=ActivityLogger(paths["activity_log_path"]),
            progress_store=progress_store,
            goals=goals,
            setup=setup,
            calendar=CalendarAggregator(goal_repository=goals, progress_store=progress_store),
        )
