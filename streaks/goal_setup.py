"""Starting and editing the current learning goal."""

from __future__ import annotations

import logging

from core.clock import Clock
from storage.goal_repository import GoalRepository
from streaks.types.goal import DEFAULT_TOPIC, Duration, Goal

logger = logging.getLogger("st.setup")


class GoalSetup:
    """Creates new current goals; progress of a new identity starts empty."""

    def __init__(
        self,
        goal_repository: GoalRepository,
        clock: Clock,
        default_topic: str = DEFAULT_TOPIC,
        default_duration: str = Duration.WEEK.value,
    ) -> None:
        self.goal_repository = goal_repository
        self.clock = clock
        self.default_topic = default_topic
        self.default_duration = default_duration

    def _clean_topic(self, topic: str) -> str:
        return topic if topic.strip() else self.default_topic

    def start_learning(self, topic: str, duration: str) -> Goal:
        goal = Goal(topic=self._clean_topic(topic), duration=duration, start_date=self.clock.now())
        self.goal_repository.save_current_goal(goal)
        logger.info("Started goal %s/%s", goal.topic, goal.duration)
        return goal

    def preload(self) -> tuple[str, str]:
        """Topic and duration to prefill an editor with."""
        goal = self.goal_repository.load_current_goal()
        if goal is None:
            return self.default_topic, self.default_duration
        return goal.topic, goal.duration

    def has_changes(self, topic: str, duration: str) -> bool:
        trimmed = topic.strip()
        current = self.goal_repository.load_current_goal()
        if current is None:
            return bool(trimmed) or duration != self.default_duration
        return trimmed != current.topic or duration != current.duration

    def update_goal(self, topic: str, duration: str) -> Goal:
        """Replace the current goal. The streak starts over."""
        # Loading archives the current goal when it has already finished.
        self.goal_repository.load_current_goal()
        return self.start_learning(topic, duration)
