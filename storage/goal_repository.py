"""Current-goal slot and finished-goal archive."""

from __future__ import annotations

import logging
from typing import Any

from pydantic import ValidationError
from sqlalchemy.exc import SQLAlchemyError

from core.clock import Clock
from storage.stores.kv_store import KeyValueStore
from streaks.types.goal import Goal

logger = logging.getLogger("st.goals")

CURRENT_KEY = "currentLearningGoal"
FINISHED_KEY = "finishedLearningGoals"


class GoalRepository:
    """Owns the current goal and the append-only archive.

    Storage and decode failures are logged and read back as "no goal" or
    "empty archive".
    """

    def __init__(self, kv_store: KeyValueStore, clock: Clock) -> None:
        self.kv_store = kv_store
        self.clock = clock

    def save_current_goal(self, goal: Goal) -> None:
        self._write(CURRENT_KEY, goal.model_dump(mode="json"))

    def load_current_goal(self) -> Goal | None:
        """Return the current goal, archiving it instead if it has finished."""
        raw = self._read(CURRENT_KEY)
        if raw is None:
            return None
        try:
            goal = Goal.model_validate(raw)
        except ValidationError as exc:
            logger.warning("Stored current goal is unreadable: %s", exc)
            return None

        if goal.is_finished(self.clock.now()):
            logger.info("Goal %s/%s finished, archiving", goal.topic, goal.duration)
            self.archive_and_clear(goal)
            return None
        return goal

    def clear_current_goal(self) -> None:
        self._delete(CURRENT_KEY)

    def archive_and_clear(self, goal: Goal) -> None:
        finished = self.load_finished_goals()
        finished.append(goal)
        self._write(FINISHED_KEY, [item.model_dump(mode="json") for item in finished])
        self.clear_current_goal()

    def load_finished_goals(self) -> list[Goal]:
        raw = self._read(FINISHED_KEY)
        if raw is None:
            return []
        if not isinstance(raw, list):
            logger.warning("Stored goal archive is not a list; ignoring it")
            return []
        try:
            return [Goal.model_validate(item) for item in raw]
        except ValidationError as exc:
            logger.warning("Stored goal archive is unreadable: %s", exc)
            return []

    def clear_all(self) -> None:
        self._delete(CURRENT_KEY, FINISHED_KEY)

    def _read(self, key: str) -> Any:
        try:
            return self.kv_store.get(key)
        except (SQLAlchemyError, ValueError) as exc:
            logger.warning("Failed to read %s: %s", key, exc)
            return None

    def _write(self, key: str, value: Any) -> None:
        try:
            self.kv_store.set(key, value)
        except SQLAlchemyError as exc:
            logger.error("Failed to write %s: %s", key, exc)

    def _delete(self, *keys: str) -> None:
        try:
            self.kv_store.delete(*keys)
        except SQLAlchemyError as exc:
            logger.error("Failed to delete %s: %s", ", ".join(keys), exc)
