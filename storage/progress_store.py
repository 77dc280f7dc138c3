"""Per-goal progress values addressed by a normalized goal identity."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date, datetime
from typing import Any

from sqlalchemy.exc import SQLAlchemyError

from storage.stores.kv_store import KeyValueStore
from streaks.types.snapshot import ProgressSnapshot

logger = logging.getLogger("st.progress")


def normalize_identity(topic: str, duration: str) -> str:
    """``"  Rust Lang ", "Week"`` -> ``"rust_lang_week"``."""
    return f"{topic.strip()}_{duration}".lower().replace(" ", "_")


@dataclass(frozen=True)
class ProgressKeys:
    """Storage keys for one goal identity."""

    identity: str
    learned: str
    freezed: str
    streak: str
    used: str
    last: str

    @classmethod
    def for_goal(cls, topic: str, duration: str) -> ProgressKeys:
        identity = normalize_identity(topic, duration)
        return cls(
            identity=identity,
            learned=f"learnedDates_{identity}",
            freezed=f"freezedDates_{identity}",
            streak=f"streakDays_{identity}",
            used=f"freezesUsed_{identity}",
            last=f"lastLoggedDate_{identity}",
        )

    def all(self) -> tuple[str, ...]:
        return (self.learned, self.freezed, self.streak, self.used, self.last)


def _parse_day(raw: Any) -> date:
    if isinstance(raw, str):
        if "T" in raw:
            return datetime.fromisoformat(raw).date()
        return date.fromisoformat(raw)
    raise ValueError(f"Not a day value: {raw!r}")


class ProgressStore:
    """Typed get/set over the key/value store. Absent or corrupt values read as defaults."""

    def __init__(self, kv_store: KeyValueStore) -> None:
        self.kv_store = kv_store

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

    # Date sets ---------------------------------------------------------
    def save_date_set(self, key: str, days: set[date]) -> None:
        self._write(key, sorted(day.isoformat() for day in days))

    def load_date_set(self, key: str) -> set[date]:
        raw = self._read(key)
        if raw is None:
            return set()
        if not isinstance(raw, list):
            logger.warning("Discarding corrupt date set under %s", key)
            return set()
        try:
            return {_parse_day(item) for item in raw}
        except (TypeError, ValueError) as exc:
            logger.warning("Discarding corrupt date set under %s: %s", key, exc)
            return set()

    # Counters ----------------------------------------------------------
    def save_counter(self, key: str, value: int) -> None:
        self._write(key, int(value))

    def load_counter(self, key: str) -> int:
        raw = self._read(key)
        if raw is None:
            return 0
        if isinstance(raw, bool) or not isinstance(raw, int) or raw < 0:
            logger.warning("Discarding corrupt counter under %s", key)
            return 0
        return raw

    # Timestamps --------------------------------------------------------
    def save_timestamp(self, key: str, instant: datetime) -> None:
        self._write(key, instant.isoformat())

    def load_timestamp(self, key: str) -> datetime | None:
        raw = self._read(key)
        if raw is None:
            return None
        try:
            instant = datetime.fromisoformat(raw)
        except (TypeError, ValueError):
            logger.warning("Discarding corrupt timestamp under %s", key)
            return None
        # Offset-less values were written in local time.
        return instant if instant.tzinfo is not None else instant.astimezone()

    # Whole snapshots ---------------------------------------------------
    def load_snapshot(self, keys: ProgressKeys) -> ProgressSnapshot:
        return ProgressSnapshot(
            learned_dates=self.load_date_set(keys.learned),
            freezed_dates=self.load_date_set(keys.freezed),
            streak_days=self.load_counter(keys.streak),
            freezes_used=self.load_counter(keys.used),
            last_logged_at=self.load_timestamp(keys.last),
        )

    def save_snapshot(self, keys: ProgressKeys, snapshot: ProgressSnapshot) -> None:
        self.save_date_set(keys.learned, snapshot.learned_dates)
        self.save_date_set(keys.freezed, snapshot.freezed_dates)
        self.save_counter(keys.streak, snapshot.streak_days)
        self.save_counter(keys.used, snapshot.freezes_used)
        # An unset timestamp leaves the stored one in place.
        if snapshot.last_logged_at is not None:
            self.save_timestamp(keys.last, snapshot.last_logged_at)

    def clear(self, keys: ProgressKeys) -> None:
        try:
            self.kv_store.delete(*keys.all())
        except SQLAlchemyError as exc:
            logger.error("Failed to clear progress for %s: %s", keys.identity, exc)
