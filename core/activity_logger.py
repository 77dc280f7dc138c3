"""Structured JSONL log of streak transitions."""

from __future__ import annotations

import json
import logging
from datetime import UTC, datetime
from pathlib import Path
from typing import Any


class ActivityLogger:
    """Writes one JSON line per accepted or rejected tracker action."""

    def __init__(self, log_path: Path) -> None:
        self.log_path = log_path
        self.log_path.parent.mkdir(parents=True, exist_ok=True)
        self.logger = logging.getLogger("st.activity")

    def log(
        self,
        action: str,
        identity: str,
        outcome: str,
        state: dict[str, Any] | None = None,
    ) -> None:
        """Append one JSONL activity event."""
        event = {
            "timestamp": datetime.now(UTC).isoformat(),
            "action": action,
            "identity": identity,
            "outcome": outcome,
            "state": state or {},
        }
        line = json.dumps(event, ensure_ascii=True, default=str)
        with self.log_path.open("a", encoding="utf-8") as fh:
            fh.write(line + "\n")
        self.logger.info(line)

    def tail(self, limit: int = 20) -> list[dict[str, Any]]:
        """Return the most recent events, oldest first."""
        if not self.log_path.exists():
            return []
        lines = self.log_path.read_text(encoding="utf-8").splitlines()
        events: list[dict[str, Any]] = []
        for line in lines[-limit:]:
            try:
                events.append(json.loads(line))
            except json.JSONDecodeError:
                self.logger.warning("Skipping unreadable activity line")
        return events
