"""Fixed-interval background trigger for the expiration sweep."""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable

logger = logging.getLogger("st.ticker")


class Ticker:
    """Calls ``callback`` every ``interval_seconds`` until stopped."""

    def __init__(self, callback: Callable[[], object], interval_seconds: float = 60.0) -> None:
        if interval_seconds <= 0:
            raise ValueError("interval_seconds must be positive")
        self.callback = callback
        self.interval_seconds = interval_seconds
        self.ticks = 0
        self._stop = threading.Event()
        self._thread: threading.Thread | None = None

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        if self.running:
            return
        self._stop.clear()
        self._thread = threading.Thread(target=self._run, name="streak-ticker", daemon=True)
        self._thread.start()

    def stop(self, timeout: float | None = None) -> None:
        self._stop.set()
        if self._thread is not None:
            self._thread.join(timeout)
            self._thread = None

    def tick(self) -> None:
        """Run one callback synchronously."""
        self.ticks += 1
        self.callback()

    def _run(self) -> None:
        while not self._stop.wait(self.interval_seconds):
            try:
                self.tick()
            except Exception:
                logger.exception("Tick %d failed", self.ticks)
