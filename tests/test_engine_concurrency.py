"""Engine mutations from the ticker thread and the caller must not interleave."""

from __future__ import annotations

import time
from datetime import UTC, datetime
from pathlib import Path

from core.clock import FixedClock
from core.ticker import Ticker
from storage.progress_store import ProgressStore
from storage.stores.kv_store import KeyValueStore
from streaks.engine import StreakEngine


def test_ticker_sweeps_interleaved_with_user_actions(tmp_path: Path) -> None:
    kv = KeyValueStore(tmp_path / "streaks.db")
    kv.create_all()
    clock = FixedClock(datetime(2026, 3, 2, 9, 0, tzinfo=UTC))
    engine = StreakEngine(
        topic="Swift",
        duration="Month",
        progress_store=ProgressStore(kv),
        clock=clock,
    )
    engine.on_appear()

    errors: list[Exception] = []

    def sweep() -> None:
        try:
            engine.on_tick()
        except Exception as exc:
            errors.append(exc)
            raise

    ticker = Ticker(sweep, interval_seconds=0.001)
    ticker.start()
    try:
        for step in range(200):
            engine.mark_as_learned()
            engine.toggle_freeze()
            if step % 3 == 0:
                engine.unfreeze_day()
            if step % 5 == 0:
                engine.unmark_learned()
            clock.advance(hours=40 if step % 7 == 0 else 20)

        deadline = time.monotonic() + 2.0
        while ticker.ticks < 5 and time.monotonic() < deadline:
            time.sleep(0.01)
    finally:
        ticker.stop(timeout=1.0)

    assert errors == []
    assert ticker.ticks >= 5

    snap = engine.snapshot
    assert not snap.learned_dates & snap.freezed_dates
    assert 0 <= snap.freezes_used <= engine.max_freezes
    assert engine.progress_store.load_snapshot(engine.keys) == snap
