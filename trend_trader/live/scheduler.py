"""Fixed-interval cycle scheduler. Overlapping ticks are skipped, never run concurrently."""

from __future__ import annotations
import logging
import threading
from typing import Callable, Optional

logger = logging.getLogger("trend_trader.live.scheduler")


class CycleScheduler:
    def __init__(self, cycle_fn: Callable[[], object], interval_s: float):
        self.cycle_fn = cycle_fn
        self.interval_s = interval_s
        self._lock = threading.Lock()
        self._worker: Optional[threading.Thread] = None
        self.completed = 0
        self.skipped = 0

    @property
    def running(self) -> bool:
        return self._lock.locked()

    def tick(self) -> bool:
        """Start one cycle in a worker thread. False if the previous cycle is still running."""
        if not self._lock.acquire(blocking=False):
            self.skipped += 1
            logger.warning("Previous cycle still running, skipping tick (%d skipped)", self.skipped)
            return False
        self._worker = threading.Thread(target=self._run, name="trading-cycle", daemon=True)
        self._worker.start()
        return True

    def _run(self) -> None:
        try:
            self.cycle_fn()
        except Exception as e:
            logger.exception("Cycle failed: %s", e)
        finally:
            self.completed += 1
            self._lock.release()

    def wait_idle(self, timeout: Optional[float] = None) -> bool:
        worker = self._worker
        if worker is not None:
            worker.join(timeout)
        return not self.running

    def run_forever(self, stop_event: threading.Event) -> None:
        """Tick every interval until stop_event is set. An in-flight cycle is abandoned on exit."""
        logger.info("Scheduler started: every %.0fs", self.interval_s)
        while not stop_event.is_set():
            self.tick()
            stop_event.wait(self.interval_s)
        logger.info("Scheduler stopped (%d cycles, %d skipped)", self.completed, self.skipped)
