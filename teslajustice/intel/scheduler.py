"""
Periodic execution of monitoring cycles on a background thread.
"""

import logging
import threading
from typing import Callable, Optional

from teslajustice.core.config import MONITORING_INTERVAL_MINUTES

logger = logging.getLogger(__name__)


class MonitoringScheduler:
    """
    Runs ``run_cycle`` immediately on start and then every interval until
    stopped. When ``sweep`` is given it runs after each scheduled cycle
    (not after the initial one).

    Runs never overlap: the next wait starts only after the previous run
    returns. An exception inside a run is logged and the schedule continues.
    """

    def __init__(self, run_cycle: Callable[[], object],
                 interval_minutes: float = MONITORING_INTERVAL_MINUTES,
                 sweep: Optional[Callable[[], object]] = None):
        if interval_minutes <= 0:
            raise ValueError("interval_minutes must be positive")
        self.run_cycle = run_cycle
        self.sweep = sweep
        self.interval_seconds = interval_minutes * 60
        self.runs_completed = 0
        self._stop_event = threading.Event()
        self._thread: Optional[threading.Thread] = None

    @property
    def is_running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        if self.is_running:
            logger.warning("Monitoring scheduler already running")
            return
        logger.info(f"Scheduling monitoring every {self.interval_seconds / 60:g} minutes")
        self._stop_event.clear()
        self._thread = threading.Thread(target=self._loop, name="monitoring-scheduler", daemon=True)
        self._thread.start()

    def stop(self, timeout: Optional[float] = None) -> None:
        self._stop_event.set()
        if self._thread is not None:
            self._thread.join(timeout)
            self._thread = None
        logger.info("Scheduled monitoring stopped")

    def wait(self, timeout: Optional[float] = None) -> bool:
        """Block until stopped. Returns True if the scheduler was stopped."""
        return self._stop_event.wait(timeout)

    def _loop(self) -> None:
        self._safe_run(self.run_cycle, "monitoring cycle")
        while not self._stop_event.wait(self.interval_seconds):
            logger.info("Running scheduled monitoring cycle")
            self._safe_run(self.run_cycle, "monitoring cycle")
            if self.sweep is not None:
                self._safe_run(self.sweep, "case update check")

    def _safe_run(self, func: Callable[[], object], label: str) -> None:
        try:
            func()
        except Exception as e:
            logger.exception(f"Scheduled {label} failed: {e}")
        finally:
            self.runs_completed += 1

    def __enter__(self):
        self.start()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.stop()
