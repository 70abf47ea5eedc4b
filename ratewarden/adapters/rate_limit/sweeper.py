"""Background sweep of expired quota windows.

The sweeper is owned by whatever owns the store (the application lifespan)
and must be stopped on shutdown.
"""

from __future__ import annotations

import logging
import threading

from ratewarden.adapters.rate_limit.base import AbstractQuotaStore

logger = logging.getLogger(__name__)


def default_sweep_interval(smallest_window_seconds: float) -> float:
    """A third of the smallest window, never below one second."""
    return max(1.0, smallest_window_seconds / 3)


class QuotaSweeper:
    """Runs ``store.sweep()`` on a daemon thread at a fixed interval."""

    def __init__(self, store: AbstractQuotaStore, *, interval_seconds: float) -> None:
        if interval_seconds <= 0:
            raise ValueError("interval_seconds must be > 0")
        self._store = store
        self._interval = interval_seconds
        self._stop = threading.Event()
        self._thread: threading.Thread | None = None

    @property
    def interval_seconds(self) -> float:
        return self._interval

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        if self.running:
            return
        self._stop.clear()
        self._thread = threading.Thread(
            target=self._run, name="quota-sweeper", daemon=True
        )
        self._thread.start()
        logger.info("quota_sweeper.started", extra={"interval_s": self._interval})

    def stop(self, timeout: float | None = 5.0) -> None:
        self._stop.set()
        thread, self._thread = self._thread, None
        if thread is not None:
            thread.join(timeout)
            logger.info("quota_sweeper.stopped")

    def _run(self) -> None:
        while not self._stop.wait(self._interval):
            try:
                self._store.sweep()
            except Exception:
                # Keep the loop alive; the next tick retries.
                logger.exception("quota_sweeper.sweep_failed")
