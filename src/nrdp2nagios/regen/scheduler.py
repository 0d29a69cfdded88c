"""Background trigger that runs an action immediately, then periodically."""

from __future__ import annotations

import logging
import threading
from typing import Callable

logger = logging.getLogger(__name__)


class PeriodicTrigger:
    """Run action on a daemon thread: once at start, then every interval.

    The wait starts after each run completes, so runs never overlap or
    stack up behind a slow one. An exception escaping action is logged
    and the schedule continues.
    """

    def __init__(
        self,
        action: Callable[[], object],
        interval: float,
        name: str = "periodic-trigger",
    ) -> None:
        if interval <= 0:
            raise ValueError(f"interval must be positive, got {interval}")
        self.action = action
        self.interval = interval
        self.name = name
        self._stop = threading.Event()
        self._thread: threading.Thread | None = None

    def start(self) -> None:
        if self._thread is not None:
            raise RuntimeError(f"{self.name} already started")
        self._thread = threading.Thread(target=self._run, name=self.name, daemon=True)
        self._thread.start()

    def stop(self, timeout: float | None = None) -> None:
        """Stop scheduling and wait for an in-progress run to finish."""
        self._stop.set()
        if self._thread is not None:
            self._thread.join(timeout)

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def _run(self) -> None:
        self._fire()
        while not self._stop.wait(self.interval):
            self._fire()

    def _fire(self) -> None:
        try:
            self.action()
        except Exception:
            logger.exception("%s: action failed", self.name)
