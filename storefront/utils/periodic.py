"""Cancellable periodic background task.

Each task runs its callback on a daemon thread every ``interval_ms``. The
callback never overlaps with itself: the next tick is only awaited after the
previous call returns.
"""

from __future__ import annotations

import logging
import threading
from typing import Callable

from storefront.core.errors import ValidationAppError

logger = logging.getLogger(__name__)


class PeriodicTask:
    """Handle for a callback scheduled at a fixed interval.

    Attributes:
        name: Label used for the thread name and log events.
        interval_ms: Delay between the end of one run and the start of the next.
    """

    def __init__(self, callback: Callable[[], object], *, interval_ms: int, name: str) -> None:
        if interval_ms < 1:
            raise ValidationAppError(
                code="invalid_interval",
                message="interval_ms must be >= 1",
                details={"context": {"task": name, "interval_ms": interval_ms}},
            )

        self.name = name
        self.interval_ms = interval_ms
        self._callback = callback
        self._stop = threading.Event()
        self._thread = threading.Thread(target=self._run, name=f"periodic-{name}", daemon=True)

    def __repr__(self) -> str:  # pragma: no cover - representation only
        return f"PeriodicTask(name={self.name!r}, interval_ms={self.interval_ms}, running={self.running})"

    @property
    def running(self) -> bool:
        return self._thread.is_alive() and not self._stop.is_set()

    def start(self) -> PeriodicTask:
        self._thread.start()
        logger.debug(
            "periodic.started",
            extra={"task": self.name, "interval_ms": self.interval_ms},
        )
        return self

    def cancel(self, timeout: float | None = None) -> None:
        """Stop the task and wait for an in-flight run to finish.

        Safe to call more than once, and from within the callback itself.

        Args:
            timeout: Seconds to wait for the in-flight run; None waits until
                it returns. A run still going after the timeout is logged.
        """

        if self._stop.is_set():
            return
        self._stop.set()
        if self._thread.is_alive() and threading.current_thread() is not self._thread:
            self._thread.join(timeout)
            if self._thread.is_alive():
                logger.warning(
                    "periodic.cancel_timeout",
                    extra={"task": self.name, "timeout_s": timeout},
                )
                return
        logger.debug("periodic.cancelled", extra={"task": self.name})

    def _run(self) -> None:
        interval_s = self.interval_ms / 1000.0
        while not self._stop.wait(interval_s):
            try:
                self._callback()
            except Exception:
                # The next tick runs regardless.
                logger.exception("periodic.callback_failed", extra={"task": self.name})


def schedule_periodic(callback: Callable[[], object], *, interval_ms: int, name: str) -> PeriodicTask:
    """Start ``callback`` every ``interval_ms`` and return its cancel handle."""
    return PeriodicTask(callback, interval_ms=interval_ms, name=name).start()
