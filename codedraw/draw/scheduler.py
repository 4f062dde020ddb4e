"""Cancellable repeating tasks driving the preview animation."""

from __future__ import annotations

import logging
import threading
from typing import Callable, Optional, Protocol

logger = logging.getLogger(__name__)


class TaskHandle(Protocol):
    """Handle returned by a scheduler for a repeating callback."""

    @property
    def cancelled(self) -> bool: ...

    def cancel(self) -> None: ...

    def join(self, timeout: Optional[float] = None) -> None: ...


class Scheduler(Protocol):
    def every(self, interval: float, callback: Callable[[], None]) -> TaskHandle: ...


class RepeatingTask:
    """Run ``callback`` every ``interval`` seconds on a daemon thread.

    A callback that raises is logged and ends the task; the exception does
    not escape the daemon thread. :meth:`cancel` only flags the task;
    callers that need a hard ordering guarantee check :attr:`cancelled` (or
    the identity of their current handle) under their own lock before acting
    on a tick.
    """

    def __init__(self, interval: float, callback: Callable[[], None], *, name: Optional[str] = None) -> None:
        if interval <= 0:
            raise ValueError("interval must be positive")
        self.interval = interval
        self._callback = callback
        self._stopped = threading.Event()
        self._thread = threading.Thread(target=self._run, name=name or "codedraw-tick", daemon=True)

    @property
    def cancelled(self) -> bool:
        return self._stopped.is_set()

    def start(self) -> "RepeatingTask":
        self._thread.start()
        return self

    def cancel(self) -> None:
        self._stopped.set()

    def is_alive(self) -> bool:
        return self._thread.is_alive()

    def join(self, timeout: Optional[float] = None) -> None:
        """Wait for the tick thread to exit; a no-op from the tick thread itself."""
        if self._thread is threading.current_thread() or not self.is_alive():
            return
        self._thread.join(timeout)

    def _run(self) -> None:
        while not self._stopped.wait(self.interval):
            try:
                self._callback()
            except Exception:
                logger.exception("Preview tick failed; stopping repeating task")
                self._stopped.set()


class ThreadingScheduler:
    """Scheduler that backs each repeating callback with a :class:`RepeatingTask`."""

    def every(self, interval: float, callback: Callable[[], None]) -> RepeatingTask:
        return RepeatingTask(interval, callback).start()


__all__ = ["RepeatingTask", "Scheduler", "TaskHandle", "ThreadingScheduler"]
