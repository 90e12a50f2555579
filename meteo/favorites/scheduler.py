"""Timer sources for favorites refresh.

`ThreadScheduler` runs callbacks on background threads for the lifetime of
the process. `ManualScheduler` only runs them when told to, so refresh
timing can be driven step by step.
"""

import logging
import threading
from collections.abc import Callable
from dataclasses import dataclass
from typing import Protocol

logger = logging.getLogger(__name__)

Callback = Callable[[], object]


class Cancellable(Protocol):
    def cancel(self) -> None: ...


class Scheduler(Protocol):
    def call_soon(self, callback: Callback) -> None: ...

    def call_every(self, interval_seconds: float, callback: Callback) -> Cancellable: ...


def _run_logged(callback: Callback) -> None:
    try:
        callback()
    except Exception:
        logger.exception("Scheduled callback %r failed", callback)


class _RepeatingTimer:
    def __init__(self, interval_seconds: float, callback: Callback):
        self.interval_seconds = interval_seconds
        self.callback = callback
        self._stopped = threading.Event()
        self._thread = threading.Thread(
            target=self._run, name="meteo-refresh-timer", daemon=True
        )
        self._thread.start()

    def _run(self) -> None:
        while not self._stopped.wait(self.interval_seconds):
            _run_logged(self.callback)

    def cancel(self) -> None:
        self._stopped.set()


class ThreadScheduler:
    def call_soon(self, callback: Callback) -> None:
        threading.Thread(
            target=_run_logged, args=(callback,), name="meteo-refresh", daemon=True
        ).start()

    def call_every(self, interval_seconds: float, callback: Callback) -> Cancellable:
        return _RepeatingTimer(interval_seconds, callback)


@dataclass
class _ManualTimer:
    interval_seconds: float
    callback: Callback
    next_due: float
    cancelled: bool = False

    def cancel(self) -> None:
        self.cancelled = True


class ManualScheduler:
    """Scheduler whose clock only moves when `advance` is called."""

    def __init__(self) -> None:
        self.now = 0.0
        self.pending: list[Callback] = []
        self.timers: list[_ManualTimer] = []

    def call_soon(self, callback: Callback) -> None:
        self.pending.append(callback)

    def call_every(self, interval_seconds: float, callback: Callback) -> Cancellable:
        timer = _ManualTimer(interval_seconds, callback, self.now + interval_seconds)
        self.timers.append(timer)
        return timer

    def run_pending(self) -> int:
        """Run queued call_soon callbacks. Returns how many ran."""
        ran = 0
        while self.pending:
            _run_logged(self.pending.pop(0))
            ran += 1
        return ran

    def advance(self, seconds: float) -> int:
        """Move the clock forward, firing due timers. Returns how many fired."""
        target = self.now + seconds
        fired = 0
        for timer in self.timers:
            while not timer.cancelled and timer.next_due <= target:
                self.now = timer.next_due
                _run_logged(timer.callback)
                timer.next_due += timer.interval_seconds
                fired += 1
        self.now = target
        return fired
