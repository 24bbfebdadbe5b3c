"""
Tick schedulers - owned, cancellable handles for periodic callbacks.

The SessionTimer starts one handle when it begins running and cancels it on
pause/stop/completion. A cancelled handle never fires again, even if its
thread was already waiting, so a stale tick cannot touch a stopped timer.
"""

import logging
import threading
from collections.abc import Callable

logger = logging.getLogger(__name__)

Callback = Callable[[], None]


class TickHandle:
    """Handle for one periodic schedule."""

    def __init__(self, interval: float, callback: Callback):
        self.interval = interval
        self.callback = callback
        self._cancelled = threading.Event()

    @property
    def cancelled(self) -> bool:
        return self._cancelled.is_set()

    def cancel(self) -> None:
        self._cancelled.set()

    def fire(self) -> bool:
        """Run the callback unless cancelled. Returns True if it ran."""
        if self.cancelled:
            return False
        self.callback()
        return True


class TickScheduler:
    """Interface: schedule(interval, callback) -> TickHandle."""

    def schedule(self, interval: float, callback: Callback) -> TickHandle:
        raise NotImplementedError


class ThreadingTickScheduler(TickScheduler):
    """
    Runs each handle on a daemon thread that waits `interval` between fires.

    Waiting on the handle's cancel event means cancel() wakes the thread at
    once instead of after the next sleep.
    """

    def __init__(self, name: str = "focus-tick"):
        self.name = name

    def schedule(self, interval: float, callback: Callback) -> TickHandle:
        handle = TickHandle(interval, callback)
        thread = threading.Thread(
            target=self._run, args=(handle,), name=self.name, daemon=True
        )
        thread.start()
        return handle

    def _run(self, handle: TickHandle) -> None:
        while not handle._cancelled.wait(handle.interval):
            try:
                handle.fire()
            except Exception:
                logger.exception("Tick callback failed")


class ManualTickScheduler(TickScheduler):
    """Scheduler driven by hand: call fire_all() to deliver one tick."""

    def __init__(self):
        self.handles: list[TickHandle] = []

    def schedule(self, interval: float, callback: Callback) -> TickHandle:
        handle = TickHandle(interval, callback)
        self.handles.append(handle)
        return handle

    @property
    def active(self) -> list[TickHandle]:
        return [h for h in self.handles if not h.cancelled]

    def fire_all(self) -> int:
        """Fire every live handle once. Returns how many ran."""
        return sum(1 for h in list(self.handles) if h.fire())
