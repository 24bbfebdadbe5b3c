"""
Session layer (Tier 0)

Objects:
- SessionTimer (countdown state machine)
- BlockingController (app-switch discouragement)
- TickScheduler implementations (owned tick handles)
- Notifier boundary

Invariants:
- Elapsed time is derived from the clock against a fixed anchor
- remaining_seconds stays within [0, duration]
- Blocking is armed only while enabled and the timer is running
"""

from .blocking import AppState, BlockingController, BlockingLevel, BlockingState
from .notifier import LogNotifier, Notifier
from .scheduler import ManualTickScheduler, ThreadingTickScheduler, TickHandle, TickScheduler
from .timer import Completion, SessionTimer, TimerState, TimerStatus

__all__ = [
    "AppState",
    "BlockingController",
    "BlockingLevel",
    "BlockingState",
    "Completion",
    "LogNotifier",
    "ManualTickScheduler",
    "Notifier",
    "SessionTimer",
    "ThreadingTickScheduler",
    "TickHandle",
    "TickScheduler",
    "TimerState",
    "TimerStatus",
]
