"""
SessionTimer - countdown state machine for one study method.

States:
    idle -> running -> paused -> running ...
    running -> completed            (remaining reached 0)
    running/paused -> idle          (stop / reset)
    completed -> idle               (reset / change_method)

Elapsed time is always `now - anchor` against a fixed anchor instant (POSIX
seconds, so DST and offset changes do not move it), never an incrementing
counter. Resuming from pause moves the anchor to `now - elapsed_at_pause`, so any amount of wall-clock time spent paused, and
any number of ticks missed while the process was suspended, neither loses
nor duplicates a second.

Misuse (start while running, pause/stop while idle) is a silent no-op.
"""

import logging
import math
import threading
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import datetime
from enum import Enum

from focus_os.clock import Clock
from focus_os.events import EventBus
from focus_os.methods import DEFAULT_METHOD, StudyMethod, format_time
from focus_os.observability.context import SessionContext, generate_session_id
from focus_os.session.scheduler import TickHandle, TickScheduler

logger = logging.getLogger(__name__)

# Events published on the bus
TIMER_TICK = "timer.tick"
TIMER_STATUS = "timer.status"
TIMER_COMPLETE = "timer.complete"
BLOCKING_STOP = "blocking.stop"


class TimerStatus(str, Enum):
    IDLE = "idle"
    RUNNING = "running"
    PAUSED = "paused"
    COMPLETED = "completed"


@dataclass(frozen=True)
class TimerState:
    """Read-only snapshot of the timer."""

    method_key: str
    duration_seconds: int
    remaining_seconds: int
    status: TimerStatus
    session_started_at: datetime | None
    elapsed_at_pause: int
    session_id: str | None = None

    @property
    def progress(self) -> float:
        return 1 - (self.remaining_seconds / self.duration_seconds)

    @property
    def formatted_time(self) -> str:
        return format_time(self.remaining_seconds)

    @property
    def is_completed(self) -> bool:
        return self.status is TimerStatus.COMPLETED


@dataclass(frozen=True)
class Completion:
    """Payload of TIMER_COMPLETE. Triggers the session log append."""

    method_key: str
    duration_minutes: int
    started_at: datetime
    ended_at: datetime
    session_id: str | None = None


class SessionTimer:
    """
    Countdown timer over a study method's duration.

    Args:
        methods: Catalog of study methods.
        clock: Time source. All elapsed time is derived from it.
        scheduler: Supplies the tick handle the timer owns while running.
        bus: Event bus for tick/status/complete/blocking-stop events.
        method_key: Initially selected method.
        tick_interval: Seconds between ticks (<= 1 for 1 Hz or faster).
    """

    def __init__(
        self,
        methods: dict[str, StudyMethod],
        clock: Clock,
        scheduler: TickScheduler,
        bus: EventBus | None = None,
        method_key: str | None = None,
        tick_interval: float = 1.0,
    ):
        if not methods:
            raise ValueError("SessionTimer needs at least one study method")
        self.methods = methods
        self.clock = clock
        self.scheduler = scheduler
        self.bus = bus or EventBus(clock=clock)
        self.tick_interval = tick_interval

        key = method_key or DEFAULT_METHOD
        if key not in methods:
            key = next(iter(methods))
        self._method = methods[key]

        self._lock = threading.RLock()
        self._status = TimerStatus.IDLE
        self._remaining = self._method.duration_seconds
        self._anchor: float | None = None
        self._started_at: datetime | None = None
        self._elapsed_at_pause = 0
        self._session_id: str | None = None
        self._handle: TickHandle | None = None

    # ==================== Read-only state ====================

    @property
    def method(self) -> StudyMethod:
        return self._method

    @property
    def status(self) -> TimerStatus:
        return self._status

    @property
    def remaining_seconds(self) -> int:
        with self._lock:
            if self._status is TimerStatus.RUNNING:
                return self._remaining_at(self.clock.now())
            return self._remaining

    @property
    def progress(self) -> float:
        return 1 - (self.remaining_seconds / self._method.duration_seconds)

    @property
    def session_id(self) -> str | None:
        return self._session_id

    def state(self) -> TimerState:
        with self._lock:
            return TimerState(
                method_key=self._method.key,
                duration_seconds=self._method.duration_seconds,
                remaining_seconds=self.remaining_seconds,
                status=self._status,
                session_started_at=self._started_at,
                elapsed_at_pause=self._elapsed_at_pause,
                session_id=self._session_id,
            )

    def subscribe(self, event_type: str, handler):
        return self.bus.subscribe(event_type, handler)

    # ==================== Transitions ====================

    def start(self) -> None:
        """Start fresh from idle or resume from paused."""
        with self._lock:
            if self._status not in (TimerStatus.IDLE, TimerStatus.PAUSED):
                return

            now = self.clock.now()
            fresh = self._status is TimerStatus.IDLE
            if fresh:
                self._session_id = generate_session_id()
                self._started_at = now
                self._elapsed_at_pause = 0
            self._anchor = now.timestamp() - self._elapsed_at_pause

            with self._session_scope():
                if fresh:
                    logger.info(
                        "Timer started: %s (%ss)", self._method.key, self._method.duration_seconds
                    )
                else:
                    logger.info("Timer resumed with %ss remaining", self._remaining)

                self._status = TimerStatus.RUNNING
                self._cancel_handle()
                self._handle = self.scheduler.schedule(self.tick_interval, self.tick)
                self._publish_status()

    def pause(self) -> None:
        """Freeze the countdown. Only valid while running."""
        with self._lock, self._session_scope():
            if self._status is not TimerStatus.RUNNING:
                return

            now = self.clock.now()
            elapsed = self._elapsed_at(now)
            if self._method.duration_seconds - elapsed <= 0:
                self._complete(now)
                return

            self._cancel_handle()
            self._elapsed_at_pause = elapsed
            self._remaining = self._method.duration_seconds - elapsed
            self._status = TimerStatus.PAUSED
            logger.info("Timer paused at %ss elapsed", elapsed)
            self._publish_status()
            self.bus.publish(BLOCKING_STOP, {"reason": "paused"})

    def stop(self) -> None:
        """Abandon the session. Does not log a session record."""
        with self._lock, self._session_scope():
            if self._status not in (TimerStatus.RUNNING, TimerStatus.PAUSED):
                return
            logger.info("Timer stopped")
            self._reset()
            self._publish_status()
            self.bus.publish(BLOCKING_STOP, {"reason": "stopped"})

    def reset(self) -> None:
        """Return to idle with the full duration, from any non-idle state."""
        with self._lock, self._session_scope():
            if self._status is TimerStatus.IDLE:
                return
            was_active = self._status in (TimerStatus.RUNNING, TimerStatus.PAUSED)
            self._reset()
            self._publish_status()
            if was_active:
                self.bus.publish(BLOCKING_STOP, {"reason": "reset"})

    def change_method(self, key: str) -> bool:
        """
        Select another study method. Not allowed while running.

        Returns:
            True if the method changed.
        """
        with self._lock:
            if self._status is TimerStatus.RUNNING:
                return False
            if key not in self.methods:
                logger.warning(f"Unknown study method: {key}")
                return False

            if self._status is TimerStatus.PAUSED:
                self.stop()
            elif self._status is TimerStatus.COMPLETED:
                self._reset()

            self._method = self.methods[key]
            self._remaining = self._method.duration_seconds
            logger.debug("Study method set to %s", key)
            self._publish_status()
            return True

    def tick(self) -> None:
        """Re-evaluate remaining time from the clock. Driven by the tick handle."""
        with self._lock, self._session_scope():
            if self._status is not TimerStatus.RUNNING:
                return

            now = self.clock.now()
            elapsed = self._elapsed_at(now)
            if self._method.duration_seconds - elapsed <= 0:
                self._complete(now)
                return

            self._remaining = self._method.duration_seconds - elapsed
            self.bus.publish(TIMER_TICK, self.state())

    # ==================== Internals ====================

    def _elapsed_at(self, now: datetime) -> int:
        if self._anchor is None:
            return 0
        seconds = now.timestamp() - self._anchor
        return max(0, math.floor(seconds))

    @contextmanager
    def _session_scope(self):
        """Log records and bus handlers inside carry the active session id."""
        if self._session_id is None:
            yield
            return
        with SessionContext(self._session_id):
            yield

    def _remaining_at(self, now: datetime) -> int:
        remaining = self._method.duration_seconds - self._elapsed_at(now)
        return min(self._method.duration_seconds, max(0, remaining))

    def _complete(self, now: datetime) -> None:
        self._cancel_handle()
        self._remaining = 0
        self._status = TimerStatus.COMPLETED
        completion = Completion(
            method_key=self._method.key,
            duration_minutes=self._method.duration_seconds // 60,
            started_at=self._started_at or now,
            ended_at=now,
            session_id=self._session_id,
        )
        logger.info(
            "Timer completed: %s", self._method.key
        )
        self._publish_status()
        self.bus.publish(BLOCKING_STOP, {"reason": "completed"})
        self.bus.publish(TIMER_COMPLETE, completion)

    def _reset(self) -> None:
        self._cancel_handle()
        self._status = TimerStatus.IDLE
        self._remaining = self._method.duration_seconds
        self._anchor = None
        self._started_at = None
        self._elapsed_at_pause = 0
        self._session_id = None

    def _cancel_handle(self) -> None:
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None

    def _publish_status(self) -> None:
        self.bus.publish(TIMER_STATUS, self.state())
