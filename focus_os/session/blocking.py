"""
BlockingController - discourage leaving the app during a study session.

Reacts to host lifecycle transitions (foreground/background). Blocking is
armed only while enabled AND the timer is running:

- background while armed: count a switch attempt, schedule a repeating
  reminder (cadence by level), screen_time also shows a persistent indicator
- foreground while armed: cancel reminders, publish a switch-attempt event
  (the UI shows its overlay on that event)

The controller never polls. Changing level while enabled requires
disarm() + arm(level).
"""

import logging
from dataclasses import dataclass
from enum import Enum

from focus_os.events import EventBus
from focus_os.session.notifier import Notifier
from focus_os.session.timer import BLOCKING_STOP, SessionTimer, TimerStatus

logger = logging.getLogger(__name__)

SWITCH_AWAY = "blocking.switch_away"
SWITCH_ATTEMPT = "blocking.switch_attempt"
BLOCKING_STATE = "blocking.state"
PLATFORM_ERROR = "blocking.platform_error"


class BlockingLevel(str, Enum):
    STANDARD = "standard"
    STRICT = "strict"
    SCREEN_TIME = "screen_time"

    @classmethod
    def parse(cls, value: "str | BlockingLevel | None") -> "BlockingLevel":
        if isinstance(value, cls):
            return value
        normalized = (value or cls.STANDARD.value).strip().lower().replace("-", "_")
        return cls(normalized)


class AppState(str, Enum):
    FOREGROUND = "foreground"
    BACKGROUND = "background"


DEFAULT_REMINDER_INTERVALS = {
    BlockingLevel.STANDARD: 30,
    BlockingLevel.STRICT: 15,
    BlockingLevel.SCREEN_TIME: 30,
}

REMINDER_TEXT = {
    BlockingLevel.STANDARD: ("Still Studying?", "Return to the study app to keep your focus."),
    BlockingLevel.STRICT: ("Return to Study!", "Strict mode: return to your study session now."),
    BlockingLevel.SCREEN_TIME: ("Focus Mode", "Stay focused! Return to your study session."),
}


@dataclass(frozen=True)
class BlockingState:
    enabled: bool
    level: BlockingLevel
    switch_attempts: int
    armed: bool


class BlockingController:
    """
    Args:
        notifier: Reminder/indicator scheduler (platform boundary).
        bus: Shared event bus; the timer's blocking-stop signal arrives here.
        timer: Timer whose status gates arming. Without one, enabled == armed.
        reminder_intervals: Seconds between reminders per level.
    """

    def __init__(
        self,
        notifier: Notifier,
        bus: EventBus | None = None,
        timer: SessionTimer | None = None,
        reminder_intervals: dict | None = None,
    ):
        self.notifier = notifier
        self.bus = bus or (timer.bus if timer else EventBus())
        self.timer = timer
        self.reminder_intervals = dict(DEFAULT_REMINDER_INTERVALS)
        for level, seconds in (reminder_intervals or {}).items():
            self.reminder_intervals[BlockingLevel.parse(level)] = int(seconds)

        self._enabled = False
        self._level = BlockingLevel.STANDARD
        self._switch_attempts = 0
        self._away = False
        self.degraded = False

        self._unsubscribe = self.bus.subscribe(BLOCKING_STOP, lambda _event: self.disarm())

    # ==================== Read-only state ====================

    @property
    def enabled(self) -> bool:
        return self._enabled

    @property
    def level(self) -> BlockingLevel:
        return self._level

    @property
    def switch_attempts(self) -> int:
        return self._switch_attempts

    @property
    def armed(self) -> bool:
        if not self._enabled:
            return False
        return self.timer is None or self.timer.status is TimerStatus.RUNNING

    def state(self) -> BlockingState:
        return BlockingState(
            enabled=self._enabled,
            level=self._level,
            switch_attempts=self._switch_attempts,
            armed=self.armed,
        )

    def subscribe(self, event_type: str, handler):
        return self.bus.subscribe(event_type, handler)

    # ==================== Operations ====================

    def arm(self, level: "str | BlockingLevel | None" = None, reset_attempts: bool = True) -> bool:
        """
        Enable blocking at a level.

        No-op while already enabled (no hot-swap of cadence).

        Returns:
            True if the controller was armed by this call.
        """
        if self._enabled:
            return False
        try:
            self._level = BlockingLevel.parse(level)
        except ValueError:
            logger.warning(f"Unknown blocking level {level!r}, using standard")
            self._level = BlockingLevel.STANDARD

        self._enabled = True
        self._away = False
        self.degraded = False
        if reset_attempts:
            self._switch_attempts = 0
        logger.info("Blocking enabled at level %s", self._level.value)
        self.bus.publish(BLOCKING_STATE, self.state())
        return True

    def disarm(self) -> None:
        """Disable blocking and cancel every pending reminder. Idempotent."""
        if not self._enabled:
            return
        self._enabled = False
        self._away = False
        self._cancel_all()
        logger.info("Blocking disabled after %d switch attempt(s)", self._switch_attempts)
        self.bus.publish(BLOCKING_STATE, self.state())

    def handle_app_state(self, state: "str | AppState") -> None:
        """Entry point for host lifecycle transitions."""
        state = AppState(state)
        if not self.armed:
            return
        if state is AppState.BACKGROUND:
            self._on_background()
        else:
            self._on_foreground()

    def close(self) -> None:
        self.disarm()
        self._unsubscribe()

    # ==================== Internals ====================

    def _on_background(self) -> None:
        if self._away:
            return
        self._away = True
        self._switch_attempts += 1
        logger.info("Switched away from app (attempt %d)", self._switch_attempts)

        title, body = REMINDER_TEXT[self._level]
        interval = self.reminder_intervals[self._level]
        self._check(
            self.notifier.schedule_reminder(
                interval, title, body, {"type": "study_reminder", "level": self._level.value}
            ),
            "schedule reminder",
        )
        if self._level is BlockingLevel.SCREEN_TIME:
            self._check(
                self.notifier.show_indicator(
                    "Focus Mode Active", "Return to the study app to continue your session"
                ),
                "show indicator",
            )

        self.bus.publish(
            SWITCH_AWAY,
            {"switch_attempts": self._switch_attempts, "level": self._level.value},
        )

    def _on_foreground(self) -> None:
        if not self._away:
            return
        self._away = False
        self._cancel_all()
        logger.info("Returned to app")
        self.bus.publish(
            SWITCH_ATTEMPT,
            {"switch_attempts": self._switch_attempts, "level": self._level.value},
        )

    def _cancel_all(self) -> None:
        self._check(self.notifier.cancel_reminders(), "cancel reminders")
        if self._level is BlockingLevel.SCREEN_TIME:
            self._check(self.notifier.clear_indicator(), "clear indicator")

    def _check(self, result: tuple[bool, str], action: str) -> bool:
        """Log and publish platform failures; blocking carries on degraded."""
        success, message = result
        if not success:
            self.degraded = True
            logger.warning(f"Could not {action}: {message}")
            self.bus.publish(PLATFORM_ERROR, {"action": action, "message": message})
        return success
