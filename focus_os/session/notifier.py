"""
Notification scheduler boundary.

The BlockingController asks a notifier for repeating reminders and a
persistent "focus mode" indicator. Delivery is the host platform's job; the
core only needs (success, message) results so it can degrade gracefully.
"""

import logging
import uuid
from dataclasses import dataclass, field

logger = logging.getLogger(__name__)


@dataclass
class Reminder:
    id: str
    interval_seconds: int
    title: str
    body: str
    data: dict = field(default_factory=dict)


class Notifier:
    """Interface for notification schedulers."""

    def schedule_reminder(
        self, interval_seconds: int, title: str, body: str, data: dict | None = None
    ) -> tuple[bool, str]:
        """Schedule a repeating reminder. Returns (success, reminder_id or error)."""
        raise NotImplementedError

    def cancel_reminders(self) -> tuple[bool, str]:
        raise NotImplementedError

    def show_indicator(self, title: str, body: str) -> tuple[bool, str]:
        """Show a persistent indicator until clear_indicator()."""
        raise NotImplementedError

    def clear_indicator(self) -> tuple[bool, str]:
        raise NotImplementedError


class LogNotifier(Notifier):
    """
    Headless notifier: keeps reminders in memory and writes them to the log.

    Used by the CLI and API server where no platform notifier is attached.
    """

    def __init__(self):
        self.reminders: dict[str, Reminder] = {}
        self.indicator: tuple[str, str] | None = None

    def schedule_reminder(self, interval_seconds, title, body, data=None):
        reminder = Reminder(
            id=f"rem-{uuid.uuid4().hex[:12]}",
            interval_seconds=interval_seconds,
            title=title,
            body=body,
            data=data or {},
        )
        self.reminders[reminder.id] = reminder
        logger.info("Reminder every %ss: %s", interval_seconds, title)
        return True, reminder.id

    def cancel_reminders(self):
        count = len(self.reminders)
        self.reminders.clear()
        if count:
            logger.info("Cancelled %d reminder(s)", count)
        return True, f"cancelled {count}"

    def show_indicator(self, title, body):
        self.indicator = (title, body)
        logger.info("Indicator shown: %s", title)
        return True, "shown"

    def clear_indicator(self):
        had_indicator = self.indicator is not None
        self.indicator = None
        return True, "cleared" if had_indicator else "none"
