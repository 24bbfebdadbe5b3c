"""
Test doubles for the platform and storage boundaries.
"""

import sqlite3
from datetime import date, datetime, timedelta

from focus_os.db import Database
from focus_os.events import EventBus
from focus_os.session.notifier import Notifier
from focus_os.stats.store import SessionRecord


class RecordingNotifier(Notifier):
    """Notifier that records every call and can be told to fail."""

    def __init__(self, fail: bool = False):
        self.fail = fail
        self.calls: list[tuple] = []
        self.active_reminders: list[dict] = []
        self.indicator_shown = False

    def schedule_reminder(self, interval_seconds, title, body, data=None):
        self.calls.append(("schedule", interval_seconds, title))
        if self.fail:
            return False, "permission denied"
        self.active_reminders.append({"interval": interval_seconds, "title": title, "data": data})
        return True, f"rem-{len(self.calls)}"

    def cancel_reminders(self):
        self.calls.append(("cancel",))
        self.active_reminders.clear()
        return True, "cancelled"

    def show_indicator(self, title, body):
        self.calls.append(("show_indicator", title))
        if self.fail:
            return False, "permission denied"
        self.indicator_shown = True
        return True, "shown"

    def clear_indicator(self):
        self.calls.append(("clear_indicator",))
        self.indicator_shown = False
        return True, "cleared"


class BrokenDatabase(Database):
    """Database whose every connection fails."""

    def connection(self, row_factory: bool = True):
        raise sqlite3.OperationalError("disk I/O error")


class EventRecorder:
    """Collects every event published on a bus."""

    def __init__(self, bus: EventBus):
        self.events = []
        bus.subscribe("*", self.events.append)

    @property
    def types(self) -> list[str]:
        return [e.event_type for e in self.events]

    def of(self, event_type: str) -> list:
        return [e for e in self.events if e.event_type == event_type]

    def clear(self) -> None:
        self.events.clear()


def make_record(
    day: date,
    hour: int = 9,
    minutes: int = 25,
    method_key: str = "pomodoro",
    completed: bool = True,
    tz=None,
) -> SessionRecord:
    """A session record starting at `hour` on `day`."""
    start = datetime(day.year, day.month, day.day, hour, 0, tzinfo=tz)
    return SessionRecord(
        date=day,
        start_time=start,
        end_time=start + timedelta(minutes=minutes),
        duration_minutes=minutes,
        method_key=method_key,
        completed=completed,
    )
