"""
Time sources.

All "now" and "today" questions in Focus Time OS go through a Clock so the
timer, the session log and the streak agree on one timezone, and so tests
can move time by hand.
"""

import logging
from datetime import date, datetime, timedelta, timezone, tzinfo
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

logger = logging.getLogger(__name__)


class Clock:
    """Base time source. Subclasses implement now()."""

    def now(self) -> datetime:
        raise NotImplementedError

    def today(self) -> date:
        """Local calendar date in the clock's timezone."""
        return self.now().date()


class SystemClock(Clock):
    """
    Wall clock in a fixed timezone.

    Args:
        timezone: IANA name ("Asia/Dubai"), a tzinfo, or None for the
            host's local zone.
    """

    def __init__(self, timezone: str | tzinfo | None = None):
        self.tz = resolve_timezone(timezone)

    def now(self) -> datetime:
        if self.tz is None:
            return datetime.now().astimezone()
        return datetime.now(self.tz)


class ManualClock(Clock):
    """Clock that only moves when told to. Used by tests and replays."""

    def __init__(self, start: datetime):
        if start.tzinfo is None:
            start = start.astimezone()
        self._now = start

    def now(self) -> datetime:
        return self._now

    def set(self, moment: datetime) -> None:
        if moment.tzinfo is None:
            moment = moment.replace(tzinfo=self._now.tzinfo)
        self._now = moment

    def advance(self, seconds: float = 0, **kwargs) -> datetime:
        """Move forward by seconds (plus any timedelta kwargs) of real time."""
        instant = self._now.astimezone(timezone.utc) + timedelta(seconds=seconds, **kwargs)
        self._now = instant.astimezone(self._now.tzinfo)
        return self._now


def resolve_timezone(value: str | tzinfo | None) -> tzinfo | None:
    if value is None or isinstance(value, tzinfo):
        return value
    if value in ("", "local"):
        return None
    try:
        return ZoneInfo(value)
    except ZoneInfoNotFoundError:
        logger.warning("Unknown timezone %r, falling back to local time", value)
        return None
