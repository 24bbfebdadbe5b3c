"""
Calendar event input.

Events come from an external provider (Google Calendar export, device
calendar bridge, a JSON file). They are read-only here: parse_events turns
raw dicts into CalendarEvent, skipping anything malformed.
"""

import logging
from dataclasses import dataclass
from datetime import date, datetime, time, tzinfo

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CalendarEvent:
    """A busy interval. end_time is exclusive."""

    start_time: datetime | None
    end_time: datetime | None
    all_day: bool = False
    summary: str = ""
    id: str | None = None

    @property
    def is_timed(self) -> bool:
        """True for events that can block a study slot."""
        if self.all_day or self.start_time is None or self.end_time is None:
            return False
        return self.end_time >= self.start_time

    @property
    def duration_minutes(self) -> int:
        if not self.is_timed:
            return 0
        return int((self.end_time - self.start_time).total_seconds() / 60)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "summary": self.summary,
            "start_time": self.start_time.isoformat() if self.start_time else None,
            "end_time": self.end_time.isoformat() if self.end_time else None,
            "all_day": self.all_day,
        }


def parse_datetime(value, tz: tzinfo | None = None) -> datetime | None:
    """Parse an ISO string (Z suffix allowed) or pass through a datetime."""
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, date):
        parsed = datetime.combine(value, time.min)
    else:
        text = str(value).strip()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        parsed = datetime.fromisoformat(text)
    if parsed.tzinfo is None and tz is not None:
        parsed = parsed.replace(tzinfo=tz)
    return parsed


def parse_event(raw: dict, tz: tzinfo | None = None) -> CalendarEvent:
    """
    Build a CalendarEvent from one raw dict.

    Accepted shapes:
    - Google style: {"start": {"dateTime": ...} | {"date": ...}, "end": {...}}
    - Flat: {"start_time": ..., "end_time": ..., "all_day": bool}
    - Device bridge: {"startDate": ..., "endDate": ..., "allDay": bool}

    Raises:
        ValueError on unparseable timestamps.
    """
    start_raw, end_raw = raw.get("start"), raw.get("end")
    if isinstance(start_raw, dict) or isinstance(end_raw, dict):
        start_raw = start_raw or {}
        end_raw = end_raw or {}
        all_day = "dateTime" not in start_raw and "date" in start_raw
        start_value = start_raw.get("dateTime", start_raw.get("date"))
        end_value = end_raw.get("dateTime", end_raw.get("date"))
    else:
        start_value = raw.get("start_time", raw.get("startDate", start_raw))
        end_value = raw.get("end_time", raw.get("endDate", end_raw))
        all_day = bool(raw.get("all_day", raw.get("allDay", False)))

    return CalendarEvent(
        start_time=parse_datetime(start_value, tz),
        end_time=parse_datetime(end_value, tz),
        all_day=all_day,
        summary=raw.get("summary", raw.get("title", "")) or "",
        id=raw.get("id"),
    )


def parse_events(raw_events: list, tz: tzinfo | None = None) -> list[CalendarEvent]:
    """Parse a list of raw events, skipping the ones that cannot be read."""
    events = []
    for raw in raw_events or []:
        if isinstance(raw, CalendarEvent):
            events.append(raw)
            continue
        if not isinstance(raw, dict):
            logger.warning(f"Skipping non-dict calendar event: {raw!r}")
            continue
        try:
            events.append(parse_event(raw, tz))
        except (TypeError, ValueError) as e:
            logger.warning(f"Skipping malformed calendar event {raw.get('id')}: {e}")
    return events
