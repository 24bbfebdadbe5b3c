"""
Free Slot Finder - study slots in the gaps between calendar events.

Algorithm:
1. Drop all-day, malformed and out-of-window events; sort by start.
2. Walk the events with a cursor starting at window_start. A gap before an
   event is a candidate; the cursor then moves to max(cursor, event end) so
   overlapping or nested events never move it backwards.
3. The gap after the last event up to window_end is a candidate too.
4. Candidates shorter than the minimum are dropped, the rest are scored
   (0-100) and get a suggested study method.

Slots are returned best first: quality descending, then earliest start.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta

from focus_os.methods import StudyMethod
from focus_os.slots.events import CalendarEvent

logger = logging.getLogger(__name__)

DEFAULT_MIN_DURATION = 25

# Assumed buffer (minutes) when no event is adjacent to a slot
NO_NEIGHBOUR_BUFFER = 60

DEFAULT_TIERS = (
    (90, "deepwork"),
    (45, "focus"),
    (25, "pomodoro"),
)


@dataclass(frozen=True)
class FreeSlot:
    start_time: datetime
    end_time: datetime
    duration_minutes: int
    quality_score: int
    suggested_method: StudyMethod | None = None

    @property
    def time_of_day(self) -> str:
        from focus_os.slots.recommend import time_of_day

        return time_of_day(self.start_time)

    def to_dict(self) -> dict:
        method = self.suggested_method
        return {
            "start_time": self.start_time.isoformat(),
            "end_time": self.end_time.isoformat(),
            "duration_minutes": self.duration_minutes,
            "quality_score": self.quality_score,
            "suggested_method": method.key if method else None,
            "time_of_day": self.time_of_day,
        }


def find_free_slots(
    events: list[CalendarEvent],
    window_start: datetime,
    window_end: datetime,
    min_duration_minutes: float = DEFAULT_MIN_DURATION,
    methods: dict[str, StudyMethod] | None = None,
    tiers=DEFAULT_TIERS,
) -> list[FreeSlot]:
    """
    Find free study slots inside [window_start, window_end).

    Args:
        events: Busy intervals. All-day and malformed events are ignored.
        window_start: Search window start.
        window_end: Search window end (exclusive).
        min_duration_minutes: Shortest slot worth returning. Values <= 0 are
            treated as 1 minute.
        methods: Catalog for method suggestions (bundled catalog if None).
        tiers: (min_minutes, method_key) pairs, longest first.

    Returns:
        FreeSlot list sorted by quality desc, start asc.
    """
    if window_end <= window_start:
        return []

    if min_duration_minutes <= 0:
        logger.warning(
            f"min_duration_minutes={min_duration_minutes} is not positive, using 1 minute"
        )
        min_duration_minutes = 1

    busy = busy_intervals(events, window_start, window_end)
    minimum = timedelta(minutes=min_duration_minutes)

    gaps = []
    cursor = window_start
    for event in busy:
        gap_end = min(event.start_time, window_end)
        if gap_end > cursor and gap_end - cursor >= minimum:
            gaps.append((cursor, gap_end))
        cursor = max(cursor, event.end_time)
        if cursor >= window_end:
            break

    if cursor < window_end and window_end - cursor >= minimum:
        gaps.append((cursor, window_end))

    if methods is None:
        from focus_os.methods import load_methods

        methods = load_methods()

    slots = []
    for start, end in gaps:
        duration = int((end - start).total_seconds() // 60)
        slots.append(
            FreeSlot(
                start_time=start,
                end_time=end,
                duration_minutes=duration,
                quality_score=assess_quality(start, end, busy),
                suggested_method=suggest_method(duration, methods, tiers),
            )
        )

    slots.sort(key=lambda s: (-s.quality_score, s.start_time))
    logger.debug(
        "Found %d free slot(s) among %d busy interval(s)", len(slots), len(busy)
    )
    return slots


def busy_intervals(
    events: list[CalendarEvent], window_start: datetime, window_end: datetime
) -> list[CalendarEvent]:
    """Timed events that intersect the window, sorted by start."""
    busy = []
    for event in events:
        if not isinstance(event, CalendarEvent) or not event.is_timed:
            continue
        event = _align(event, window_start)
        if event.end_time <= window_start or event.start_time >= window_end:
            continue
        busy.append(event)
    busy.sort(key=lambda e: (e.start_time, e.end_time))
    return busy


def assess_quality(start: datetime, end: datetime, events: list[CalendarEvent]) -> int:
    """
    Score a slot's desirability for studying, clamped to [0, 100].

    Base 50, adjusted by start hour, duration, buffers around neighbouring
    events, meal hours and weekends.
    """
    quality = 50
    hour = start.hour
    duration = (end - start).total_seconds() / 60

    # Time of day
    if 9 <= hour <= 11:
        quality += 20
    elif 14 <= hour <= 16:
        quality += 15
    elif 19 <= hour <= 21:
        quality += 10
    elif hour < 8 or hour > 22:
        quality -= 20

    # Duration
    if duration >= 90:
        quality += 15
    elif duration >= 45:
        quality += 10
    elif duration >= 25:
        quality += 5

    # Buffers
    before = buffer_minutes(start, events, "before")
    after = buffer_minutes(end, events, "after")
    if before >= 15:
        quality += 5
    if after >= 15:
        quality += 5
    if before < 5:
        quality -= 10
    if after < 5:
        quality -= 10

    # Meals (lunch 11-13, dinner 17-19)
    if 11 <= hour <= 13 or 17 <= hour <= 19:
        quality -= 5

    if start.weekday() >= 5:
        quality += 5

    return max(0, min(100, quality))


def buffer_minutes(moment: datetime, events: list[CalendarEvent], direction: str) -> float:
    """
    Minutes between a slot edge and the nearest event on one side.

    direction="before": since the latest event ending at or before moment.
    direction="after": until the earliest event starting at or after moment.
    """
    if direction == "before":
        ends = [e.end_time for e in events if e.is_timed and e.end_time <= moment]
        if ends:
            return (moment - max(ends)).total_seconds() / 60
    else:
        starts = [e.start_time for e in events if e.is_timed and e.start_time >= moment]
        if starts:
            return (min(starts) - moment).total_seconds() / 60
    return NO_NEIGHBOUR_BUFFER


def suggest_method(
    duration_minutes: float,
    methods: dict[str, StudyMethod],
    tiers=DEFAULT_TIERS,
) -> StudyMethod | None:
    """Longest tier the slot fits, or None when it is too short for any."""
    for min_minutes, key in sorted(tiers, key=lambda t: t[0], reverse=True):
        if duration_minutes >= min_minutes:
            return methods.get(key)
    return None


def tiers_from_config(raw: list[dict] | None):
    """Convert config entries [{"min_minutes": 90, "method": "deepwork"}] to tiers."""
    if not raw:
        return DEFAULT_TIERS
    tiers = []
    for entry in raw:
        try:
            tiers.append((float(entry["min_minutes"]), str(entry["method"])))
        except (KeyError, TypeError, ValueError):
            logger.warning(f"Skipping invalid suggestion tier: {entry!r}")
    return tuple(tiers) or DEFAULT_TIERS


def _align(event: CalendarEvent, reference: datetime) -> CalendarEvent:
    """Give naive event times the window's timezone so they compare."""
    if reference.tzinfo is None or event.start_time.tzinfo is not None:
        return event
    return CalendarEvent(
        start_time=event.start_time.replace(tzinfo=reference.tzinfo),
        end_time=event.end_time.replace(tzinfo=reference.tzinfo),
        all_day=event.all_day,
        summary=event.summary,
        id=event.id,
    )
