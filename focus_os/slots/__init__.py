"""
Free study slot discovery from calendar events.
"""

from focus_os.slots.events import CalendarEvent, parse_datetime, parse_event, parse_events
from focus_os.slots.free_slots import (
    DEFAULT_TIERS,
    FreeSlot,
    assess_quality,
    buffer_minutes,
    find_free_slots,
    suggest_method,
    tiers_from_config,
)
from focus_os.slots.recommend import (
    Recommendation,
    filter_by_preferences,
    optimal_slots,
    recommend,
    time_of_day,
)

__all__ = [
    "CalendarEvent",
    "parse_datetime",
    "parse_event",
    "parse_events",
    "DEFAULT_TIERS",
    "FreeSlot",
    "assess_quality",
    "buffer_minutes",
    "find_free_slots",
    "suggest_method",
    "tiers_from_config",
    "Recommendation",
    "filter_by_preferences",
    "optimal_slots",
    "recommend",
    "time_of_day",
]
