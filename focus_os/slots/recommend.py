"""
Slot selection helpers on top of find_free_slots.

- filter_by_preferences: keep slots inside the user's study hours
- optimal_slots: the best few slots of a search
- recommend: best slots annotated with a reason and a confidence score
  derived from the user's recent study history
"""

import logging
from dataclasses import dataclass
from datetime import date, datetime

from focus_os.slots.free_slots import FreeSlot

logger = logging.getLogger(__name__)

MORNING = "morning"
AFTERNOON = "afternoon"
EVENING = "evening"
NIGHT = "night"


def time_of_day(moment: datetime) -> str:
    """Bucket a timestamp: morning 6-12, afternoon 12-17, evening 17-21, else night."""
    hour = moment.hour
    if 6 <= hour < 12:
        return MORNING
    if 12 <= hour < 17:
        return AFTERNOON
    if 17 <= hour < 21:
        return EVENING
    return NIGHT


def _minutes_of(hhmm: str) -> int:
    hours, _, minutes = str(hhmm).partition(":")
    return int(hours) * 60 + int(minutes or 0)


def filter_by_preferences(
    slots: list[FreeSlot],
    earliest: str = "08:00",
    latest: str = "22:00",
    preferred_durations: list[int] | None = None,
) -> list[FreeSlot]:
    """
    Keep slots that start within [earliest, latest] (HH:MM, inclusive) and
    are at least as long as one of the preferred durations.
    """
    lo, hi = _minutes_of(earliest), _minutes_of(latest)
    durations = preferred_durations or []

    kept = []
    for slot in slots:
        start = slot.start_time.hour * 60 + slot.start_time.minute
        if not lo <= start <= hi:
            continue
        if durations and not any(slot.duration_minutes >= d for d in durations):
            continue
        kept.append(slot)
    return kept


def optimal_slots(slots: list[FreeSlot], max_slots: int = 3) -> list[FreeSlot]:
    ranked = sorted(slots, key=lambda s: (-s.quality_score, s.start_time))
    return ranked[: max(0, max_slots)]


@dataclass(frozen=True)
class Recommendation:
    slot: FreeSlot
    priority: int
    reason: str
    confidence: int

    def to_dict(self) -> dict:
        return {
            **self.slot.to_dict(),
            "priority": self.priority,
            "reason": self.reason,
            "confidence": self.confidence,
        }


def recommend(
    slots: list[FreeSlot],
    history: list | None = None,
    today: date | None = None,
    max_slots: int = 5,
) -> list[Recommendation]:
    """
    Rank the best slots and explain each pick.

    Args:
        slots: Candidates from find_free_slots.
        history: SessionRecords used to find the user's productive hours.
        today: Reference date for the history window (latest slot date if None).
        max_slots: How many recommendations to return.
    """
    from focus_os.stats.aggregator import study_stats

    best = optimal_slots(slots, max_slots)
    if today is None:
        today = max((s.start_time.date() for s in best), default=date.today())
    stats = study_stats(history or [], today)

    recommendations = [
        Recommendation(
            slot=slot,
            priority=index + 1,
            reason=recommendation_reason(slot, stats.get("best_time_of_day")),
            confidence=recommendation_confidence(slot, stats),
        )
        for index, slot in enumerate(best)
    ]
    logger.debug("Built %d recommendation(s) from %d slot(s)", len(recommendations), len(slots))
    return recommendations


def recommendation_reason(slot: FreeSlot, best_time_of_day: str | None = None) -> str:
    """First matching reason, most specific first."""
    if slot.quality_score >= 80:
        return "High-quality time slot"
    if slot.duration_minutes >= 90:
        return "Perfect for deep work"
    bucket = time_of_day(slot.start_time)
    if best_time_of_day and bucket == best_time_of_day:
        return "Matches your productive hours"
    if bucket == MORNING:
        return "Morning focus time"
    return "Available study time"


def recommendation_confidence(slot: FreeSlot, stats: dict) -> int:
    confidence = slot.quality_score
    if stats.get("best_time_of_day") == time_of_day(slot.start_time):
        confidence += 10
    if stats.get("consistency", 0) > 70:
        confidence += 5
    return min(100, confidence)
