"""
StatsAggregator - derived study statistics over the session log.

Nothing here is stored. Every figure is recomputed from SessionStore and
StreakTracker on demand, so a snapshot read right after a completion
already includes it.
"""

import logging
import math
from collections import Counter
from dataclasses import asdict, dataclass, field
from datetime import date, timedelta

from focus_os.clock import Clock
from focus_os.slots.recommend import time_of_day
from focus_os.stats.store import SessionRecord, SessionStore
from focus_os.stats.streak import StreakTracker

logger = logging.getLogger(__name__)

DEFAULT_WINDOW_DAYS = 7


@dataclass(frozen=True)
class StatsSnapshot:
    todays_minutes: int = 0
    weekly_minutes: int = 0
    current_streak: int = 0
    longest_streak: int = 0
    sessions_today: int = 0
    total_sessions: int = 0
    errors: list[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        return asdict(self)


class StatsAggregator:
    """
    Args:
        store: Session log.
        streak: Streak tracker sharing the same database.
        clock: Supplies today's local date.
        weekly_window_days: Length of the "weekly" window ending today.
    """

    def __init__(
        self,
        store: SessionStore,
        streak: StreakTracker,
        clock: Clock,
        weekly_window_days: int = DEFAULT_WINDOW_DAYS,
    ):
        self.store = store
        self.streak = streak
        self.clock = clock
        self.weekly_window_days = weekly_window_days

    def recompute(self) -> StatsSnapshot:
        """
        Build a fresh snapshot.

        Storage read failures do not raise: the affected figures fall back
        to zero and the failure is listed in StatsSnapshot.errors.
        """
        errors = []

        todays = self.store.today()
        if self.store.last_error:
            errors.append(self.store.last_error)
        weekly = self.store.last_n_days(self.weekly_window_days)
        if self.store.last_error:
            errors.append(self.store.last_error)
        total = self.store.count()
        if self.store.last_error:
            errors.append(self.store.last_error)

        state = self.streak.state()
        if self.streak.last_error:
            errors.append(self.streak.last_error)
        current = self.streak.effective_current(self.clock.today())

        snapshot = StatsSnapshot(
            todays_minutes=total_minutes(todays),
            weekly_minutes=total_minutes(weekly),
            current_streak=current,
            longest_streak=state.longest_streak,
            sessions_today=sum(1 for r in todays if r.completed),
            total_sessions=total,
            errors=list(dict.fromkeys(errors)),
        )
        if snapshot.errors:
            logger.warning("Stats recomputed with %d storage error(s)", len(snapshot.errors))
        return snapshot

    def study_stats(self, days: int = DEFAULT_WINDOW_DAYS) -> dict:
        return study_stats(self.store.last_n_days(days), self.clock.today(), days)

    def history(self, days: int = DEFAULT_WINDOW_DAYS) -> list[SessionRecord]:
        return session_history(self.store.last_n_days(days), self.clock.today(), days)


def total_minutes(records: list[SessionRecord]) -> int:
    return sum(int(r.duration_minutes) for r in records)


def _in_window(record: SessionRecord, today: date, days: int) -> bool:
    return today - timedelta(days=days - 1) <= record.date <= today


def study_stats(records: list[SessionRecord], today: date, days: int = DEFAULT_WINDOW_DAYS) -> dict:
    """
    Summary of completed sessions dated within the last `days` days.

    Returns:
        total_sessions, total_minutes, average_session (minutes),
        method_breakdown {method_key: count}, best_time_of_day (most common
        start bucket, None without sessions), consistency (percent of days
        in the window with at least one session).
    """
    days = max(1, days)
    recent = [r for r in records if r.completed and _in_window(r, today, days)]

    stats = {
        "total_sessions": len(recent),
        "total_minutes": total_minutes(recent),
        "average_session": 0,
        "method_breakdown": {},
        "best_time_of_day": None,
        "consistency": 0,
    }
    if not recent:
        return stats

    stats["average_session"] = _round_half_up(stats["total_minutes"] / len(recent))
    stats["method_breakdown"] = method_counts(recent)

    buckets = Counter(time_of_day(r.start_time) for r in recent)
    # Counter.most_common keeps first-seen order among ties
    stats["best_time_of_day"] = buckets.most_common(1)[0][0]

    study_days = {r.date for r in recent}
    stats["consistency"] = _round_half_up(len(study_days) / days * 100)
    return stats


def method_counts(records: list[SessionRecord]) -> dict[str, int]:
    """Completed sessions per method."""
    return dict(Counter(r.method_key for r in records if r.completed))


def session_history(
    records: list[SessionRecord], today: date, days: int = DEFAULT_WINDOW_DAYS
) -> list[SessionRecord]:
    """Records from the last `days` days, newest first."""
    recent = [r for r in records if _in_window(r, today, max(1, days))]
    return sorted(recent, key=lambda r: r.start_time, reverse=True)


def _round_half_up(value: float) -> int:
    return math.floor(value + 0.5)
