"""
Session log, streak and derived statistics.
"""

from focus_os.stats.aggregator import (
    StatsAggregator,
    StatsSnapshot,
    method_counts,
    session_history,
    study_stats,
    total_minutes,
)
from focus_os.stats.store import SessionRecord, SessionStore, new_record_id
from focus_os.stats.streak import StreakState, StreakTracker, advance_streak, effective_streak

__all__ = [
    "StatsAggregator",
    "StatsSnapshot",
    "method_counts",
    "session_history",
    "study_stats",
    "total_minutes",
    "SessionRecord",
    "SessionStore",
    "new_record_id",
    "StreakState",
    "StreakTracker",
    "advance_streak",
    "effective_streak",
]
