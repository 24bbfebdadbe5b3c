"""
Study streak: consecutive local calendar days with a completed session.

Transition on a completed session dated D (last = last_study_date):
    D == last        -> unchanged
    D == last + 1    -> current + 1
    anything else    -> current = 1
then longest = max(longest, current) and last = D.

The stored streak is only changed by completions. A streak that lapsed
(last study day before yesterday) is reported as 0 by effective_current()
without rewriting storage.
"""

import logging
import sqlite3
from dataclasses import dataclass
from datetime import date, timedelta

from focus_os.clock import Clock
from focus_os.db import Database, PersistenceError
from focus_os.schema import STREAK_KEY

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class StreakState:
    current_streak: int = 0
    longest_streak: int = 0
    last_study_date: date | None = None

    def to_dict(self) -> dict:
        return {
            "current": self.current_streak,
            "longest": self.longest_streak,
            "last_study_date": self.last_study_date.isoformat() if self.last_study_date else None,
        }

    @classmethod
    def from_dict(cls, data: dict | None) -> "StreakState":
        if not data:
            return cls()
        last = data.get("last_study_date") or data.get("lastStudyDate")
        current = max(0, int(data.get("current", 0)))
        longest = max(current, int(data.get("longest", 0)))
        return cls(
            current_streak=current,
            longest_streak=longest,
            last_study_date=date.fromisoformat(last[:10]) if last else None,
        )


def advance_streak(state: StreakState, completed_on: date) -> StreakState:
    """Apply one completed session to a streak."""
    last = state.last_study_date
    if last == completed_on:
        return state
    if last is not None and completed_on - last == timedelta(days=1):
        current = state.current_streak + 1
    else:
        current = 1
    return StreakState(
        current_streak=current,
        longest_streak=max(state.longest_streak, current),
        last_study_date=completed_on,
    )


def effective_streak(state: StreakState, today: date) -> int:
    """Current streak as of today: 0 once a whole day has been missed."""
    if state.last_study_date is None:
        return 0
    if state.last_study_date < today - timedelta(days=1):
        return 0
    return state.current_streak


class StreakTracker:
    """
    Persists StreakState in the kv table.

    Args:
        db: Database holding the kv table.
        clock: Supplies today's local date.
    """

    def __init__(self, db: Database, clock: Clock):
        self.db = db
        self.clock = clock
        self.last_error: str | None = None

    def state(self) -> StreakState:
        """Stored streak, or an empty one if it cannot be read."""
        try:
            state = StreakState.from_dict(self.db.get_json(STREAK_KEY))
        except (sqlite3.Error, ValueError, TypeError) as e:
            self.last_error = f"read streak: {e}"
            logger.error(f"Could not read streak: {e}")
            return StreakState()
        self.last_error = None
        return state

    def update(self, completed_on: date | None = None) -> StreakState:
        """
        Record a completed session on completed_on (today by default).

        Raises:
            PersistenceError if the new state cannot be written.
        """
        completed_on = completed_on or self.clock.today()
        before = self.state()
        after = advance_streak(before, completed_on)
        if after != before:
            self._save(after)
            logger.info(
                "Streak now %d day(s) (longest %d)", after.current_streak, after.longest_streak
            )
        return after

    def effective_current(self, today: date | None = None) -> int:
        return effective_streak(self.state(), today or self.clock.today())

    def rebuild(self, records) -> StreakState:
        """
        Recompute the streak from a session log, e.g. after an import.

        Only completed records count; each distinct date is applied once in
        chronological order.
        """
        state = StreakState()
        for day in sorted({r.date for r in records if r.completed}):
            state = advance_streak(state, day)
        self._save(state)
        logger.info("Rebuilt streak from %d record(s): %s", len(records), state.to_dict())
        return state

    def reset(self) -> None:
        self._save(StreakState())

    def _save(self, state: StreakState) -> None:
        try:
            self.db.set_json(STREAK_KEY, state.to_dict())
        except sqlite3.Error as e:
            self.last_error = f"write streak: {e}"
            logger.error(f"Could not write streak: {e}")
            raise PersistenceError("write streak", e) from e
