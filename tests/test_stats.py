"""
Tests for derived statistics.
"""

from datetime import date, timedelta

import pytest

from focus_os.stats.aggregator import (
    StatsAggregator,
    _round_half_up,
    method_counts,
    session_history,
    study_stats,
)
from focus_os.stats.store import SessionStore
from focus_os.stats.streak import StreakTracker
from tests.conftest import TZ
from tests.fixtures import make_record

TODAY = date(2026, 10, 19)


def days_ago(n):
    return TODAY - timedelta(days=n)


@pytest.fixture
def aggregator(db, clock):
    return StatsAggregator(SessionStore(db, clock), StreakTracker(db, clock), clock)


class TestRecompute:
    def test_empty(self, aggregator):
        snapshot = aggregator.recompute()
        assert snapshot.todays_minutes == 0
        assert snapshot.current_streak == 0
        assert snapshot.total_sessions == 0
        assert snapshot.errors == []

    def test_minutes_and_counts(self, aggregator):
        store = aggregator.store
        store.append(make_record(TODAY, minutes=25, tz=TZ))
        store.append(make_record(TODAY, minutes=10, completed=False, tz=TZ))
        store.append(make_record(days_ago(1), minutes=45, tz=TZ))
        store.append(make_record(days_ago(7), minutes=90, tz=TZ))

        snapshot = aggregator.recompute()
        assert snapshot.todays_minutes == 35
        assert snapshot.weekly_minutes == 80
        assert snapshot.sessions_today == 1
        assert snapshot.total_sessions == 4

    def test_streak_figures(self, aggregator):
        aggregator.streak.update(days_ago(1))
        aggregator.streak.update(TODAY)
        snapshot = aggregator.recompute()
        assert (snapshot.current_streak, snapshot.longest_streak) == (2, 2)

    def test_lapsed_streak_reads_zero(self, aggregator):
        aggregator.streak.update(days_ago(3))
        snapshot = aggregator.recompute()
        assert snapshot.current_streak == 0
        assert snapshot.longest_streak == 1

    def test_configurable_weekly_window(self, db, clock):
        agg = StatsAggregator(SessionStore(db, clock), StreakTracker(db, clock), clock, 3)
        agg.store.append(make_record(days_ago(2), minutes=25, tz=TZ))
        agg.store.append(make_record(days_ago(3), minutes=25, tz=TZ))
        assert agg.recompute().weekly_minutes == 25

    def test_storage_failure_reported_not_raised(self, broken_db, clock):
        agg = StatsAggregator(
            SessionStore(broken_db, clock), StreakTracker(broken_db, clock), clock
        )
        snapshot = agg.recompute()
        assert snapshot.todays_minutes == 0
        assert snapshot.total_sessions == 0
        assert snapshot.errors
        assert all("disk I/O error" in e for e in snapshot.errors)
        assert len(snapshot.errors) == len(set(snapshot.errors))

    def test_to_dict(self, aggregator):
        data = aggregator.recompute().to_dict()
        assert set(data) >= {"todays_minutes", "weekly_minutes", "current_streak", "errors"}


class TestStudyStats:
    def test_empty(self):
        stats = study_stats([], TODAY)
        assert stats["total_sessions"] == 0
        assert stats["best_time_of_day"] is None
        assert stats["consistency"] == 0

    def test_summary(self):
        records = [
            make_record(TODAY, hour=9, minutes=25, tz=TZ),
            make_record(days_ago(1), hour=10, minutes=45, method_key="focus", tz=TZ),
            make_record(days_ago(3), hour=15, minutes=30, tz=TZ),
            make_record(TODAY, hour=20, minutes=5, completed=False, tz=TZ),
            make_record(days_ago(7), hour=9, minutes=90, tz=TZ),
        ]
        stats = study_stats(records, TODAY, 7)

        assert stats["total_sessions"] == 3
        assert stats["total_minutes"] == 100
        assert stats["average_session"] == 33
        assert stats["method_breakdown"] == {"pomodoro": 2, "focus": 1}
        assert stats["best_time_of_day"] == "morning"
        # 3 of 7 days = 42.86%
        assert stats["consistency"] == 43

    def test_aggregator_study_stats(self, aggregator):
        aggregator.store.append(make_record(TODAY, tz=TZ))
        assert aggregator.study_stats(7)["total_sessions"] == 1

    @pytest.mark.parametrize("value,expected", [(2.5, 3), (42.5, 43), (33.3, 33), (0.49, 0)])
    def test_round_half_up(self, value, expected):
        assert _round_half_up(value) == expected


class TestHistory:
    def test_method_counts_only_completed(self):
        records = [
            make_record(TODAY, method_key="focus", tz=TZ),
            make_record(TODAY, method_key="focus", completed=False, tz=TZ),
        ]
        assert method_counts(records) == {"focus": 1}

    def test_session_history_newest_first(self):
        records = [
            make_record(days_ago(2), tz=TZ),
            make_record(TODAY, hour=8, tz=TZ),
            make_record(days_ago(10), tz=TZ),
            make_record(TODAY, hour=16, completed=False, tz=TZ),
        ]
        history = session_history(records, TODAY, 7)
        assert [(r.date, r.start_time.hour) for r in history] == [
            (TODAY, 16),
            (TODAY, 8),
            (days_ago(2), 9),
        ]

    def test_aggregator_history(self, aggregator):
        aggregator.store.append(make_record(days_ago(1), tz=TZ))
        aggregator.store.append(make_record(TODAY, tz=TZ))
        assert [r.date for r in aggregator.history(7)] == [TODAY, days_ago(1)]
