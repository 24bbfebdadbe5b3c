"""
Tests for FocusApp - timer, blocking, session log and stats wired together.
"""

from datetime import date, datetime, timedelta, timezone

import pytest

from focus_os.app import PERSISTENCE_ERROR, SESSION_LOGGED, FocusApp
from focus_os.clock import ManualClock
from focus_os.events import EventBus
from focus_os.session.blocking import BlockingLevel
from focus_os.session.timer import BLOCKING_STOP, TIMER_COMPLETE, TIMER_STATUS, TimerStatus
from tests.conftest import TZ

TODAY = date(2026, 10, 19)


def complete(app, clock, seconds=1500):
    app.start()
    clock.advance(seconds)
    app.tick()


class TestCompletion:
    def test_completion_logs_record_and_streak(self, focus_app, clock):
        complete(focus_app, clock)

        assert focus_app.timer.status is TimerStatus.COMPLETED
        [record] = focus_app.store.all()
        assert record.completed is True
        assert record.duration_minutes == 25
        assert record.method_key == "pomodoro"
        assert record.date == TODAY
        assert focus_app.streak.state().current_streak == 1

    def test_event_order(self, focus_app, clock, bus):
        complete(focus_app, clock)
        relevant = {TIMER_STATUS, BLOCKING_STOP, TIMER_COMPLETE, SESSION_LOGGED}
        types = [e.event_type for e in bus.history() if e.event_type in relevant]
        assert types[-4:] == [TIMER_STATUS, BLOCKING_STOP, TIMER_COMPLETE, SESSION_LOGGED]

    def test_stats_include_completion_immediately(self, focus_app, clock):
        seen = []
        focus_app.bus.subscribe(SESSION_LOGGED, lambda e: seen.append(focus_app.stats()))
        complete(focus_app, clock)

        snapshot = seen[0]
        assert snapshot.todays_minutes == 25
        assert snapshot.sessions_today == 1
        assert snapshot.current_streak == 1

    def test_record_carries_session_id(self, focus_app, clock):
        focus_app.start()
        session_id = focus_app.timer.session_id
        clock.advance(1500)
        focus_app.tick()
        assert focus_app.store.all()[0].session_id == session_id

    def test_next_day_extends_streak(self, focus_app, clock):
        complete(focus_app, clock)
        focus_app.reset()
        clock.advance(days=1)
        complete(focus_app, clock)
        assert focus_app.stats().current_streak == 2

    def test_pauses_do_not_shorten_logged_duration(self, focus_app, clock):
        focus_app.start()
        clock.advance(600)
        focus_app.pause()
        clock.advance(3600)
        focus_app.start()
        clock.advance(900)
        focus_app.tick()
        assert focus_app.store.all()[0].duration_minutes == 25


class TestStop:
    def test_plain_stop_logs_nothing(self, focus_app, clock):
        focus_app.start()
        clock.advance(600)
        assert focus_app.stop() is None
        assert focus_app.store.count() == 0
        assert focus_app.timer.status is TimerStatus.IDLE

    def test_stop_with_log_records_partial_session(self, focus_app, clock, recorder):
        focus_app.start()
        clock.advance(630)
        record = focus_app.stop(log=True)

        assert record.duration_minutes == 10
        assert record.completed is False
        assert focus_app.store.count() == 1
        assert focus_app.streak.state().current_streak == 0
        assert len(recorder.of(SESSION_LOGGED)) == 1

    def test_stop_when_idle(self, focus_app):
        assert focus_app.stop(log=True) is None


class TestBlocking:
    def test_blocking_follows_config(self, focus_app, config):
        config.set("blocking.enabled", False)
        focus_app.start()
        assert focus_app.blocking.enabled is False

    def test_start_with_level(self, focus_app):
        focus_app.start(blocking=True, level="strict")
        assert focus_app.blocking.armed is True
        assert focus_app.blocking.level is BlockingLevel.STRICT

    def test_resume_keeps_attempts(self, focus_app, clock):
        focus_app.start(blocking=True)
        focus_app.app_state("background")
        focus_app.app_state("foreground")
        focus_app.pause()
        assert focus_app.blocking.enabled is False

        clock.advance(60)
        focus_app.start()
        assert focus_app.blocking.enabled is True
        assert focus_app.blocking.switch_attempts == 1

    def test_fresh_start_resets_attempts(self, focus_app):
        focus_app.start(blocking=True)
        focus_app.app_state("background")
        focus_app.stop()
        focus_app.start(blocking=True)
        assert focus_app.blocking.switch_attempts == 0

    def test_disable_blocking(self, focus_app, notifier):
        focus_app.start(blocking=True)
        focus_app.app_state("background")
        focus_app.disable_blocking()
        assert focus_app.blocking.enabled is False
        assert notifier.active_reminders == []

    def test_completion_disarms(self, focus_app, clock):
        focus_app.start(blocking=True)
        clock.advance(1500)
        focus_app.tick()
        assert focus_app.blocking.enabled is False


class TestPersistenceFailure:
    def test_completion_survives_broken_storage(
        self, config, clock, scheduler, broken_db, notifier, methods, bus, recorder
    ):
        app = FocusApp(
            config=config,
            clock=clock,
            scheduler=scheduler,
            database=broken_db,
            notifier=notifier,
            methods=methods,
            bus=bus,
        )
        complete(app, clock)

        assert app.timer.status is TimerStatus.COMPLETED
        failures = recorder.of(PERSISTENCE_ERROR)
        assert [f.data["operation"] for f in failures] == ["append session", "write streak"]
        assert recorder.of(SESSION_LOGGED) == []
        assert app.stats().errors
        app.close()


class TestSlots:
    def test_find_slots_from_raw_events(self, focus_app):
        events = [{"start_time": "2026-10-19T10:00", "end_time": "2026-10-19T11:00"}]
        start = datetime(2026, 10, 19, 9, 0, tzinfo=TZ)
        slots = focus_app.find_slots(events, start, start + timedelta(hours=3))
        assert sorted((s.start_time.hour, s.duration_minutes) for s in slots) == [(9, 60), (11, 60)]

    def test_preferences_drop_early_slots(self, focus_app):
        start = datetime(2026, 10, 19, 6, 0, tzinfo=TZ)
        end = datetime(2026, 10, 19, 7, 30, tzinfo=TZ)
        assert focus_app.find_slots([], start, end) != []
        assert focus_app.find_slots([], start, end, use_preferences=True) == []

    def test_min_duration_from_config(self, focus_app, config):
        config.set("calendar.min_duration_minutes", 90)
        start = datetime(2026, 10, 19, 9, 0, tzinfo=TZ)
        assert focus_app.find_slots([], start, start + timedelta(minutes=60)) == []

    def test_recommend_slots(self, focus_app):
        events = [{"start_time": "2026-10-19T10:00", "end_time": "2026-10-19T11:00"}]
        start = datetime(2026, 10, 19, 9, 0, tzinfo=TZ)
        recs = focus_app.recommend_slots(events, start, start + timedelta(hours=3))

        assert [r.priority for r in recs] == [1, 2]
        assert recs[0].slot.start_time.hour == 9
        assert recs[0].reason == "Morning focus time"


class TestLocalDates:
    """Records, today filters and the streak use the clock's local date."""

    @pytest.fixture
    def make_app(self, config, scheduler, db, notifier, methods):
        apps = []

        def build(moment):
            clock = ManualClock(moment)
            app = FocusApp(
                config=config,
                clock=clock,
                scheduler=scheduler,
                database=db,
                notifier=notifier,
                methods=methods,
                bus=EventBus(clock=clock),
            )
            apps.append(app)
            return app, clock

        yield build
        for app in apps:
            app.close()

    def test_late_evening_session_keeps_local_date(self, make_app, new_york):
        app, clock = make_app(datetime(2026, 11, 1, 23, 0, tzinfo=new_york))
        complete(app, clock)

        [record] = app.store.all()
        assert record.date == date(2026, 11, 1)
        assert record.end_time.astimezone(timezone.utc).date() == date(2026, 11, 2)
        assert len(app.store.today()) == 1
        assert app.streak.state().last_study_date == date(2026, 11, 1)

        clock.advance(minutes=60)
        assert clock.today() == date(2026, 11, 2)
        assert app.store.today() == []
        assert app.streak.effective_current() == 1
        snapshot = app.stats()
        assert snapshot.todays_minutes == 0
        assert snapshot.weekly_minutes == 25

    def test_streak_across_spring_forward(self, make_app, new_york):
        app, clock = make_app(datetime(2026, 3, 7, 23, 20, tzinfo=new_york))
        complete(app, clock)
        app.reset()
        clock.advance(hours=3)
        assert clock.now().hour == 3
        complete(app, clock)

        assert [r.date for r in app.store.all()] == [date(2026, 3, 7), date(2026, 3, 8)]
        assert app.streak.state().current_streak == 2
        assert app.stats().sessions_today == 1
