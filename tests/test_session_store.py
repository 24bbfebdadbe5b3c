"""
Tests for SessionStore - the append-only session log.
"""

from datetime import date, timedelta

import pytest

from focus_os.db import Database, PersistenceError
from focus_os.stats.store import SessionRecord, SessionStore
from focus_os.stats.streak import StreakTracker
from tests.conftest import TZ
from tests.fixtures import make_record

TODAY = date(2026, 10, 19)


@pytest.fixture
def store(db, clock):
    return SessionStore(db, clock)


class TestAppend:
    def test_assigns_unique_ids(self, store):
        first = store.append(make_record(TODAY, tz=TZ))
        second = store.append(make_record(TODAY, tz=TZ))
        assert first.id.startswith("rec-")
        assert first.id != second.id

    def test_keeps_existing_id(self, store):
        record = make_record(TODAY, tz=TZ)
        stored = store.append(SessionRecord(**{**record.__dict__, "id": "rec-fixed"}))
        assert stored.id == "rec-fixed"

    def test_round_trips_fields(self, store):
        record = make_record(TODAY, hour=14, minutes=45, method_key="focus", tz=TZ)
        store.append(record)
        [loaded] = store.all()
        assert loaded.start_time == record.start_time
        assert loaded.end_time == record.end_time
        assert loaded.duration_minutes == 45
        assert loaded.method_key == "focus"
        assert loaded.completed is True

    def test_incomplete_flag_persists(self, store):
        store.append(make_record(TODAY, completed=False, tz=TZ))
        assert store.all()[0].completed is False

    def test_all_in_append_order(self, store):
        for hour in (15, 9, 12):
            store.append(make_record(TODAY, hour=hour, tz=TZ))
        assert [r.start_time.hour for r in store.all()] == [15, 9, 12]


class TestWindows:
    def test_today(self, store):
        store.append(make_record(TODAY, tz=TZ))
        store.append(make_record(TODAY - timedelta(days=1), tz=TZ))
        assert [r.date for r in store.today()] == [TODAY]

    def test_last_n_days_inclusive_of_today_minus_six(self, store):
        for offset in (0, 6, 7):
            store.append(make_record(TODAY - timedelta(days=offset), tz=TZ))
        dates = {r.date for r in store.last_n_days(7)}
        assert dates == {TODAY, TODAY - timedelta(days=6)}

    def test_last_zero_days_is_empty(self, store):
        store.append(make_record(TODAY, tz=TZ))
        assert store.last_n_days(0) == []

    def test_count(self, store):
        assert store.count() == 0
        store.append(make_record(TODAY, tz=TZ))
        assert store.count() == 1


class TestRemoval:
    def test_delete(self, store):
        record = store.append(make_record(TODAY, tz=TZ))
        assert store.delete(record.id) is True
        assert store.delete(record.id) is False
        assert store.all() == []

    def test_clear_removes_records_and_streak(self, store, db, clock):
        tracker = StreakTracker(db, clock)
        store.append(make_record(TODAY, tz=TZ))
        store.append(make_record(TODAY, tz=TZ))
        tracker.update(TODAY)

        assert store.clear() == 2
        assert store.count() == 0
        assert tracker.state().current_streak == 0


class TestExportImport:
    def test_export_shape(self, store, db, clock):
        store.append(make_record(TODAY, tz=TZ))
        StreakTracker(db, clock).update(TODAY)

        data = store.export()
        assert data["version"] == "1.0"
        assert len(data["sessions"]) == 1
        assert data["sessions"][0]["date"] == "2026-10-19"
        assert data["streak"] == {"current": 1, "longest": 1, "last_study_date": "2026-10-19"}

    def test_import_into_fresh_database(self, store, clock, tmp_path):
        store.append(make_record(TODAY, tz=TZ))
        store.append(make_record(TODAY - timedelta(days=1), tz=TZ))
        data = store.export()

        other = SessionStore(Database(tmp_path / "other.db"), clock)
        assert other.import_records(data) == 2
        assert [r.id for r in other.all()] == [r.id for r in store.all()]

    def test_merge_skips_existing_ids(self, store):
        store.append(make_record(TODAY, tz=TZ))
        data = store.export()
        assert store.import_records(data, replace=False) == 0
        assert store.count() == 1

    def test_replace_drops_existing(self, store):
        store.append(make_record(TODAY, tz=TZ))
        data = store.export()
        store.append(make_record(TODAY, tz=TZ))
        assert store.import_records(data) == 1
        assert store.count() == 1

    def test_unreadable_entries_skipped(self, store):
        good = make_record(TODAY, tz=TZ).to_dict()
        data = {"sessions": [good, {"start_time": "yesterday"}, {"method_key": "focus"}]}
        assert store.import_records(data) == 1

    def test_import_restores_streak(self, store, db, clock):
        data = {
            "sessions": [],
            "streak": {"current": 4, "longest": 9, "last_study_date": "2026-10-18"},
        }
        store.import_records(data)
        state = StreakTracker(db, clock).state()
        assert (state.current_streak, state.longest_streak) == (4, 9)


class TestFailures:
    def test_append_raises(self, broken_db, clock):
        store = SessionStore(broken_db, clock)
        with pytest.raises(PersistenceError) as exc:
            store.append(make_record(TODAY, tz=TZ))
        assert exc.value.operation == "append session"
        assert "disk I/O error" in store.last_error

    def test_reads_return_empty(self, broken_db, clock):
        store = SessionStore(broken_db, clock)
        assert store.all() == []
        assert store.today() == []
        assert store.count() == 0
        assert "disk I/O error" in store.last_error

    def test_successful_read_clears_last_error(self, store):
        store.last_error = "old failure"
        store.all()
        assert store.last_error is None


class TestStorageInfo:
    def test_reports_path_and_size(self, store, db):
        store.append(make_record(TODAY, tz=TZ))
        info = store.storage_info()
        assert info["path"] == str(db.path)
        assert info["total_records"] == 1
        assert info["size_bytes"] > 0
