"""
Test configuration - isolated app home per test + determinism guards.

Every test gets its own FOCUS_TIME_OS_HOME under tmp_path, so config files,
method overrides and databases never touch the real user directory.
Time is a ManualClock and ticks come from a ManualTickScheduler: tests
move time and deliver ticks explicitly.
"""

import logging
import sqlite3
import sys
from datetime import datetime, timedelta, timezone
from pathlib import Path
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

import pytest

# Add repo root to sys.path so tests can import tests.fixtures
REPO_ROOT = Path(__file__).parent.parent
if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))

from focus_os.app import FocusApp  # noqa: E402
from focus_os.clock import ManualClock  # noqa: E402
from focus_os.config_store import ConfigStore  # noqa: E402
from focus_os.db import Database  # noqa: E402
from focus_os.events import EventBus  # noqa: E402
from focus_os.methods import load_methods  # noqa: E402
from focus_os.observability import HumanFormatter, JSONFormatter  # noqa: E402
from focus_os.session.scheduler import ManualTickScheduler  # noqa: E402
from focus_os.session.timer import SessionTimer  # noqa: E402
from tests.fixtures import BrokenDatabase, EventRecorder, RecordingNotifier  # noqa: E402

# Fixed offset (Gulf Standard Time) so local dates differ from UTC dates
# around midnight.
TZ = timezone(timedelta(hours=4))

# Monday
START = datetime(2026, 10, 19, 9, 0, tzinfo=TZ)

# =============================================================================
# DETERMINISM GUARD: Block live database access
# =============================================================================

LIVE_HOME = str(Path.home() / ".focus_time_os")

_original_sqlite_connect = sqlite3.connect


def _guarded_sqlite_connect(database, *args, **kwargs):
    """Intercept sqlite3.connect to block the real user database."""
    if str(database).startswith(LIVE_HOME):
        raise RuntimeError(
            f"DETERMINISM VIOLATION: test attempted to open live DB at {database}.\n"
            "Use the `db` fixture instead."
        )
    return _original_sqlite_connect(database, *args, **kwargs)


@pytest.fixture(autouse=True)
def isolated_home(tmp_path, monkeypatch):
    """Point the app home at a temp dir and guard the live DB."""
    home = tmp_path / "home"
    monkeypatch.setenv("FOCUS_TIME_OS_HOME", str(home))
    monkeypatch.delenv("FOCUS_TIME_OS_DB", raising=False)
    monkeypatch.setattr(sqlite3, "connect", _guarded_sqlite_connect)
    return home


# =============================================================================
# Core fixtures
# =============================================================================


@pytest.fixture
def clock():
    return ManualClock(START)


@pytest.fixture
def new_york():
    """A zone with DST changes (2026-03-08 and 2026-11-01)."""
    try:
        return ZoneInfo("America/New_York")
    except ZoneInfoNotFoundError:
        pytest.skip("IANA tz database not available")


@pytest.fixture
def scheduler():
    return ManualTickScheduler()


@pytest.fixture
def notifier():
    return RecordingNotifier()


@pytest.fixture
def methods():
    return load_methods()


@pytest.fixture
def bus(clock):
    return EventBus(max_history=500, clock=clock)


@pytest.fixture
def recorder(bus):
    return EventRecorder(bus)


@pytest.fixture
def timer(methods, clock, scheduler, bus):
    return SessionTimer(methods, clock, scheduler, bus=bus)


@pytest.fixture
def db(tmp_path):
    database = Database(tmp_path / "focus.db")
    database.converge()
    return database


@pytest.fixture
def broken_db(tmp_path):
    return BrokenDatabase(tmp_path / "broken.db")


@pytest.fixture
def config():
    return ConfigStore(persist=False)


@pytest.fixture
def focus_app(config, clock, scheduler, db, notifier, methods, bus):
    app = FocusApp(
        config=config,
        clock=clock,
        scheduler=scheduler,
        database=db,
        notifier=notifier,
        methods=methods,
        bus=bus,
    )
    yield app
    app.close()


@pytest.fixture
def reset_root_logger():
    """Drop handlers installed by configure_logging and restore the root level."""
    root = logging.getLogger()
    level = root.level
    yield root
    for handler in root.handlers[:]:
        if isinstance(handler.formatter, JSONFormatter | HumanFormatter):
            root.removeHandler(handler)
            handler.close()
    root.setLevel(level)
