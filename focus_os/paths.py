from __future__ import annotations

import os
from pathlib import Path

APP_ENV_HOME = "FOCUS_TIME_OS_HOME"
APP_ENV_DB = "FOCUS_TIME_OS_DB"


def package_root() -> Path:
    """Directory of the focus_os package (holds bundled data/)."""
    return Path(__file__).parent.resolve()


def app_home() -> Path:
    """
    User-writable home for Focus Time OS.
    Override with FOCUS_TIME_OS_HOME.
    """
    if os.environ.get(APP_ENV_HOME):
        return Path(os.environ[APP_ENV_HOME]).expanduser().resolve()
    return (Path.home() / ".focus_time_os").resolve()


def config_dir() -> Path:
    d = app_home() / "config"
    d.mkdir(parents=True, exist_ok=True)
    return d


def data_dir() -> Path:
    d = app_home() / "data"
    d.mkdir(parents=True, exist_ok=True)
    return d


def log_dir() -> Path:
    d = app_home() / "logs"
    d.mkdir(parents=True, exist_ok=True)
    return d


def db_path() -> Path:
    """
    Canonical DB path.

    Resolution order:
    1. FOCUS_TIME_OS_DB env var (explicit override)
    2. ~/.focus_time_os/data/focus_time_os.db (default)
    """
    if os.environ.get(APP_ENV_DB):
        return Path(os.environ[APP_ENV_DB]).expanduser().resolve()
    return data_dir() / "focus_time_os.db"
