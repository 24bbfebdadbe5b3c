"""
Declarative schema for the Focus Time OS database.

Every table, column and index lives here. db.converge() reads these
declarations and brings any database up to date: missing tables are
created, missing columns added. Nothing is ever dropped.

Adding a column = add one line here.
"""

from collections import OrderedDict

# Bump when you change this file
SCHEMA_VERSION = 2

TABLES: dict[str, dict] = OrderedDict()

# ---------------------------------------------------------------------------
# Session log (append-only)
# ---------------------------------------------------------------------------
TABLES["sessions"] = {
    "columns": [
        ("id", "TEXT PRIMARY KEY"),
        ("date", "TEXT NOT NULL"),
        ("start_time", "TEXT NOT NULL"),
        ("end_time", "TEXT NOT NULL"),
        ("duration_minutes", "INTEGER NOT NULL DEFAULT 0"),
        ("method_key", "TEXT NOT NULL"),
        ("completed", "INTEGER NOT NULL DEFAULT 1"),
        ("session_id", "TEXT"),
        ("created_at", "TEXT NOT NULL DEFAULT (datetime('now'))"),
    ],
}

# ---------------------------------------------------------------------------
# Small JSON documents (streak state)
# ---------------------------------------------------------------------------
TABLES["kv"] = {
    "columns": [
        ("key", "TEXT PRIMARY KEY"),
        ("value", "TEXT NOT NULL"),
        ("updated_at", "TEXT NOT NULL DEFAULT (datetime('now'))"),
    ],
}

# (index_name, table, columns, where)
INDEXES: list[tuple[str, str, str, str | None]] = [
    ("idx_sessions_date", "sessions", "date", None),
    ("idx_sessions_method", "sessions", "method_key", None),
    ("idx_sessions_completed", "sessions", "completed", "completed = 1"),
]

# Well-known kv key
STREAK_KEY = "streak"
