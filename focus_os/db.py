"""
Database access for Focus Time OS.

Single place for:
- Connection factory
- Schema convergence against focus_os.schema
- Translating sqlite3 failures into PersistenceError

No direct sqlite3.connect() elsewhere. A Database is constructed with an
explicit path and injected into the stores that use it.
"""

import json
import logging
import re
import sqlite3
from collections.abc import Generator
from contextlib import contextmanager
from pathlib import Path

from focus_os import paths, schema

logger = logging.getLogger(__name__)

_SAFE_IDENTIFIER_RE = re.compile(r"^[a-zA-Z_][a-zA-Z0-9_]*$")

# Clauses valid in CREATE TABLE but not in ALTER TABLE ADD COLUMN
_STRIP_PATTERNS = [
    re.compile(r"\bPRIMARY\s+KEY\b", re.IGNORECASE),
    re.compile(r"\bUNIQUE\b", re.IGNORECASE),
    re.compile(r"\bREFERENCES\s+\w+\s*\([^)]*\)", re.IGNORECASE),
]


class PersistenceError(Exception):
    """A storage write failed. Wraps the underlying sqlite3.Error."""

    def __init__(self, operation: str, cause: Exception | None = None):
        self.operation = operation
        self.cause = cause
        message = f"{operation} failed"
        if cause is not None:
            message += f": {cause}"
        super().__init__(message)


def validate_identifier(name: str) -> str:
    """Return name if it is a safe SQL identifier, raise ValueError otherwise."""
    if not _SAFE_IDENTIFIER_RE.match(name):
        raise ValueError(f"Invalid SQL identifier: {name!r}")
    return name


def make_alter_safe(col_def: str) -> str:
    """Adapt a CREATE TABLE column definition for ALTER TABLE ADD COLUMN."""
    safe = col_def
    for pattern in _STRIP_PATTERNS:
        safe = pattern.sub("", safe)
    safe = re.sub(r"\s{2,}", " ", safe).strip()

    # SQLite rejects ADD COLUMN with a non-constant default
    safe = re.sub(r"\bDEFAULT\s+\(.*\)", "", safe, flags=re.IGNORECASE).strip()

    has_not_null = re.search(r"\bNOT\s+NULL\b", safe, re.IGNORECASE)
    has_default = re.search(r"\bDEFAULT\b", safe, re.IGNORECASE)
    if has_not_null and not has_default:
        safe = safe + " DEFAULT ''"
    return safe


class Database:
    """
    SQLite database at a fixed path.

    Args:
        path: Database file. Defaults to paths.db_path().
    """

    def __init__(self, path: Path | str | None = None):
        self.path = Path(path) if path is not None else paths.db_path()
        self._converged = False

    @contextmanager
    def connection(self, row_factory: bool = True) -> Generator[sqlite3.Connection, None, None]:
        """
        Open a connection, commit on success, always close.

        Usage:
            with db.connection() as conn:
                conn.execute(...)
        """
        self.path.parent.mkdir(parents=True, exist_ok=True)
        conn = sqlite3.connect(str(self.path))
        if row_factory:
            conn.row_factory = sqlite3.Row
        try:
            yield conn
            conn.commit()
        finally:
            conn.close()

    # ==================== Schema ====================

    def schema_version(self) -> int:
        with self.connection() as conn:
            return conn.execute("PRAGMA user_version").fetchone()[0]

    def converge(self) -> dict:
        """
        Bring the database up to schema.TABLES / schema.INDEXES.

        Creates missing tables, adds missing columns, creates missing
        indexes, then sets PRAGMA user_version. Safe to call repeatedly.
        """
        results = {
            "tables_created": [],
            "columns_added": [],
            "indexes_created": [],
            "errors": [],
        }
        with self.connection() as conn:
            results["previous_version"] = conn.execute("PRAGMA user_version").fetchone()[0]
            existing = {
                row[0]
                for row in conn.execute("SELECT name FROM sqlite_master WHERE type = 'table'")
            }

            for table, table_def in schema.TABLES.items():
                validate_identifier(table)
                if table not in existing:
                    conn.execute(_build_create_sql(table, table_def))
                    results["tables_created"].append(table)
                    logger.info("db: created table %s", table)
                    continue

                columns = {row[1] for row in conn.execute(f"PRAGMA table_info([{table}])")}  # nosec B608
                for column, ddl in table_def["columns"]:
                    if column in columns:
                        continue
                    try:
                        conn.execute(
                            f"ALTER TABLE [{table}] ADD COLUMN [{column}] {make_alter_safe(ddl)}"  # nosec B608
                        )
                        results["columns_added"].append(f"{table}.{column}")
                        logger.info("db: added column %s.%s", table, column)
                    except sqlite3.OperationalError as e:
                        results["errors"].append(f"ADD COLUMN {table}.{column}: {e}")
                        logger.warning("db: could not add column %s.%s: %s", table, column, e)

            indexes = {
                row[0]
                for row in conn.execute(
                    "SELECT name FROM sqlite_master WHERE type = 'index' AND name NOT LIKE 'sqlite_%'"
                )
            }
            for name, table, cols, where in schema.INDEXES:
                if name in indexes:
                    continue
                where_clause = f" WHERE {where}" if where else ""
                conn.execute(
                    f"CREATE INDEX IF NOT EXISTS [{name}] ON [{table}]({cols}){where_clause}"  # nosec B608
                )
                results["indexes_created"].append(name)

            conn.execute(f"PRAGMA user_version = {int(schema.SCHEMA_VERSION)}")  # nosec B608

        results["schema_version"] = schema.SCHEMA_VERSION
        self._converged = True
        if results["tables_created"] or results["columns_added"]:
            logger.info(
                "Database %s converged to v%d (was v%d)",
                self.path,
                schema.SCHEMA_VERSION,
                results["previous_version"],
            )
        return results

    def ensure_schema(self) -> None:
        if not self._converged:
            self.converge()

    # ==================== Key/value documents ====================

    def get_json(self, key: str, default=None):
        """Read a JSON document from kv. sqlite3 errors propagate."""
        self.ensure_schema()
        with self.connection() as conn:
            row = conn.execute("SELECT value FROM kv WHERE key = ?", (key,)).fetchone()
        if row is None:
            return default
        return json.loads(row["value"])

    def set_json(self, key: str, value) -> None:
        self.ensure_schema()
        with self.connection() as conn:
            conn.execute(
                "INSERT INTO kv (key, value, updated_at) VALUES (?, ?, datetime('now')) "
                "ON CONFLICT(key) DO UPDATE SET value = excluded.value, updated_at = excluded.updated_at",
                (key, json.dumps(value)),
            )

    def delete_key(self, key: str) -> None:
        self.ensure_schema()
        with self.connection() as conn:
            conn.execute("DELETE FROM kv WHERE key = ?", (key,))

    def size_bytes(self) -> int:
        return self.path.stat().st_size if self.path.exists() else 0


def _build_create_sql(table: str, table_def: dict) -> str:
    body = ",\n".join(f"    {name} {ddl}" for name, ddl in table_def["columns"])
    return f"CREATE TABLE IF NOT EXISTS [{table}] (\n{body}\n)"
