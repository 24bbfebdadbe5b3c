"""
SessionStore - append-only log of study sessions.

Records are written once, when a session completes (or is explicitly
stopped with logging) and are never edited. The only removals are
clear() and delete(id).

Failure policy:
- writes (append, clear, delete, import) raise PersistenceError
- reads return an empty result and record last_error
"""

import logging
import sqlite3
import uuid
from dataclasses import asdict, dataclass, field
from datetime import UTC, date, datetime, timedelta

from focus_os import __version__
from focus_os.clock import Clock
from focus_os.db import Database, PersistenceError
from focus_os.schema import STREAK_KEY

logger = logging.getLogger(__name__)

EXPORT_VERSION = "1.0"


@dataclass(frozen=True)
class SessionRecord:
    date: date
    start_time: datetime
    end_time: datetime
    duration_minutes: int
    method_key: str
    completed: bool = True
    session_id: str | None = None
    id: str | None = field(default=None)

    def to_dict(self) -> dict:
        data = asdict(self)
        data["date"] = self.date.isoformat()
        data["start_time"] = self.start_time.isoformat()
        data["end_time"] = self.end_time.isoformat()
        return data

    @classmethod
    def from_dict(cls, data: dict) -> "SessionRecord":
        """
        Build a record from its exported form.

        Raises:
            KeyError / ValueError on missing or unparseable fields.
        """
        start = datetime.fromisoformat(data["start_time"])
        return cls(
            id=data.get("id"),
            date=date.fromisoformat(data["date"]) if data.get("date") else start.date(),
            start_time=start,
            end_time=datetime.fromisoformat(data["end_time"]),
            duration_minutes=int(data.get("duration_minutes", 0)),
            method_key=str(data["method_key"]),
            completed=bool(data.get("completed", True)),
            session_id=data.get("session_id"),
        )


def new_record_id() -> str:
    return f"rec-{uuid.uuid4().hex}"


class SessionStore:
    """
    Args:
        db: Database holding the sessions table.
        clock: Supplies today's local date for today()/last_n_days().
    """

    def __init__(self, db: Database, clock: Clock):
        self.db = db
        self.clock = clock
        self.last_error: str | None = None

    # ==================== Writes ====================

    def append(self, record: SessionRecord) -> SessionRecord:
        """
        Persist a record, assigning an id when it has none.

        Returns:
            The stored record (with id).

        Raises:
            PersistenceError if the write fails.
        """
        if record.id is None:
            record = SessionRecord(**{**asdict(record), "id": new_record_id()})
        try:
            self.db.ensure_schema()
            with self.db.connection() as conn:
                _insert(conn, record)
        except sqlite3.Error as e:
            self._fail("append session", e)
        logger.info(
            "Logged %s session: %d min (completed=%s)",
            record.method_key,
            record.duration_minutes,
            record.completed,
            extra={"session_id": record.session_id},
        )
        return record

    def delete(self, record_id: str) -> bool:
        """Remove one record. Returns False when no record has that id."""
        try:
            self.db.ensure_schema()
            with self.db.connection() as conn:
                cursor = conn.execute("DELETE FROM sessions WHERE id = ?", (record_id,))
                deleted = cursor.rowcount > 0
        except sqlite3.Error as e:
            self._fail("delete session", e)
        if deleted:
            logger.info("Deleted session %s", record_id)
        return deleted

    def clear(self) -> int:
        """Delete every record and the stored streak. Returns records removed."""
        try:
            self.db.ensure_schema()
            with self.db.connection() as conn:
                cursor = conn.execute("DELETE FROM sessions")
                removed = cursor.rowcount
                conn.execute("DELETE FROM kv WHERE key = ?", (STREAK_KEY,))
        except sqlite3.Error as e:
            self._fail("clear sessions", e)
        logger.info("Cleared %d session record(s)", removed)
        return removed

    def import_records(self, data: dict, replace: bool = True) -> int:
        """
        Load an export() document.

        Args:
            data: {"sessions": [...], "streak": {...}} as produced by export().
            replace: Drop existing records first; otherwise records whose id
                already exists are skipped.

        Returns:
            Number of records imported. Unreadable entries are skipped.
        """
        records = []
        for raw in data.get("sessions") or []:
            try:
                record = SessionRecord.from_dict(raw)
            except (KeyError, TypeError, ValueError) as e:
                logger.warning(f"Skipping unreadable session in import: {e}")
                continue
            if record.id is None:
                record = SessionRecord(**{**asdict(record), "id": new_record_id()})
            records.append(record)

        imported = 0
        try:
            self.db.ensure_schema()
            with self.db.connection() as conn:
                if replace:
                    conn.execute("DELETE FROM sessions")
                for record in records:
                    imported += _insert(conn, record, ignore_existing=not replace)
        except sqlite3.Error as e:
            self._fail("import sessions", e)

        streak = data.get("streak")
        if isinstance(streak, dict):
            try:
                self.db.set_json(STREAK_KEY, streak)
            except sqlite3.Error as e:
                self._fail("import streak", e)

        logger.info("Imported %d session record(s)", imported)
        return imported

    # ==================== Reads ====================

    def all(self) -> list[SessionRecord]:
        """Every record in append order."""
        return self._select("SELECT * FROM sessions ORDER BY rowid")

    def today(self) -> list[SessionRecord]:
        today = self.clock.today()
        return self._select(
            "SELECT * FROM sessions WHERE date = ? ORDER BY rowid", (today.isoformat(),)
        )

    def last_n_days(self, n: int = 7) -> list[SessionRecord]:
        """Records dated within [today - (n - 1), today]."""
        if n <= 0:
            return []
        today = self.clock.today()
        first = today - timedelta(days=n - 1)
        return self._select(
            "SELECT * FROM sessions WHERE date >= ? AND date <= ? ORDER BY rowid",
            (first.isoformat(), today.isoformat()),
        )

    def count(self) -> int:
        try:
            self.db.ensure_schema()
            with self.db.connection() as conn:
                return conn.execute("SELECT COUNT(*) FROM sessions").fetchone()[0]
        except sqlite3.Error as e:
            self._read_failed("count sessions", e)
            return 0

    def export(self) -> dict:
        """JSON-ready snapshot of the log and streak state."""
        streak = None
        try:
            streak = self.db.get_json(STREAK_KEY)
        except (sqlite3.Error, ValueError) as e:
            self._read_failed("read streak", e)
        return {
            "sessions": [r.to_dict() for r in self.all()],
            "streak": streak,
            "export_date": datetime.now(UTC).isoformat(),
            "version": EXPORT_VERSION,
            "app_version": __version__,
        }

    def storage_info(self) -> dict:
        size = self.db.size_bytes()
        return {
            "path": str(self.db.path),
            "total_records": self.count(),
            "size_bytes": size,
            "size_kb": round(size / 1024, 2),
        }

    # ==================== Internals ====================

    def _select(self, sql: str, params: tuple = ()) -> list[SessionRecord]:
        try:
            self.db.ensure_schema()
            with self.db.connection() as conn:
                rows = conn.execute(sql, params).fetchall()
        except sqlite3.Error as e:
            self._read_failed("read sessions", e)
            return []

        records = []
        for row in rows:
            try:
                records.append(_row_to_record(row))
            except (TypeError, ValueError) as e:
                logger.warning(f"Skipping unreadable session row {row['id']}: {e}")
        self.last_error = None
        return records

    def _fail(self, operation: str, error: Exception):
        self.last_error = f"{operation}: {error}"
        logger.error(f"Could not {operation}: {error}")
        raise PersistenceError(operation, error) from error

    def _read_failed(self, operation: str, error: Exception) -> None:
        self.last_error = f"{operation}: {error}"
        logger.error(f"Could not {operation}: {error}")


def _insert(conn: sqlite3.Connection, record: SessionRecord, ignore_existing: bool = False) -> int:
    verb = "INSERT OR IGNORE" if ignore_existing else "INSERT"
    cursor = conn.execute(
        f"{verb} INTO sessions "  # nosec B608
        "(id, date, start_time, end_time, duration_minutes, method_key, completed, session_id) "
        "VALUES (?, ?, ?, ?, ?, ?, ?, ?)",
        (
            record.id,
            record.date.isoformat(),
            record.start_time.isoformat(),
            record.end_time.isoformat(),
            int(record.duration_minutes),
            record.method_key,
            1 if record.completed else 0,
            record.session_id,
        ),
    )
    return cursor.rowcount


def _row_to_record(row: sqlite3.Row) -> SessionRecord:
    return SessionRecord(
        id=row["id"],
        date=date.fromisoformat(row["date"]),
        start_time=datetime.fromisoformat(row["start_time"]),
        end_time=datetime.fromisoformat(row["end_time"]),
        duration_minutes=int(row["duration_minutes"]),
        method_key=row["method_key"],
        completed=bool(row["completed"]),
        session_id=row["session_id"],
    )
