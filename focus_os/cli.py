#!/usr/bin/env python3
"""
Focus Time OS CLI

Usage:
    python -m focus_os init                     # Create config + database
    python -m focus_os methods                  # List study methods
    python -m focus_os run pomodoro             # Foreground study timer
    python -m focus_os slots --events cal.json --from 2026-10-19T08:00 --to 2026-10-19T22:00
    python -m focus_os stats                    # Today, week, streak
    python -m focus_os sessions --days 7        # Session log
    python -m focus_os export backup.json       # Export sessions + streak
    python -m focus_os import backup.json       # Import an export
    python -m focus_os clear --yes              # Delete all sessions
    python -m focus_os serve --port 8420        # HTTP API
    python -m focus_os config get blocking.level
    python -m focus_os config set blocking.level strict
"""

import argparse
import json
import sys
import threading
from datetime import datetime
from pathlib import Path

from focus_os import __version__, paths
from focus_os.app import PERSISTENCE_ERROR, FocusApp
from focus_os.config_store import ConfigStore
from focus_os.db import Database, PersistenceError
from focus_os.methods import by_duration, format_time, load_methods
from focus_os.observability import configure_log_rotation, configure_logging
from focus_os.session.timer import TIMER_COMPLETE, TIMER_TICK


def print_header(text: str):
    """Print a section header."""
    print(f"\n{'═' * 50}")
    print(f"  {text}")
    print(f"{'═' * 50}")


def print_table(headers: list, rows: list, widths: list | None = None):
    """Print a simple table."""
    if not widths:
        widths = [max(len(str(row[i])) for row in [headers] + rows) for i in range(len(headers))]

    header_str = " │ ".join(str(h).ljust(w) for h, w in zip(headers, widths, strict=False))
    print(header_str)
    print("─" * len(header_str))
    for row in rows:
        print(" │ ".join(str(c)[:w].ljust(w) for c, w in zip(row, widths, strict=False)))


def build_app(args) -> FocusApp:
    config = ConfigStore()
    return FocusApp(config=config, database=Database(args.db) if args.db else None)


def _parse_when(value: str) -> datetime:
    moment = datetime.fromisoformat(value)
    if moment.tzinfo is None:
        moment = moment.astimezone()
    return moment


def _parse_value(raw: str):
    """Config values: JSON when it parses (numbers, bools, lists), else a string."""
    try:
        return json.loads(raw)
    except json.JSONDecodeError:
        return raw


# ==================== Commands ====================


def cmd_init(args):
    """Create config file and converge the database."""
    config = ConfigStore()
    db = Database(args.db) if args.db else Database()
    result = db.converge()

    print_header("FOCUS TIME OS INIT")
    print(f"  Home:     {paths.app_home()}")
    print(f"  Config:   {config.path}")
    print(f"  Database: {db.path} (schema v{result['schema_version']})")
    if result["tables_created"]:
        print(f"  Created tables: {', '.join(result['tables_created'])}")

    valid, errors = config.validate()
    if not valid:
        print("\n⚠️  CONFIG PROBLEMS")
        for error in errors:
            print(f"  - {error}")
        return 1
    return 0


def cmd_methods(args):
    """List study methods."""
    methods = load_methods()
    print_header("STUDY METHODS")
    rows = [
        [m.key, m.name, format_time(m.duration_seconds), m.description]
        for m in by_duration(methods)
    ]
    print_table(["Key", "Name", "Length", "Description"], rows, [10, 18, 7, 45])
    return 0


def cmd_run(args):
    """Run a study session in the foreground until it completes."""
    focus = build_app(args)
    if not focus.change_method(args.method):
        print(f"Unknown study method: {args.method}")
        focus.close()
        return 1

    done = threading.Event()
    focus.bus.subscribe(TIMER_COMPLETE, lambda _event: done.set())
    focus.bus.subscribe(
        TIMER_TICK,
        lambda event: print(f"\r  ⏱  {event.data.formatted_time}", end="", flush=True),
    )
    focus.bus.subscribe(
        PERSISTENCE_ERROR, lambda event: print(f"\n⚠️  Could not save: {event.data['message']}")
    )

    method = focus.timer.method
    print_header(f"{method.name.upper()} - {format_time(method.duration_seconds)}")
    focus.start(blocking=not args.no_blocking, level=args.level)
    try:
        while not done.wait(0.5):
            pass
    except KeyboardInterrupt:
        record = focus.stop(log=args.log_partial)
        print("\n\nSession stopped.")
        if record:
            print(f"  Logged {record.duration_minutes} min (not completed)")
        focus.close()
        return 130

    print("\n\n✅ Session complete!")
    snapshot = focus.stats()
    print(f"  Today: {snapshot.todays_minutes} min   Streak: {snapshot.current_streak} day(s)")
    focus.close()
    return 0


def cmd_slots(args):
    """Find free study slots between calendar events."""
    raw = json.loads(Path(args.events).read_text()) if args.events else []
    if isinstance(raw, dict):
        raw = raw.get("items", raw.get("events", []))

    focus = build_app(args)
    window_start, window_end = _parse_when(args.start), _parse_when(args.end)
    try:
        if args.recommend:
            recs = focus.recommend_slots(raw, window_start, window_end, max_slots=args.limit)
            if args.json:
                print(json.dumps([r.to_dict() for r in recs], indent=2))
                return 0
            print_header("RECOMMENDED STUDY SLOTS")
            rows = [
                [
                    r.priority,
                    r.slot.start_time.strftime("%a %H:%M"),
                    r.slot.end_time.strftime("%H:%M"),
                    r.slot.duration_minutes,
                    r.confidence,
                    r.reason,
                ]
                for r in recs
            ]
            print_table(["#", "Start", "End", "Min", "Conf", "Why"], rows, [3, 9, 5, 4, 4, 32])
            return 0

        slots = focus.find_slots(
            raw, window_start, window_end, args.min, use_preferences=args.preferences
        )
        if args.limit:
            slots = slots[: args.limit]
        if args.json:
            print(json.dumps([s.to_dict() for s in slots], indent=2))
            return 0

        print_header(f"FREE SLOTS ({len(slots)})")
        if not slots:
            print("No free slots in that window.")
            return 0
        rows = [
            [
                s.start_time.strftime("%a %H:%M"),
                s.end_time.strftime("%H:%M"),
                s.duration_minutes,
                s.quality_score,
                s.suggested_method.key if s.suggested_method else "-",
            ]
            for s in slots
        ]
        print_table(["Start", "End", "Min", "Quality", "Method"], rows, [9, 5, 5, 7, 10])
        return 0
    finally:
        focus.close()


def cmd_stats(args):
    """Today, this week, streak."""
    focus = build_app(args)
    snapshot = focus.stats()
    study = focus.aggregator.study_stats(args.days)
    focus.close()

    print_header("STUDY STATS")
    print(f"  Today:          {snapshot.todays_minutes} min ({snapshot.sessions_today} sessions)")
    print(f"  This week:      {snapshot.weekly_minutes} min")
    print(f"  Current streak: {snapshot.current_streak} day(s)")
    print(f"  Longest streak: {snapshot.longest_streak} day(s)")
    print(f"  All sessions:   {snapshot.total_sessions}")

    print(f"\n📊 LAST {args.days} DAYS")
    print(f"  Average session: {study['average_session']} min")
    print(f"  Best time:       {study['best_time_of_day'] or '-'}")
    print(f"  Consistency:     {study['consistency']}%")
    for key, count in sorted(study["method_breakdown"].items()):
        print(f"  {key:<10} {count}")

    if snapshot.errors:
        print("\n⚠️  STORAGE ERRORS")
        for error in snapshot.errors:
            print(f"  {error}")
        return 1
    return 0


def cmd_sessions(args):
    """Session log, newest first."""
    focus = build_app(args)
    records = focus.aggregator.history(args.days)
    focus.close()

    print_header(f"SESSIONS - LAST {args.days} DAYS")
    if not records:
        print("No sessions logged.")
        return 0
    rows = [
        [
            r.date.isoformat(),
            r.start_time.strftime("%H:%M"),
            r.method_key,
            r.duration_minutes,
            "✓" if r.completed else "✗",
            r.id,
        ]
        for r in records
    ]
    print_table(["Date", "Start", "Method", "Min", "Done", "ID"], rows, [10, 5, 10, 4, 4, 36])
    return 0


def cmd_export(args):
    focus = build_app(args)
    data = focus.store.export()
    focus.close()
    Path(args.file).write_text(json.dumps(data, indent=2))
    print(f"Exported {len(data['sessions'])} session(s) to {args.file}")
    return 0


def cmd_import(args):
    data = json.loads(Path(args.file).read_text())
    focus = build_app(args)
    try:
        count = focus.store.import_records(data, replace=not args.merge)
        if not data.get("streak"):
            focus.streak.rebuild(focus.store.all())
    except PersistenceError as e:
        print(f"❌ Import failed: {e}")
        return 1
    finally:
        focus.close()
    print(f"Imported {count} session(s) from {args.file}")
    return 0


def cmd_clear(args):
    if not args.yes:
        print("Refusing to delete the session log without --yes")
        return 1
    focus = build_app(args)
    try:
        removed = focus.store.clear()
    finally:
        focus.close()
    print(f"Deleted {removed} session(s) and reset the streak")
    return 0


def cmd_serve(args):
    from focus_os.api.server import serve

    serve(build_app(args), host=args.host, port=args.port)
    return 0


def cmd_config(args):
    config = ConfigStore()
    if args.action == "get":
        value = config.all() if not args.path else config.get(args.path)
        print(json.dumps(value, indent=2, default=str))
        return 0

    if not args.path or args.value is None:
        print("Usage: config set PATH VALUE")
        return 1
    config.set(args.path, _parse_value(args.value))
    valid, errors = config.validate()
    print(f"{args.path} = {json.dumps(config.get(args.path))}")
    for error in errors:
        print(f"⚠️  {error}")
    return 0 if valid else 1


# ==================== Entry point ====================


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="focus_os", description="Focus Time OS")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument("--db", help="Database file (default: app home)")
    parser.add_argument("--log-level", default=None, help="DEBUG, INFO, WARNING, ERROR")
    parser.add_argument("--json-logs", action="store_true", help="Structured JSON logs")
    subparsers = parser.add_subparsers(dest="command", required=True)

    subparsers.add_parser("init", help="Create config and database")
    subparsers.add_parser("methods", help="List study methods")

    p = subparsers.add_parser("run", help="Run a study session")
    p.add_argument("method", help="Study method key")
    p.add_argument("--no-blocking", action="store_true", help="Do not arm app-switch blocking")
    p.add_argument("--level", help="Blocking level: standard, strict, screen_time")
    p.add_argument("--log-partial", action="store_true", help="Log the session if interrupted")

    p = subparsers.add_parser("slots", help="Find free study slots")
    p.add_argument("--events", help="JSON file of calendar events")
    p.add_argument("--from", dest="start", required=True, help="Window start (ISO)")
    p.add_argument("--to", dest="end", required=True, help="Window end (ISO)")
    p.add_argument("--min", type=float, default=None, help="Minimum slot minutes")
    p.add_argument("--preferences", action="store_true", help="Apply study-hour preferences")
    p.add_argument("--recommend", action="store_true", help="Rank with reasons")
    p.add_argument("--limit", type=int, help="Max slots")
    p.add_argument("--json", action="store_true", help="JSON output")

    p = subparsers.add_parser("stats", help="Study statistics")
    p.add_argument("--days", type=int, default=7, help="Window for detailed stats")

    p = subparsers.add_parser("sessions", help="Session log")
    p.add_argument("--days", type=int, default=7)

    p = subparsers.add_parser("export", help="Export sessions and streak")
    p.add_argument("file")

    p = subparsers.add_parser("import", help="Import an export file")
    p.add_argument("file")
    p.add_argument("--merge", action="store_true", help="Keep existing sessions")

    p = subparsers.add_parser("clear", help="Delete all sessions")
    p.add_argument("--yes", action="store_true", help="Confirm")

    p = subparsers.add_parser("serve", help="Run the HTTP API")
    p.add_argument("--host", default="127.0.0.1")
    p.add_argument("--port", type=int, default=8420)

    p = subparsers.add_parser("config", help="Read or change configuration")
    p.add_argument("action", choices=["get", "set"])
    p.add_argument("path", nargs="?")
    p.add_argument("value", nargs="?")

    return parser


COMMANDS = {
    "init": cmd_init,
    "methods": cmd_methods,
    "run": cmd_run,
    "slots": cmd_slots,
    "stats": cmd_stats,
    "sessions": cmd_sessions,
    "export": cmd_export,
    "import": cmd_import,
    "clear": cmd_clear,
    "serve": cmd_serve,
    "config": cmd_config,
}


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)

    config = ConfigStore()
    configure_logging(
        args.log_level or config.get("logging.level", "WARNING"),
        json_format=True if args.json_logs else config.get("logging.json"),
    )
    configure_log_rotation(config.get("logging.file"))

    return COMMANDS[args.command](args)


if __name__ == "__main__":
    sys.exit(main())
