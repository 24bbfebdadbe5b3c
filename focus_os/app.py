"""
FocusApp - wires the timer, blocking, session log and stats together.

Everything is constructed here and injected; nothing is a module-level
singleton. The CLI and the HTTP API each build one FocusApp.

Completion flow (synchronous, in this order):
    timer.complete -> append SessionRecord -> update streak -> session.logged

Storage failures never stop the timer: they are logged and published as
persistence.error events.
"""

import logging
from datetime import datetime

from focus_os.clock import Clock, SystemClock
from focus_os.config_store import ConfigStore
from focus_os.db import Database, PersistenceError
from focus_os.events import EventBus
from focus_os.methods import StudyMethod, load_methods
from focus_os.observability.context import SessionContext
from focus_os.session.blocking import BlockingController, BlockingLevel
from focus_os.session.notifier import LogNotifier, Notifier
from focus_os.session.scheduler import ThreadingTickScheduler, TickScheduler
from focus_os.session.timer import TIMER_COMPLETE, Completion, SessionTimer, TimerStatus
from focus_os.slots.events import parse_events
from focus_os.slots.free_slots import FreeSlot, find_free_slots, tiers_from_config
from focus_os.slots.recommend import Recommendation, filter_by_preferences, recommend
from focus_os.stats.aggregator import StatsAggregator, StatsSnapshot
from focus_os.stats.store import SessionRecord, SessionStore
from focus_os.stats.streak import StreakTracker

logger = logging.getLogger(__name__)

SESSION_LOGGED = "session.logged"
PERSISTENCE_ERROR = "persistence.error"


class FocusApp:
    """
    Args:
        config: Configuration (defaults to the user's config file).
        clock: Time source (defaults to the system clock in the configured timezone).
        scheduler: Tick scheduler (defaults to a thread per running timer).
        database: Session/streak database (defaults to paths.db_path()).
        notifier: Reminder scheduler for blocking (defaults to LogNotifier).
        methods: Study method catalog (defaults to the YAML catalog).
        bus: Shared event bus.
    """

    def __init__(
        self,
        config: ConfigStore | None = None,
        clock: Clock | None = None,
        scheduler: TickScheduler | None = None,
        database: Database | None = None,
        notifier: Notifier | None = None,
        methods: dict[str, StudyMethod] | None = None,
        bus: EventBus | None = None,
    ):
        self.config = config or ConfigStore()
        self.clock = clock or SystemClock(self.config.get("timezone"))
        self.methods = methods or load_methods()
        self.bus = bus or EventBus(clock=self.clock)
        self.database = database or Database()

        self.timer = SessionTimer(
            self.methods,
            self.clock,
            scheduler or ThreadingTickScheduler(),
            bus=self.bus,
            method_key=self.config.get("timer.default_method"),
            tick_interval=float(self.config.get("timer.tick_interval_seconds", 1.0)),
        )
        self.blocking = BlockingController(
            notifier or LogNotifier(),
            bus=self.bus,
            timer=self.timer,
            reminder_intervals=self.config.get("blocking.reminder_interval_seconds"),
        )
        self.store = SessionStore(self.database, self.clock)
        self.streak = StreakTracker(self.database, self.clock)
        self.aggregator = StatsAggregator(
            self.store,
            self.streak,
            self.clock,
            weekly_window_days=int(self.config.get("stats.weekly_window_days", 7)),
        )

        self._blocking_requested = False
        self._blocking_level: str | BlockingLevel = BlockingLevel.STANDARD
        self._unsubscribe = self.bus.subscribe(TIMER_COMPLETE, self._on_complete)

    # ==================== Timer control ====================

    def start(self, blocking: bool | None = None, level: str | None = None) -> None:
        """
        Start a fresh session (from idle) or resume (from paused).

        Blocking defaults to the configured setting on a fresh start and to
        the session's original choice on resume. Resuming keeps the switch
        attempt count.
        """
        status = self.timer.status
        if status not in (TimerStatus.IDLE, TimerStatus.PAUSED):
            return

        fresh = status is TimerStatus.IDLE
        if fresh:
            self._blocking_requested = (
                bool(self.config.get("blocking.enabled", True)) if blocking is None else blocking
            )
            self._blocking_level = level or self.config.get("blocking.level")
        else:
            if blocking is not None:
                self._blocking_requested = blocking
            if level is not None:
                self._blocking_level = level

        self.timer.start()
        if self._blocking_requested:
            self.blocking.arm(self._blocking_level, reset_attempts=fresh)

    def pause(self) -> None:
        self.timer.pause()

    def stop(self, log: bool = False) -> SessionRecord | None:
        """
        Abandon the running or paused session.

        Args:
            log: Also append a completed=False record with the minutes
                studied so far. The streak is not touched.

        Returns:
            The logged record, if one was written.
        """
        state = self.timer.state()
        if state.status not in (TimerStatus.RUNNING, TimerStatus.PAUSED):
            return None

        record = None
        if log:
            now = self.clock.now()
            elapsed = state.duration_seconds - state.remaining_seconds
            record = SessionRecord(
                date=now.date(),
                start_time=state.session_started_at or now,
                end_time=now,
                duration_minutes=elapsed // 60,
                method_key=state.method_key,
                completed=False,
                session_id=state.session_id,
            )
        self.timer.stop()
        self._blocking_requested = False

        if record is not None:
            with SessionContext(state.session_id):
                record = self._append(record)
        return record

    def reset(self) -> None:
        self.timer.reset()
        self._blocking_requested = False

    def change_method(self, key: str) -> bool:
        return self.timer.change_method(key)

    def tick(self) -> None:
        self.timer.tick()

    # ==================== Blocking ====================

    def disable_blocking(self) -> None:
        self._blocking_requested = False
        self.blocking.disarm()

    def app_state(self, state: str) -> None:
        self.blocking.handle_app_state(state)

    # ==================== Slots ====================

    def find_slots(
        self,
        events: list,
        window_start: datetime,
        window_end: datetime,
        min_duration_minutes: float | None = None,
        use_preferences: bool = False,
    ) -> list[FreeSlot]:
        """Free study slots between raw or parsed calendar events."""
        if min_duration_minutes is None:
            min_duration_minutes = self.config.get("calendar.min_duration_minutes", 25)
        parsed = parse_events(events, window_start.tzinfo)
        slots = find_free_slots(
            parsed,
            window_start,
            window_end,
            min_duration_minutes,
            methods=self.methods,
            tiers=tiers_from_config(self.config.get("calendar.suggestion_tiers")),
        )
        if use_preferences:
            slots = filter_by_preferences(
                slots,
                self.config.get("calendar.earliest_time", "08:00"),
                self.config.get("calendar.latest_time", "22:00"),
                self.config.get("calendar.preferred_durations"),
            )
        return slots

    def recommend_slots(
        self,
        events: list,
        window_start: datetime,
        window_end: datetime,
        max_slots: int | None = None,
    ) -> list[Recommendation]:
        slots = self.find_slots(events, window_start, window_end, use_preferences=True)
        limit = max_slots or int(self.config.get("calendar.max_suggestions", 3))
        return recommend(slots, self.store.all(), self.clock.today(), max_slots=limit)

    # ==================== Stats ====================

    def stats(self) -> StatsSnapshot:
        return self.aggregator.recompute()

    def close(self) -> None:
        """Stop ticking and detach from the bus."""
        self.timer.stop()
        self.blocking.close()
        self._unsubscribe()

    # ==================== Internals ====================

    def _on_complete(self, event) -> None:
        completion: Completion = event.data
        with SessionContext(completion.session_id):
            record = self._append(
                SessionRecord(
                    date=completion.ended_at.date(),
                    start_time=completion.started_at,
                    end_time=completion.ended_at,
                    duration_minutes=completion.duration_minutes,
                    method_key=completion.method_key,
                    completed=True,
                    session_id=completion.session_id,
                ),
                publish=False,
            )
            try:
                self.streak.update(completion.ended_at.date())
            except PersistenceError as e:
                self._report(e)
            if record is not None:
                self.bus.publish(SESSION_LOGGED, record)
        self._blocking_requested = False

    def _append(self, record: SessionRecord, publish: bool = True) -> SessionRecord | None:
        try:
            stored = self.store.append(record)
        except PersistenceError as e:
            self._report(e)
            return None
        if publish:
            self.bus.publish(SESSION_LOGGED, stored)
        return stored

    def _report(self, error: PersistenceError) -> None:
        logger.error(f"Persistence failure: {error}")
        self.bus.publish(
            PERSISTENCE_ERROR, {"operation": error.operation, "message": str(error)}
        )
