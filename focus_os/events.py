"""
In-process event bus.

Replaces ad-hoc callbacks between components. Delivery is synchronous and
in publish order, so a state-change notification is always observed before
the call that triggered it returns. A bounded history lets polling clients
(the HTTP API) catch up with `history(since=...)`.
"""

import logging
import threading
from collections import defaultdict
from collections.abc import Callable
from dataclasses import asdict, dataclass, is_dataclass
from datetime import date, datetime
from enum import Enum
from typing import Any

logger = logging.getLogger(__name__)

Handler = Callable[["Event"], None]

WILDCARD = "*"


@dataclass
class Event:
    """A single published event."""

    seq: int
    event_type: str
    data: Any
    timestamp: str

    def to_dict(self) -> dict:
        return {
            "seq": self.seq,
            "event_type": self.event_type,
            "data": _jsonable(self.data),
            "timestamp": self.timestamp,
        }


class EventBus:
    """Publish/subscribe hub shared by the components of one FocusApp."""

    def __init__(self, max_history: int = 100, clock=None):
        self._handlers: dict[str, list[Handler]] = defaultdict(list)
        self._history: list[Event] = []
        self._max_history = max_history
        self._seq = 0
        self._clock = clock
        self._lock = threading.RLock()

    def subscribe(self, event_type: str, handler: Handler) -> Callable[[], None]:
        """
        Register a handler. Use "*" to receive every event.

        Returns:
            A callable that removes the subscription.
        """
        with self._lock:
            self._handlers[event_type].append(handler)

        def unsubscribe() -> None:
            with self._lock:
                if handler in self._handlers.get(event_type, []):
                    self._handlers[event_type].remove(handler)

        return unsubscribe

    def publish(self, event_type: str, data: Any = None) -> Event:
        """Deliver an event to its subscribers, then to wildcard subscribers."""
        with self._lock:
            self._seq += 1
            event = Event(
                seq=self._seq,
                event_type=event_type,
                data=data,
                timestamp=self._timestamp(),
            )
            self._history.append(event)
            if len(self._history) > self._max_history:
                self._history.pop(0)
            handlers = list(self._handlers.get(event_type, [])) + list(
                self._handlers.get(WILDCARD, [])
            )

        for handler in handlers:
            try:
                handler(event)
            except Exception:
                # A broken subscriber must not stall the timer.
                logger.exception("Handler for %s failed", event_type)
        return event

    def history(self, since: int = 0, event_type: str | None = None) -> list[Event]:
        """Events with seq > since, oldest first."""
        with self._lock:
            return [
                e
                for e in self._history
                if e.seq > since and (event_type is None or e.event_type == event_type)
            ]

    @property
    def last_seq(self) -> int:
        return self._seq

    def _timestamp(self) -> str:
        moment = self._clock.now() if self._clock else datetime.now().astimezone()
        return moment.isoformat()


def _jsonable(value: Any) -> Any:
    if is_dataclass(value) and not isinstance(value, type):
        return _jsonable(asdict(value))
    if isinstance(value, dict):
        return {k: _jsonable(v) for k, v in value.items()}
    if isinstance(value, list | tuple):
        return [_jsonable(v) for v in value]
    if isinstance(value, datetime | date):
        return value.isoformat()
    if isinstance(value, Enum):
        return value.value
    return value
