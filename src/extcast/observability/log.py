"""Event log — queryable, thread-safe event store.

Keeps the most recent ``StackEvent`` objects in a ring buffer and answers
filtered queries by event type, time, extension uuid, or client id.

Thread Safety:
    All methods are protected by a ``threading.Lock``.  The store and the
    build watcher thread append concurrently with the event loop.

"""

import threading
from collections import Counter, deque
from collections.abc import Iterable
from typing import Any

from extcast.observability.events import StackEvent


class EventLog:
    """Bounded event store with query support.

    When the buffer is full, the oldest events are discarded automatically.
    The per-type counters keep counting discarded events.

    Args:
        max_events: Maximum number of events to retain.

    """

    __slots__ = ("_events", "_lock", "_max_events", "_totals")

    def __init__(self, max_events: int = 10_000) -> None:
        self._max_events = max_events
        self._events: deque[StackEvent] = deque(maxlen=max_events)
        self._totals: Counter[str] = Counter()
        self._lock = threading.Lock()

    def append(self, event: StackEvent) -> None:
        """Record an event in the log."""
        with self._lock:
            self._events.append(event)
            self._totals[type(event).__name__] += 1

    def extend(self, events: Iterable[StackEvent]) -> None:
        """Record several events in order."""
        with self._lock:
            for event in events:
                self._events.append(event)
                self._totals[type(event).__name__] += 1

    def query(
        self,
        *,
        event_type: type | None = None,
        since_ns: int = 0,
        uuid: str | None = None,
        client_id: str | None = None,
        limit: int = 100,
    ) -> list[StackEvent]:
        """Query events with optional filters, most recent first.

        Args:
            event_type: Only return events of this type.
            since_ns: Only return events at or after this timestamp.
            uuid: Only return events about this extension.
            client_id: Only return events about this connection.
            limit: Maximum number of events to return.

        """
        with self._lock:
            snapshot = tuple(self._events)

        results: list[StackEvent] = []
        for event in reversed(snapshot):
            if len(results) >= limit:
                break
            if event_type is not None and not isinstance(event, event_type):
                continue
            if since_ns and getattr(event, "timestamp_ns", 0) < since_ns:
                continue
            if uuid is not None and getattr(event, "uuid", None) != uuid:
                continue
            if client_id is not None and getattr(event, "client_id", None) != client_id:
                continue
            results.append(event)
        return results

    def recent(self, n: int = 20) -> list[StackEvent]:
        """Return the N most recent events, oldest first."""
        with self._lock:
            items = list(self._events)
        return items[-n:]

    def clear(self) -> int:
        """Clear retained events and return how many were dropped."""
        with self._lock:
            count = len(self._events)
            self._events.clear()
            return count

    def __len__(self) -> int:
        with self._lock:
            return len(self._events)

    def stats(self) -> dict[str, Any]:
        """Summary of retained events and lifetime per-type totals."""
        with self._lock:
            retained = Counter(type(e).__name__ for e in self._events)
            totals = dict(self._totals)
            count = len(self._events)

        return {
            "total": count,
            "max_events": self._max_events,
            "by_type": dict(retained),
            "lifetime_by_type": totals,
        }
