"""Broadcast server — fans payload store events out to WebSocket clients.

Owns the set of live connections and subscribes once to the payload store.
Every store event is encoded a single time and queued on each connection;
a connection that cannot keep up is dropped without touching the others.

New clients are registered before their snapshot is taken, so no event can
fall between the snapshot and the live stream; events the snapshot already
covers are discarded per connection by version.

Thread Safety:
    The store may emit from any thread (the build watcher runs in one).
    Events from a foreign thread are appended to an inbox and drained on the
    server's event loop via ``call_soon_threadsafe``, keeping emission
    order.  Everything else runs on the event loop.

"""

from __future__ import annotations

import asyncio
import sys
import threading
from collections import deque
from typing import TYPE_CHECKING

from extcast._errors import ConnectionSendError, SerializationError, ServerClosedError
from extcast.broadcast.connection import (
    CLOSE_GOING_AWAY,
    CLOSE_POLICY_VIOLATION,
    ClientConnection,
)
from extcast.broadcast.messages import encode_event
from extcast.payload.events import Snapshot

if TYPE_CHECKING:
    from extcast.observability.collector import DevCollector
    from extcast.payload.events import BroadcastEvent
    from extcast.payload.store import PayloadStore


class BroadcastServer:
    """Distributes store events to all open client connections.

    Args:
        store: The payload store to follow.
        collector: Optional collector for connection and broadcast events.

    """

    def __init__(self, store: PayloadStore, *, collector: DevCollector | None = None) -> None:
        self._store = store
        self._collector = collector
        self._connections: dict[str, ClientConnection] = {}
        self._loop: asyncio.AbstractEventLoop | None = None
        self._inbox: deque[BroadcastEvent] = deque()
        self._inbox_lock = threading.Lock()
        self._drain_scheduled = False
        self._closing = False
        self._closed = asyncio.Event()
        self._tasks: set[asyncio.Task[None]] = set()

    # ----- Lifecycle -----

    def start(self, loop: asyncio.AbstractEventLoop | None = None) -> None:
        """Bind to the event loop and subscribe to the store.

        Called implicitly by the first ``register()``.  Idempotent.

        Raises:
            ServerClosedError: If the server has been closed.

        """
        if self._closing:
            raise ServerClosedError("Broadcast server is closed")
        if self._loop is not None:
            return
        self._loop = loop if loop is not None else asyncio.get_running_loop()
        self._store.subscribe(self._on_store_event)

    @property
    def is_closed(self) -> bool:
        return self._closing

    @property
    def connection_count(self) -> int:
        return len(self._connections)

    def connections(self) -> tuple[ClientConnection, ...]:
        """Currently registered connections, in registration order."""
        return tuple(self._connections.values())

    async def close(self) -> None:
        """Shut down: stop following the store and close every connection.

        Idempotent; concurrent callers all return once shutdown completes.
        """
        if self._closing:
            await self._closed.wait()
            return
        self._closing = True

        self._store.unsubscribe(self._on_store_event)
        with self._inbox_lock:
            self._inbox.clear()

        connections = tuple(self._connections.values())
        self._connections.clear()
        try:
            await asyncio.gather(
                *(conn.close(CLOSE_GOING_AWAY, "server shutting down") for conn in connections),
                return_exceptions=True,
            )
            if self._tasks:
                await asyncio.gather(*tuple(self._tasks), return_exceptions=True)
        finally:
            self._closed.set()

    async def wait_closed(self) -> None:
        """Wait until ``close()`` has finished."""
        await self._closed.wait()

    # ----- Connections -----

    def register(self, conn: ClientConnection) -> Snapshot:
        """Add *conn* and queue its initial snapshot.

        The connection joins the fan-out set first, then the snapshot is
        taken; the connection discards any event the snapshot covers.

        Returns:
            The snapshot queued for the client.

        Raises:
            ServerClosedError: If the server is closed.
            ConnectionSendError: If the snapshot could not be queued; the
                connection has been dropped.

        """
        self.start()
        self._connections[conn.client_id] = conn
        conn.add_close_callback(self._on_connection_closed)

        state = self._store.get_snapshot()
        snapshot = Snapshot(
            version=state.version,
            payload=tuple(entry.to_dict() for entry in state),
            versions=state.versions,
        )
        try:
            text: str | None = encode_event(snapshot)
        except SerializationError as exc:
            # The client still receives live updates.
            text = None
            self._report(conn.client_id, exc)

        try:
            conn.open_with_snapshot(text, state.versions)
        except ConnectionSendError as exc:
            self._report(conn.client_id, exc)
            self._drop(conn)
            raise

        if self._collector is not None:
            self._collector.record_connection_opened(
                conn.client_id,
                snapshot_version=snapshot.version,
                extensions=len(snapshot.payload),
            )
            if text is not None:
                self._collector.record_broadcast(
                    snapshot.event, uuid=None, version=snapshot.version, clients_notified=1,
                )
        return snapshot

    def unregister(self, conn: ClientConnection) -> None:
        """Remove *conn* from the fan-out set without closing it."""
        if self._connections.get(conn.client_id) is conn:
            del self._connections[conn.client_id]

    def _drop(self, conn: ClientConnection) -> None:
        """Remove *conn* now and close it in the background."""
        self.unregister(conn)
        if self._loop is None:
            return
        task = self._loop.create_task(
            conn.close(CLOSE_POLICY_VIOLATION, "client too slow"),
        )
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    def _on_connection_closed(self, conn: ClientConnection) -> None:
        self.unregister(conn)
        if conn.error is not None:
            self._report(conn.client_id, conn.error)
        if self._collector is not None:
            self._collector.record_connection_closed(
                conn.client_id,
                code=conn.close_code if conn.close_code is not None else CLOSE_GOING_AWAY,
                reason=conn.close_reason,
            )

    # ----- Store events -----

    def _on_store_event(self, event: BroadcastEvent) -> None:
        """Store listener.  Runs under the store lock, on any thread."""
        loop = self._loop
        if loop is None or self._closing:
            return
        try:
            running = asyncio.get_running_loop()
        except RuntimeError:
            running = None

        schedule = False
        with self._inbox_lock:
            direct = running is loop and not self._inbox
            if not direct:
                self._inbox.append(event)
                schedule = not self._drain_scheduled
                self._drain_scheduled = True

        if direct:
            self._dispatch(event)
        elif schedule:
            try:
                loop.call_soon_threadsafe(self._drain_inbox)
            except RuntimeError as exc:
                print(f"  Broadcast loop unavailable: {exc}", file=sys.stderr)

    def _drain_inbox(self) -> None:
        while True:
            with self._inbox_lock:
                if not self._inbox:
                    self._drain_scheduled = False
                    return
                event = self._inbox.popleft()
            self._dispatch(event)

    def _dispatch(self, event: BroadcastEvent) -> int:
        """Encode *event* once and queue it on every open connection.

        Returns the number of connections that queued it.
        """
        if self._closing:
            return 0
        try:
            text = encode_event(event)
        except SerializationError as exc:
            self._report(None, exc)
            return 0

        notified = 0
        for conn in tuple(self._connections.values()):
            try:
                if conn.deliver(event, text):
                    notified += 1
            except ConnectionSendError as exc:
                self._report(conn.client_id, exc)
                self._drop(conn)

        if self._collector is not None:
            self._collector.record_broadcast(
                event.event, uuid=event.uuid, version=event.version, clients_notified=notified,
            )
        return notified

    def _report(self, client_id: str | None, exc: BaseException) -> None:
        target = client_id or "all clients"
        print(f"  Broadcast error ({target}): {exc}", file=sys.stderr)
        if self._collector is not None:
            self._collector.record_delivery_failure(client_id, exc)
