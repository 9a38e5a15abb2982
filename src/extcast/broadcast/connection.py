"""Client connections — one WebSocket client and its outbound queue.

Each connection owns a bounded ``asyncio.Queue`` drained by a dedicated
sender task, so a slow client only ever delays itself.  A connection moves
through ``CONNECTING → OPEN → CLOSING → CLOSED``:

- CONNECTING: registered with the broadcast server, snapshot not yet queued.
  Events delivered in this state are buffered.
- OPEN: snapshot queued; buffered events newer than the snapshot follow it.
- CLOSING / CLOSED: nothing more is queued; in-flight messages are dropped.

Each connection remembers the per-uuid versions its snapshot already covered
and silently skips any event at or below them, so an event that raced the
snapshot is never seen twice.
"""

from __future__ import annotations

import asyncio
import enum
import sys
import uuid as uuid_mod
from collections.abc import Callable
from typing import TYPE_CHECKING, Protocol

from extcast._errors import ConnectionSendError

if TYPE_CHECKING:
    from extcast.payload.events import BroadcastEvent

# WebSocket close codes (RFC 6455 §7.4.1)
CLOSE_NORMAL = 1000
CLOSE_GOING_AWAY = 1001
CLOSE_POLICY_VIOLATION = 1008
CLOSE_INTERNAL_ERROR = 1011
CLOSE_TRY_AGAIN_LATER = 1013


class ConnectionState(enum.Enum):
    CONNECTING = "connecting"
    OPEN = "open"
    CLOSING = "closing"
    CLOSED = "closed"


class ClientSocket(Protocol):
    """Transport a connection writes to (an ASGI socket or a test fake)."""

    async def send_text(self, text: str) -> None: ...

    async def close(self, code: int = CLOSE_NORMAL, reason: str = "") -> None: ...


type CloseCallback = Callable[[ClientConnection], None]


class ClientConnection:
    """A connected client, its queue, and its sender task.

    Args:
        socket: Transport to write frames to.
        client_id: Identifier for logs and stats (generated when omitted).
        queue_size: Bound of the outbound queue.  Overflow raises
            ``ConnectionSendError`` from ``deliver()``.
        close_timeout: Seconds allowed for the close frame write.  A peer
            that never completes it is treated as closed.

    """

    __slots__ = (
        "_callbacks",
        "_close_timeout",
        "_closed",
        "_covered",
        "_pending",
        "_queue",
        "_queue_size",
        "_sender",
        "_socket",
        "_state",
        "client_id",
        "close_code",
        "close_reason",
        "error",
    )

    def __init__(
        self,
        socket: ClientSocket,
        *,
        client_id: str | None = None,
        queue_size: int = 256,
        close_timeout: float = 5.0,
    ) -> None:
        if queue_size < 2:
            msg = f"queue_size must be at least 2, got {queue_size}"
            raise ValueError(msg)
        self._socket = socket
        self.client_id = client_id or f"ws-{uuid_mod.uuid4().hex[:12]}"
        self._queue_size = queue_size
        self._close_timeout = close_timeout
        self._queue: asyncio.Queue[str] = asyncio.Queue(maxsize=queue_size)
        self._pending: list[tuple[BroadcastEvent, str]] = []
        self._covered: dict[str, int] = {}
        self._state = ConnectionState.CONNECTING
        self._sender: asyncio.Task[None] | None = None
        self._closed = asyncio.Event()
        self._callbacks: list[CloseCallback] = []
        self.close_code: int | None = None
        self.close_reason = ""
        self.error: BaseException | None = None

    def __repr__(self) -> str:
        return f"ClientConnection({self.client_id!r}, state={self._state.value})"

    @property
    def state(self) -> ConnectionState:
        return self._state

    @property
    def is_open(self) -> bool:
        return self._state is ConnectionState.OPEN

    @property
    def queued(self) -> int:
        """Messages waiting for the sender task."""
        return self._queue.qsize()

    def add_close_callback(self, callback: CloseCallback) -> None:
        """Call *callback* with this connection once it reaches CLOSED."""
        if callback not in self._callbacks:
            self._callbacks.append(callback)

    # ----- Delivery -----

    def deliver(self, event: BroadcastEvent, text: str) -> bool:
        """Queue the encoded *text* of *event* for this client.

        Returns True if the message was queued (or buffered while
        CONNECTING), False if it was skipped: the connection is closing, or
        the snapshot already covered this version.

        Raises:
            ConnectionSendError: If the outbound queue is full.

        """
        if self._state is ConnectionState.CONNECTING:
            if len(self._pending) >= self._queue_size - 1:
                msg = f"{self.client_id}: too many events while connecting"
                raise ConnectionSendError(msg)
            self._pending.append((event, text))
            return True
        if self._state is not ConnectionState.OPEN:
            return False
        if self._is_covered(event):
            return False
        self._enqueue(text)
        return True

    def open_with_snapshot(self, text: str | None, versions: dict[str, int]) -> int:
        """Queue the snapshot, flush buffered events, and go OPEN.

        Args:
            text: Encoded snapshot message, or None when it could not be
                encoded (the connection still opens and receives updates).
            versions: Highest version per uuid the snapshot covers.

        Returns:
            Number of buffered events discarded as already covered.

        Raises:
            ConnectionSendError: If the queue cannot hold the snapshot and the
                buffered events.

        """
        if self._state is not ConnectionState.CONNECTING:
            msg = f"{self.client_id}: cannot open from state {self._state.value}"
            raise ConnectionSendError(msg)

        self._covered = dict(versions)
        pending, self._pending = self._pending, []
        if text is not None:
            self._enqueue(text)

        discarded = 0
        for event, event_text in pending:
            if self._is_covered(event):
                discarded += 1
                continue
            self._enqueue(event_text)

        self._state = ConnectionState.OPEN
        self._sender = asyncio.get_running_loop().create_task(
            self._run_sender(), name=f"extcast-sender-{self.client_id}",
        )
        return discarded

    def _is_covered(self, event: BroadcastEvent) -> bool:
        uuid = event.uuid
        return uuid is not None and event.version <= self._covered.get(uuid, 0)

    def _enqueue(self, text: str) -> None:
        try:
            self._queue.put_nowait(text)
        except asyncio.QueueFull:
            msg = f"{self.client_id}: outbound queue full ({self._queue_size} messages)"
            raise ConnectionSendError(msg) from None

    async def _run_sender(self) -> None:
        """Drain the queue into the socket until closed or a write fails."""
        while True:
            text = await self._queue.get()
            try:
                await self._socket.send_text(text)
            except Exception as exc:
                self.error = exc
                await self.close(CLOSE_INTERNAL_ERROR, "send failed")
                return

    # ----- Closing -----

    async def close(self, code: int = CLOSE_NORMAL, reason: str = "") -> None:
        """Close the connection, dropping anything still queued.

        Idempotent: closing a CLOSED connection is a no-op, and a second
        close while CLOSING waits for the first to finish.
        """
        if self._state is ConnectionState.CLOSED:
            return
        if self._state is ConnectionState.CLOSING:
            await self._closed.wait()
            return

        self._state = ConnectionState.CLOSING
        self.close_code = code
        self.close_reason = reason
        self._pending.clear()
        while not self._queue.empty():
            self._queue.get_nowait()

        sender = self._sender
        if sender is not None and sender is not asyncio.current_task():
            sender.cancel()

        try:
            await asyncio.wait_for(self._socket.close(code, reason), self._close_timeout)
        except Exception as exc:
            if self.error is None:
                self.error = exc
        finally:
            self._state = ConnectionState.CLOSED
            self._closed.set()
            self._run_callbacks()

    async def wait_closed(self) -> None:
        """Wait until the connection reaches CLOSED."""
        await self._closed.wait()

    def _run_callbacks(self) -> None:
        for callback in tuple(self._callbacks):
            try:
                callback(self)
            except Exception as exc:
                print(f"  Close callback error ({self.client_id}): {exc}", file=sys.stderr)
