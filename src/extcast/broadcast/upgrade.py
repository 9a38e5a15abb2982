"""WebSocket upgrade handler — the ASGI endpoint clients connect to.

Validates the upgrade request, accepts it, registers a ``ClientConnection``
with the broadcast server, and keeps the socket alive until the peer
disconnects or the server shuts down.  Clients send no application
messages; anything they send is ignored.  Protocol-level ping/pong is
answered by the ASGI server.

Failures never escape into the ASGI server: a bad request is rejected with
a ``websocket.close`` frame, and a failure after accept closes only that
connection.
"""

from __future__ import annotations

import asyncio
import sys
from typing import TYPE_CHECKING, Any

from extcast._errors import ConnectionSendError, MalformedUpgradeError, ServerClosedError
from extcast.broadcast.connection import (
    CLOSE_INTERNAL_ERROR,
    CLOSE_NORMAL,
    CLOSE_POLICY_VIOLATION,
    CLOSE_TRY_AGAIN_LATER,
    ClientConnection,
)

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

    from extcast.broadcast.server import BroadcastServer
    from extcast.config import ExtcastConfig
    from extcast.observability.collector import DevCollector

    type Receive = Callable[[], Awaitable[dict[str, Any]]]
    type Send = Callable[[dict[str, Any]], Awaitable[None]]

WEBSOCKET_VERSION = "13"


class AsgiSocket:
    """``ClientSocket`` over an accepted ASGI WebSocket."""

    __slots__ = ("_done", "_send")

    def __init__(self, send: Send) -> None:
        self._send = send
        self._done = False

    @property
    def is_done(self) -> bool:
        """True once the socket was closed or the peer disconnected."""
        return self._done

    def mark_disconnected(self) -> None:
        """The peer is gone; further writes fail and close is a no-op."""
        self._done = True

    async def send_text(self, text: str) -> None:
        if self._done:
            raise ConnectionSendError("socket already closed")
        await self._send({"type": "websocket.send", "text": text})

    async def close(self, code: int = CLOSE_NORMAL, reason: str = "") -> None:
        if self._done:
            return
        self._done = True
        await self._send({"type": "websocket.close", "code": code, "reason": reason})


def _header(scope: dict[str, Any], name: bytes) -> str | None:
    for key, value in scope.get("headers", ()):
        if key.lower() == name:
            return value.decode("latin-1")
    return None


def _normalize_path(path: str) -> str:
    return path.rstrip("/") or "/"


class UpgradeHandler:
    """ASGI application for ``websocket`` scopes at the configured endpoint.

    Args:
        server: Broadcast server new connections are registered with.
        config: Supplies the endpoint, handshake timeout, and queue size.
        collector: Optional collector for rejected upgrades.

    """

    def __init__(
        self,
        server: BroadcastServer,
        config: ExtcastConfig,
        *,
        collector: DevCollector | None = None,
    ) -> None:
        self._server = server
        self._config = config
        self._collector = collector
        self._endpoint = _normalize_path(config.endpoint)

    def validate(self, scope: dict[str, Any]) -> None:
        """Check that *scope* is a WebSocket upgrade for our endpoint.

        Raises:
            MalformedUpgradeError: If the scope type, path, or protocol
                version is wrong.

        """
        if scope.get("type") != "websocket":
            msg = f"Not a WebSocket scope: {scope.get('type')!r}"
            raise MalformedUpgradeError(msg)
        path = scope.get("path", "")
        if _normalize_path(path) != self._endpoint:
            msg = f"No WebSocket endpoint at {path!r}"
            raise MalformedUpgradeError(msg)
        version = _header(scope, b"sec-websocket-version")
        if version != WEBSOCKET_VERSION:
            msg = f"Unsupported WebSocket version {version!r}"
            raise MalformedUpgradeError(msg)

    async def __call__(self, scope: dict[str, Any], receive: Receive, send: Send) -> None:
        path = scope.get("path", "")
        try:
            accepted = await self._handshake(scope, receive, send)
        except Exception as exc:
            self._rejected(path, f"handshake failed: {exc!r}")
            return
        if accepted is None:
            return
        conn, socket = accepted

        try:
            self._server.register(conn)
        except ServerClosedError:
            await conn.close(CLOSE_TRY_AGAIN_LATER, "server shutting down")
            return
        except ConnectionSendError:
            # Already dropped and closing.
            await conn.wait_closed()
            return

        try:
            await self._serve(conn, socket, receive)
        except Exception as exc:
            print(f"  WebSocket error ({conn.client_id}): {exc}", file=sys.stderr)
            await conn.close(CLOSE_INTERNAL_ERROR, "internal error")
        finally:
            self._server.unregister(conn)

    async def _handshake(
        self, scope: dict[str, Any], receive: Receive, send: Send,
    ) -> tuple[ClientConnection, AsgiSocket] | None:
        """Accept or reject the upgrade.  Returns None when rejected."""
        path = scope.get("path", "")
        try:
            message = await asyncio.wait_for(receive(), self._config.handshake_timeout)
        except TimeoutError:
            self._rejected(path, "handshake timed out")
            await send({"type": "websocket.close", "code": CLOSE_POLICY_VIOLATION})
            return None
        if message.get("type") != "websocket.connect":
            self._rejected(path, f"unexpected {message.get('type')!r} before connect")
            return None

        try:
            self.validate(scope)
        except MalformedUpgradeError as exc:
            self._rejected(path, str(exc))
            await send({"type": "websocket.close", "code": CLOSE_POLICY_VIOLATION})
            return None
        if self._server.is_closed:
            self._rejected(path, "server shutting down")
            await send({"type": "websocket.close", "code": CLOSE_TRY_AGAIN_LATER})
            return None

        await send({"type": "websocket.accept"})
        socket = AsgiSocket(send)
        conn = ClientConnection(
            socket,
            queue_size=self._config.queue_size,
            close_timeout=self._config.handshake_timeout,
        )
        return conn, socket

    async def _serve(self, conn: ClientConnection, socket: AsgiSocket, receive: Receive) -> None:
        """Drain client frames until the peer leaves or the connection closes."""
        closed = asyncio.ensure_future(conn.wait_closed())
        try:
            while True:
                incoming = asyncio.ensure_future(receive())
                done, _ = await asyncio.wait(
                    {incoming, closed}, return_when=asyncio.FIRST_COMPLETED,
                )
                if incoming not in done:
                    incoming.cancel()
                    return
                message = incoming.result()
                if message.get("type") == "websocket.disconnect":
                    socket.mark_disconnected()
                    await conn.close(message.get("code", CLOSE_NORMAL), "peer disconnected")
                    return
        finally:
            closed.cancel()

    def _rejected(self, path: str, reason: str) -> None:
        print(f"  WebSocket upgrade rejected ({path}): {reason}", file=sys.stderr)
        if self._collector is not None:
            self._collector.record_upgrade_rejected(path, reason)
