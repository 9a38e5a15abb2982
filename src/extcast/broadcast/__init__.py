"""Broadcast layer — live WebSocket fan-out of payload store events.

Components:
- **messages**: One-shot JSON encoding of store events
- **connection**: Per-client queue, sender task, and state machine
- **server**: Connection set, snapshot handoff, and fan-out
- **upgrade**: ASGI WebSocket endpoint that feeds the server
"""

from extcast.broadcast.connection import ClientConnection, ClientSocket, ConnectionState
from extcast.broadcast.messages import encode_event
from extcast.broadcast.server import BroadcastServer
from extcast.broadcast.upgrade import AsgiSocket, UpgradeHandler

__all__ = [
    "AsgiSocket",
    "BroadcastServer",
    "ClientConnection",
    "ClientSocket",
    "ConnectionState",
    "UpgradeHandler",
    "encode_event",
]
