"""Unified event model for dev server observability.

Defines event types for the specification registry, the payload store, and
the broadcast path.  Pounce lifecycle events are recorded as-is.

All events are frozen dataclasses with:
- ``timestamp_ns``: Monotonic nanosecond timestamp
- Descriptive fields for the specific event type

Thread Safety:
    All events are frozen (immutable) and safe to share across threads.

"""

import time
from dataclasses import dataclass
from typing import Literal


# ---------------------------------------------------------------------------
# Startup events
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class SpecificationsLoaded:
    """The specification registry was built from the configured providers.

    Attributes:
        plugins: Provider names, in aggregation order.
        count: Number of distinct specifications registered.
        timestamp_ns: Monotonic nanosecond timestamp.

    """

    plugins: tuple[str, ...]
    count: int
    timestamp_ns: int


# ---------------------------------------------------------------------------
# Store events
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class PayloadChanged:
    """The payload store applied an effective mutation.

    Attributes:
        uuid: Extension uuid.
        kind: What happened to the entry.
        version: Version assigned by the store.
        files_changed: Number of payload changes (0 for removals).
        timestamp_ns: Monotonic nanosecond timestamp.

    """

    uuid: str
    kind: Literal["created", "updated", "removed"]
    version: int
    files_changed: int
    timestamp_ns: int


# ---------------------------------------------------------------------------
# Connection events
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class ConnectionOpened:
    """A client completed the handshake and received its snapshot.

    Attributes:
        client_id: Connection identifier.
        snapshot_version: Version tag of the snapshot sent.
        extensions: Number of extensions in the snapshot.
        timestamp_ns: Monotonic nanosecond timestamp.

    """

    client_id: str
    snapshot_version: int
    extensions: int
    timestamp_ns: int


@dataclass(frozen=True, slots=True)
class ConnectionClosed:
    """A client connection reached the Closed state.

    Attributes:
        client_id: Connection identifier.
        code: WebSocket close code.
        reason: Close reason.
        timestamp_ns: Monotonic nanosecond timestamp.

    """

    client_id: str
    code: int
    reason: str
    timestamp_ns: int


@dataclass(frozen=True, slots=True)
class UpgradeRejected:
    """A WebSocket upgrade request was rejected at handshake.

    Attributes:
        path: Requested path.
        reason: Why the upgrade was rejected.
        timestamp_ns: Monotonic nanosecond timestamp.

    """

    path: str
    reason: str
    timestamp_ns: int


# ---------------------------------------------------------------------------
# Broadcast events
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class BroadcastDelivered:
    """A store event was fanned out to the open connections.

    Attributes:
        event: Wire event name.
        uuid: Extension uuid (None for snapshots).
        version: Event version.
        clients_notified: Number of connections that queued the message.
        timestamp_ns: Monotonic nanosecond timestamp.

    """

    event: Literal["snapshot", "update", "remove"]
    uuid: str | None
    version: int
    clients_notified: int
    timestamp_ns: int


@dataclass(frozen=True, slots=True)
class DeliveryFailed:
    """A message could not be encoded or delivered.

    Attributes:
        client_id: Affected connection (None when the event failed to encode
            and was dropped for every connection).
        error: Error class name.
        message: Error message.
        timestamp_ns: Monotonic nanosecond timestamp.

    """

    client_id: str | None
    error: str
    message: str
    timestamp_ns: int


# ---------------------------------------------------------------------------
# Union type
# ---------------------------------------------------------------------------

type StackEvent = (
    SpecificationsLoaded
    | PayloadChanged
    | ConnectionOpened
    | ConnectionClosed
    | UpgradeRejected
    | BroadcastDelivered
    | DeliveryFailed
)


def now_ns() -> int:
    """Return the current monotonic clock value in nanoseconds."""
    return time.monotonic_ns()
