"""Dev collector — bridges Pounce lifecycle events into the dev server's event log.

Implements Pounce's ``LifecycleCollector`` protocol so it can be passed
directly to the Pounce server.  Also provides methods for recording
registry, store, and broadcast events.

Thread Safety:
    The collector delegates to ``EventLog`` which is internally locked.
    Safe for concurrent use from the event loop, Pounce worker threads, and
    the build watcher thread.

"""

from __future__ import annotations

from typing import Any

from extcast.observability.events import (
    BroadcastDelivered,
    ConnectionClosed,
    ConnectionOpened,
    DeliveryFailed,
    PayloadChanged,
    SpecificationsLoaded,
    UpgradeRejected,
    now_ns,
)
from extcast.observability.log import EventLog


class DevCollector:
    """Unified event collector for the dev server.

    Args:
        log: The EventLog to store events in.

    """

    __slots__ = ("_log",)

    def __init__(self, log: EventLog | None = None) -> None:
        self._log = log if log is not None else EventLog()

    @property
    def log(self) -> EventLog:
        """The underlying event log."""
        return self._log

    # ----- Pounce LifecycleCollector protocol -----

    def record(self, event: Any) -> None:
        """Record a Pounce lifecycle event.

        Pounce events are stored directly since they are frozen dataclasses.
        """
        self._log.append(event)

    # ----- Registry -----

    def record_specs_loaded(self, plugins: tuple[str, ...], count: int) -> None:
        self._log.append(
            SpecificationsLoaded(plugins=plugins, count=count, timestamp_ns=now_ns())
        )

    # ----- Store -----

    def record_payload_change(
        self,
        uuid: str,
        *,
        kind: str,
        version: int,
        files_changed: int = 0,
    ) -> None:
        """Record an effective store mutation."""
        self._log.append(
            PayloadChanged(
                uuid=uuid,
                kind=kind,  # type: ignore[arg-type]
                version=version,
                files_changed=files_changed,
                timestamp_ns=now_ns(),
            )
        )

    # ----- Connections -----

    def record_connection_opened(
        self, client_id: str, *, snapshot_version: int, extensions: int,
    ) -> None:
        self._log.append(
            ConnectionOpened(
                client_id=client_id,
                snapshot_version=snapshot_version,
                extensions=extensions,
                timestamp_ns=now_ns(),
            )
        )

    def record_connection_closed(self, client_id: str, *, code: int, reason: str = "") -> None:
        self._log.append(
            ConnectionClosed(
                client_id=client_id, code=code, reason=reason, timestamp_ns=now_ns(),
            )
        )

    def record_upgrade_rejected(self, path: str, reason: str) -> None:
        self._log.append(UpgradeRejected(path=path, reason=reason, timestamp_ns=now_ns()))

    # ----- Broadcast -----

    def record_broadcast(
        self,
        event: str,
        *,
        uuid: str | None,
        version: int,
        clients_notified: int,
    ) -> None:
        """Record a fan-out of one store event."""
        self._log.append(
            BroadcastDelivered(
                event=event,  # type: ignore[arg-type]
                uuid=uuid,
                version=version,
                clients_notified=clients_notified,
                timestamp_ns=now_ns(),
            )
        )

    def record_delivery_failure(self, client_id: str | None, exc: BaseException) -> None:
        """Record an encode failure (no client) or a per-client send failure."""
        self._log.append(
            DeliveryFailed(
                client_id=client_id,
                error=type(exc).__name__,
                message=str(exc),
                timestamp_ns=now_ns(),
            )
        )
