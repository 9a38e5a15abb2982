"""Payload store — versioned, event-emitting store of extension instances.

The single source of truth for "current state".  The build pipeline reports
builds through ``upsert()`` and teardowns through ``remove()``; every
effective change bumps the extension's version and is emitted, in order, to
the registered listeners (the broadcast server).

Versioning:
    Versions are strictly increasing per uuid over the store's whole lifetime.
    The highest version ever issued is remembered after removal, so a
    re-created extension continues above it and clients can never confuse a
    stale event with a fresh one.

Thread Safety:
    One lock serializes every mutation together with its listener dispatch,
    making the lock holder the single logical writer: version assignment
    and emission order equal call order, whichever thread calls.  Readers
    take the same lock, so ``get_snapshot()`` is a consistent point-in-time
    view.  Listeners run while the lock is held and must not block.

"""

from __future__ import annotations

import sys
import threading
import time
from collections.abc import Iterator, Mapping
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from extcast.payload.differ import diff_payloads
from extcast.payload.events import Remove, Update
from extcast.payload.models import (
    ExtensionInstance,
    ExtensionPayload,
    PayloadStoreEntry,
)

if TYPE_CHECKING:
    from extcast._types import StoreListener
    from extcast.observability.collector import DevCollector
    from extcast.payload.events import BroadcastEvent


@dataclass(frozen=True, slots=True)
class StoreSnapshot:
    """Point-in-time view of the store.

    Attributes:
        entries: Current entries in insertion order.
        versions: Highest version ever issued per uuid, removed ones included.

    """

    entries: tuple[PayloadStoreEntry, ...] = ()
    versions: dict[str, int] = field(default_factory=dict)

    @property
    def version(self) -> int:
        """Highest version among the included entries (0 when empty)."""
        return max((e.version for e in self.entries), default=0)

    def __iter__(self) -> Iterator[PayloadStoreEntry]:
        return iter(self.entries)

    def __len__(self) -> int:
        return len(self.entries)


class PayloadStore:
    """In-memory store of ExtensionInstances keyed by uuid.

    Args:
        collector: Optional collector receiving a ``PayloadChanged`` event
            for every effective mutation.
        clock: Wall-clock source for ``last_updated`` timestamps.

    """

    __slots__ = ("_clock", "_collector", "_entries", "_listeners", "_lock", "_versions")

    def __init__(
        self,
        collector: DevCollector | None = None,
        *,
        clock: Any = time.time,
    ) -> None:
        self._entries: dict[str, PayloadStoreEntry] = {}
        self._versions: dict[str, int] = {}
        self._listeners: list[StoreListener] = []
        # Reentrant so a listener may read the store during dispatch.
        self._lock = threading.RLock()
        self._collector = collector
        self._clock = clock

    # ----- Listeners -----

    def subscribe(self, listener: StoreListener) -> None:
        """Register *listener* to receive every emitted event, in order."""
        with self._lock:
            if listener not in self._listeners:
                self._listeners.append(listener)

    def unsubscribe(self, listener: StoreListener) -> None:
        """Remove *listener*.  Unknown listeners are ignored."""
        with self._lock:
            if listener in self._listeners:
                self._listeners.remove(listener)

    @property
    def listener_count(self) -> int:
        with self._lock:
            return len(self._listeners)

    # ----- Mutations -----

    def upsert(
        self, uuid: str, payload: ExtensionPayload | Mapping[str, Any],
    ) -> Update | None:
        """Create or update the entry for *uuid*.

        Returns the emitted Update, or None when the payload is unchanged.

        Raises:
            ValueError: If *payload* is a mapping with unknown keys.

        """
        new_payload = ExtensionPayload.coerce(payload)
        with self._lock:
            existing = self._entries.get(uuid)
            old_payload = existing.instance.payload if existing is not None else None
            changes = diff_payloads(old_payload, new_payload)
            if existing is not None and not changes:
                return None

            version = self._versions.get(uuid, 0) + 1
            entry = PayloadStoreEntry(
                instance=ExtensionInstance(uuid=uuid, version=version, payload=new_payload),
                last_updated=self._clock(),
            )
            # Replacing a key keeps its insertion position.
            self._entries[uuid] = entry
            self._versions[uuid] = version

            event = Update(
                uuid=uuid,
                version=version,
                payload=entry.to_dict(),
                is_full_snapshot=existing is None,
            )
            if self._collector is not None:
                self._collector.record_payload_change(
                    uuid,
                    kind="created" if existing is None else "updated",
                    version=version,
                    files_changed=len(changes),
                )
            self._emit(event)
            return event

    def remove(self, uuid: str) -> Remove | None:
        """Delete the entry for *uuid*.

        Returns the emitted Remove, or None if *uuid* is not stored.
        """
        with self._lock:
            if self._entries.pop(uuid, None) is None:
                return None
            version = self._versions[uuid] + 1
            self._versions[uuid] = version

            event = Remove(uuid=uuid, version=version)
            if self._collector is not None:
                self._collector.record_payload_change(
                    uuid, kind="removed", version=version,
                )
            self._emit(event)
            return event

    def clear(self) -> None:
        """Teardown: drop all entries and listeners without emitting.

        Version history is kept so versions stay monotonic if the store is
        reused.
        """
        with self._lock:
            self._entries.clear()
            self._listeners.clear()

    # ----- Reads -----

    def get(self, uuid: str) -> PayloadStoreEntry | None:
        with self._lock:
            return self._entries.get(uuid)

    def get_snapshot(self) -> StoreSnapshot:
        """All current entries in insertion order, with the version history."""
        with self._lock:
            return StoreSnapshot(
                entries=tuple(self._entries.values()),
                versions=dict(self._versions),
            )

    def last_version(self, uuid: str) -> int:
        """Highest version ever issued for *uuid* (0 if never seen)."""
        with self._lock:
            return self._versions.get(uuid, 0)

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def __contains__(self, uuid: object) -> bool:
        with self._lock:
            return uuid in self._entries

    # ----- Dispatch -----

    def _emit(self, event: BroadcastEvent) -> None:
        """Dispatch *event* to every listener; a failing listener is reported."""
        for listener in tuple(self._listeners):
            try:
                listener(event)
            except Exception as exc:
                print(
                    f"  Store listener error ({event.event} {event.uuid}): {exc}",
                    file=sys.stderr,
                )
