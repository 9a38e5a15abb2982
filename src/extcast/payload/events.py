"""Broadcast events — the tagged variant the store emits and clients receive.

Three event kinds:

- ``Snapshot``: full current state, sent once to a newly connected client.
- ``Update``: one extension's new payload (``is_full_snapshot`` on creation).
- ``Remove``: an extension was torn down; carries only uuid and version.

``to_message()`` renders the JSON-compatible wire object.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, ClassVar, Literal

type EventName = Literal["snapshot", "update", "remove"]


@dataclass(frozen=True, slots=True)
class Snapshot:
    """Full state of all tracked extensions.

    Attributes:
        version: Highest version among the included entries (0 when empty).
        payload: Entry dicts in store insertion order.
        versions: Highest version ever issued per uuid, including removed
            ones.  Used to de-duplicate events racing the snapshot; not sent.

    """

    event: ClassVar[EventName] = "snapshot"

    version: int
    payload: tuple[dict[str, Any], ...] = ()
    versions: dict[str, int] = field(default_factory=dict, compare=False, repr=False)

    @property
    def uuid(self) -> None:
        return None

    def to_message(self) -> dict[str, Any]:
        return {"event": self.event, "version": self.version, "payload": list(self.payload)}


@dataclass(frozen=True, slots=True)
class Update:
    """One extension was created or changed.

    Attributes:
        uuid: Extension uuid.
        version: New version of the extension.
        payload: Entry dict at the new version.
        is_full_snapshot: True when the extension was (re-)created.

    """

    event: ClassVar[EventName] = "update"

    uuid: str
    version: int
    payload: dict[str, Any]
    is_full_snapshot: bool = False

    def to_message(self) -> dict[str, Any]:
        return {
            "event": self.event,
            "uuid": self.uuid,
            "version": self.version,
            "payload": self.payload,
            "isFullSnapshot": self.is_full_snapshot,
        }


@dataclass(frozen=True, slots=True)
class Remove:
    """An extension was removed.

    Attributes:
        uuid: Extension uuid.
        version: The last version plus one; never reused for that uuid.

    """

    event: ClassVar[EventName] = "remove"

    uuid: str
    version: int

    def to_message(self) -> dict[str, Any]:
        return {"event": self.event, "uuid": self.uuid, "version": self.version}


type BroadcastEvent = Snapshot | Update | Remove
