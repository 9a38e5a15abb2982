"""Extension instance model — the typed build state of one extension.

ExtensionPayload is what the build pipeline reports; ExtensionInstance is a
payload tagged with its uuid and the version the store assigned to it.
All models are frozen; mappings are deep-copied on construction so callers
cannot mutate stored state through a reference they kept.
"""

from __future__ import annotations

import copy
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

_PAYLOAD_KEYS = frozenset({"type", "surface", "files", "config"})


@dataclass(frozen=True, slots=True)
class ExtensionPayload:
    """Serialized build state of one extension.

    Attributes:
        type: Specification identifier of the extension.
        surface: Host context the extension renders into.
        files: Output file path (relative, POSIX) to content hash.
        config: Opaque JSON-compatible configuration blob.

    """

    type: str = ""
    surface: str = ""
    files: Mapping[str, str] = field(default_factory=dict)
    config: Mapping[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        object.__setattr__(self, "files", {str(k): str(v) for k, v in self.files.items()})
        object.__setattr__(self, "config", copy.deepcopy(dict(self.config)))

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> ExtensionPayload:
        """Build a payload from a plain mapping such as ``{"files": {...}}``.

        Raises:
            ValueError: If the mapping has keys other than type, surface,
                files and config.

        """
        unknown = sorted(set(data) - _PAYLOAD_KEYS)
        if unknown:
            msg = f"Unknown payload keys: {', '.join(unknown)}"
            raise ValueError(msg)
        return cls(
            type=str(data.get("type", "")),
            surface=str(data.get("surface", "")),
            files=data.get("files") or {},
            config=data.get("config") or {},
        )

    @classmethod
    def coerce(cls, payload: ExtensionPayload | Mapping[str, Any]) -> ExtensionPayload:
        """Return *payload* as an ExtensionPayload."""
        if isinstance(payload, ExtensionPayload):
            return payload
        return cls.from_mapping(payload)

    def to_dict(self) -> dict[str, Any]:
        return {
            "type": self.type,
            "surface": self.surface,
            "files": dict(self.files),
            "config": copy.deepcopy(dict(self.config)),
        }


@dataclass(frozen=True, slots=True)
class ExtensionInstance:
    """One extension's current build state, as held by the store.

    Attributes:
        uuid: Primary key.
        version: Store-assigned version, strictly increasing per uuid.
        payload: The build state at this version.

    """

    uuid: str
    version: int
    payload: ExtensionPayload

    @property
    def type(self) -> str:
        return self.payload.type

    @property
    def surface(self) -> str:
        return self.payload.surface

    @property
    def files(self) -> Mapping[str, str]:
        return self.payload.files

    @property
    def config(self) -> Mapping[str, Any]:
        return self.payload.config

    def to_dict(self) -> dict[str, Any]:
        return {"uuid": self.uuid, "version": self.version, **self.payload.to_dict()}


@dataclass(frozen=True, slots=True)
class PayloadStoreEntry:
    """A stored instance plus the wall-clock time of its last change.

    Attributes:
        instance: The current ExtensionInstance.
        last_updated: Unix timestamp (seconds) of the last upsert.

    """

    instance: ExtensionInstance
    last_updated: float

    @property
    def uuid(self) -> str:
        return self.instance.uuid

    @property
    def version(self) -> int:
        return self.instance.version

    def to_dict(self) -> dict[str, Any]:
        return {**self.instance.to_dict(), "lastUpdated": self.last_updated}
