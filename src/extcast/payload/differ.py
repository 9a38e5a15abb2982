"""Payload differ — structural diff between two extension build states.

Compares two ExtensionPayload objects and produces a changeset describing
which output files were added, removed, or modified, plus markers for
changes to the type, surface, or config blob.  An empty changeset means the
rebuild produced identical output and must not be broadcast.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Literal

if TYPE_CHECKING:
    from extcast.payload.models import ExtensionPayload

# Pseudo-paths for non-file fields
TYPE_FIELD = "@type"
SURFACE_FIELD = "@surface"
CONFIG_FIELD = "@config"


@dataclass(frozen=True, slots=True)
class PayloadChange:
    """A single difference between two payloads.

    Attributes:
        kind: Type of change.
        path: Output file path, or one of the ``@type`` / ``@surface`` /
            ``@config`` pseudo-paths.

    """

    kind: Literal["added", "removed", "modified"]
    path: str


def diff_payloads(
    old: ExtensionPayload | None, new: ExtensionPayload,
) -> tuple[PayloadChange, ...]:
    """Diff *old* against *new*.

    With no previous payload every file of *new* counts as added.  Files are
    compared by content hash; the config blob is compared structurally as a
    whole.  Changes are ordered: field markers first, then files by path.
    """
    if old is None:
        return tuple(PayloadChange(kind="added", path=p) for p in sorted(new.files))

    changes: list[PayloadChange] = []
    if old.type != new.type:
        changes.append(PayloadChange(kind="modified", path=TYPE_FIELD))
    if old.surface != new.surface:
        changes.append(PayloadChange(kind="modified", path=SURFACE_FIELD))
    if old.config != new.config:
        changes.append(PayloadChange(kind="modified", path=CONFIG_FIELD))

    for path in sorted(old.files.keys() | new.files.keys()):
        if path not in new.files:
            changes.append(PayloadChange(kind="removed", path=path))
        elif path not in old.files:
            changes.append(PayloadChange(kind="added", path=path))
        elif old.files[path] != new.files[path]:
            changes.append(PayloadChange(kind="modified", path=path))

    return tuple(changes)
