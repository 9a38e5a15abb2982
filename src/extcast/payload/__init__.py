"""Payload layer — versioned build state of every tracked extension.

Holds the extension instance model, the payload differ, the broadcast event
variant, and the single-writer payload store.
"""

from extcast.payload.differ import PayloadChange, diff_payloads
from extcast.payload.events import BroadcastEvent, Remove, Snapshot, Update
from extcast.payload.models import ExtensionInstance, ExtensionPayload, PayloadStoreEntry
from extcast.payload.store import PayloadStore, StoreSnapshot

__all__ = [
    "BroadcastEvent",
    "ExtensionInstance",
    "ExtensionPayload",
    "PayloadChange",
    "PayloadStore",
    "PayloadStoreEntry",
    "Remove",
    "Snapshot",
    "StoreSnapshot",
    "Update",
    "diff_payloads",
]
