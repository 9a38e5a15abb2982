"""Wire encoding for broadcast events.

Each event is serialized exactly once per broadcast; the resulting text is
shared by every connection.
"""

from __future__ import annotations

import json
from typing import TYPE_CHECKING

from extcast._errors import SerializationError

if TYPE_CHECKING:
    from extcast.payload.events import BroadcastEvent


def encode_event(event: BroadcastEvent) -> str:
    """Render *event* as a compact JSON text frame.

    Raises:
        SerializationError: If the payload holds values JSON cannot represent
            (objects, NaN, infinities).

    """
    try:
        return json.dumps(event.to_message(), separators=(",", ":"), allow_nan=False)
    except (TypeError, ValueError) as exc:
        raise SerializationError(
            f"Cannot encode {event.event} event for {event.uuid or 'all extensions'}: {exc}"
        ) from exc
