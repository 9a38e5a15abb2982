"""Dev server observability — unified event model for the broadcast engine.

Aggregates events from:
- **Pounce**: Connection lifecycle (open, request, response, disconnect, close)
- **Registry/Store**: Specifications loaded, payload mutations
- **Broadcast**: Client connections, fan-out, delivery failures

All events are frozen dataclasses with nanosecond timestamps, safe for
concurrent production from multiple threads.

Quick Start:
    >>> from extcast.observability import DevCollector, EventLog
    >>> log = EventLog()
    >>> collector = DevCollector(log)
    >>> # Pass collector to Pounce as lifecycle_collector

"""

from extcast.observability.collector import DevCollector
from extcast.observability.events import (
    BroadcastDelivered,
    ConnectionClosed,
    ConnectionOpened,
    DeliveryFailed,
    PayloadChanged,
    SpecificationsLoaded,
    StackEvent,
    UpgradeRejected,
    now_ns,
)
from extcast.observability.log import EventLog

__all__ = [
    "BroadcastDelivered",
    "ConnectionClosed",
    "ConnectionOpened",
    "DeliveryFailed",
    "DevCollector",
    "EventLog",
    "PayloadChanged",
    "SpecificationsLoaded",
    "StackEvent",
    "UpgradeRejected",
    "now_ns",
]
