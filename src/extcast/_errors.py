"""Extcast error hierarchy.

All extcast-specific errors inherit from ExtcastError for easy catching.

Registry errors are startup errors: they propagate to the caller before the
dev server starts.  Broadcast errors are connection-level: they are contained
to the offending connection and never escalate to the store or the server.
"""


class ExtcastError(Exception):
    """Base error for all extcast operations."""


class ConfigError(ExtcastError):
    """Invalid or missing configuration."""


# ---------------------------------------------------------------------------
# Specification registry
# ---------------------------------------------------------------------------


class SpecificationError(ExtcastError):
    """Error in an extension specification or its hooks."""


class InvalidSpecification(SpecificationError):
    """A specification is missing a required field."""

    def __init__(self, identifier: str | None, missing: tuple[str, ...]) -> None:
        self.identifier = identifier
        self.missing = missing
        label = identifier or "<unnamed>"
        super().__init__(
            f"Invalid extension specification {label!r}: "
            f"missing {', '.join(missing)}"
        )


class DuplicateSpecificationError(SpecificationError):
    """Two plugins registered conflicting specifications for one identifier."""

    def __init__(self, identifier: str, first_plugin: str, second_plugin: str) -> None:
        self.identifier = identifier
        self.plugins = (first_plugin, second_plugin)
        super().__init__(
            f"Conflicting specifications for {identifier!r}: "
            f"contributed by {first_plugin!r} and {second_plugin!r}"
        )


class SpecificationNotFound(SpecificationError, LookupError):
    """No specification is registered under the requested identifier."""


# ---------------------------------------------------------------------------
# Broadcast / connection lifecycle
# ---------------------------------------------------------------------------


class BroadcastError(ExtcastError):
    """Error in the broadcast path (handshake, delivery, encoding)."""


class MalformedUpgradeError(BroadcastError):
    """A WebSocket upgrade request was rejected at handshake."""


class ConnectionSendError(BroadcastError):
    """A message could not be queued or written to one connection."""


class SerializationError(BroadcastError):
    """A broadcast event could not be encoded as JSON."""


class ServerClosedError(BroadcastError):
    """The broadcast server is shut down and accepts no new connections."""
