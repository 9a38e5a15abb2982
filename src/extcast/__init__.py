"""Extcast — a live extension development server for Python 3.12+.

Watches the build output of locally developed extensions and pushes every
change to connected preview clients over a WebSocket.  Clients receive a
full snapshot on connect, then one versioned update per change.

Quick start::

    import extcast

    extcast.dev("my-app/")

Layers::

    specs          Extension kinds contributed by plugins
    payload        Versioned store of extension build state
    broadcast      WebSocket fan-out of store changes
    build          Extension discovery and build watching
    observability  Event log and Pounce lifecycle collector

Built on:

    pounce      ASGI server       (serves the dev server)
    chirp       Web framework     (serves the JSON views)
    watchfiles  File watching     (follows builds)

"""

# PEP 703: Declare this module as free-threading safe
_Py_mod_gil = 0

__version__ = "0.1.0-dev"
__all__ = [
    "ExtcastConfig",
    "__version__",
    "dev",
]


def __getattr__(name: str) -> object:
    """Lazy imports for public API.

    Keeps ``import extcast`` fast while providing a clean top-level API.
    """
    if name == "ExtcastConfig":
        from extcast.config import ExtcastConfig

        return ExtcastConfig

    if name == "dev":
        from extcast.app import dev

        return dev

    msg = f"module {__name__!r} has no attribute {name!r}"
    raise AttributeError(msg)
