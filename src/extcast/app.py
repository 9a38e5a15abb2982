"""Extcast application — the extension dev server.

Wires the specification registry, payload store, broadcast server, and
build watcher behind one ASGI app served by Pounce.  WebSocket upgrades go
to the broadcast layer; HTTP and lifespan go to a Chirp app.

``dev()`` is the primary entry point.
"""

from __future__ import annotations

import asyncio
import json
import time
from pathlib import Path
from typing import TYPE_CHECKING, Any

from extcast.config_loader import load_config

if TYPE_CHECKING:
    from chirp import App, Request

    from extcast.broadcast.server import BroadcastServer
    from extcast.build.discovery import LocalExtension
    from extcast.build.watcher import BuildWatcher
    from extcast.config import ExtcastConfig
    from extcast.observability.collector import DevCollector
    from extcast.payload.store import PayloadStore
    from extcast.specs.registry import SpecificationRegistry

STATS_ENDPOINT = "/__extcast/stats"
SPECS_ENDPOINT = "/__extcast/specs"


async def build_registry(
    config: ExtcastConfig, *, collector: DevCollector | None = None,
) -> SpecificationRegistry:
    """Collect specifications from every provider into a new registry.

    The built-in provider comes first (when enabled), followed by the
    configured ``module:attr`` providers in order.

    Raises:
        ConfigError: If a provider cannot be loaded or names collide.
        InvalidSpecification: If a provider returns an incomplete spec.
        DuplicateSpecificationError: If two providers conflict.

    """
    from extcast.specs.builtin import builtin_provider
    from extcast.specs.provider import collect_specifications, load_providers
    from extcast.specs.registry import SpecificationRegistry

    providers = load_providers(config.providers)
    if config.include_builtin_specs:
        providers = (builtin_provider, *providers)

    results = await collect_specifications(providers)
    registry = SpecificationRegistry()
    registry.aggregate(results)

    if collector is not None:
        collector.record_specs_loaded(tuple(results), len(registry))
    return registry


def _json_response(data: Any) -> Any:
    from chirp.http.response import Response

    return Response(
        body=json.dumps(data, indent=2),
        status=200,
        content_type="application/json",
    )


def _create_http_app(config: ExtcastConfig) -> App:
    """Create the Chirp app serving the JSON views."""
    from chirp import App, AppConfig

    app_config = AppConfig(
        template_dir=config.root,
        debug=True,
        host=config.host,
        port=config.port,
    )
    return App(config=app_config)


def _wire_http_routes(
    app: App,
    config: ExtcastConfig,
    store: PayloadStore,
    server: BroadcastServer,
    registry: SpecificationRegistry,
    collector: DevCollector,
) -> None:
    """Register the state, stats, and specs JSON endpoints."""

    async def extensions_handler(request: Request) -> Any:
        snapshot = store.get_snapshot()
        return _json_response({
            "extensions": [entry.to_dict() for entry in snapshot],
            "version": snapshot.version,
        })

    async def stats_handler(request: Request) -> Any:
        return _json_response({
            "connections": server.connection_count,
            "extensions": len(store),
            "event_log": collector.log.stats(),
        })

    async def specs_handler(request: Request) -> Any:
        return _json_response({
            "specifications": [
                {**spec.to_dict(), "plugin": registry.origin_of(spec.identifier)}
                for spec in registry.list_all()
            ],
        })

    extensions_handler.__name__ = "extcast_extensions"
    stats_handler.__name__ = "extcast_stats"
    specs_handler.__name__ = "extcast_specs"

    app.route(config.endpoint, name="extcast:extensions")(extensions_handler)
    app.route(STATS_ENDPOINT, name="extcast:stats")(stats_handler)
    app.route(SPECS_ENDPOINT, name="extcast:specs")(specs_handler)


def _wire_lifecycle(app: App, server: BroadcastServer, watcher: BuildWatcher) -> None:
    """Start the broadcast server and watcher with the app, stop them with it.

    Flow:
        on_startup  → bind server to the loop, report existing builds, watch
        on_shutdown → stop the watcher, then close every client connection

    """

    @app.on_startup
    async def _start_broadcast() -> None:
        server.start(asyncio.get_running_loop())
        watcher.initial_scan()
        watcher.start()

    @app.on_shutdown
    async def _stop_broadcast() -> None:
        await asyncio.to_thread(watcher.stop)
        await server.close()


class DevServer:
    """ASGI app routing WebSocket upgrades to the broadcast layer.

    Attributes:
        config: Resolved configuration.
        registry: Specification registry.
        store: Payload store.
        server: Broadcast server.
        watcher: Build watcher.
        http: Chirp app for HTTP and lifespan.
        upgrade: WebSocket upgrade handler.
        collector: Observability collector.

    """

    def __init__(
        self,
        config: ExtcastConfig,
        registry: SpecificationRegistry,
        *,
        collector: DevCollector | None = None,
        extensions: list[LocalExtension] | None = None,
    ) -> None:
        from extcast.broadcast.server import BroadcastServer
        from extcast.broadcast.upgrade import UpgradeHandler
        from extcast.build.discovery import discover_extensions
        from extcast.build.watcher import BuildWatcher
        from extcast.observability import DevCollector, EventLog
        from extcast.payload.store import PayloadStore

        self.config = config
        self.registry = registry
        self.collector = collector if collector is not None else DevCollector(EventLog())
        self.store = PayloadStore(self.collector)
        self.server = BroadcastServer(self.store, collector=self.collector)
        self.upgrade = UpgradeHandler(
            self.server, config, collector=self.collector,
        )
        if extensions is None:
            extensions = discover_extensions(config, registry)
        self.watcher = BuildWatcher(config, self.store, extensions)

        self.http = _create_http_app(config)
        _wire_http_routes(
            self.http, config, self.store, self.server, registry, self.collector,
        )
        _wire_lifecycle(self.http, self.server, self.watcher)

    @property
    def extensions(self) -> tuple[LocalExtension, ...]:
        return self.watcher.extensions

    async def __call__(self, scope: dict[str, Any], receive: Any, send: Any) -> None:
        if scope["type"] == "websocket":
            await self.upgrade(scope, receive, send)
            return
        await self.http(scope, receive, send)


# ---------------------------------------------------------------------------
# Public entry points
# ---------------------------------------------------------------------------


def dev(root: str | Path = ".", **kwargs: object) -> None:
    """Start the extension development server.

    Builds the specification registry, discovers local extensions, and runs
    a single-worker Pounce server.  Connected clients receive a snapshot of
    every extension's build, then live updates as builds change.

    Args:
        root: Path to the app root directory.
        **kwargs: Override ExtcastConfig fields.

    Raises:
        ConfigError: On invalid configuration or extension manifests.
        SpecificationError: If the registry cannot be built.

    """
    from extcast.banner import print_banner
    from extcast.observability import DevCollector, EventLog

    config = load_config(Path(root), **kwargs)
    t0 = time.perf_counter()

    collector = DevCollector(EventLog())
    registry = asyncio.run(build_registry(config, collector=collector))
    app = DevServer(config, registry, collector=collector)

    load_ms = (time.perf_counter() - t0) * 1000

    print_banner(
        config,
        spec_count=len(registry),
        extensions=app.extensions,
        load_ms=load_ms,
    )

    # Run via Pounce directly.  One worker: the store and every client
    # connection live in a single process.
    from pounce.config import ServerConfig
    from pounce.server import Server

    server_config = ServerConfig(host=config.host, port=config.port, workers=1)
    server = Server(server_config, app, lifecycle_collector=collector)
    server.run()


def list_specs(root: str | Path = ".", **kwargs: object) -> None:
    """Print every registered specification and the plugin providing it."""
    config = load_config(Path(root), **kwargs)
    registry = asyncio.run(build_registry(config))

    for spec in registry.list_all():
        surface = spec.surface or "-"
        print(f"{spec.identifier:<28} {surface:<12} {registry.origin_of(spec.identifier)}")
