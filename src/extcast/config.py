"""Extcast configuration.

ExtcastConfig is the central configuration object, frozen after creation.
"""

from dataclasses import dataclass, field
from pathlib import Path

from extcast._errors import ConfigError


@dataclass(frozen=True, slots=True)
class ExtcastConfig:
    """Configuration for an extension dev server.

    Attributes:
        root: Path to the app root directory (contains extensions/).
              Always resolved to an absolute path on construction.
        host: Bind address for the dev server.
        port: Bind port for the dev server.
        endpoint: HTTP path serving both the JSON view and the WebSocket upgrade.
        extensions_dir: Directory containing one sub-directory per extension.
        build_dir: Build output directory inside each extension directory.
        queue_size: Bound of each client's outbound message queue.  A client
            whose queue overflows is disconnected.
        handshake_timeout: Seconds allowed for a WebSocket handshake.
        providers: ``module:attr`` references to specification providers,
            e.g. ``my_plugin.specs:provider``.
        include_builtin_specs: Register the built-in specifications.

    """

    root: Path = field(default_factory=Path.cwd)
    host: str = "127.0.0.1"
    port: int = 8081
    endpoint: str = "/extensions"
    extensions_dir: str = "extensions"
    build_dir: str = "dist"
    queue_size: int = 256
    handshake_timeout: float = 10.0
    providers: tuple[str, ...] = ()
    include_builtin_specs: bool = True

    def __post_init__(self) -> None:
        # watchfiles reports absolute paths; keep root comparable with them.
        if not self.root.is_absolute():
            object.__setattr__(self, "root", self.root.resolve())
        if not self.endpoint.startswith("/"):
            object.__setattr__(self, "endpoint", "/" + self.endpoint)
        if not isinstance(self.providers, tuple):
            object.__setattr__(self, "providers", tuple(self.providers))
        if self.queue_size < 2:
            msg = f"queue_size must be at least 2, got {self.queue_size}"
            raise ConfigError(msg)
        if self.handshake_timeout <= 0:
            msg = f"handshake_timeout must be positive, got {self.handshake_timeout}"
            raise ConfigError(msg)

    @property
    def extensions_path(self) -> Path:
        """Absolute path to the extensions directory."""
        return self.root / self.extensions_dir

    @property
    def websocket_url(self) -> str:
        """URL clients connect to for live updates."""
        return f"ws://{self.host}:{self.port}{self.endpoint}"

    @property
    def http_url(self) -> str:
        """Base URL of the dev server."""
        return f"http://{self.host}:{self.port}"
