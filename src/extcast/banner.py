"""Startup banner — status output for the dev server.

Prints the WebSocket and HTTP URLs, the loaded specifications, and one
preview line per local extension.  Detects ``NO_COLOR`` / ``TERM`` for safe
fallback.
"""

from __future__ import annotations

import os
import sys
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Sequence

    from extcast.build.discovery import LocalExtension
    from extcast.config import ExtcastConfig


# ---------------------------------------------------------------------------
# ANSI helpers — respect NO_COLOR (https://no-color.org)
# ---------------------------------------------------------------------------

def _supports_color() -> bool:
    """Return True if the terminal supports ANSI colors."""
    if os.environ.get("NO_COLOR"):
        return False
    if os.environ.get("TERM") == "dumb":
        return False
    return hasattr(sys.stderr, "isatty") and sys.stderr.isatty()


_COLOR = _supports_color()

_RESET = "\033[0m" if _COLOR else ""
_BOLD = "\033[1m" if _COLOR else ""
_DIM = "\033[2m" if _COLOR else ""
_CYAN = "\033[36m" if _COLOR else ""
_GREEN = "\033[32m" if _COLOR else ""
_YELLOW = "\033[33m" if _COLOR else ""


def _clickable_url(url: str) -> str:
    """Wrap *url* in an OSC 8 hyperlink escape if the terminal supports it."""
    if not _COLOR:
        return url
    return f"\033]8;;{url}\033\\{_BOLD}{_CYAN}{url}{_RESET}\033]8;;\033\\"


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------

def print_banner(
    config: ExtcastConfig,
    *,
    spec_count: int,
    extensions: Sequence[LocalExtension] = (),
    load_ms: float = 0.0,
    warnings: list[str] | None = None,
) -> None:
    """Print the extcast startup banner to stderr.

    Args:
        config: Resolved ExtcastConfig.
        spec_count: Number of registered specifications.
        extensions: Extensions discovered on disk.
        load_ms: Time spent building the registry in milliseconds.
        warnings: Optional list of warning messages to display.

    """
    from extcast import __version__

    header = f"  {_BOLD}extcast{_RESET} {_DIM}v{__version__}{_RESET}  {_GREEN}[dev]{_RESET}"
    lines: list[str] = [
        "",
        header,
        f"  {_DIM}{'─' * 43}{_RESET}",
    ]

    specs_label = "specification" if spec_count == 1 else "specifications"
    timing = f" {_DIM}in {load_ms:.0f}ms{_RESET}" if load_ms > 0 else ""
    lines.append(f"  {_DIM}├─{_RESET} {spec_count} {specs_label} loaded{timing}")

    ext_label = "extension" if len(extensions) == 1 else "extensions"
    lines.append(
        f"  {_DIM}├─{_RESET} {len(extensions)} {ext_label} in "
        f"{_DIM}{config.extensions_path}{_RESET}"
    )
    lines.append(f"  {_DIM}└─{_RESET} {_GREEN}live{_RESET} on {_DIM}{config.endpoint}{_RESET}")

    lines.append("")
    lines.append(f"  {_clickable_url(config.http_url + config.endpoint)}")
    lines.append(f"  {config.websocket_url}")

    previews = [
        (ext, message)
        for ext in extensions
        if (message := ext.preview_message(config.http_url + config.endpoint)) is not None
    ]
    if previews:
        lines.append("")
        lines.extend(f"  {ext.name}: {message}" for ext, message in previews)

    lines.append("")
    lines.append(f"  {_DIM}Watching for builds...{_RESET}")

    if warnings:
        lines.append("")
        lines.extend(f"  {_YELLOW}!{_RESET} {w}" for w in warnings)

    lines.append("")

    print("\n".join(lines), file=sys.stderr)
