"""Build layer — local extension discovery and build output watching."""

from extcast.build.discovery import (
    LocalExtension,
    dev_uuid,
    discover_extensions,
    scan_build,
)
from extcast.build.watcher import BuildWatcher, categorize_change

__all__ = [
    "BuildWatcher",
    "LocalExtension",
    "categorize_change",
    "dev_uuid",
    "discover_extensions",
    "scan_build",
]
