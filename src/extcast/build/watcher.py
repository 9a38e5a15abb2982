"""Build watcher — reports extension build output to the payload store.

Watches the extensions directory.  When files under an extension's build
directory change, the build is re-hashed and reported:

- Build directory present -> ``store.upsert()`` (a no-op if nothing changed)
- Build directory gone     -> ``store.remove()``
"""

from __future__ import annotations

import sys
import threading
from pathlib import Path
from typing import TYPE_CHECKING

from extcast.build.discovery import scan_build

if TYPE_CHECKING:
    from collections.abc import Iterable, Sequence

    from extcast.build.discovery import LocalExtension
    from extcast.config import ExtcastConfig
    from extcast.payload.events import Remove, Update
    from extcast.payload.store import PayloadStore


def categorize_change(
    path: Path, extensions: Iterable[LocalExtension],
) -> LocalExtension | None:
    """Return the extension whose build output *path* belongs to.

    Returns None if the path is outside every build directory.
    """
    for ext in extensions:
        if path == ext.build_path or path.is_relative_to(ext.build_path):
            return ext
    return None


class BuildWatcher:
    """Watches build directories and keeps the store in sync.

    Uses watchfiles in a background thread.  The store is thread-safe and
    the broadcast server marshals its events onto the event loop, so the
    thread reports straight to the store.

    """

    def __init__(
        self,
        config: ExtcastConfig,
        store: PayloadStore,
        extensions: Sequence[LocalExtension],
    ) -> None:
        self._config = config
        self._store = store
        self._extensions = tuple(extensions)
        self._stop_event = threading.Event()
        self._thread: threading.Thread | None = None

    @property
    def extensions(self) -> tuple[LocalExtension, ...]:
        return self._extensions

    @property
    def is_running(self) -> bool:
        """Whether the watcher background thread is active."""
        return self._thread is not None and self._thread.is_alive()

    def refresh(self, extension: LocalExtension) -> Update | Remove | None:
        """Re-scan one extension's build and report it to the store."""
        files = scan_build(extension)
        if files is None:
            return self._store.remove(extension.uuid)
        return self._store.upsert(extension.uuid, extension.payload(files))

    def initial_scan(self) -> int:
        """Report every extension that has build output.  Returns the count."""
        reported = 0
        for ext in self._extensions:
            if self.refresh(ext) is not None:
                reported += 1
        return reported

    def start(self) -> None:
        """Start watching for build changes in a background thread."""
        if self.is_running:
            return
        if not self._config.extensions_path.is_dir():
            print(
                f"  Not watching: {self._config.extensions_path} does not exist",
                file=sys.stderr,
            )
            return

        self._stop_event.clear()
        self._thread = threading.Thread(
            target=self._watch_loop,
            name="extcast-watcher",
            daemon=True,
        )
        self._thread.start()

    def stop(self) -> None:
        """Signal the watcher to stop and wait for the thread to finish."""
        self._stop_event.set()
        if self._thread is not None:
            self._thread.join(timeout=5.0)
            self._thread = None

    def handle_changes(self, paths: Iterable[Path]) -> list[Update | Remove]:
        """Refresh each extension touched by *paths*, once per batch."""
        touched: dict[str, LocalExtension] = {}
        for path in paths:
            ext = categorize_change(path, self._extensions)
            if ext is not None:
                touched.setdefault(ext.uuid, ext)

        events: list[Update | Remove] = []
        for ext in touched.values():
            try:
                event = self.refresh(ext)
            except OSError as exc:
                # Build still being written; the next batch picks it up.
                print(f"  Build scan error ({ext.name}): {exc}", file=sys.stderr)
                continue
            if event is not None:
                events.append(event)
        return events

    def _watch_loop(self) -> None:
        """Background thread: run watchfiles and report touched builds."""
        from watchfiles import watch

        for raw_changes in watch(
            self._config.extensions_path,
            stop_event=self._stop_event,
            debounce=300,
            step=100,
        ):
            self.handle_changes(Path(path_str) for _change, path_str in raw_changes)
