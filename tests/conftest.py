"""Shared test fixtures for extcast."""

from __future__ import annotations

import asyncio
import json
from collections.abc import Callable
from pathlib import Path
from typing import Any

import pytest

from extcast.broadcast.connection import ClientConnection
from extcast.config import ExtcastConfig
from extcast.observability import DevCollector, EventLog
from extcast.payload.store import PayloadStore
from extcast.specs.models import ExtensionSpecification


class FakeSocket:
    """In-memory ClientSocket.

    ``blocked=True`` holds every send until ``release()``, simulating a
    client that stopped reading.  ``fail=True`` makes every send raise.
    """

    def __init__(self, *, blocked: bool = False, fail: bool = False) -> None:
        self.sent: list[str] = []
        self.close_calls: list[tuple[int, str]] = []
        self.fail = fail
        self._gate = asyncio.Event()
        if not blocked:
            self._gate.set()

    async def send_text(self, text: str) -> None:
        await self._gate.wait()
        if self.fail:
            raise OSError("broken pipe")
        self.sent.append(text)

    async def close(self, code: int = 1000, reason: str = "") -> None:
        self.close_calls.append((code, reason))

    def release(self) -> None:
        self._gate.set()

    @property
    def messages(self) -> list[dict[str, Any]]:
        return [json.loads(text) for text in self.sent]


async def flush(*conns: ClientConnection, rounds: int = 200) -> None:
    """Let sender tasks drain until every queue is empty."""
    for _ in range(rounds):
        if all(conn.queued == 0 for conn in conns):
            break
        await asyncio.sleep(0)
    await asyncio.sleep(0)


async def wait_until(predicate: Callable[[], bool], timeout: float = 2.0) -> None:
    """Poll *predicate* on the event loop until it holds."""
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while not predicate():
        if loop.time() > deadline:
            msg = "condition not met in time"
            raise AssertionError(msg)
        await asyncio.sleep(0.005)


def make_spec(identifier: str = "checkout_ui", **kwargs: Any) -> ExtensionSpecification:
    """Build a minimal valid specification."""
    defaults: dict[str, Any] = {
        "external_identifier": identifier,
        "external_name": identifier.replace("_", " ").title(),
        "surface": "checkout",
        "schema": {"type": "object"},
    }
    defaults.update(kwargs)
    return ExtensionSpecification(identifier=identifier, **defaults)


def make_payload(files: dict[str, str] | None = None, **kwargs: Any) -> dict[str, Any]:
    """Build a payload mapping as the build pipeline would report it."""
    return {
        "type": kwargs.get("type", "ui_extension"),
        "surface": kwargs.get("surface", "checkout"),
        "files": files if files is not None else {"main.js": "hash1"},
        "config": kwargs.get("config", {}),
    }


def write_extension(
    extensions_dir: Path,
    name: str,
    *,
    ext_type: str = "ui_extension",
    uuid: str | None = None,
    build_files: dict[str, str] | None = None,
    config: str = "",
) -> Path:
    """Create an extension directory with an extension.toml and build output."""
    directory = extensions_dir / name
    directory.mkdir(parents=True)
    lines = [f'type = "{ext_type}"', f'name = "{name}"']
    if uuid is not None:
        lines.append(f'uuid = "{uuid}"')
    if config:
        lines.append("")
        lines.append("[config]")
        lines.append(config)
    (directory / "extension.toml").write_text("\n".join(lines) + "\n")
    if build_files is not None:
        dist = directory / "dist"
        dist.mkdir()
        for rel, content in build_files.items():
            target = dist / rel
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_text(content)
    return directory


@pytest.fixture
def collector() -> DevCollector:
    return DevCollector(EventLog())


@pytest.fixture
def store(collector: DevCollector) -> PayloadStore:
    return PayloadStore(collector, clock=lambda: 1700000000.0)


@pytest.fixture
def config(tmp_path: Path) -> ExtcastConfig:
    return ExtcastConfig(root=tmp_path, handshake_timeout=1.0)


@pytest.fixture
def app_root(tmp_path: Path) -> Path:
    """App root with two extensions, one built and one not."""
    extensions = tmp_path / "extensions"
    write_extension(
        extensions,
        "checkout-banner",
        uuid="ext-1",
        build_files={"main.js": "console.log('v1')"},
        config='title = "Banner"',
    )
    write_extension(extensions, "pos-tile", ext_type="pos_ui_extension", uuid="ext-2")
    return tmp_path
