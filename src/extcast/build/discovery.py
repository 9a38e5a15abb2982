"""Extension discovery — find local extensions and hash their build output.

Each extension lives in its own directory under ``config.extensions_dir``
with an ``extension.toml``::

    type = "pos_ui_extension"
    name = "Loyalty tile"
    uuid = "dev-1234"          # optional

    [config]                  # optional, passed through to clients
    tile_color = "blue"

Build output is read from ``<extension>/<config.build_dir>``.
"""

from __future__ import annotations

import hashlib
import sys
import tomllib
import uuid as uuid_mod
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING, Any

from extcast._errors import ConfigError, SpecificationError
from extcast.payload.models import ExtensionPayload

if TYPE_CHECKING:
    from extcast.config import ExtcastConfig
    from extcast.specs.models import ExtensionSpecification
    from extcast.specs.registry import SpecificationRegistry

EXTENSION_FILE = "extension.toml"


def dev_uuid(directory: Path) -> str:
    """Stable uuid for an extension without one, derived from its directory."""
    return f"dev-{uuid_mod.uuid5(uuid_mod.NAMESPACE_URL, directory.resolve().as_uri())}"


@dataclass(frozen=True, slots=True)
class LocalExtension:
    """An extension found on disk.

    Attributes:
        uuid: Store key.
        name: Display name.
        directory: Extension source directory.
        spec: Resolved specification.
        build_path: Directory holding the build output.
        config: ``[config]`` table from extension.toml.

    """

    uuid: str
    name: str
    directory: Path
    spec: ExtensionSpecification
    build_path: Path
    config: dict[str, Any] = field(default_factory=dict, hash=False)

    def payload(self, files: dict[str, str]) -> ExtensionPayload:
        """Build the store payload for the given output file hashes.

        The spec's deploy configuration is included under ``deploy``.  A hook
        failure is reported and the payload is built without it.
        """
        config = dict(self.config)
        try:
            deploy = self.spec.deploy_config(self.directory)
        except SpecificationError as exc:
            print(f"  Deploy config error ({self.name}): {exc}", file=sys.stderr)
        else:
            if deploy:
                config["deploy"] = deploy
        return ExtensionPayload(
            type=self.spec.identifier,
            surface=self.spec.surface,
            files=files,
            config=config,
        )

    def preview_message(self, base_url: str) -> str | None:
        """Line announced for this extension at startup.

        Specs without a preview hook get the default preview link; a hook
        returning None suppresses the message.
        """
        if self.spec.preview_message_hook is None:
            return f"Preview link: {base_url}/{self.uuid}"
        return self.spec.preview_message()


def _read_extension_file(path: Path) -> dict[str, Any]:
    try:
        with path.open("rb") as f:
            return tomllib.load(f)
    except tomllib.TOMLDecodeError as exc:
        msg = f"Invalid TOML in {path}: {exc}"
        raise ConfigError(msg) from exc


def discover_extensions(
    config: ExtcastConfig, registry: SpecificationRegistry,
) -> list[LocalExtension]:
    """Find every extension directory and resolve its specification.

    Returns extensions sorted by directory name.  A missing extensions
    directory yields an empty list.

    Raises:
        ConfigError: If an extension.toml is malformed, names an unknown
            type, or two extensions share a uuid.

    """
    root = config.extensions_path
    if not root.is_dir():
        return []

    found: list[LocalExtension] = []
    seen: dict[str, Path] = {}
    for directory in sorted(p for p in root.iterdir() if p.is_dir()):
        toml_path = directory / EXTENSION_FILE
        if not toml_path.is_file():
            continue
        data = _read_extension_file(toml_path)

        ext_type = data.get("type")
        if not isinstance(ext_type, str) or not ext_type:
            msg = f"{toml_path}: missing 'type'"
            raise ConfigError(msg)
        spec = registry.find_for_type(ext_type)
        if spec is None:
            msg = f"{toml_path}: unknown extension type {ext_type!r}"
            raise ConfigError(msg)

        ext_config = data.get("config", {})
        if not isinstance(ext_config, dict):
            msg = f"{toml_path}: 'config' must be a table"
            raise ConfigError(msg)

        ext_uuid = str(data.get("uuid") or dev_uuid(directory))
        if ext_uuid in seen:
            msg = f"Duplicate extension uuid {ext_uuid!r} in {seen[ext_uuid]} and {directory}"
            raise ConfigError(msg)
        seen[ext_uuid] = directory

        found.append(
            LocalExtension(
                uuid=ext_uuid,
                name=str(data.get("name") or directory.name),
                directory=directory,
                spec=spec,
                build_path=directory / config.build_dir,
                config=ext_config,
            )
        )
    return found


def scan_build(extension: LocalExtension) -> dict[str, str] | None:
    """Hash every file in the extension's build directory.

    Returns a mapping of POSIX relative path to ``sha256`` hex digest, or
    None when the build directory does not exist.
    """
    build_path = extension.build_path
    if not build_path.is_dir():
        return None

    files: dict[str, str] = {}
    for path in sorted(build_path.rglob("*")):
        if not path.is_file():
            continue
        digest = hashlib.sha256(path.read_bytes()).hexdigest()
        files[path.relative_to(build_path).as_posix()] = digest
    return files
