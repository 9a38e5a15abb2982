"""Load ExtcastConfig from extcast.yaml if present.

Merges file config with CLI kwargs. CLI overrides file.
"""

from __future__ import annotations

import tomllib
from pathlib import Path

import yaml

from extcast._errors import ConfigError
from extcast.config import ExtcastConfig

CONFIG_FILE_NAMES = ("extcast.yaml", "extcast.yml", "extcast.toml")

_KNOWN_KEYS = frozenset({
    "host",
    "port",
    "endpoint",
    "extensions_dir",
    "build_dir",
    "queue_size",
    "handshake_timeout",
    "providers",
    "include_builtin_specs",
})


def load_config(root: Path, **overrides: object) -> ExtcastConfig:
    """Load ExtcastConfig from root, optionally merging extcast.yaml.

    Looks for extcast.yaml, extcast.yml, or extcast.toml in root. If found,
    loads and merges with overrides. Overrides take precedence; ``None``
    overrides are ignored so unset CLI flags never mask file values.

    Raises:
        ConfigError: If the config file is malformed or has unknown keys.

    """
    file_config = _read_extcast_config(root)
    merged = {**file_config, **{k: v for k, v in overrides.items() if v is not None}}
    unknown = sorted(set(merged) - _KNOWN_KEYS)
    if unknown:
        msg = f"Unknown config keys: {', '.join(unknown)}"
        raise ConfigError(msg)
    if "providers" in merged:
        providers = merged["providers"]
        if isinstance(providers, str):
            providers = [providers]
        merged["providers"] = tuple(str(p) for p in providers)  # type: ignore[union-attr]
    return ExtcastConfig(root=Path(root), **merged)  # type: ignore[arg-type]


def _read_extcast_config(root: Path) -> dict[str, object]:
    """Read extcast config from yaml/toml if present. Returns empty dict otherwise."""
    for name in CONFIG_FILE_NAMES[:2]:
        path = root / name
        if path.is_file():
            return _parse_yaml(path)
    toml_path = root / CONFIG_FILE_NAMES[2]
    if toml_path.is_file():
        return _parse_toml(toml_path)
    return {}


def _parse_yaml(path: Path) -> dict[str, object]:
    """Parse YAML config."""
    try:
        data = yaml.safe_load(path.read_text()) or {}
    except yaml.YAMLError as exc:
        msg = f"Failed to parse {path}: {exc}"
        raise ConfigError(msg) from exc
    if not isinstance(data, dict):
        msg = f"{path} must contain a mapping at the top level"
        raise ConfigError(msg)
    return _flatten_extcast_section(data)


def _parse_toml(path: Path) -> dict[str, object]:
    """Parse TOML config."""
    try:
        data = tomllib.loads(path.read_text())
    except tomllib.TOMLDecodeError as exc:
        msg = f"Failed to parse {path}: {exc}"
        raise ConfigError(msg) from exc
    return _flatten_extcast_section(data)


def _flatten_extcast_section(data: dict[str, object]) -> dict[str, object]:
    """Extract extcast.* keys into top-level config."""
    result: dict[str, object] = {}
    section = data.get("extcast")
    if isinstance(section, dict):
        result.update(section)
    for k, v in data.items():
        if k != "extcast" and k in _KNOWN_KEYS:
            result[k] = v
    return result
