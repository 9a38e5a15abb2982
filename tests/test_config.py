"""Tests for extcast.config and extcast.config_loader."""

from pathlib import Path

import pytest

from extcast._errors import ConfigError
from extcast.config import ExtcastConfig
from extcast.config_loader import load_config


class TestExtcastConfig:
    """ExtcastConfig — frozen dataclass with sensible defaults."""

    def test_defaults(self) -> None:
        config = ExtcastConfig()
        assert config.host == "127.0.0.1"
        assert config.port == 8081
        assert config.endpoint == "/extensions"
        assert config.extensions_dir == "extensions"
        assert config.build_dir == "dist"
        assert config.queue_size == 256
        assert config.handshake_timeout == 10.0
        assert config.providers == ()
        assert config.include_builtin_specs is True

    def test_frozen(self) -> None:
        config = ExtcastConfig()
        with pytest.raises(AttributeError):
            config.port = 9000  # type: ignore[misc]

    def test_extensions_path(self, tmp_path: Path) -> None:
        config = ExtcastConfig(root=tmp_path, extensions_dir="exts")
        assert config.extensions_path == tmp_path / "exts"

    def test_endpoint_gets_leading_slash(self) -> None:
        config = ExtcastConfig(endpoint="live")
        assert config.endpoint == "/live"

    def test_urls(self) -> None:
        config = ExtcastConfig(host="localhost", port=9000)
        assert config.websocket_url == "ws://localhost:9000/extensions"
        assert config.http_url == "http://localhost:9000"

    def test_providers_become_tuple(self) -> None:
        config = ExtcastConfig(providers=["a:b"])  # type: ignore[arg-type]
        assert config.providers == ("a:b",)

    def test_relative_root_resolved_to_absolute(self) -> None:
        config = ExtcastConfig(root=Path("app"))
        assert config.root.is_absolute()

    def test_absolute_root_unchanged(self, tmp_path: Path) -> None:
        config = ExtcastConfig(root=tmp_path)
        assert config.root == tmp_path

    def test_queue_size_too_small(self) -> None:
        with pytest.raises(ConfigError, match="queue_size must be at least 2"):
            ExtcastConfig(queue_size=1)

    def test_handshake_timeout_must_be_positive(self) -> None:
        with pytest.raises(ConfigError, match="handshake_timeout"):
            ExtcastConfig(handshake_timeout=0)


class TestLoadConfig:
    """load_config — file config merged with overrides."""

    def test_no_file_uses_defaults(self, tmp_path: Path) -> None:
        config = load_config(tmp_path)
        assert config.port == 8081
        assert config.root == tmp_path

    def test_yaml_top_level(self, tmp_path: Path) -> None:
        (tmp_path / "extcast.yaml").write_text("port: 9100\nqueue_size: 16\n")
        config = load_config(tmp_path)
        assert config.port == 9100
        assert config.queue_size == 16

    def test_yaml_section(self, tmp_path: Path) -> None:
        (tmp_path / "extcast.yml").write_text("extcast:\n  endpoint: /live\n")
        config = load_config(tmp_path)
        assert config.endpoint == "/live"

    def test_toml_section(self, tmp_path: Path) -> None:
        (tmp_path / "extcast.toml").write_text(
            '[extcast]\nhost = "0.0.0.0"\nproviders = ["pkg.specs:provider"]\n'
        )
        config = load_config(tmp_path)
        assert config.host == "0.0.0.0"
        assert config.providers == ("pkg.specs:provider",)

    def test_overrides_win(self, tmp_path: Path) -> None:
        (tmp_path / "extcast.yaml").write_text("port: 9100\n")
        config = load_config(tmp_path, port=9200)
        assert config.port == 9200

    def test_none_overrides_ignored(self, tmp_path: Path) -> None:
        (tmp_path / "extcast.yaml").write_text("port: 9100\n")
        config = load_config(tmp_path, port=None, host=None)
        assert config.port == 9100
        assert config.host == "127.0.0.1"

    def test_single_provider_string(self, tmp_path: Path) -> None:
        (tmp_path / "extcast.yaml").write_text("providers: pkg.specs:provider\n")
        config = load_config(tmp_path)
        assert config.providers == ("pkg.specs:provider",)

    def test_unknown_key_raises(self, tmp_path: Path) -> None:
        with pytest.raises(ConfigError, match="Unknown config keys: bogus"):
            load_config(tmp_path, bogus=1)

    def test_invalid_queue_size_from_file(self, tmp_path: Path) -> None:
        (tmp_path / "extcast.yaml").write_text("queue_size: 1\n")
        with pytest.raises(ConfigError, match="queue_size"):
            load_config(tmp_path)

    def test_malformed_yaml_raises(self, tmp_path: Path) -> None:
        (tmp_path / "extcast.yaml").write_text("port: [unclosed\n")
        with pytest.raises(ConfigError, match="Failed to parse"):
            load_config(tmp_path)

    def test_non_mapping_yaml_raises(self, tmp_path: Path) -> None:
        (tmp_path / "extcast.yaml").write_text("- a\n- b\n")
        with pytest.raises(ConfigError, match="mapping"):
            load_config(tmp_path)

    def test_malformed_toml_raises(self, tmp_path: Path) -> None:
        (tmp_path / "extcast.toml").write_text("port = \n")
        with pytest.raises(ConfigError, match="Failed to parse"):
            load_config(tmp_path)
