"""Tests for extcast.specs.builtin — shipped specifications and their hooks."""

from __future__ import annotations

import base64
import json
from pathlib import Path

import pytest

from extcast._errors import SpecificationError
from extcast.specs.builtin import (
    BUILTIN_SPECS,
    POS_UI_DEPENDENCY,
    POS_UI_EXTENSION,
    UI_EXTENSION,
    installed_version,
    load_locales,
)
from extcast.specs.registry import SpecificationRegistry


def _install(root: Path, package: str, version: str) -> None:
    pkg_dir = root / "node_modules" / package
    pkg_dir.mkdir(parents=True)
    (pkg_dir / "package.json").write_text(json.dumps({"name": package, "version": version}))


class TestBuiltinSpecs:
    """The built-in catalog."""

    def test_all_valid(self) -> None:
        for spec in BUILTIN_SPECS:
            spec.validate()

    def test_identifiers(self) -> None:
        assert {s.identifier for s in BUILTIN_SPECS} == {
            "ui_extension",
            "pos_ui_extension",
            "payment_customization",
            "cart_checkout_validation",
            "cart_transform",
            "product_discounts",
            "order_discounts",
        }

    def test_aggregate_into_registry(self) -> None:
        registry = SpecificationRegistry()
        assert registry.aggregate({"builtin": BUILTIN_SPECS}) == len(BUILTIN_SPECS)

    def test_function_specs_surface(self) -> None:
        functions = [s for s in BUILTIN_SPECS if s.surface == "functions"]
        assert len(functions) == 5
        assert all(s.preview_message() is None for s in functions)


class TestPosUiExtension:
    """pos_ui_extension — renderer version deploy config."""

    def test_deploy_config_reads_installed_version(self, tmp_path: Path) -> None:
        _install(tmp_path, POS_UI_DEPENDENCY.name, "0.38.2")
        ext_dir = tmp_path / "extensions" / "tile"
        ext_dir.mkdir(parents=True)
        assert POS_UI_EXTENSION.deploy_config(ext_dir) == {"renderer_version": "0.38.2"}

    def test_deploy_config_missing_dependency(self, tmp_path: Path) -> None:
        with pytest.raises(SpecificationError, match="not found"):
            POS_UI_EXTENSION.deploy_config(tmp_path)

    def test_preview_suppressed(self) -> None:
        assert POS_UI_EXTENSION.preview_message_hook is not None
        assert POS_UI_EXTENSION.preview_message() is None

    def test_installed_version_absent(self, tmp_path: Path) -> None:
        assert installed_version("left-pad", tmp_path) is None


class TestUiExtension:
    """ui_extension — localization deploy config."""

    def test_no_preview_hook(self) -> None:
        assert UI_EXTENSION.preview_message_hook is None

    def test_deploy_config_without_locales(self, tmp_path: Path) -> None:
        assert UI_EXTENSION.deploy_config(tmp_path) == {"localization": {}}

    def test_locales_loaded(self, tmp_path: Path) -> None:
        locales = tmp_path / "locales"
        locales.mkdir()
        (locales / "en.default.json").write_text('{"hello": "Hello"}')
        (locales / "fr.json").write_text('{"hello": "Bonjour"}')

        localization = load_locales(tmp_path)
        assert localization["default_locale"] == "en"
        assert set(localization["translations"]) == {"en", "fr"}
        decoded = base64.b64decode(localization["translations"]["fr"]).decode()
        assert json.loads(decoded) == {"hello": "Bonjour"}

    def test_multiple_defaults_rejected(self, tmp_path: Path) -> None:
        locales = tmp_path / "locales"
        locales.mkdir()
        (locales / "en.default.json").write_text("{}")
        (locales / "fr.default.json").write_text("{}")
        with pytest.raises(SpecificationError, match="Multiple default locales"):
            load_locales(tmp_path)
