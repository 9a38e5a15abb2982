"""Tests for extcast.specs.registry and extcast.specs.models."""

from __future__ import annotations

from pathlib import Path

import pytest

from extcast._errors import (
    DuplicateSpecificationError,
    InvalidSpecification,
    SpecificationNotFound,
)
from extcast.specs.models import ExtensionSpecification
from extcast.specs.registry import DIRECT_PLUGIN, SpecificationRegistry

from .conftest import make_spec


class TestExtensionSpecification:
    """ExtensionSpecification — validation, compatibility, hooks."""

    def test_remote_type_defaults_to_identifier(self) -> None:
        assert make_spec("pos_ui_extension").remote_type == "POS_UI_EXTENSION"

    def test_remote_type_from_graphql_type(self) -> None:
        spec = make_spec("checkout_ui", graphql_type="checkout_ui_extension")
        assert spec.remote_type == "CHECKOUT_UI_EXTENSION"

    def test_missing_fields(self) -> None:
        spec = ExtensionSpecification(identifier="thing", external_identifier="")
        assert spec.missing_fields() == ("external_identifier", "schema")
        with pytest.raises(InvalidSpecification):
            spec.validate()

    def test_empty_schema_is_present(self) -> None:
        spec = make_spec("thing", schema={})
        assert spec.missing_fields() == ()
        spec.validate()

    def test_compatible_when_schema_structurally_equal(self) -> None:
        a = make_spec("x", schema={"type": "object", "required": ["a"]})
        b = make_spec("x", schema={"required": ("a",), "type": "object"}, external_name="X!")
        assert a.is_compatible_with(b)

    def test_incompatible_on_external_identifier(self) -> None:
        assert not make_spec("x").is_compatible_with(make_spec("x", external_identifier="y"))

    def test_deploy_config_without_hook(self, tmp_path: Path) -> None:
        assert make_spec().deploy_config(tmp_path) == {}

    def test_deploy_config_hook_receives_directory(self, tmp_path: Path) -> None:
        spec = make_spec(deploy_config_hook=lambda d: {"dir": d.name})
        assert spec.deploy_config(tmp_path) == {"dir": tmp_path.name}

    def test_preview_message(self) -> None:
        assert make_spec().preview_message() is None
        assert make_spec(preview_message_hook=lambda: "hi").preview_message() == "hi"

    def test_to_dict(self) -> None:
        data = make_spec("checkout_ui").to_dict()
        assert data["identifier"] == "checkout_ui"
        assert data["graphQLType"] == "CHECKOUT_UI"
        assert data["dependency"] is None


class TestRegister:
    """SpecificationRegistry.register — validation and conflict detection."""

    def test_register_new(self) -> None:
        registry = SpecificationRegistry()
        assert registry.register(make_spec("a")) is True
        assert "a" in registry
        assert len(registry) == 1
        assert registry.origin_of("a") == DIRECT_PLUGIN

    def test_identical_reregistration_is_noop(self) -> None:
        registry = SpecificationRegistry()
        registry.register(make_spec("a"), plugin="one")
        assert registry.register(make_spec("a"), plugin="two") is False
        assert len(registry) == 1
        assert registry.origin_of("a") == "one"

    def test_conflict_names_both_plugins(self) -> None:
        registry = SpecificationRegistry()
        registry.register(make_spec("a"), plugin="one")
        with pytest.raises(DuplicateSpecificationError) as exc_info:
            registry.register(make_spec("a", schema={"type": "array"}), plugin="two")
        assert exc_info.value.plugins == ("one", "two")

    def test_invalid_spec_rejected(self) -> None:
        registry = SpecificationRegistry()
        with pytest.raises(InvalidSpecification):
            registry.register(make_spec("a", schema=None))
        assert len(registry) == 0


class TestAggregate:
    """SpecificationRegistry.aggregate — atomic multi-plugin merge."""

    def test_flattens_and_drops_absent(self) -> None:
        registry = SpecificationRegistry()
        added = registry.aggregate({
            "one": [make_spec("a"), None, make_spec("b")],
            "two": None,
            "three": [make_spec("c")],
        })
        assert added == 3
        assert [s.identifier for s in registry.list_all()] == ["a", "b", "c"]
        assert registry.origin_of("c") == "three"

    def test_same_spec_from_two_plugins_counts_once(self) -> None:
        registry = SpecificationRegistry()
        added = registry.aggregate({"one": [make_spec("a")], "two": [make_spec("a")]})
        assert added == 1
        assert len(registry) == 1

    def test_conflict_leaves_registry_unchanged(self) -> None:
        registry = SpecificationRegistry()
        registry.register(make_spec("existing"))
        with pytest.raises(DuplicateSpecificationError):
            registry.aggregate({
                "one": [make_spec("a"), make_spec("b")],
                "two": [make_spec("a", external_identifier="other")],
            })
        assert len(registry) == 1
        assert "a" not in registry

    def test_invalid_spec_aborts(self) -> None:
        registry = SpecificationRegistry()
        with pytest.raises(InvalidSpecification):
            registry.aggregate({"one": [make_spec("a"), make_spec("b", schema=None)]})
        assert len(registry) == 0


class TestLookup:
    """Read access after construction."""

    def test_get_by_identifier(self) -> None:
        registry = SpecificationRegistry()
        spec = make_spec("a")
        registry.register(spec)
        assert registry.get_by_identifier("a") is spec

    def test_get_unknown_raises(self) -> None:
        registry = SpecificationRegistry()
        with pytest.raises(SpecificationNotFound, match="nope"):
            registry.get_by_identifier("nope")

    def test_find_for_type_by_external_identifier(self) -> None:
        registry = SpecificationRegistry()
        registry.register(make_spec("pos_ui_extension", external_identifier="pos_ui"))
        assert registry.find_for_type("pos_ui").identifier == "pos_ui_extension"
        assert registry.find_for_type("pos_ui_extension").identifier == "pos_ui_extension"
        assert registry.find_for_type("unknown") is None

    def test_list_all_sorted(self) -> None:
        registry = SpecificationRegistry()
        for name in ("zeta", "alpha", "mid"):
            registry.register(make_spec(name))
        assert [s.identifier for s in registry.list_all()] == ["alpha", "mid", "zeta"]
