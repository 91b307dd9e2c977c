"""Tests for deprecation and default resource registries."""

import logging

import pytest
from dataknobs_common.registry import Registry

from dataknobs_properties import (
    DefaultResourceRegistry,
    DeprecationRegistry,
    ImportResolver,
    InvalidArgumentError,
    PropertyStore,
    get_default_resource_registry,
)


class TestDeprecationRegistry:
    """Test deprecated key mappings."""

    def test_resolve(self):
        """Test deprecated keys resolve to replacements and others to themselves."""
        registry = DeprecationRegistry()
        registry.add_deprecation("old", ["new1", "new2"])

        assert registry.is_deprecated("old")
        assert registry.resolve("old") == ("new1", "new2")
        assert registry.resolve("other") == ("other",)

    def test_warns_once_with_custom_message(self, caplog):
        """Test the warning is logged only on first use."""
        registry = DeprecationRegistry()
        registry.add_deprecation("old", "new", "old is gone, use new")

        with caplog.at_level(logging.WARNING):
            registry.resolve("old")
            registry.resolve("old")

        assert caplog.text.count("old is gone, use new") == 1

    def test_aliases(self):
        """Test aliases work in both directions."""
        registry = DeprecationRegistry()
        registry.add_deprecation("old", "new")

        assert registry.aliases("old") == ["new"]
        assert registry.aliases("new") == ["old"]
        assert registry.aliases("unrelated") == []

    def test_replacing_a_deprecation(self):
        """Test re-registering a key replaces its old mapping."""
        registry = DeprecationRegistry()
        registry.add_deprecation("old", "first")
        registry.add_deprecation("old", "second")

        assert registry.resolve("old") == ("second",)
        assert registry.aliases("first") == []

    def test_requires_replacement(self):
        """Test a deprecation needs at least one replacement key."""
        with pytest.raises(InvalidArgumentError):
            DeprecationRegistry().add_deprecation("old", [])

    def test_reset(self):
        """Test reset forgets every deprecation."""
        registry = DeprecationRegistry()
        registry.add_deprecation("old", "new")
        registry.reset()

        assert registry.keys() == []
        assert not registry.is_deprecated("old")

    def test_injected_registry_is_per_store(self):
        """Test stores only see the registry they were given."""
        registry = DeprecationRegistry()
        registry.add_deprecation("old", "new")
        isolated = PropertyStore(deprecations=registry)
        plain = PropertyStore()

        isolated.set("old", "1")
        plain.set("old", "1")

        assert isolated.get_raw("new") == "1"
        assert plain.get_raw("new") is None
        assert plain.get_raw("old") == "1"


class TestDefaultResourceRegistry:
    """Test default resource names."""

    def test_initial_names(self):
        """Test the built-in defaults."""
        assert DefaultResourceRegistry().names() == ["core-default.xml", "core-site.xml"]

    def test_add_and_reset(self):
        """Test added names are appended once and reset restores the start."""
        registry = DefaultResourceRegistry(["a.xml"])
        registry.add("b.xml")
        registry.add("a.xml")

        assert registry.names() == ["a.xml", "b.xml"]
        registry.reset()
        assert registry.names() == ["a.xml"]


class TestCommonRegistry:
    """Test the registries behave as common dataknobs registries."""

    def test_deprecations_are_registry_items(self):
        """Test deprecations can be inspected with the registry API."""
        registry = DeprecationRegistry()
        registry.add_deprecation("old", "new")

        assert isinstance(registry, Registry)
        assert "old" in registry
        assert len(registry) == 1
        assert registry.get("old").new_keys == ("new",)

    def test_default_resources_keep_order(self):
        """Test default resource names are registry keys in insertion order."""
        registry = DefaultResourceRegistry(["b.xml", "a.xml"])
        registry.add("c.xml")

        assert isinstance(registry, Registry)
        assert registry.list_keys() == ["b.xml", "a.xml", "c.xml"]
        assert "a.xml" in registry

    def test_empty_injected_registry_is_used(self, write_conf, temp_dir):
        """Test an empty injected registry is not replaced by the process default."""
        get_default_resource_registry().add("site.xml")
        write_conf("site.xml", ("k", "v"))
        empty = DefaultResourceRegistry([])

        store = PropertyStore(
            load_defaults=True, default_resources=empty, resolver=ImportResolver([temp_dir])
        )

        assert store.get("k") is None
        assert store.get_resources() == []
