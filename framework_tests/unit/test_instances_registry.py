"""Unit tests for InstanceRegistry."""

import pytest

from dockside.core.errors import (
    DuplicateKindError,
    NotRegisteredError,
    RegistryFrozenError,
    TypeMismatchError,
)
from dockside.core.types import RunningContainer
from dockside.instances.registry import InstanceEntry, InstanceRegistry


def container_for(config):
    name = config.container_name()
    return RunningContainer(name=name, handle=f"id-{name}", ip="172.18.0.9", ports={80: 40080})


class TestInstanceRegistry:
    """Test InstanceRegistry storage keyed by config kind."""

    def test_put_and_get(self, make_config):
        config = make_config("db")
        registry = InstanceRegistry()

        entry = registry.put(config, container_for(config))

        assert registry.get(config.kind()) is entry
        assert entry.config is config
        assert entry.name == "db"
        assert config.kind() in registry
        assert len(registry) == 1

    def test_get_unregistered_kind(self, make_config):
        registry = InstanceRegistry()
        registry.put(make_config("db"), container_for(make_config("db")))

        with pytest.raises(NotRegisteredError):
            registry.get(make_config("cache").kind())

    def test_duplicate_kind(self, make_config):
        config = make_config("db")
        registry = InstanceRegistry()
        registry.put(config, container_for(config))

        with pytest.raises(DuplicateKindError):
            registry.put(config, container_for(config))

    def test_frozen_registry_rejects_put(self, make_config):
        config = make_config("db")
        registry = InstanceRegistry()
        registry.freeze()

        with pytest.raises(RegistryFrozenError, match="read-only"):
            registry.put(config, container_for(config))

        assert registry.frozen
        assert len(registry) == 0

    def test_frozen_registry_still_readable(self, make_config):
        config = make_config("db")
        registry = InstanceRegistry()
        registry.put(config, container_for(config))
        registry.freeze()

        assert registry.get(config.kind()).name == "db"

    def test_entries_and_kinds_in_insertion_order(self, make_config):
        first = make_config("first")
        second = make_config("second")
        registry = InstanceRegistry()
        registry.put(second, container_for(second))
        registry.put(first, container_for(first))

        assert [entry.name for entry in registry.entries()] == ["second", "first"]
        assert registry.kinds() == (second.kind(), first.kind())

    def test_foreign_value_reported_as_type_mismatch(self, make_config):
        config = make_config("db")
        registry = InstanceRegistry()
        registry._entries.put(config.kind(), "not an entry")

        with pytest.raises(TypeMismatchError):
            registry.get(config.kind())


class TestInstanceEntry:
    def test_entry_is_immutable(self, make_config):
        config = make_config("db")
        entry = InstanceEntry(config, container_for(config))

        with pytest.raises(AttributeError):
            entry.config = None
