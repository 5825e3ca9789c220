"""
Tests for the project type Registry.
"""

import pytest

from phasekit.builder import ProjectTypeConfigBuilder
from phasekit.exceptions import DuplicateRegistrationError, NotFoundError, UnknownProjectTypeError
from phasekit.registry import Registry, build_registry


def tiny_config(name="tiny"):
    return ProjectTypeConfigBuilder(name).set_initial_state("A").add_transition("A", "B", "go").build()


class TestRegistry:

    def test_register_and_get(self):
        registry = Registry()
        config = tiny_config()
        registry.register("tiny", config)

        assert registry.get("tiny") is config
        assert registry.require("tiny") is config
        assert "tiny" in registry
        assert len(registry) == 1

    def test_duplicate_registration_is_rejected(self):
        registry = Registry()
        registry.register("tiny", tiny_config())

        with pytest.raises(DuplicateRegistrationError) as exc_info:
            registry.register("tiny", tiny_config())
        assert exc_info.value.name == "tiny"

    def test_unknown_type(self):
        registry = Registry()
        registry.register("tiny", tiny_config())

        assert registry.get("missing") is None
        with pytest.raises(UnknownProjectTypeError, match="registered: tiny"):
            registry.require("missing")

    def test_unknown_type_is_not_found(self):
        with pytest.raises(NotFoundError):
            Registry().require("missing")

    def test_list_is_sorted(self):
        registry = Registry()
        registry.register("zeta", tiny_config("zeta"))
        registry.register("alpha", tiny_config("alpha"))

        assert registry.list() == ["alpha", "zeta"]
        assert list(registry) == ["alpha", "zeta"]

    def test_build_registry_has_builtin_types(self):
        registry = build_registry()
        assert registry.list() == ["breakdown", "design", "exploration", "standard"]
        assert registry.require("standard").initial_state == "PlanningActive"
        assert registry.require("exploration").initial_state == "Active"

    def test_build_registry_returns_fresh_instances(self):
        assert build_registry() is not build_registry()
