"""
Unit tests for kernel/handlers.py
"""

import pytest
from unittest.mock import Mock

from sheetcascade.errors import ConfigurationFrozen, ErrorCode
from sheetcascade.kernel import HandlerContext, HandlerRegistry
from sheetcascade.transactions import AttributeTransaction


@pytest.fixture
def registry(diagnostics):
    return HandlerRegistry(diagnostics)


class TestRegistration:
    """Test handler registration."""

    def test_default_registration(self, registry):
        """Test handlers are registered by name."""
        func = Mock()
        assert registry.register_funcs({"calc": func})
        assert registry.get("calc") is func
        assert registry.has("calc")

    def test_typed_registration(self, registry):
        """Test typed handlers land in their map and in funcs."""
        opener = Mock()
        updater = Mock()
        registry.register_funcs({"onOpen": opener}, ["opener"])
        registry.register_funcs({"2": updater}, ["updater"])

        assert registry.openers["onOpen"] is opener
        assert registry.updaters["2"] is updater
        assert registry.has("onOpen")

    def test_add_type(self, registry):
        """Test add handlers are registered separately."""
        registry.register_funcs({"initGear": Mock()}, ["add"])
        assert "initGear" in registry.add_funcs

    def test_duplicate_name(self, registry, diagnostics):
        """Test duplicates are reported and the first handler kept."""
        first, second = Mock(), Mock()
        registry.register_funcs({"calc": first})

        assert not registry.register_funcs({"calc": second})
        assert registry.get("calc") is first
        assert diagnostics.count(ErrorCode.DUPLICATE_HANDLER) == 1

    def test_unknown_type(self, registry, diagnostics):
        """Test an unknown type registers nothing."""
        assert not registry.register_funcs({"calc": Mock()}, ["sometimes"])
        assert not registry.has("calc")
        assert diagnostics.has(ErrorCode.INVALID_HANDLER)

    def test_not_callable(self, registry, diagnostics):
        """Test non-callables are rejected."""
        assert not registry.register_funcs({"calc": 42})
        assert not registry.has("calc")
        assert diagnostics.has(ErrorCode.INVALID_HANDLER)

    def test_set_action_calls_built_in(self, registry):
        """Test the action-call handler is always available."""
        assert registry.has("setActionCalls")

    def test_listener_functions(self, registry):
        """Test raw listener registration."""
        listener = Mock()
        registry.register_listener("custom", listener)
        assert registry.get_listener("custom") is listener
        assert registry.get_listener("other") is None


class TestFreeze:
    """Test freezing."""

    def test_frozen_rejects_registration(self, registry):
        """Test registration after freeze raises."""
        registry.freeze()
        assert registry.frozen

        with pytest.raises(ConfigurationFrozen):
            registry.register_funcs({"late": Mock()})
        with pytest.raises(ConfigurationFrozen):
            registry.register_listener("late", Mock())

    def test_frozen_maps_are_read_only(self, registry):
        """Test frozen maps cannot be modified directly."""
        registry.freeze()
        with pytest.raises(TypeError):
            registry.funcs["late"] = Mock()

    def test_freeze_is_idempotent(self, registry):
        """Test freezing twice is harmless."""
        assert registry.freeze() is registry.freeze()


class TestCallFunc:
    """Test calling handlers by name."""

    def test_call(self, registry):
        """Test the context is passed to the handler."""
        func = Mock(return_value=5)
        registry.register_funcs({"calc": func})
        context = HandlerContext(attributes=AttributeTransaction({}), sections={})

        assert registry.call_func("calc", context) == 5
        func.assert_called_once_with(context)

    def test_missing(self, registry):
        """Test a missing handler returns None."""
        context = HandlerContext(attributes=AttributeTransaction({}), sections={})
        assert registry.call_func("nope", context) is None
