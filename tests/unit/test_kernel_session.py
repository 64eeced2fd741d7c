"""
Unit tests for kernel/session.py

Tests listener wiring, per-event loading and the sheet-open flow.
"""

import logging

import pytest

from sheetcascade.bootstrap import EngineConfig
from sheetcascade.errors import ErrorCode
from sheetcascade.kernel import ENGINE_LOGGERS, SHEET_OPENED, SheetSession


@pytest.fixture
def reset_engine_loggers():
    yield
    for name in ENGINE_LOGGERS:
        logging.getLogger(name).setLevel(logging.NOTSET)


class TestFromConfig:
    """Test sessions built from application configuration."""

    def test_engine_settings_applied(self, sheet_config, host, diagnostics):
        """Test step limit, vocal commits and the cycle audit come from EngineConfig."""
        engine = EngineConfig(max_propagation_steps=3, vocal_commits=True, audit_cycles=False)
        session = SheetSession.from_config(sheet_config, host, engine, diagnostics)

        assert session.runner.max_steps == 3
        assert session.vocal
        assert not session.audit
        assert session.diagnostics is diagnostics
        assert not session.debug_mode

    def test_step_limit_applies_to_events(self, sheet_config, host, diagnostics):
        """Test a configured limit stops propagation of a player edit."""
        engine = EngineConfig(max_propagation_steps=0)
        session = SheetSession.from_config(sheet_config, host, engine, diagnostics)
        session.initialize_listeners()
        host.change("strength", "14")

        assert session.results[-1].aborted
        assert diagnostics.has(ErrorCode.PROPAGATION_LIMIT)
        assert "strength_mod" not in host.attributes

    def test_debug(self, sheet_config, host, reset_engine_loggers):
        session = SheetSession.from_config(sheet_config, host, EngineConfig(), debug=True)
        assert session.debug_mode
        assert logging.getLogger("kernel").level == logging.DEBUG


class TestInitializeListeners:
    """Test startup wiring."""

    def test_subscriptions(self, session, host, diagnostics):
        """Test sheet:opened plus every distinct registry listener is subscribed."""
        assert session.initialize_listeners() == 6
        assert set(host.listeners) == {
            SHEET_OPENED,
            "change:character_name",
            "change:strength",
            "change:repeating_gear:weight",
            "clicked:add-gear",
            "remove:repeating_gear",
        }
        assert len(diagnostics) == 0

    def test_unknown_listener_function(self, builder, handlers, host, diagnostics):
        """Test a listener naming no function is reported and skipped."""
        builder.declare_input("notes", "text", trigger={"listener_func": "noSuchListener"})
        session = SheetSession(builder.build("s", 1, handlers), host, diagnostics)
        session.initialize_listeners()

        reported = diagnostics.by_code(ErrorCode.UNKNOWN_HANDLER)
        assert [d.path for d in reported] == ["change:notes"]
        assert "change:notes" not in host.listeners

    def test_registered_listener_function(self, builder, handlers, host):
        """Test registered listener functions are used."""
        events = []
        handlers.register_listener("customListener", events.append)
        builder.declare_input("notes", "text", trigger={"listener_func": "customListener"})
        session = SheetSession(builder.build("s", 1, handlers), host)
        session.initialize_listeners()

        host.change("notes", "hello")
        assert [e.new_value for e in events] == ["hello"]

    def test_unknown_node_handler(self, builder, handlers, host, diagnostics):
        """Test node handler names missing from the registry are reported."""
        builder.declare_input("dex", "number", trigger={"triggered_funcs": ["noSuchFunc"]})
        session = SheetSession(builder.build("s", 1, handlers), host, diagnostics)
        session.initialize_listeners()

        assert [d.path for d in diagnostics.by_code(ErrorCode.UNKNOWN_HANDLER)] == ["attr_dex"]

    def test_cycles_are_audited(self, builder, host, diagnostics):
        """Test affects cycles are reported at startup."""
        builder.declare_input("a", trigger={"affects": ["b"]})
        builder.declare_input("b", trigger={"affects": ["a"]})
        session = SheetSession(builder.build("s", 1), host, diagnostics)
        session.initialize_listeners()

        assert diagnostics.has(ErrorCode.CASCADE_CYCLE)

    def test_audit_disabled(self, builder, host, diagnostics):
        """Test the audit can be switched off."""
        builder.declare_input("a", trigger={"affects": ["a"]})
        session = SheetSession(builder.build("s", 1), host, diagnostics, audit=False)
        session.initialize_listeners()

        assert not diagnostics.has(ErrorCode.CASCADE_CYCLE)


class TestLoad:
    """Test per-event loading."""

    def test_load(self, session):
        """Test attributes, sections and the expanded cascade are loaded."""
        attributes, sections, cascade = session.load()

        assert sections == {"repeating_gear": ["r1", "r2"]}
        assert attributes.get("strength") == 10
        assert attributes.get("repeating_gear_r1_name") == "rope"
        assert attributes.get("repeating_gear_r2_weight") == 3
        assert "attr_repeating_gear_r2_weight" in cascade

    def test_load_orders_rows(self, session, host):
        """Test rows follow the stored row order."""
        host.attributes["_reporder_repeating_gear"] = "r2,r1"
        _attributes, sections, _cascade = session.load()
        assert sections["repeating_gear"] == ["r2", "r1"]

    def test_max_steps_reaches_runner(self, sheet_config, host):
        """Test the step limit is passed to the runner."""
        assert SheetSession(sheet_config, host, max_steps=50).runner.max_steps == 50


class TestAccessSheet:
    """Test the default listener."""

    def test_change_propagates(self, session, host):
        """Test a player edit recalculates dependents and commits once."""
        session.initialize_listeners()
        host.change("strength", "14")

        assert host.attributes["strength_mod"] == 2
        assert len(host.attribute_writes()) == 1
        assert session.results[-1].calculated == {"strength_mod": 2}

    def test_vocal_commit(self, sheet_config, host):
        """Test vocal sessions commit vocally."""
        session = SheetSession(sheet_config, host, vocal=True)
        session.initialize_listeners()
        host.change("strength", "12")

        assert host.attribute_writes()[0].vocal


class TestUpdateSheet:
    """Test the sheet-open flow."""

    def test_new_sheet(self, builder, handlers, host):
        """Test a sheet without a version runs initial setups and openers."""
        calls = []
        handlers.register_funcs({"setupNew": lambda ctx: calls.append("new") or ctx.attributes.set("strength", 12)}, ["new"])
        handlers.register_funcs({"onOpen": lambda ctx: calls.append("open")}, ["opener"])
        session = SheetSession(builder.build("s", 3, handlers), host)
        session.initialize_listeners()

        host.open_sheet()

        assert calls == ["new", "open"]
        assert host.attributes["sheet_version"] == 3
        assert host.attributes["strength"] == 12

    @pytest.mark.parametrize("stored,expected", [("1", ["update"]), ("2", [])])
    def test_updaters(self, builder, handlers, host, stored, expected):
        """Test updaters run only for sheets older than their version."""
        calls = []
        handlers.register_funcs({"setupNew": lambda ctx: calls.append("new")}, ["new"])
        handlers.register_funcs({"2": lambda ctx: calls.append("update")}, ["updater"])
        session = SheetSession(builder.build("s", 3, handlers), host)
        host.attributes["sheet_version"] = stored

        session.update_sheet()

        assert calls == expected
        assert host.attributes["sheet_version"] == 3

    def test_failing_opener_drops(self, builder, handlers, host):
        """Test an opener exception drops the transaction and propagates."""
        def fail(ctx):
            raise RuntimeError("broken opener")

        handlers.register_funcs({"fail": fail}, ["opener"])
        session = SheetSession(builder.build("s", 3, handlers), host)

        with pytest.raises(RuntimeError):
            session.update_sheet()
        assert "sheet_version" not in host.attributes
        assert host.write_log == []

    def test_debug_mode(self, session, host, reset_engine_loggers):
        """Test debug_mode raises the engine loggers to DEBUG."""
        host.attributes["debug_mode"] = "1"
        session.update_sheet()

        assert session.debug_mode
        assert logging.getLogger("kernel").level == logging.DEBUG


class TestRows:
    """Test row add and remove through the session."""

    def test_add_item(self, session, host, handler_calls):
        """Test clicking add-gear creates and initializes a row."""
        session.initialize_listeners()
        host.click("add-gear")

        ids = host.read_section_row_ids("gear")
        assert len(ids) == 3
        row = f"repeating_gear_{ids[-1]}"
        assert host.attributes[f"{row}_weight"] == 1
        assert host.attributes[f"{row}_name"] == ""
        assert handler_calls == [("initGear", row)]

    def test_remove_repeating_row(self, session, host):
        """Test removing a row through the session."""
        attributes, sections, _cascade = session.load()

        assert session.remove_repeating_row("repeating_gear_r1", attributes, sections)
        assert sections["repeating_gear"] == ["r2"]
        assert host.read_section_row_ids("gear") == ["r2"]
