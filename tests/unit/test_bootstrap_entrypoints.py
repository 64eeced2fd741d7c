"""
Unit tests for bootstrap/entrypoints.py

Runs the CLI against serialized cascade documents.
"""

import json
import logging

import pytest

from sheetcascade.bootstrap import cli_main, parse_rows
from sheetcascade.bootstrap.entrypoints import parse_assignments
from sheetcascade.declarations import CascadeRegistryBuilder


@pytest.fixture(autouse=True)
def restore_root_logger():
    root = logging.getLogger()
    handlers = list(root.handlers)
    level = root.level
    yield
    root.handlers = handlers
    root.setLevel(level)


@pytest.fixture
def document(tmp_path, sheet_config):
    path = tmp_path / "gear-sheet.json"
    path.write_text(sheet_config.to_json())
    return str(path)


@pytest.fixture
def cyclic_document(tmp_path):
    builder = CascadeRegistryBuilder()
    builder.declare_input("a", trigger={"affects": ["b"]})
    builder.declare_input("b", trigger={"affects": ["a"]})
    path = tmp_path / "cyclic.json"
    path.write_text(builder.build("cyclic").to_json())
    return str(path)


class TestParseRows:
    """Test --rows parsing."""

    def test_parse_rows(self):
        assert parse_rows(["gear=r1, r2", "repeating_spells="]) == {
            "repeating_gear": ["r1", "r2"],
            "repeating_spells": [],
        }

    def test_invalid(self):
        with pytest.raises(ValueError):
            parse_rows(["gear"])


class TestParseAssignments:
    """Test name=value parsing."""

    def test_order_kept(self):
        assert parse_assignments(["b=2", "a = 1", "b=3"]) == [("b", "2"), ("a", "1"), ("b", "3")]

    def test_invalid(self):
        with pytest.raises(ValueError):
            parse_assignments(["strength"])


class TestCli:
    """Test CLI commands."""

    def test_inspect(self, document, capsys):
        """Test inspect lists nodes and listeners."""
        assert cli_main(["--json", "inspect", document]) == 0
        data = json.loads(capsys.readouterr().out)

        assert data["name"] == "gear-sheet"
        assert data["nodes"]["attr_strength"]["affects"] == ["strength_mod"]
        assert data["listeners"]["clicked:add-gear"] == "addItem"
        assert data["sections"] == [{"section": "repeating_gear", "fields": ["weight", "name"]}]
        assert data["graph"]["is_acyclic"]

    def test_expand(self, document, capsys):
        """Test expand prints concrete nodes for the given rows."""
        assert cli_main(["--json", "expand", document, "--rows", "gear=r1,r2"]) == 0
        data = json.loads(capsys.readouterr().out)

        assert "attr_repeating_gear_r1_weight" in data
        assert "attr_repeating_gear_r2_weight" in data
        assert data["attr_repeating_gear_r1_weight"] == ["total_weight"]

    def test_expand_text(self, document, capsys):
        """Test plain expand output."""
        assert cli_main(["expand", document, "--rows", "gear=r1"]) == 0
        out = capsys.readouterr().out
        assert "attr_strength -> strength_mod" in out

    def test_audit_clean(self, document, capsys):
        assert cli_main(["audit", document]) == 0
        assert "No cascade cycles" in capsys.readouterr().out

    def test_audit_cycle(self, cyclic_document, capsys):
        """Test cycles are printed and exit with 1."""
        assert cli_main(["audit", cyclic_document]) == 1
        assert "a -> b -> a" in capsys.readouterr().out

    def test_missing_document(self, tmp_path):
        """Test an unreadable document exits with 1."""
        assert cli_main(["inspect", str(tmp_path / "missing.json")]) == 1

    def test_trace(self, document, capsys):
        """Test trace replays an edit and reports unknown handler code."""
        assert cli_main([
            "--json", "trace", document,
            "--rows", "gear=r1",
            "--attr", "strength=10",
            "--set", "strength=14",
        ]) == 0
        data = json.loads(capsys.readouterr().out)

        assert data["results"][0]["trigger_key"] == "attr_strength"
        assert data["results"][0]["visited"] == ["strength", "strength_mod"]
        assert data["writes"][0]["values"] == {}
        assert "calcStrengthMod" in data["results"][0]["unknown_handlers"]

    def test_trace_uses_engine_config(self, document, tmp_path, capsys):
        """Test the configured step limit aborts the trace and exits with 1."""
        config_path = tmp_path / "sheetcascade.json"
        config_path.write_text(json.dumps({"engine": {"max_propagation_steps": 0}}))

        assert cli_main([
            "-c", str(config_path), "--json", "trace", document, "--set", "strength=14",
        ]) == 1
        data = json.loads(capsys.readouterr().out)

        assert data["results"][0]["aborted"]
        assert data["results"][0]["visited"] == ["strength"]
        assert "PROPAGATION_LIMIT" in [d["code"] for d in data["diagnostics"]]

    def test_trace_invalid_assignment(self, document):
        assert cli_main(["trace", document, "--set", "strength"]) == 1
