"""
Unit tests for transactions/proxy.py

Tests reads, writes, row orders and the single commit of an
AttributeTransaction.
"""

import pytest

from sheetcascade.core import TriggerNode
from sheetcascade.errors import DiagnosticChannel, ErrorCode
from sheetcascade.host import InMemoryHost
from sheetcascade.transactions import (
    AttributeTransaction,
    TransactionStatus,
    decode_row_order,
)


@pytest.fixture
def cascade():
    nodes = [
        TriggerNode(name="strength", value_type="number", default_value=10),
        TriggerNode(name="notes", value_type="text", default_value=""),
        TriggerNode(name="level", value_type="hidden", default_value=1),
        TriggerNode(name="code", value_type="hidden"),
        TriggerNode(name="choice", value_type="select", default_value=""),
    ]
    return {node.key: node for node in nodes}


@pytest.fixture
def attributes(cascade, diagnostics):
    return AttributeTransaction(
        {
            "strength": "14",
            "notes": "42",
            "name": "Bob",
            "level": "abc",
            "code": "0012",
            "choice": "1e3",
        },
        cascade=cascade,
        diagnostics=diagnostics,
    )


class TestReads:
    """Test value reads."""

    def test_numeric_string_is_coerced(self, attributes):
        """Test numeric strings read back as numbers."""
        assert attributes.get("strength") == 14

    def test_textual_node_is_not_coerced(self, attributes):
        """Test text inputs keep their raw value."""
        assert attributes.get("notes") == "42"

    def test_non_numeric_types_are_not_coerced(self, attributes):
        """Test hidden and select inputs without a numeric default keep their raw value."""
        assert attributes.get("code") == "0012"
        assert attributes.get("choice") == "1e3"

    def test_unknown_attribute(self, attributes):
        """Test attributes without a node keep non-numeric values."""
        assert attributes.get("name") == "Bob"
        assert attributes.get("missing") is None
        assert attributes.get("missing", 3) == 3

    def test_non_numeric_value_of_numeric_node(self, attributes):
        """Test a numeric node falls back to its default."""
        assert attributes.get("level") == 1

    def test_absent_value_uses_node_default(self, cascade):
        """Test missing attributes read as the node default."""
        attributes = AttributeTransaction({}, cascade=cascade)
        assert attributes.get("strength") == 10

    def test_pending_write_wins(self, attributes):
        """Test reads see pending writes first."""
        attributes.set("strength", 16)
        assert attributes["strength"] == 16
        assert attributes.baseline["strength"] == "14"

    def test_contains_and_names(self, attributes):
        """Test membership covers baseline and pending writes."""
        attributes.set("new", 1)
        assert "new" in attributes
        assert "strength" in attributes
        assert attributes.names()[-1] == "new"


class TestWrites:
    """Test value writes."""

    def test_empty_string_is_valid(self, attributes, diagnostics):
        """Test "" is stored like any other value."""
        assert attributes.set("name", "")
        assert attributes.get("name") == ""
        assert len(diagnostics) == 0

    def test_zero_is_valid(self, attributes):
        """Test 0 is stored."""
        assert attributes.set("strength", 0)
        assert attributes.get("strength") == 0

    @pytest.mark.parametrize("value", [None, float("nan")])
    def test_invalid_values_are_rejected(self, attributes, diagnostics, value):
        """Test None and NaN are not recorded and are reported."""
        assert not attributes.set("strength", value)
        assert "strength" not in attributes.pending_writes
        assert diagnostics.count(ErrorCode.INVALID_ATTRIBUTE_VALUE) == 1
        assert diagnostics.all()[0].path == "strength"

    def test_booleans_stored_as_numbers(self, attributes):
        """Test booleans become 1/0."""
        attributes.set("flag", True)
        assert attributes.pending_writes["flag"] == 1

    def test_item_assignment(self, attributes):
        """Test the mapping-style write."""
        attributes["strength"] = 12
        assert attributes.pending_writes == {"strength": 12}

    def test_delete(self, attributes):
        """Test delete clears baseline and pending entries."""
        attributes.set("name", "Alice")
        assert attributes.delete("name")
        assert "name" not in attributes
        assert not attributes.delete("name")


class TestRowOrders:
    """Test row-order pseudo-attributes."""

    def test_decode_row_order(self):
        """Test comma joined and list row orders."""
        assert decode_row_order("a, b,,c") == ["a", "b", "c"]
        assert decode_row_order(["a", "b"]) == ["a", "b"]
        assert decode_row_order(None) == []

    def test_row_order_reads(self):
        """Test both row-order names return the id list."""
        attributes = AttributeTransaction({"_reporder_repeating_gear": "-b,-a"})
        assert attributes.get("_reporder_repeating_gear") == ["-b", "-a"]
        assert attributes.get("repeating_gear") == ["-b", "-a"]
        assert attributes.get("repeating_spells") == []

    def test_set_row_order_is_pending(self):
        """Test setting a row order schedules a reorder."""
        attributes = AttributeTransaction({})
        attributes.set("_reporder_repeating_gear", "r2,r1")

        assert attributes.pending_orders == {"repeating_gear": ["r2", "r1"]}
        assert attributes.pending_writes == {}
        assert attributes.get("repeating_gear") == ["r2", "r1"]


class TestCommit:
    """Test the commit lifecycle."""

    def test_single_host_write(self):
        """Test one attribute write, then reorders, then on_done."""
        host = InMemoryHost(sections={"gear": ["r1", "r2"]})
        attributes = AttributeTransaction({}, host=host)
        done = []

        attributes.set("a", 1)
        attributes.set("b", "")
        attributes.set_row_order("gear", ["r2", "r1"])
        assert attributes.commit(on_done=lambda: done.append(host.sections["repeating_gear"]))

        assert [w.kind for w in host.write_log] == ["attributes", "section_order"]
        assert host.write_log[0].values == {"a": 1, "b": ""}
        assert done == [["r2", "r1"]]
        assert attributes.status is TransactionStatus.COMMITTED

    def test_commit_only_once(self):
        """Test a second commit is refused."""
        host = InMemoryHost()
        attributes = AttributeTransaction({}, host=host)
        attributes.set("a", 1)

        assert attributes.commit()
        assert not attributes.commit()
        assert len(host.write_log) == 1

    def test_writes_after_commit_are_refused(self):
        """Test a committed transaction records nothing."""
        attributes = AttributeTransaction({})
        attributes.commit()
        assert not attributes.set("a", 1)

    def test_commit_without_host(self):
        """Test commit without a host folds writes into the baseline."""
        attributes = AttributeTransaction({"a": 1})
        done = []
        attributes.set("a", 2)
        attributes.commit(on_done=lambda: done.append(True))

        assert attributes.baseline["a"] == 2
        assert done == [True]

    def test_drop(self):
        """Test dropping discards pending writes without a host call."""
        host = InMemoryHost()
        attributes = AttributeTransaction({}, host=host)
        attributes.set("a", 1)
        attributes.queue.append("b")
        attributes.drop("test")

        assert attributes.status is TransactionStatus.DROPPED
        assert attributes.pending_writes == {}
        assert not attributes.queue
        assert not attributes.commit()
        assert host.write_log == []

    def test_changes(self):
        """Test pending writes as change records."""
        attributes = AttributeTransaction({"a": 1})
        attributes.set("a", 2)
        change = attributes.changes()[0]

        assert change.path == "a"
        assert change.old_value == 1
        assert change.new_value == 2

    def test_snapshot_and_to_dict(self):
        """Test snapshot merges pending writes."""
        attributes = AttributeTransaction({"a": 1, "b": 2}, diagnostics=DiagnosticChannel())
        attributes.set("b", 3)

        assert attributes.snapshot() == {"a": 1, "b": 3}
        assert attributes.to_dict()["num_changes"] == 1
