"""
transactions/proxy.py - Attribute transaction proxy

Read/write view over the attribute values fetched from the host for one
event. Reads see pending writes first; writes are held until commit() issues
a single host write.

Reads coerce numeric-looking strings to numbers unless the node is textual,
and fall back to the node's default when a value is absent.
"""

from __future__ import annotations
from collections import deque
from datetime import datetime
from typing import Any, Callable, Deque, Dict, Iterable, List, Mapping, Optional, TYPE_CHECKING
import logging
import uuid

from sheetcascade.core.enums import NodeKind
from sheetcascade.core.naming import (
    coerce_number,
    is_invalid_value,
    row_order_name,
    row_order_section,
    to_section_name,
)
from sheetcascade.core.trigger import TriggerNode
from sheetcascade.errors import DiagnosticChannel, ErrorCode
from sheetcascade.transactions.schemas import StateChange, TransactionStatus

if TYPE_CHECKING:
    from sheetcascade.declarations.registry import CascadeRegistry
    from sheetcascade.host.adapter import HostAdapter


logger = logging.getLogger("transactions.proxy")

_MISSING = object()


def decode_row_order(value: Any) -> List[str]:
    """Row ids from a stored row order (comma joined string or list)."""
    if value is None:
        return []
    if isinstance(value, (list, tuple)):
        return [str(row_id) for row_id in value]
    return [row_id.strip() for row_id in str(value).split(",") if row_id.strip()]


class AttributeTransaction:
    """
    One event's view of the sheet's attributes.

    Attributes:
        baseline: Values read from the host when the transaction started
        pending_writes: Uncommitted attribute writes
        pending_orders: Uncommitted row orders by section
        queue: Node names still awaiting propagation
    """

    def __init__(
        self,
        baseline: Mapping[str, Any],
        host: Optional["HostAdapter"] = None,
        cascade: Optional[Mapping[str, TriggerNode]] = None,
        registry: Optional["CascadeRegistry"] = None,
        diagnostics: Optional[DiagnosticChannel] = None,
    ):
        self.transaction_id = uuid.uuid4().hex[:8]
        self.status = TransactionStatus.ACTIVE
        self.started_at = datetime.utcnow()
        self.completed_at: Optional[datetime] = None

        self.baseline: Dict[str, Any] = dict(baseline)
        self.pending_writes: Dict[str, Any] = {}
        self.pending_orders: Dict[str, List[str]] = {}
        self.queue: Deque[str] = deque()

        self.host = host
        self.cascade: Mapping[str, TriggerNode] = cascade or {}
        self.registry = registry
        self.diagnostics = diagnostics or DiagnosticChannel()

    # =========================================================================
    # Reads
    # =========================================================================

    def node_for(self, name: str) -> Optional[TriggerNode]:
        """Attribute node describing name, from the expanded cascade or the registry."""
        node = self.cascade.get(NodeKind.ATTRIBUTE.key(name))
        if node is None and self.registry is not None:
            node = self.registry.lookup(name)
        return node

    def get(self, name: str, default: Any = None) -> Any:
        """
        Current value of an attribute.

        Row-order pseudo-attributes (_reporder_<section> or a bare section
        name) return the row id list.
        """
        section = row_order_section(name)
        if section is not None:
            return self.get_row_order(section)

        if name in self.pending_writes:
            value = self.pending_writes[name]
        else:
            value = self.baseline.get(name, _MISSING)

        node = self.node_for(name)
        if value is _MISSING:
            if node is not None and node.default_value is not None:
                return node.default_value
            return default

        if node is not None and node.is_non_numeric:
            return value

        number = coerce_number(value)
        if number is not None:
            return number
        if node is not None and node.is_numeric:
            return node.default_value
        return value

    def __getitem__(self, name: str) -> Any:
        return self.get(name)

    def __contains__(self, name: object) -> bool:
        return name in self.pending_writes or name in self.baseline

    def names(self) -> List[str]:
        """Every attribute name held, baseline and pending."""
        return list(dict.fromkeys(list(self.baseline) + list(self.pending_writes)))

    # =========================================================================
    # Writes
    # =========================================================================

    def set(self, name: str, value: Any) -> bool:
        """
        Record a write.

        None and NaN are rejected with an INVALID_ATTRIBUTE_VALUE diagnostic;
        "" and 0 are valid values.

        Returns:
            True if the write was recorded
        """
        if self.status is not TransactionStatus.ACTIVE:
            logger.error(f"Cannot set {name}: transaction {self.transaction_id} is {self.status.value}")
            return False

        if is_invalid_value(value):
            self.diagnostics.report(
                ErrorCode.INVALID_ATTRIBUTE_VALUE,
                f"Attempted to set {name} to an invalid value: {value}; value not stored",
                source="transaction",
                path=name,
                actual_value=value,
                transaction_id=self.transaction_id,
            )
            return False

        if isinstance(value, bool):
            value = int(value)

        section = row_order_section(name)
        if section is not None:
            self.set_row_order(section, decode_row_order(value))
            return True

        self.pending_writes[name] = value
        return True

    def __setitem__(self, name: str, value: Any) -> None:
        self.set(name, value)

    def delete(self, name: str) -> bool:
        """Remove name from baseline, pending writes and pending orders."""
        removed = False
        for store in (self.baseline, self.pending_writes):
            if name in store:
                del store[name]
                removed = True
        section = row_order_section(name)
        if section is not None and section in self.pending_orders:
            del self.pending_orders[section]
            removed = True
        return removed

    def __delitem__(self, name: str) -> None:
        self.delete(name)

    # =========================================================================
    # Row orders
    # =========================================================================

    def get_row_order(self, section: str) -> List[str]:
        section = to_section_name(section)
        if section in self.pending_orders:
            return list(self.pending_orders[section])
        return decode_row_order(self.baseline.get(row_order_name(section)))

    def set_row_order(self, section: str, ids: Iterable[str]) -> None:
        """Pending reorder, committed as its own host call."""
        self.pending_orders[to_section_name(section)] = list(ids)

    def seed_row_order(self, section: str, ids: Iterable[str]) -> None:
        """Replace the stored row order without scheduling a host reorder."""
        self.baseline[row_order_name(section)] = ",".join(ids)

    # =========================================================================
    # Lifecycle
    # =========================================================================

    def changes(self) -> List[StateChange]:
        """Pending writes as change records."""
        return [
            StateChange(
                change_id=f"{self.transaction_id}-{index}",
                transaction_id=self.transaction_id,
                path=name,
                old_value=self.baseline.get(name),
                new_value=value,
                source="transaction",
            )
            for index, (name, value) in enumerate(self.pending_writes.items())
        ]

    def commit(
        self,
        vocal: bool = False,
        on_done: Optional[Callable[[], None]] = None,
    ) -> bool:
        """
        Issue one host write with every pending write, then one section
        reorder per pending order, then on_done.

        Returns:
            False if the transaction was already committed or dropped
        """
        if self.status is not TransactionStatus.ACTIVE:
            logger.error(f"Cannot commit: transaction {self.transaction_id} is {self.status.value}")
            return False

        updates = dict(self.pending_writes)
        orders = dict(self.pending_orders)
        self.baseline.update(updates)
        for section, ids in orders.items():
            self.baseline[row_order_name(section)] = ",".join(ids)
        self.pending_writes.clear()
        self.pending_orders.clear()

        self.status = TransactionStatus.COMMITTED
        self.completed_at = datetime.utcnow()
        logger.debug(
            f"Transaction {self.transaction_id} committed: "
            f"{len(updates)} writes, {len(orders)} reorders"
        )

        def on_complete() -> None:
            for section, ids in orders.items():
                self.host.write_section_order(section, ids)
            if on_done is not None:
                on_done()

        if self.host is None:
            logger.debug(f"Transaction {self.transaction_id} has no host; nothing written")
            if on_done is not None:
                on_done()
            return True

        self.host.write_attributes(updates, vocal, on_complete)
        return True

    def drop(self, reason: str = "") -> None:
        """Discard pending changes without writing anything."""
        if self.status is not TransactionStatus.ACTIVE:
            return
        self.pending_writes.clear()
        self.pending_orders.clear()
        self.queue.clear()
        self.status = TransactionStatus.DROPPED
        self.completed_at = datetime.utcnow()
        logger.warning(f"Transaction {self.transaction_id} dropped: {reason}")

    def snapshot(self) -> Dict[str, Any]:
        """Baseline merged with pending writes."""
        values = dict(self.baseline)
        values.update(self.pending_writes)
        return values

    def to_dict(self) -> Dict[str, Any]:
        return {
            "transaction_id": self.transaction_id,
            "status": self.status.value,
            "started_at": self.started_at.isoformat(),
            "completed_at": self.completed_at.isoformat() if self.completed_at else None,
            "num_changes": len(self.pending_writes),
            "num_reorders": len(self.pending_orders),
        }
