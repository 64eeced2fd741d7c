"""
core/trigger.py - Cascade node model

A TriggerNode describes one node of the sheet's dependency graph: its default
value, the handlers that run when it changes, the nodes it affects and how the
host listener for it is wired.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Union

from .enums import NodeKind, NUMERIC_VALUE_TYPES
from .naming import REPEATING_PREFIX, ROW_PLACEHOLDER, section_of

DefaultValue = Union[str, int, float]


@dataclass
class TriggerNode:
    """One cascade entry."""
    name: str
    kind: NodeKind = NodeKind.ATTRIBUTE

    # Declared element type (text, number, checkbox, action, ...)
    value_type: Optional[str] = None
    default_value: Optional[DefaultValue] = None

    # Propagation
    affects: List[str] = field(default_factory=list)
    triggered_funcs: List[str] = field(default_factory=list)
    add_funcs: List[str] = field(default_factory=list)
    initial_func: Optional[str] = None
    calculation: Optional[str] = None

    # Host listener wiring
    listener: Optional[str] = None
    listener_func: Optional[str] = None

    @property
    def key(self) -> str:
        return self.kind.key(self.name)

    @property
    def is_numeric(self) -> bool:
        if self.value_type in NUMERIC_VALUE_TYPES:
            return True
        return isinstance(self.default_value, (int, float)) and not isinstance(self.default_value, bool)

    @property
    def is_non_numeric(self) -> bool:
        """Declared with a non-numeric type; stored values are never coerced."""
        return self.value_type is not None and not self.is_numeric

    @property
    def is_repeating(self) -> bool:
        return self.kind is not NodeKind.FIELDSET and self.name.startswith(REPEATING_PREFIX)

    @property
    def is_template(self) -> bool:
        return self.is_repeating and f"_{ROW_PLACEHOLDER}_" in self.name

    @property
    def section(self) -> Optional[str]:
        if self.kind is NodeKind.FIELDSET:
            return self.name
        return section_of(self.name)

    def handler_names(self) -> Dict[str, List[str]]:
        """Every handler name this node references, grouped by role."""
        names = {
            "calculation": [self.calculation] if self.calculation else [],
            "triggered_funcs": list(self.triggered_funcs),
            "add_funcs": list(self.add_funcs),
            "initial_func": [self.initial_func] if self.initial_func else [],
        }
        return {role: funcs for role, funcs in names.items() if funcs}

    def clone(self, **changes: Any) -> "TriggerNode":
        """Copy with independent list fields."""
        data = self.to_dict()
        data.update(changes)
        return TriggerNode.from_dict(data)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "kind": self.kind.value,
            "value_type": self.value_type,
            "default_value": self.default_value,
            "affects": list(self.affects),
            "triggered_funcs": list(self.triggered_funcs),
            "add_funcs": list(self.add_funcs),
            "initial_func": self.initial_func,
            "calculation": self.calculation,
            "listener": self.listener,
            "listener_func": self.listener_func,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "TriggerNode":
        return cls(
            name=data["name"],
            kind=NodeKind(data.get("kind", NodeKind.ATTRIBUTE)),
            value_type=data.get("value_type"),
            default_value=data.get("default_value"),
            affects=list(data.get("affects") or []),
            triggered_funcs=list(data.get("triggered_funcs") or []),
            add_funcs=list(data.get("add_funcs") or []),
            initial_func=data.get("initial_func"),
            calculation=data.get("calculation"),
            listener=data.get("listener"),
            listener_func=data.get("listener_func"),
        )
