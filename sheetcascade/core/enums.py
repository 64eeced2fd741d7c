"""
sheetcascade Core Enumerations

Node kinds carried by every cascade entry. The registry-key prefix and the
host event type are pure functions of the kind.
"""

from enum import Enum
from typing import Optional


class NodeKind(str, Enum):
    """
    Kind of a cascade node.

    Each kind maps to a distinct registry-key prefix and listener event type:
        ATTRIBUTE      attr_      change:
        ACTION_BUTTON  act_       clicked:
        ROLL_BUTTON    roll_      clicked:
        FIELDSET       fieldset_  remove:
    """
    ATTRIBUTE = "attribute"
    ACTION_BUTTON = "action-button"
    ROLL_BUTTON = "roll-button"
    FIELDSET = "fieldset"

    @property
    def prefix(self) -> str:
        return _PREFIXES[self]

    @property
    def event_type(self) -> str:
        return _EVENT_TYPES[self]

    @property
    def is_button(self) -> bool:
        return self in (NodeKind.ACTION_BUTTON, NodeKind.ROLL_BUTTON)

    def key(self, name: str) -> str:
        """Registry key for a canonical node name."""
        return f"{self.prefix}{name}"

    @classmethod
    def from_element_type(cls, element_type: Optional[str]) -> "NodeKind":
        """Kind for a declared element type (input types all map to ATTRIBUTE)."""
        return _ELEMENT_KINDS.get(element_type or "", cls.ATTRIBUTE)

    @classmethod
    def from_key(cls, key: str) -> Optional["NodeKind"]:
        """Kind encoded in a registry key, if any."""
        for kind, prefix in _PREFIXES.items():
            if key.startswith(prefix):
                return kind
        return None


_PREFIXES = {
    NodeKind.ATTRIBUTE: "attr_",
    NodeKind.ACTION_BUTTON: "act_",
    NodeKind.ROLL_BUTTON: "roll_",
    NodeKind.FIELDSET: "fieldset_",
}

_EVENT_TYPES = {
    NodeKind.ATTRIBUTE: "change",
    NodeKind.ACTION_BUTTON: "clicked",
    NodeKind.ROLL_BUTTON: "clicked",
    NodeKind.FIELDSET: "remove",
}

_ELEMENT_KINDS = {
    "action": NodeKind.ACTION_BUTTON,
    "roll": NodeKind.ROLL_BUTTON,
    "fieldset": NodeKind.FIELDSET,
}


# Input types whose values are numbers
NUMERIC_VALUE_TYPES = frozenset({"number", "checkbox", "radio", "range"})

# Default values by input type
TYPE_DEFAULTS = {
    "select": "",
    "radio": 0,
    "checkbox": 0,
    "number": 0,
    "text": "",
    "span": "",
}
