"""
kernel/events.py - Host events

SheetEvent mirrors the event info the host hands to a listener:

    change:strength                  attribute change
    clicked:repeating_gear_-r1_roll  button click
    remove:repeating_gear            row removal
    sheet:opened                     sheet open
"""

from __future__ import annotations
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, Optional

from sheetcascade.core.naming import parse_repeat_name


CLICK_PREFIX = "clicked:"
REMOVE_PREFIX = "remove:"
SHEET_OPENED = "sheet:opened"


@dataclass
class SheetEvent:
    """One host event."""
    source_attribute: str = ""
    trigger_name: str = ""

    # "player" or "sheetworker"
    source_type: str = "player"

    previous_value: Any = None
    new_value: Any = None

    # Attribute values of a removed row
    removed_info: Optional[Dict[str, Any]] = None

    timestamp: datetime = field(default_factory=datetime.utcnow)

    @property
    def event_name(self) -> str:
        return self.trigger_name or self.source_attribute

    @property
    def is_click(self) -> bool:
        return self.event_name.startswith(CLICK_PREFIX)

    @property
    def is_removal(self) -> bool:
        return self.removed_info is not None or self.trigger_name.startswith(REMOVE_PREFIX)

    @classmethod
    def change(
        cls,
        name: str,
        new_value: Any = None,
        previous_value: Any = None,
        source_type: str = "player",
    ) -> "SheetEvent":
        return cls(
            source_attribute=name,
            trigger_name=name,
            source_type=source_type,
            previous_value=previous_value,
            new_value=new_value,
        )

    @classmethod
    def click(cls, button: str) -> "SheetEvent":
        button = button[len(CLICK_PREFIX):] if button.startswith(CLICK_PREFIX) else button
        return cls(source_attribute=button, trigger_name=f"{CLICK_PREFIX}{button}")

    @classmethod
    def removal(cls, row: str, removed_info: Optional[Dict[str, Any]] = None) -> "SheetEvent":
        """Removal of a row, named by its row prefix (repeating_gear_-r1)."""
        parsed = parse_repeat_name(row)
        section = parsed[0] if parsed else row
        return cls(
            source_attribute=row,
            trigger_name=f"{REMOVE_PREFIX}{section}",
            removed_info=dict(removed_info or {}),
        )

    @classmethod
    def opened(cls) -> "SheetEvent":
        return cls(trigger_name=SHEET_OPENED, source_type="sheetworker")

    def to_dict(self) -> Dict[str, Any]:
        return {
            "source_attribute": self.source_attribute,
            "trigger_name": self.trigger_name,
            "source_type": self.source_type,
            "previous_value": self.previous_value,
            "new_value": self.new_value,
            "removed_info": self.removed_info,
            "timestamp": self.timestamp.isoformat(),
        }
