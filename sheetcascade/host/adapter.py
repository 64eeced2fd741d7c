"""
host/adapter.py - Host platform interface

HostAdapter is the narrow surface the engine calls to read and persist
attributes, enumerate and create repeating rows, and register listeners.

InMemoryHost keeps everything in dictionaries. It backs the tests and the
CLI, and mimics the host's listener naming:

    change:strength                   plain attribute
    change:repeating_gear:weight      repeating field (any row)
    change:repeating_gear             any field of the section
    clicked:roll-it                   button
    remove:repeating_gear             row removal
    sheet:opened                      sheet open
"""

from __future__ import annotations
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional
import logging
import random
import string
import time

from sheetcascade.core.naming import (
    REPEATING_PREFIX,
    parse_repeat_name,
    row_order_name,
    to_section_name,
)
from sheetcascade.kernel.events import SheetEvent, SHEET_OPENED

logger = logging.getLogger("host.adapter")

ListenerFunc = Callable[[SheetEvent], None]

ROW_ID_LENGTH = 20
_ROW_ID_ALPHABET = string.digits + string.ascii_uppercase + string.ascii_lowercase


class HostAdapter(ABC):
    """Host storage and event API consumed by the engine."""

    @abstractmethod
    def read_attributes(self, names: Iterable[str]) -> Dict[str, Any]:
        """Current values of the named attributes; unknown names are omitted."""

    @abstractmethod
    def read_section_row_ids(self, section: str) -> List[str]:
        """Row ids of a repeating section."""

    @abstractmethod
    def write_attributes(
        self,
        values: Mapping[str, Any],
        vocal: bool = False,
        on_complete: Optional[Callable[[], None]] = None,
    ) -> None:
        """Persist a batch of values; silent writes raise no change events."""

    @abstractmethod
    def write_section_order(self, section: str, ids: List[str]) -> None:
        """Persist the display order of a repeating section."""

    @abstractmethod
    def generate_row_id(self, custom_prefix: Optional[str] = None) -> str:
        """New row id, optionally starting with -<custom_prefix>."""

    @abstractmethod
    def remove_row(self, row: str) -> None:
        """Forget a row (repeating_<section>_<id>) and its attributes."""

    @abstractmethod
    def subscribe(self, event_name: str, handler: ListenerFunc) -> None:
        """Register a listener for a host event."""


# =============================================================================
# IN-MEMORY HOST
# =============================================================================

@dataclass
class HostWrite:
    """One write issued to the host."""
    kind: str  # "attributes" or "section_order"
    values: Dict[str, Any] = field(default_factory=dict)
    vocal: bool = False
    section: Optional[str] = None
    ids: List[str] = field(default_factory=list)
    timestamp: datetime = field(default_factory=datetime.utcnow)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "kind": self.kind,
            "values": dict(self.values),
            "vocal": self.vocal,
            "section": self.section,
            "ids": list(self.ids),
        }


def listener_names(event_type: str, name: str) -> List[str]:
    """Listener event names notified for a change or click of name."""
    if name.startswith(REPEATING_PREFIX):
        parsed = parse_repeat_name(name)
        if parsed and parsed[2]:
            section, _row, field_name = parsed
            names = [f"{event_type}:{section}:{field_name}"]
            if event_type == "change":
                names.append(f"{event_type}:{section}")
            return names
    return [f"{event_type}:{name}"]


class InMemoryHost(HostAdapter):
    """
    Dictionary-backed host.

    Usage:
        host = InMemoryHost({"strength": "10"}, sections={"gear": ["-r1"]})
        session = SheetSession(config, host)
        session.initialize_listeners()
        host.change("strength", 12)
    """

    def __init__(
        self,
        attributes: Optional[Mapping[str, Any]] = None,
        sections: Optional[Mapping[str, List[str]]] = None,
        seed: Optional[int] = None,
    ):
        self.attributes: Dict[str, Any] = dict(attributes or {})
        self.sections: Dict[str, List[str]] = {
            to_section_name(section): list(ids) for section, ids in (sections or {}).items()
        }
        self.listeners: Dict[str, List[ListenerFunc]] = {}
        self.write_log: List[HostWrite] = []
        self.removed_rows: List[str] = []
        self._random = random.Random(seed)

    # -------------------------------------------------------------------------
    # HostAdapter
    # -------------------------------------------------------------------------

    def read_attributes(self, names: Iterable[str]) -> Dict[str, Any]:
        return {name: self.attributes[name] for name in names if name in self.attributes}

    def read_section_row_ids(self, section: str) -> List[str]:
        return list(self.sections.get(to_section_name(section), []))

    def write_attributes(
        self,
        values: Mapping[str, Any],
        vocal: bool = False,
        on_complete: Optional[Callable[[], None]] = None,
    ) -> None:
        previous = {name: self.attributes.get(name) for name in values}
        self.attributes.update(values)
        self._register_rows(values)
        self.write_log.append(HostWrite(kind="attributes", values=dict(values), vocal=vocal))
        logger.debug(f"setAttrs {len(values)} values (vocal={vocal})")

        if on_complete is not None:
            on_complete()

        if vocal:
            for name, value in values.items():
                self._notify_change(name, value, previous[name], source_type="sheetworker")

    def write_section_order(self, section: str, ids: List[str]) -> None:
        section = to_section_name(section)
        current = self.sections.get(section, [])
        ordered = [row_id for row_id in ids if row_id in current]
        ordered += [row_id for row_id in current if row_id not in ordered]
        self.sections[section] = ordered
        self.attributes[row_order_name(section)] = ",".join(ids)
        self.write_log.append(HostWrite(kind="section_order", section=section, ids=list(ids)))

    def generate_row_id(self, custom_prefix: Optional[str] = None) -> str:
        stamp = self._encode(int(time.time() * 1000), 8)
        tail = "".join(self._random.choice(_ROW_ID_ALPHABET) for _ in range(ROW_ID_LENGTH - 9))
        row_id = f"-{stamp}{tail}"
        if custom_prefix:
            prefix = custom_prefix if custom_prefix.startswith("-") else f"-{custom_prefix}"
            row_id = f"{prefix}{row_id[len(prefix):]}"
        return row_id

    def remove_row(self, row: str) -> None:
        prefix = f"{row}_"
        for name in [n for n in self.attributes if n.startswith(prefix)]:
            del self.attributes[name]
        parsed = parse_repeat_name(row)
        if parsed:
            section, row_id, _field = parsed
            self.sections[section] = [i for i in self.sections.get(section, []) if i != row_id]
        self.removed_rows.append(row)
        logger.debug(f"removeRepeatingRow {row}")

    def subscribe(self, event_name: str, handler: ListenerFunc) -> None:
        self.listeners.setdefault(event_name, []).append(handler)

    # -------------------------------------------------------------------------
    # Simulated player actions
    # -------------------------------------------------------------------------

    def fire(self, event_name: str, event: SheetEvent) -> int:
        """Deliver event to every listener of event_name. Returns the listener count."""
        handlers = list(self.listeners.get(event_name, []))
        for handler in handlers:
            handler(event)
        return len(handlers)

    def change(self, name: str, value: Any) -> None:
        """A player edit of an attribute."""
        previous = self.attributes.get(name)
        self.attributes[name] = value
        self._notify_change(name, value, previous, source_type="player")

    def click(self, button: str) -> None:
        """A player click; button is the concrete name, e.g. repeating_gear_-r1_roll-it."""
        event = SheetEvent.click(button)
        for event_name in listener_names("clicked", event.source_attribute):
            self.fire(event_name, event)

    def add_row(self, section: str, values: Optional[Mapping[str, Any]] = None) -> str:
        """A player-created row. Returns the row prefix."""
        section = to_section_name(section)
        row_id = self.generate_row_id()
        self.sections.setdefault(section, []).append(row_id)
        row = f"{section}_{row_id}"
        for field_name, value in (values or {}).items():
            self.attributes[f"{row}_{field_name}"] = value
        return row

    def remove(self, row: str) -> None:
        """A player deletion of a row; fires remove:<section>."""
        prefix = f"{row}_"
        removed_info = {n: v for n, v in self.attributes.items() if n.startswith(prefix)}
        self.remove_row(row)
        event = SheetEvent.removal(row, removed_info)
        self.fire(event.trigger_name, event)

    def open_sheet(self) -> None:
        self.fire(SHEET_OPENED, SheetEvent.opened())

    # -------------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------------

    def _notify_change(self, name: str, value: Any, previous: Any, source_type: str) -> None:
        event = SheetEvent.change(name, value, previous, source_type=source_type)
        for event_name in listener_names("change", name):
            self.fire(event_name, event)

    def _register_rows(self, names: Iterable[str]) -> None:
        """Writing a field of an unknown row creates the row."""
        for name in names:
            if not name.startswith(REPEATING_PREFIX):
                continue
            parsed = parse_repeat_name(name)
            if parsed and parsed[2]:
                section, row_id, _field = parsed
                ids = self.sections.setdefault(section, [])
                if row_id not in ids:
                    ids.append(row_id)

    @staticmethod
    def _encode(number: int, width: int) -> str:
        digits = []
        base = len(_ROW_ID_ALPHABET)
        for _ in range(width):
            number, remainder = divmod(number, base)
            digits.append(_ROW_ID_ALPHABET[remainder])
        return "".join(reversed(digits))

    def attribute_writes(self) -> List[HostWrite]:
        return [w for w in self.write_log if w.kind == "attributes"]

    def order_writes(self) -> List[HostWrite]:
        return [w for w in self.write_log if w.kind == "section_order"]
