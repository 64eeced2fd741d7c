"""
sheetcascade/declarations/builder.py - Cascade registry builder

Accumulates TriggerNodes while UI elements are declared. Declaring the same
logical node more than once merges the declarations:

    triggered_funcs / affects   union (order preserving, deduplicated)
    calculation / initial_func  first write wins
    listener wiring             filled only when absent (first write wins)

Usage:
    builder = CascadeRegistryBuilder()
    builder.declare_input("strength", "number", trigger={"affects": ["strength_mod"]})
    with builder.repeater("gear"):
        builder.declare_input("weight", "number", trigger={"triggered_funcs": ["calcLoad"]})
    config = builder.build("my-sheet", 1, handlers)
"""

from __future__ import annotations
from contextlib import contextmanager
from typing import Any, Dict, Iterator, List, Mapping, Optional, Union
import logging

from sheetcascade.core.enums import NodeKind, TYPE_DEFAULTS
from sheetcascade.core.naming import (
    REPEATING_PREFIX,
    ROW_PLACEHOLDER,
    action_button_name,
    action_input_name,
    generic_prefix,
    parse_repeat_name,
    replace_spaces,
    strip_type_prefix,
    to_section_name,
)
from sheetcascade.core.trigger import TriggerNode
from sheetcascade.declarations.registry import (
    CascadeRegistry,
    RepeatingSectionDescriptor,
    SheetConfiguration,
)
from sheetcascade.declarations.schemas import ElementDescriptor, TriggerDefinition
from sheetcascade.errors import (
    ConfigurationFrozen,
    MissingRadioGroupName,
    NestedRepeaterDeclaration,
)

logger = logging.getLogger("declarations.builder")

TriggerLike = Union[TriggerDefinition, Mapping[str, Any], None]

DEFAULT_LISTENER_FUNC = "accessSheet"


def _union(existing: List[str], incoming: Optional[List[str]]) -> List[str]:
    merged = list(existing)
    for item in incoming or []:
        if item not in merged:
            merged.append(item)
    return merged


def _section_name(name: str) -> str:
    """Full section name for a declared repeater: "gear list" -> "repeating_gear-list"."""
    name = strip_type_prefix(name.strip())
    if name.startswith(REPEATING_PREFIX):
        name = name[len(REPEATING_PREFIX):]
    return to_section_name(action_button_name(name))


def _as_trigger(trigger: TriggerLike) -> Optional[TriggerDefinition]:
    if trigger is None or isinstance(trigger, TriggerDefinition):
        return trigger
    return TriggerDefinition.model_validate(dict(trigger))


class CascadeRegistryBuilder:
    """
    Mutable registry used during the declaration pass.

    Closed by build(); any later declaration raises ConfigurationFrozen.
    """

    def __init__(self):
        self._nodes: Dict[str, TriggerNode] = {}
        self._sections: Dict[str, RepeatingSectionDescriptor] = {}
        self._action_attributes: List[str] = []

        # Generic row prefix of the enclosing repeater, e.g. repeating_gear_$X_
        self._repeater: Optional[str] = None
        self._radio_group: Optional[str] = None
        self._closed = False

        self._seed()

    def _seed(self) -> None:
        self._nodes["attr_character_name"] = TriggerNode(
            name="character_name",
            kind=NodeKind.ATTRIBUTE,
            value_type="text",
            default_value="",
            triggered_funcs=["setActionCalls"],
            listener="change:character_name",
            listener_func=DEFAULT_LISTENER_FUNC,
        )

    # =========================================================================
    # Core registration
    # =========================================================================

    def register_or_merge(
        self,
        descriptor: Union[ElementDescriptor, Mapping[str, Any]],
    ) -> Optional[TriggerNode]:
        """
        Register one declared element, merging into an existing node.

        Returns the stored node, or None for elements that carry no name
        (nothing is registered for them).
        """
        self._check_open()
        if not isinstance(descriptor, ElementDescriptor):
            descriptor = ElementDescriptor.model_validate(dict(descriptor))

        kind = NodeKind.from_element_type(descriptor.element_type)
        raw_name = descriptor.name
        if descriptor.element_type == "radio" and not raw_name:
            raw_name = self._radio_group
            if not raw_name:
                raise MissingRadioGroupName()
        if not raw_name:
            return None

        name = self._canonical_name(raw_name, kind)
        key = kind.key(name)
        trigger = descriptor.trigger

        existing = self._nodes.get(key)
        if existing is None:
            node = self._create(name, kind, descriptor, trigger)
            self._nodes[key] = node
            logger.debug(f"Registered {key}")
        else:
            node = self._merge(existing, descriptor, trigger)
            logger.debug(f"Merged declaration into {key}")

        if kind is NodeKind.ATTRIBUTE and node.is_repeating:
            self._add_field(node.name)
        return node

    def _canonical_name(self, raw_name: str, kind: NodeKind) -> str:
        name = strip_type_prefix(raw_name.strip())

        if kind is NodeKind.FIELDSET:
            return _section_name(name)

        canonical_field = action_button_name if kind.is_button else replace_spaces

        if name.startswith(REPEATING_PREFIX):
            parsed = parse_repeat_name(name)
            if parsed and parsed[2]:
                section, _row, field_name = parsed
                return f"{section}_{ROW_PLACEHOLDER}_{canonical_field(field_name)}"

        name = canonical_field(name)
        if self._repeater:
            return f"{self._repeater}{name}"
        return name

    def _create(
        self,
        name: str,
        kind: NodeKind,
        descriptor: ElementDescriptor,
        trigger: Optional[TriggerDefinition],
    ) -> TriggerNode:
        node = TriggerNode(name=name, kind=kind, value_type=descriptor.element_type)
        if kind is NodeKind.ATTRIBUTE:
            node.default_value = self._default_for(descriptor, trigger)

        if trigger is None:
            return node

        node.affects = _union([], [replace_spaces(a) for a in trigger.affects or []])
        node.triggered_funcs = _union([], trigger.triggered_funcs)
        node.add_funcs = _union([], trigger.add_funcs)
        node.initial_func = trigger.initial_func
        node.calculation = trigger.calculation

        if trigger.activates_listener():
            node.listener = trigger.listener or self._default_listener(node)
            node.listener_func = trigger.listener_func or DEFAULT_LISTENER_FUNC
        return node

    def _merge(
        self,
        node: TriggerNode,
        descriptor: ElementDescriptor,
        trigger: Optional[TriggerDefinition],
    ) -> TriggerNode:
        # A checked radio supplies the group's default
        if descriptor.element_type == "radio" and descriptor.default_checked:
            if descriptor.default_value is not None:
                node.default_value = descriptor.default_value

        if trigger is None:
            return node

        if node.kind is NodeKind.ATTRIBUTE:
            node.triggered_funcs = _union(node.triggered_funcs, trigger.triggered_funcs)
            node.affects = _union(
                node.affects, [replace_spaces(a) for a in trigger.affects or []]
            )
            if node.calculation is None:
                node.calculation = trigger.calculation
        if node.initial_func is None:
            node.initial_func = trigger.initial_func
        node.add_funcs = _union(node.add_funcs, trigger.add_funcs)

        if trigger.listener_func or trigger.triggered_funcs or trigger.affects:
            if not node.listener:
                node.listener = trigger.listener or self._default_listener(node)
            if not node.listener_func:
                node.listener_func = trigger.listener_func or DEFAULT_LISTENER_FUNC
        return node

    @staticmethod
    def _default_for(
        descriptor: ElementDescriptor,
        trigger: Optional[TriggerDefinition],
    ) -> Union[int, float, str]:
        if trigger is not None and trigger.default_value is not None:
            return trigger.default_value
        if descriptor.element_type == "checkbox":
            if not descriptor.default_checked:
                return 0
            return descriptor.default_value if descriptor.default_value is not None else 1
        if descriptor.element_type == "radio" and not descriptor.default_checked:
            return TYPE_DEFAULTS["radio"]
        if descriptor.default_value is not None:
            return descriptor.default_value
        return TYPE_DEFAULTS.get(descriptor.element_type, "")

    @staticmethod
    def _default_listener(node: TriggerNode) -> str:
        """Host event for a node: change:repeating_gear:weight, clicked:roll-it, remove:repeating_gear."""
        event_type = node.kind.event_type
        if node.kind is NodeKind.FIELDSET:
            return f"{event_type}:{node.name}"
        parsed = parse_repeat_name(node.name) if node.is_repeating else None
        if parsed and parsed[2]:
            return f"{event_type}:{parsed[0]}:{parsed[2]}"
        return f"{event_type}:{node.name}"

    def _add_field(self, name: str) -> None:
        parsed = parse_repeat_name(name)
        if not parsed or not parsed[2]:
            return
        section, _row, field_name = parsed
        descriptor = self._sections.setdefault(
            section, RepeatingSectionDescriptor(section=section)
        )
        descriptor.add_field(field_name)

    # =========================================================================
    # Declaration contexts
    # =========================================================================

    @contextmanager
    def repeater(self, name: str, trigger: TriggerLike = None) -> Iterator[RepeatingSectionDescriptor]:
        """
        Declare a repeating section; elements declared inside belong to it.

        Raises:
            NestedRepeaterDeclaration: when already inside a repeater
        """
        self._check_open()
        if self._repeater:
            raise NestedRepeaterDeclaration(name, to_section_name(self._repeater))

        section = _section_name(name)
        descriptor = self._sections.setdefault(
            section, RepeatingSectionDescriptor(section=section)
        )
        if trigger is not None:
            self.register_or_merge(
                ElementDescriptor(name=section, element_type="fieldset", trigger=_as_trigger(trigger))
            )

        self._repeater = generic_prefix(section)
        try:
            yield descriptor
        finally:
            self._repeater = None

    @contextmanager
    def custom_control_repeater(self, name: str, trigger: TriggerLike = None) -> Iterator[RepeatingSectionDescriptor]:
        """Repeater with an add-<section> action button wired to addItem."""
        self.declare_action(f"add {name}", trigger={"listener_func": "addItem"})
        with self.repeater(name, trigger) as descriptor:
            yield descriptor

    @contextmanager
    def radio_group(self, name: str) -> Iterator[str]:
        """Radios declared inside without a name join this group."""
        previous = self._radio_group
        self._radio_group = name
        try:
            yield name
        finally:
            self._radio_group = previous

    @property
    def current_repeater(self) -> Optional[str]:
        return self._repeater

    # =========================================================================
    # Convenience declarations
    # =========================================================================

    def declare_input(
        self,
        name: Optional[str],
        input_type: str = "text",
        default_value: Optional[Union[int, float, str]] = None,
        default_checked: Optional[bool] = None,
        trigger: TriggerLike = None,
    ) -> Optional[TriggerNode]:
        return self.register_or_merge(
            ElementDescriptor(
                name=name,
                element_type=input_type,
                default_value=default_value,
                default_checked=default_checked,
                trigger=_as_trigger(trigger),
            )
        )

    def declare_action(self, name: str, trigger: TriggerLike = None) -> Optional[TriggerNode]:
        return self.register_or_merge(
            ElementDescriptor(name=name, element_type="action", trigger=_as_trigger(trigger))
        )

    def declare_roll(self, name: str, trigger: TriggerLike = None) -> Optional[TriggerNode]:
        """Roll buttons are only registered when they carry a trigger."""
        if trigger is None:
            return None
        return self.register_or_merge(
            ElementDescriptor(name=name, element_type="roll", trigger=_as_trigger(trigger))
        )

    def declare_roller(self, name: str, trigger: TriggerLike = None) -> Optional[TriggerNode]:
        """
        Declare a roller: hidden action button plus the hidden input that
        stores its ability call.

        Returns the action button node.
        """
        attr_name = replace_spaces(action_input_name(name))
        self.add_action_attribute(f"{self._repeater or ''}{attr_name}")
        node = self.declare_action(attr_name, trigger or {"listener_func": "initiateRoll"})
        self.declare_input(attr_name, "hidden")
        return node

    def add_action_attribute(self, name: str) -> None:
        self._check_open()
        if name not in self._action_attributes:
            self._action_attributes.append(name)

    # =========================================================================
    # Build
    # =========================================================================

    def get(self, key: str) -> Optional[TriggerNode]:
        return self._nodes.get(key)

    @property
    def sections(self) -> List[RepeatingSectionDescriptor]:
        return list(self._sections.values())

    @property
    def action_attributes(self) -> List[str]:
        return list(self._action_attributes)

    def __len__(self) -> int:
        return len(self._nodes)

    def build(self, name: str, version: Union[int, float] = 0, handlers=None) -> SheetConfiguration:
        """Freeze everything declared so far into a SheetConfiguration."""
        self._check_open()
        if handlers is None:
            from sheetcascade.kernel.handlers import HandlerRegistry
            handlers = HandlerRegistry()
        handlers.freeze()

        config = SheetConfiguration(
            name=name,
            version=version,
            registry=CascadeRegistry(self._nodes),
            sections=tuple(
                RepeatingSectionDescriptor(section=d.section, fields=list(d.fields))
                for d in self._sections.values()
            ),
            action_attributes=tuple(self._action_attributes),
            handlers=handlers,
        )
        self._closed = True
        logger.info(
            f"Built sheet {name} v{version}: {len(self._nodes)} nodes, "
            f"{len(self._sections)} repeating sections"
        )
        return config

    def _check_open(self) -> None:
        if self._closed:
            raise ConfigurationFrozen("Registry builder is closed; declarations must precede build()")
