"""
kernel/lifecycle.py - Repeating row lifecycle

Adding, removing and reordering rows of repeating sections, plus the
action-call bookkeeping that depends on the row set. Row lists feed template
expansion, so every change here is applied to the live `sections` mapping
before any further propagation in the same transaction.
"""

from __future__ import annotations
from typing import Dict, List, Mapping, Optional, TYPE_CHECKING
import logging
import re

from sheetcascade.core.enums import NodeKind
from sheetcascade.core.naming import (
    action_button_name,
    order_section,
    parse_trigger_name,
    to_section_name,
)
from sheetcascade.dependencies.expansion import expand_cascade
from sheetcascade.errors import DiagnosticChannel, ErrorCode

if TYPE_CHECKING:
    from sheetcascade.host.adapter import HostAdapter
    from sheetcascade.kernel.handlers import HandlerContext, HandlerRegistry
    from sheetcascade.transactions.proxy import AttributeTransaction

logger = logging.getLogger("kernel.lifecycle")

_ROW_RE = re.compile(r"^(repeating_[^_]+)_([^_]+)$")


# =============================================================================
# ROW CREATION
# =============================================================================

def generate_row(
    host: "HostAdapter",
    section: str,
    sections: Dict[str, List[str]],
    custom_prefix: Optional[str] = None,
) -> str:
    """
    Create a row id and append it to the live id list of section.

    Returns:
        Row prefix, e.g. repeating_gear_-Mxy12...
    """
    section = to_section_name(section)
    row_id = host.generate_row_id(custom_prefix)
    sections.setdefault(section, []).append(row_id)
    return f"{section}_{row_id}"


def add_row(
    section: str,
    context: "HandlerContext",
    host: "HostAdapter",
    handlers: "HandlerRegistry",
    custom_prefix: Optional[str] = None,
) -> str:
    """
    Add a row: seed its name field, refresh action calls, then run the
    section's add handlers with the new row in context.

    Returns:
        Row prefix of the new row
    """
    section = to_section_name(section)
    row = generate_row(host, section, context.sections, custom_prefix)
    logger.debug(f"addItem {section} {row}")
    if context.config is not None:
        context.cascade = expand_cascade(context.config.registry, context.sections)
        context.attributes.cascade = context.cascade

    context.attributes.set(f"{row}_name", "")
    set_action_calls(context)

    fieldset = None
    if context.config is not None:
        fieldset = context.config.registry.get(NodeKind.FIELDSET.key(section))
    if fieldset is not None:
        context.trigger = fieldset
        context.row = row
        for name in fieldset.add_funcs:
            func = handlers.add_funcs.get(name)
            if func is None:
                logger.debug(f"No add function named {name} for {section}")
                continue
            func(context)
    return row


# =============================================================================
# ROW REMOVAL / ORDER
# =============================================================================

def remove_row(
    row: str,
    attributes: "AttributeTransaction",
    sections: Dict[str, List[str]],
    host: Optional["HostAdapter"] = None,
    diagnostics: Optional[DiagnosticChannel] = None,
) -> bool:
    """
    Remove a row from the transaction, the live id list and the host.

    Malformed row names are ignored so a bad call cannot wipe attributes.

    Returns:
        True if the row was removed
    """
    match = _ROW_RE.match(row)
    if not match:
        if diagnostics is not None:
            diagnostics.report(
                ErrorCode.MALFORMED_ROW_NAME,
                f"Cannot remove {row}: not a repeating row name",
                source="lifecycle",
                path=row,
                transaction_id=attributes.transaction_id,
            )
        else:
            logger.warning(f"Cannot remove {row}: not a repeating row name")
        return False

    logger.debug(f"removing {row}")
    prefix = f"{row}_"
    for name in attributes.names():
        if name.startswith(prefix):
            attributes.delete(name)

    section, row_id = match.groups()
    sections[section] = [i for i in sections.get(section, []) if i != row_id]
    if host is not None:
        host.remove_row(row)
    return True


def reorder_section(
    attributes: "AttributeTransaction",
    section: str,
    ids: List[str],
) -> None:
    """Schedule a new row order; committed as its own host call."""
    attributes.set_row_order(section, ids)


def order_sections(
    attributes: "AttributeTransaction",
    sections: Dict[str, List[str]],
) -> None:
    """Sort every live id list to match the stored row order."""
    for section, ids in sections.items():
        stored = attributes.get_row_order(section)
        sections[section] = order_section(stored, ids)
        attributes.seed_row_order(section, sections[section])


# =============================================================================
# ACTION CALLS
# =============================================================================

def action_calls(
    action_attributes: List[str],
    character_name: str,
    sections: Mapping[str, List[str]],
) -> Dict[str, str]:
    """
    Ability call text for every action attribute.

    repeating_gear_$X_attack_action on row -r1 becomes
    %{<character>|repeating_gear_-r1_attack-action}
    """
    calls: Dict[str, str] = {}
    for base in action_attributes:
        parsed = parse_trigger_name(base)
        if parsed is None:
            continue
        section, _row, field_name = parsed
        field_action = action_button_name(field_name)
        if section:
            for row_id in sections.get(section) or []:
                calls[f"{section}_{row_id}_{field_name}"] = (
                    f"%{{{character_name}|{section}_{row_id}_{field_action}}}"
                )
        else:
            calls[field_name] = f"%{{{character_name}|{field_action}}}"
    return calls


def set_action_calls(context: "HandlerContext") -> None:
    """Write the ability call of every declared action attribute."""
    if context.config is None:
        return
    character_name = context.attributes.get("character_name")
    calls = action_calls(
        list(context.config.action_attributes),
        "" if character_name is None else str(character_name),
        context.sections,
    )
    for name, value in calls.items():
        context.attributes.set(name, value)
