"""
dependencies/expansion.py - Template expansion

Expands the templated cascade (one entry per repeating field) against the
live row ids of a sheet instance, producing one concrete node per row.

The expanded cascade is rebuilt for every event; rows can be added or
removed between events, so nothing here is cached.
"""

from __future__ import annotations
from typing import Dict, List, Mapping, Optional
import logging

from sheetcascade.core.enums import NodeKind
from sheetcascade.core.naming import apply_row_id, parse_repeat_name
from sheetcascade.core.trigger import TriggerNode

logger = logging.getLogger("dependencies.expansion")

ExpandedCascade = Dict[str, TriggerNode]


def _add_all_rows(
    affected: str,
    expanded: List[str],
    sections: Mapping[str, List[str]],
) -> None:
    """Fan a repeating reference out to every live row of its section."""
    parsed = parse_repeat_name(affected)
    if not parsed or not parsed[2]:
        expanded.append(affected)
        return
    section, _row, field_name = parsed
    for row_id in sections.get(section) or []:
        expanded.append(f"{section}_{row_id}_{field_name}")


def _dedupe(names: List[str]) -> List[str]:
    return list(dict.fromkeys(names))


def expand_affects(
    affects: List[str],
    sections: Mapping[str, List[str]],
    section: Optional[str] = None,
    row_id: Optional[str] = None,
) -> List[str]:
    """
    Rewrite an affects list for one concrete node.

    Args:
        affects: Templated affects entries
        sections: Live row ids by section name
        section: Section of the node being expanded (None for non-repeating)
        row_id: Row id of the node being expanded

    Returns:
        Concrete, deduplicated affects
    """
    expanded: List[str] = []
    for affected in affects:
        affected_section = parse_repeat_name(affected)
        if affected_section is None or not affected.startswith("repeating_"):
            expanded.append(affected)
        elif section is not None and affected_section[0] == section:
            expanded.append(apply_row_id(affected, row_id))
        else:
            _add_all_rows(affected, expanded, sections)
    return _dedupe(expanded)


def expand_cascade(
    registry: Mapping[str, TriggerNode],
    sections: Mapping[str, List[str]],
) -> ExpandedCascade:
    """
    Expand every templated node against the live row ids.

    Args:
        registry: Templated cascade (prefixed key -> node)
        sections: Live row ids by section name

    Returns:
        Concrete cascade keyed by prefixed concrete name
    """
    expanded: ExpandedCascade = {}

    for key, node in registry.items():
        if node.kind is NodeKind.FIELDSET:
            expanded[key] = node.clone()
            continue

        parsed = parse_repeat_name(node.name) if node.is_repeating else None
        if not parsed or not parsed[2]:
            expanded[key] = node.clone(
                affects=expand_affects(node.affects, sections)
            )
            continue

        section, _row, field_name = parsed
        for row_id in sections.get(section) or []:
            name = f"{section}_{row_id}_{field_name}"
            expanded[node.kind.key(name)] = node.clone(
                name=name,
                affects=expand_affects(node.affects, sections, section, row_id),
            )

    logger.debug(f"Expanded {len(registry)} templated nodes into {len(expanded)}")
    return expanded
