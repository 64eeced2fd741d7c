"""
dependencies/audit.py - Cascade cycle audit

Builds a networkx digraph of affects edges and reports cycles. Cycles are
never rejected: propagation over a cyclic cascade is allowed to loop unless
the runner's step limit is configured. The audit only surfaces them as
CASCADE_CYCLE diagnostics at startup.
"""

from __future__ import annotations
from typing import Any, Dict, List, Mapping, Optional
import logging

import networkx as nx

from sheetcascade.core.enums import NodeKind
from sheetcascade.core.trigger import TriggerNode
from sheetcascade.errors import DiagnosticChannel, ErrorCode, ErrorSeverity

logger = logging.getLogger("dependencies.audit")


def build_affects_graph(cascade: Mapping[str, TriggerNode]) -> nx.DiGraph:
    """
    Directed graph of node name -> affected node name.

    Nodes are unprefixed names since affects entries are unprefixed.
    """
    graph = nx.DiGraph()
    for node in cascade.values():
        if node.kind is NodeKind.FIELDSET:
            continue
        graph.add_node(node.name, kind=node.kind.value, calculation=node.calculation)
        for affected in node.affects:
            graph.add_edge(node.name, affected)
    return graph


def find_cascade_cycles(cascade: Mapping[str, TriggerNode]) -> List[List[str]]:
    """Every elementary affects cycle, including self references."""
    graph = build_affects_graph(cascade)
    cycles = [sorted_cycle(cycle) for cycle in nx.simple_cycles(graph)]
    return sorted(cycles)


def sorted_cycle(cycle: List[str]) -> List[str]:
    """Rotate a cycle so it starts at its smallest name."""
    if not cycle:
        return cycle
    start = cycle.index(min(cycle))
    return cycle[start:] + cycle[:start]


def affected_closure(cascade: Mapping[str, TriggerNode], name: str) -> List[str]:
    """Every node reachable from name through affects edges."""
    graph = build_affects_graph(cascade)
    if name not in graph:
        return []
    return sorted(nx.descendants(graph, name))


def audit_cascade(
    cascade: Any,
    diagnostics: Optional[DiagnosticChannel] = None,
) -> List[List[str]]:
    """
    Report each affects cycle as a CASCADE_CYCLE warning.

    Args:
        cascade: CascadeRegistry or any mapping of key -> TriggerNode
        diagnostics: Channel receiving the warnings

    Returns:
        The cycles found
    """
    cycles = find_cascade_cycles(cascade)
    for cycle in cycles:
        path = " -> ".join(cycle + cycle[:1])
        if diagnostics is not None:
            diagnostics.report(
                ErrorCode.CASCADE_CYCLE,
                f"Cascade cycle: {path}",
                severity=ErrorSeverity.WARNING,
                source="audit",
                path=cycle[0],
            )
        else:
            logger.warning(f"Cascade cycle: {path}")

    if not cycles:
        logger.debug(f"No cascade cycles among {len(cascade)} nodes")
    return cycles


def graph_statistics(cascade: Mapping[str, TriggerNode]) -> Dict[str, Any]:
    """Summary numbers for the inspect command."""
    graph = build_affects_graph(cascade)
    return {
        "node_count": graph.number_of_nodes(),
        "edge_count": graph.number_of_edges(),
        "is_acyclic": nx.is_directed_acyclic_graph(graph),
        "roots": sorted(n for n in graph.nodes if graph.in_degree(n) == 0 and graph.out_degree(n) > 0),
    }
