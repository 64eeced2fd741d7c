"""
dependencies/ - Cascade expansion and audit

Turns the templated cascade into concrete per-row nodes and checks the
affects graph for cycles.
"""

from .expansion import (
    ExpandedCascade,
    expand_affects,
    expand_cascade,
)

from .audit import (
    build_affects_graph,
    find_cascade_cycles,
    affected_closure,
    audit_cascade,
    graph_statistics,
)

__all__ = [
    # Expansion
    "ExpandedCascade",
    "expand_affects",
    "expand_cascade",
    # Audit
    "build_affects_graph",
    "find_cascade_cycles",
    "affected_closure",
    "audit_cascade",
    "graph_statistics",
]
