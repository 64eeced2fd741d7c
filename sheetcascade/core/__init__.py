"""
sheetcascade Core Module

Trigger model shared by every layer:
- NodeKind: tagged node variant (prefix and event type derivation)
- TriggerNode: one cascade entry
- naming: attribute / trigger name parsing helpers
"""

from sheetcascade.core.enums import (
    NodeKind,
    NUMERIC_VALUE_TYPES,
    TYPE_DEFAULTS,
)
from sheetcascade.core.trigger import TriggerNode

__all__ = [
    "NodeKind",
    "NUMERIC_VALUE_TYPES",
    "TYPE_DEFAULTS",
    "TriggerNode",
]
