"""
errors/ - Error Taxonomy & Diagnostics

Fatal declaration errors are exceptions; non-fatal runtime conditions are
reported through a DiagnosticChannel.
"""

from .taxonomy import (
    ErrorSeverity,
    ErrorCategory,
    ErrorCode,
    Diagnostic,
    CascadeError,
    NestedRepeaterDeclaration,
    MissingRadioGroupName,
    ConfigurationFrozen,
)

from .diagnostics import (
    DiagnosticReport,
    DiagnosticChannel,
)

__all__ = [
    # Taxonomy
    "ErrorSeverity",
    "ErrorCategory",
    "ErrorCode",
    "Diagnostic",
    "CascadeError",
    "NestedRepeaterDeclaration",
    "MissingRadioGroupName",
    "ConfigurationFrozen",
    # Diagnostics
    "DiagnosticReport",
    "DiagnosticChannel",
]
