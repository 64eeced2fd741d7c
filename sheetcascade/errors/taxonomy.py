"""
errors/taxonomy.py - Error classification system

Structured diagnostics for the cascade engine. Declaration-time problems are
raised as exceptions; everything that can happen while a sheet event is being
propagated is reported as a Diagnostic and never halts propagation.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from typing import Any, Dict, Optional
from datetime import datetime
from enum import Enum
import uuid


class ErrorSeverity(Enum):
    """Error severity levels."""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class ErrorCategory(Enum):
    """Error categories."""
    # Attribute value errors (1xxx)
    VALUE = "value"

    # Handler lookup errors (2xxx)
    HANDLER = "handler"

    # Event resolution / propagation (3xxx)
    PROPAGATION = "propagation"

    # Cascade structure (4xxx)
    CASCADE = "cascade"

    # Declaration errors (5xxx)
    DECLARATION = "declaration"

    # Configuration errors (6xxx)
    CONFIGURATION = "configuration"


class ErrorCode(Enum):
    """Specific error codes."""

    # Value (1xxx)
    INVALID_ATTRIBUTE_VALUE = 1001

    # Handler (2xxx)
    UNKNOWN_HANDLER = 2001
    DUPLICATE_HANDLER = 2002
    INVALID_HANDLER = 2003

    # Propagation (3xxx)
    UNMODELED_EVENT = 3001
    MALFORMED_ROW_NAME = 3002
    PROPAGATION_LIMIT = 3003

    # Cascade (4xxx)
    CASCADE_CYCLE = 4001

    # Declaration (5xxx)
    NESTED_REPEATER = 5001
    MISSING_RADIO_GROUP_NAME = 5002

    # Configuration (6xxx)
    CONFIG_FROZEN = 6001


CODE_CATEGORY: Dict[ErrorCode, ErrorCategory] = {
    ErrorCode.INVALID_ATTRIBUTE_VALUE: ErrorCategory.VALUE,
    ErrorCode.UNKNOWN_HANDLER: ErrorCategory.HANDLER,
    ErrorCode.DUPLICATE_HANDLER: ErrorCategory.HANDLER,
    ErrorCode.INVALID_HANDLER: ErrorCategory.HANDLER,
    ErrorCode.UNMODELED_EVENT: ErrorCategory.PROPAGATION,
    ErrorCode.MALFORMED_ROW_NAME: ErrorCategory.PROPAGATION,
    ErrorCode.PROPAGATION_LIMIT: ErrorCategory.PROPAGATION,
    ErrorCode.CASCADE_CYCLE: ErrorCategory.CASCADE,
    ErrorCode.NESTED_REPEATER: ErrorCategory.DECLARATION,
    ErrorCode.MISSING_RADIO_GROUP_NAME: ErrorCategory.DECLARATION,
    ErrorCode.CONFIG_FROZEN: ErrorCategory.CONFIGURATION,
}


@dataclass
class Diagnostic:
    """Structured, non-fatal condition reported during a build or a transaction."""

    diagnostic_id: str = field(default_factory=lambda: uuid.uuid4().hex[:8])

    code: ErrorCode = ErrorCode.UNKNOWN_HANDLER
    severity: ErrorSeverity = ErrorSeverity.WARNING

    message: str = ""

    # Context
    source: str = ""  # Component that reported it
    path: Optional[str] = None  # Attribute / node name if applicable

    # Values
    actual_value: Any = None

    created_at: datetime = field(default_factory=datetime.utcnow)
    transaction_id: Optional[str] = None

    @property
    def category(self) -> ErrorCategory:
        return CODE_CATEGORY[self.code]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "diagnostic_id": self.diagnostic_id,
            "code": self.code.name,
            "category": self.category.value,
            "severity": self.severity.value,
            "message": self.message,
            "source": self.source,
            "path": self.path,
            "transaction_id": self.transaction_id,
        }


# =============================================================================
# EXCEPTIONS
# =============================================================================

class CascadeError(Exception):
    """Base exception for fatal cascade engine errors."""

    code: ErrorCode = ErrorCode.CONFIG_FROZEN

    def __init__(self, message: str, path: Optional[str] = None):
        self.path = path
        super().__init__(message)


class NestedRepeaterDeclaration(CascadeError):
    """Raised when a repeating section is declared inside another one."""

    code = ErrorCode.NESTED_REPEATER

    def __init__(self, section: str, parent: str):
        self.section = section
        self.parent = parent
        super().__init__(
            f"Cannot nest repeating sections. Attempted to nest \"{section}\" in \"{parent}\"",
            path=section,
        )


class MissingRadioGroupName(CascadeError):
    """Raised when a radio input has neither a name nor an enclosing radio group."""

    code = ErrorCode.MISSING_RADIO_GROUP_NAME

    def __init__(self):
        super().__init__(
            "Radio input must have a name. Either provide a name, or declare it inside a radio group"
        )


class ConfigurationFrozen(CascadeError, RuntimeError):
    """Raised when a built (frozen) registry or handler map is modified."""

    code = ErrorCode.CONFIG_FROZEN
