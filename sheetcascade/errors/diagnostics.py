"""
errors/diagnostics.py - Diagnostic channel

Collects non-fatal diagnostics separately from normal logging so callers
(and tests) can assert on them. Every report is also mirrored to the
"diagnostics" logger.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional
from datetime import datetime
import logging
import uuid

from .taxonomy import Diagnostic, ErrorCode, ErrorSeverity

logger = logging.getLogger("diagnostics")

_LOG_LEVELS = {
    ErrorSeverity.DEBUG: logging.DEBUG,
    ErrorSeverity.INFO: logging.INFO,
    ErrorSeverity.WARNING: logging.WARNING,
    ErrorSeverity.ERROR: logging.ERROR,
    ErrorSeverity.CRITICAL: logging.CRITICAL,
}


@dataclass
class DiagnosticReport:
    """Aggregated diagnostic report."""

    report_id: str = ""
    created_at: datetime = field(default_factory=datetime.utcnow)

    total: int = 0
    by_severity: Dict[str, int] = field(default_factory=dict)
    by_code: Dict[str, int] = field(default_factory=dict)

    summary: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {
            "report_id": self.report_id,
            "total": self.total,
            "by_severity": self.by_severity,
            "by_code": self.by_code,
            "summary": self.summary,
        }


class DiagnosticChannel:
    """
    Collects diagnostics from the builder, the transaction proxy and the runner.
    """

    def __init__(self, max_entries: int = 1000):
        self._diagnostics: List[Diagnostic] = []
        self._max_entries = max_entries

    def report(
        self,
        code: ErrorCode,
        message: str,
        severity: ErrorSeverity = ErrorSeverity.WARNING,
        source: str = "",
        path: Optional[str] = None,
        actual_value: Any = None,
        transaction_id: Optional[str] = None,
    ) -> Diagnostic:
        """Record a diagnostic and mirror it to the log."""
        diagnostic = Diagnostic(
            code=code,
            severity=severity,
            message=message,
            source=source,
            path=path,
            actual_value=actual_value,
            transaction_id=transaction_id,
        )
        self._diagnostics.append(diagnostic)

        if len(self._diagnostics) > self._max_entries:
            self._diagnostics = self._diagnostics[-self._max_entries:]

        logger.log(_LOG_LEVELS[severity], f"[{code.name}] {message}")
        return diagnostic

    def by_code(self, code: ErrorCode) -> List[Diagnostic]:
        """Get diagnostics with a given code."""
        return [d for d in self._diagnostics if d.code == code]

    def by_severity(self, severity: ErrorSeverity) -> List[Diagnostic]:
        """Get diagnostics with a given severity."""
        return [d for d in self._diagnostics if d.severity == severity]

    def count(self, code: Optional[ErrorCode] = None) -> int:
        if code is None:
            return len(self._diagnostics)
        return len(self.by_code(code))

    def has(self, code: ErrorCode) -> bool:
        return any(d.code == code for d in self._diagnostics)

    def all(self) -> List[Diagnostic]:
        return self._diagnostics.copy()

    def summary(self) -> DiagnosticReport:
        """Generate aggregated report."""
        report = DiagnosticReport(
            report_id=str(uuid.uuid4())[:8],
            total=len(self._diagnostics),
        )

        for severity in ErrorSeverity:
            count = len(self.by_severity(severity))
            if count > 0:
                report.by_severity[severity.value] = count

        for diagnostic in self._diagnostics:
            name = diagnostic.code.name
            report.by_code[name] = report.by_code.get(name, 0) + 1

        if report.by_severity.get("error", 0) > 0:
            report.summary = f"{report.by_severity['error']} error(s) reported"
        elif report.by_severity.get("warning", 0) > 0:
            report.summary = f"{report.by_severity['warning']} warning(s) reported"
        else:
            report.summary = "No significant issues"

        return report

    def clear(self) -> None:
        """Clear all diagnostics."""
        self._diagnostics.clear()

    def __len__(self) -> int:
        return len(self._diagnostics)
