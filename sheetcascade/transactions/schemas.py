"""
transactions/schemas.py - Transaction data structures
"""

from __future__ import annotations
from dataclasses import dataclass, field
from typing import Any, Dict
from datetime import datetime
from enum import Enum


class TransactionStatus(Enum):
    """Attribute transaction status."""
    ACTIVE = "active"
    COMMITTED = "committed"
    DROPPED = "dropped"


@dataclass
class StateChange:
    """Record of a single pending attribute write."""

    change_id: str = ""
    transaction_id: str = ""

    path: str = ""
    old_value: Any = None
    new_value: Any = None

    source: str = ""
    timestamp: datetime = field(default_factory=datetime.utcnow)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "change_id": self.change_id,
            "transaction_id": self.transaction_id,
            "path": self.path,
            "old_value": self.old_value,
            "new_value": self.new_value,
            "source": self.source,
        }
