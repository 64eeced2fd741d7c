"""
transactions/ - Attribute transactions

One AttributeTransaction per host event: reads and writes during propagation,
then exactly one commit.
"""

from .schemas import (
    TransactionStatus,
    StateChange,
)

from .proxy import (
    AttributeTransaction,
    decode_row_order,
)

__all__ = [
    "TransactionStatus",
    "StateChange",
    "AttributeTransaction",
    "decode_row_order",
]
