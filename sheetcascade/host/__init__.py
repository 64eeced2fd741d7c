"""
host/ - Host platform adapters
"""

from .adapter import (
    HostAdapter,
    HostWrite,
    InMemoryHost,
    listener_names,
)

__all__ = [
    "HostAdapter",
    "HostWrite",
    "InMemoryHost",
    "listener_names",
]
