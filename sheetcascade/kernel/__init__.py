"""
kernel/ - Propagation kernel

Handler registry, host events, the propagation runner, repeating row
lifecycle and the sheet session that ties them to a host.
"""

from .events import (
    SheetEvent,
    CLICK_PREFIX,
    REMOVE_PREFIX,
    SHEET_OPENED,
)

from .handlers import (
    HandlerContext,
    HandlerFunc,
    ListenerFunc,
    HandlerRegistry,
    HANDLER_TYPES,
)

from .lifecycle import (
    generate_row,
    add_row,
    remove_row,
    reorder_section,
    order_sections,
    action_calls,
    set_action_calls,
)

from .runner import (
    RunnerState,
    PropagationResult,
    PropagationRunner,
)

from .session import (
    SheetSession,
    ENGINE_LOGGERS,
)

__all__ = [
    # Events
    "SheetEvent",
    "CLICK_PREFIX",
    "REMOVE_PREFIX",
    "SHEET_OPENED",
    # Handlers
    "HandlerContext",
    "HandlerFunc",
    "ListenerFunc",
    "HandlerRegistry",
    "HANDLER_TYPES",
    # Lifecycle
    "generate_row",
    "add_row",
    "remove_row",
    "reorder_section",
    "order_sections",
    "action_calls",
    "set_action_calls",
    # Runner
    "RunnerState",
    "PropagationResult",
    "PropagationRunner",
    # Session
    "SheetSession",
    "ENGINE_LOGGERS",
]
