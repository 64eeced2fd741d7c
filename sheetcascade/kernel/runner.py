"""
kernel/runner.py - Propagation runner

Drives one host event through the expanded cascade:

    IDLE -> RESOLVING -> DISPATCHING -> QUEUED -> COMMITTING -> IDLE

Direct dispatch (the node that caused the event):
    1. always handlers
    2. initial_func
    3. triggered_funcs
    4. affects pushed onto the queue
    (calculation is not run for a direct edit, an unregistered one is reported)

Queue drain (nodes reached through affects, breadth order):
    1. triggered_funcs
    2. calculation, result written through the transaction
    3. affects pushed onto the queue
    (nodes of rows removed earlier in the event are skipped)

The transaction is committed exactly once when the queue is empty.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional, Callable
import logging
import time

from sheetcascade.core.enums import NodeKind
from sheetcascade.core.naming import parse_repeat_name
from sheetcascade.core.trigger import TriggerNode
from sheetcascade.declarations.registry import SheetConfiguration
from sheetcascade.errors import DiagnosticChannel, ErrorCode, ErrorSeverity
from sheetcascade.kernel.events import CLICK_PREFIX, REMOVE_PREFIX, SheetEvent
from sheetcascade.kernel.handlers import HandlerContext, HandlerRegistry
from sheetcascade.transactions.proxy import AttributeTransaction

logger = logging.getLogger("kernel.runner")


class RunnerState(Enum):
    """Propagation runner state."""
    IDLE = "idle"
    RESOLVING = "resolving"
    DISPATCHING = "dispatching"
    QUEUED = "queued"
    COMMITTING = "committing"


# =============================================================================
# PROPAGATION RESULT
# =============================================================================

@dataclass
class PropagationResult:
    """Outcome of propagating one event."""
    transaction_id: str
    event_name: str
    started_at: datetime = field(default_factory=datetime.utcnow)
    completed_at: Optional[datetime] = None

    # Key of the node that caused the event, None when unresolved
    trigger_key: Optional[str] = None

    # Node names in the order they were processed
    visited: List[str] = field(default_factory=list)

    # Values produced by calculations
    calculated: Dict[str, Any] = field(default_factory=dict)

    # Queued names with no node in the expanded cascade
    skipped: List[str] = field(default_factory=list)

    unknown_handlers: List[str] = field(default_factory=list)

    committed: bool = False
    aborted: bool = False

    total_time_ms: int = 0

    @property
    def resolved(self) -> bool:
        return self.trigger_key is not None

    def get_summary(self) -> Dict[str, Any]:
        return {
            "transaction_id": self.transaction_id,
            "event_name": self.event_name,
            "resolved": self.resolved,
            "visited": len(self.visited),
            "calculated": len(self.calculated),
            "committed": self.committed,
            "aborted": self.aborted,
            "total_time_ms": self.total_time_ms,
        }

    def to_dict(self) -> Dict[str, Any]:
        return {
            "transaction_id": self.transaction_id,
            "event_name": self.event_name,
            "started_at": self.started_at.isoformat(),
            "completed_at": self.completed_at.isoformat() if self.completed_at else None,
            "trigger_key": self.trigger_key,
            "visited": list(self.visited),
            "calculated": {k: v for k, v in self.calculated.items()},
            "skipped": list(self.skipped),
            "unknown_handlers": list(self.unknown_handlers),
            "committed": self.committed,
            "aborted": self.aborted,
            "total_time_ms": self.total_time_ms,
        }


# =============================================================================
# PROPAGATION RUNNER
# =============================================================================

class PropagationRunner:
    """
    Runs events against an expanded cascade.

    Usage:
        runner = PropagationRunner(config, diagnostics)
        result = runner.run(SheetEvent.change("strength"), attributes, sections, cascade)
    """

    def __init__(
        self,
        config: SheetConfiguration,
        diagnostics: Optional[DiagnosticChannel] = None,
        max_steps: Optional[int] = None,
    ):
        self.config = config
        self.handlers: HandlerRegistry = config.handlers or HandlerRegistry().freeze()
        self.diagnostics = diagnostics or DiagnosticChannel()
        self.max_steps = max_steps
        self._state = RunnerState.IDLE

    @property
    def state(self) -> RunnerState:
        return self._state

    # -------------------------------------------------------------------------
    # Resolution
    # -------------------------------------------------------------------------

    def resolve(
        self,
        event_name: str,
        cascade: Mapping[str, TriggerNode],
        removed: bool = False,
    ) -> Optional[TriggerNode]:
        """
        Node addressed by a raw event name.

        clicked: events look up act_ (then roll_), removals look up the
        section's fieldset_ node, anything else looks up attr_.
        """
        if removed:
            name = event_name[len(REMOVE_PREFIX):] if event_name.startswith(REMOVE_PREFIX) else event_name
            parsed = parse_repeat_name(name)
            section = parsed[0] if parsed else name
            return self._lookup(NodeKind.FIELDSET.key(section), cascade)

        if event_name.startswith(CLICK_PREFIX):
            button = event_name[len(CLICK_PREFIX):]
            return (
                self._lookup(NodeKind.ACTION_BUTTON.key(button), cascade)
                or self._lookup(NodeKind.ROLL_BUTTON.key(button), cascade)
            )

        return self._lookup(NodeKind.ATTRIBUTE.key(event_name), cascade)

    def resolve_event(
        self,
        event: SheetEvent,
        cascade: Mapping[str, TriggerNode],
    ) -> Optional[TriggerNode]:
        if event.is_removal:
            return self.resolve(event.source_attribute or event.trigger_name, cascade, removed=True)
        return self.resolve(event.event_name, cascade)

    @staticmethod
    def _lookup(key: str, cascade: Mapping[str, TriggerNode]) -> Optional[TriggerNode]:
        return cascade.get(key)

    # -------------------------------------------------------------------------
    # Run
    # -------------------------------------------------------------------------

    def run(
        self,
        event: SheetEvent,
        attributes: AttributeTransaction,
        sections: Dict[str, List[str]],
        cascade: Mapping[str, TriggerNode],
        vocal: bool = False,
        on_done: Optional[Callable[[], None]] = None,
    ) -> PropagationResult:
        """
        Propagate one event and commit the transaction.

        Handler exceptions drop the transaction and propagate to the caller.
        """
        result = PropagationResult(
            transaction_id=attributes.transaction_id,
            event_name=event.event_name,
        )
        start = time.perf_counter()

        self._state = RunnerState.RESOLVING
        trigger = self.resolve_event(event, cascade)
        if trigger is None:
            self.diagnostics.report(
                ErrorCode.UNMODELED_EVENT,
                f"{event.event_name} change detected. No trigger found",
                severity=ErrorSeverity.INFO,
                source="runner",
                path=event.event_name,
                transaction_id=attributes.transaction_id,
            )
            self._state = RunnerState.IDLE
            return self._finish(result, start)

        result.trigger_key = trigger.key
        logger.debug(f"[{attributes.transaction_id}] processing {trigger.key}")

        try:
            self._state = RunnerState.DISPATCHING
            context = self._context(trigger, attributes, sections, cascade, event)
            for func in self.handlers.always.values():
                func(context)
            if trigger.initial_func:
                self._call(trigger.initial_func, context, result)
            self._trigger_functions(context, result)
            if trigger.calculation:
                # Not run for a direct edit, but an unregistered name is still reported
                self._handler(trigger.calculation, trigger, attributes, result)
            result.visited.append(trigger.name)
            attributes.queue.extend(trigger.affects)

            self._state = RunnerState.QUEUED
            self._drain(attributes, sections, cascade, result)
        except Exception as e:
            attributes.drop(f"{type(e).__name__}: {e}")
            self._state = RunnerState.IDLE
            raise

        self._state = RunnerState.COMMITTING
        result.committed = attributes.commit(vocal=vocal, on_done=on_done)
        self._state = RunnerState.IDLE
        return self._finish(result, start)

    def _drain(
        self,
        attributes: AttributeTransaction,
        sections: Dict[str, List[str]],
        cascade: Mapping[str, TriggerNode],
        result: PropagationResult,
    ) -> None:
        steps = 0
        while attributes.queue:
            if self.max_steps is not None and steps >= self.max_steps:
                remaining = len(attributes.queue)
                attributes.queue.clear()
                result.aborted = True
                self.diagnostics.report(
                    ErrorCode.PROPAGATION_LIMIT,
                    f"Propagation stopped after {steps} steps; {remaining} queued names discarded",
                    severity=ErrorSeverity.ERROR,
                    source="runner",
                    path=result.trigger_key,
                    transaction_id=attributes.transaction_id,
                )
                return

            name = attributes.queue.popleft()
            steps += 1
            node = self.resolve(name, cascade)
            if node is None or _row_removed(node, sections):
                result.skipped.append(name)
                continue

            context = self._context(node, attributes, sections, cascade, None)
            self._trigger_functions(context, result)
            if node.calculation:
                func = self._handler(node.calculation, node, attributes, result)
                if func is not None:
                    value = func(context)
                    if attributes.set(node.name, value):
                        result.calculated[node.name] = value
            result.visited.append(node.name)
            attributes.queue.extend(node.affects)

    # -------------------------------------------------------------------------
    # Handlers
    # -------------------------------------------------------------------------

    def _context(
        self,
        trigger: TriggerNode,
        attributes: AttributeTransaction,
        sections: Dict[str, List[str]],
        cascade: Mapping[str, TriggerNode],
        event: Optional[SheetEvent],
    ) -> HandlerContext:
        return HandlerContext(
            attributes=attributes,
            sections=sections,
            cascade=cascade,
            trigger=trigger,
            event=event,
            config=self.config,
        )

    def _trigger_functions(self, context: HandlerContext, result: PropagationResult) -> None:
        for name in context.trigger.triggered_funcs:
            self._call(name, context, result)

    def _call(self, name: str, context: HandlerContext, result: PropagationResult) -> Any:
        func = self._handler(name, context.trigger, context.attributes, result)
        if func is None:
            return None
        logger.debug(f"calling {name} for {context.trigger.name}")
        return func(context)

    def _handler(
        self,
        name: str,
        node: TriggerNode,
        attributes: AttributeTransaction,
        result: PropagationResult,
    ):
        func = self.handlers.get(name)
        if func is None:
            result.unknown_handlers.append(name)
            self.diagnostics.report(
                ErrorCode.UNKNOWN_HANDLER,
                f"No function named {name} found. Not called for {node.name}",
                source="runner",
                path=node.name,
                transaction_id=attributes.transaction_id,
            )
        return func

    def _finish(self, result: PropagationResult, start: float) -> PropagationResult:
        result.completed_at = datetime.utcnow()
        result.total_time_ms = int((time.perf_counter() - start) * 1000)
        logger.debug(
            f"[{result.transaction_id}] {result.event_name}: visited {len(result.visited)}, "
            f"calculated {len(result.calculated)}, committed={result.committed}"
        )
        return result


def _row_removed(node: TriggerNode, sections: Mapping[str, List[str]]) -> bool:
    """True when a concrete row node belongs to a row no longer in its section."""
    if node.kind is NodeKind.FIELDSET or node.is_template:
        return False
    parsed = parse_repeat_name(node.name)
    if parsed is None:
        return False
    section, row_id, _field = parsed
    return section in sections and row_id not in sections[section]
