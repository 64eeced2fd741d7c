"""
kernel/session.py - Sheet session

Binds a SheetConfiguration to a host: wires listeners at startup, loads a
fresh transaction for every event and hands it to the PropagationRunner.

Built-in listener functions:
    accessSheet   default attribute / button / removal listener
    addItem       clicked:add-<section> creates a row
    sheet:opened  runs initial setups or updaters, openers and action calls
"""

from __future__ import annotations
from typing import Dict, Iterable, List, Optional, Tuple, TYPE_CHECKING
import logging
import re

from sheetcascade.core.naming import parse_trigger_name, to_number
from sheetcascade.core.trigger import TriggerNode
from sheetcascade.declarations.registry import SheetConfiguration
from sheetcascade.dependencies.audit import audit_cascade
from sheetcascade.dependencies.expansion import ExpandedCascade, expand_cascade
from sheetcascade.errors import DiagnosticChannel, ErrorCode
from sheetcascade.kernel.events import SHEET_OPENED, SheetEvent
from sheetcascade.kernel.handlers import HandlerContext, HandlerRegistry, ListenerFunc
from sheetcascade.kernel.lifecycle import (
    add_row,
    order_sections,
    remove_row,
    set_action_calls,
)
from sheetcascade.kernel.runner import PropagationResult, PropagationRunner
from sheetcascade.transactions.proxy import AttributeTransaction

if TYPE_CHECKING:
    from sheetcascade.bootstrap.config import EngineConfig
    from sheetcascade.host.adapter import HostAdapter

logger = logging.getLogger("kernel.session")

# Loggers raised to DEBUG when a sheet sets debug_mode
ENGINE_LOGGERS = (
    "declarations",
    "dependencies",
    "transactions",
    "kernel",
    "host",
    "diagnostics",
)

Loaded = Tuple[AttributeTransaction, Dict[str, List[str]], ExpandedCascade]


class SheetSession:
    """
    One loaded sheet instance.

    Usage:
        session = SheetSession(config, host)
        session.initialize_listeners()
        host.change("strength", 14)
    """

    def __init__(
        self,
        config: SheetConfiguration,
        host: "HostAdapter",
        diagnostics: Optional[DiagnosticChannel] = None,
        max_steps: Optional[int] = None,
        vocal: bool = False,
        audit: bool = True,
    ):
        self.config = config
        self.host = host
        self.diagnostics = diagnostics or DiagnosticChannel()
        self.handlers: HandlerRegistry = config.handlers or HandlerRegistry().freeze()
        self.runner = PropagationRunner(config, self.diagnostics, max_steps=max_steps)
        self.vocal = vocal
        self.audit = audit
        self.debug_mode = False
        self.results: List[PropagationResult] = []

    @classmethod
    def from_config(
        cls,
        config: SheetConfiguration,
        host: "HostAdapter",
        engine: "EngineConfig",
        diagnostics: Optional[DiagnosticChannel] = None,
        debug: bool = False,
    ) -> "SheetSession":
        """Session using the engine settings of the application configuration."""
        session = cls(
            config,
            host,
            diagnostics,
            max_steps=engine.max_propagation_steps,
            vocal=engine.vocal_commits,
            audit=engine.audit_cycles,
        )
        if debug:
            session.enable_debug()
        return session

    # =========================================================================
    # Loading
    # =========================================================================

    def load(self, props: Optional[Iterable[str]] = None) -> Loaded:
        """
        Read everything needed for one event and open a transaction.

        Args:
            props: Non-repeating attribute names to read (default: every
                non-repeating attribute node)

        Returns:
            (attributes, sections, expanded cascade)
        """
        registry = self.config.registry
        sections: Dict[str, List[str]] = {
            descriptor.section: self.host.read_section_row_ids(descriptor.section)
            for descriptor in self.config.sections
        }

        names = list(props) if props is not None else registry.base_get()
        for descriptor in self.config.sections:
            names.extend(descriptor.attribute_names(sections[descriptor.section]))
        values = self.host.read_attributes(list(dict.fromkeys(names)))

        attributes = AttributeTransaction(
            values,
            host=self.host,
            registry=registry,
            diagnostics=self.diagnostics,
        )
        order_sections(attributes, sections)
        cascade = expand_cascade(registry, sections)
        attributes.cascade = cascade
        return attributes, sections, cascade

    # =========================================================================
    # Startup
    # =========================================================================

    def initialize_listeners(self) -> int:
        """
        Subscribe sheet:opened and every distinct registry listener.

        Unknown listener functions and unknown handler names referenced by
        nodes are reported as UNKNOWN_HANDLER diagnostics.

        Returns:
            Number of subscriptions made
        """
        self.host.subscribe(SHEET_OPENED, self.update_sheet)
        subscribed = 1

        built_in: Dict[str, ListenerFunc] = {
            "accessSheet": self.access_sheet,
            "addItem": self.add_item,
        }
        for event_name, func_name in self.config.registry.listeners().items():
            func = self.handlers.get_listener(func_name) or built_in.get(func_name)
            if func is None:
                self.diagnostics.report(
                    ErrorCode.UNKNOWN_HANDLER,
                    f"No function named \"{func_name}\" found. No listener created for {event_name}",
                    source="session",
                    path=event_name,
                )
                continue
            self.host.subscribe(event_name, func)
            subscribed += 1

        for key, node in self.config.registry.items():
            self._check_handlers(key, node)

        if self.audit:
            audit_cascade(self.config.registry, self.diagnostics)

        logger.info(f"{self.config.name} v{self.config.version} loaded: {subscribed} listeners")
        return subscribed

    def _check_handlers(self, key: str, node: TriggerNode) -> None:
        for role, names in node.handler_names().items():
            for name in names:
                known = name in self.handlers.add_funcs if role == "add_funcs" else self.handlers.has(name)
                if not known:
                    self.diagnostics.report(
                        ErrorCode.UNKNOWN_HANDLER,
                        f"No function named \"{name}\" found. Specified in \"{key}\"->{role}",
                        source="session",
                        path=key,
                    )

    # =========================================================================
    # Listener functions
    # =========================================================================

    def access_sheet(self, event: SheetEvent) -> PropagationResult:
        """Default listener: load and propagate."""
        logger.debug(f"accessSheet {event.event_name}")
        attributes, sections, cascade = self.load()
        result = self.runner.run(event, attributes, sections, cascade, vocal=self.vocal)
        self.results.append(result)
        return result

    def add_item(self, event: SheetEvent) -> Optional[str]:
        """clicked:add-<section>: create a row, run add handlers, commit."""
        parsed = parse_trigger_name(event.trigger_name)
        if parsed is None:
            return None
        section = re.sub(r"^add-", "", parsed[2])

        attributes, sections, cascade = self.load()
        context = HandlerContext(
            attributes=attributes,
            sections=sections,
            cascade=cascade,
            event=event,
            config=self.config,
        )
        try:
            row = add_row(section, context, self.host, self.handlers)
        except Exception as e:
            attributes.drop(f"{type(e).__name__}: {e}")
            raise
        attributes.commit(vocal=self.vocal)
        return row

    def update_sheet(self, event: Optional[SheetEvent] = None) -> AttributeTransaction:
        """
        Sheet-open flow.

        A sheet without sheet_version runs the initial setups; an older sheet
        runs every updater keyed by a newer version. Openers and action
        calls run on every open, then sheet_version is stamped.
        """
        logger.info("updating sheet")
        props = ["debug_mode", "sheet_version"] + self.config.registry.base_get()
        attributes, sections, cascade = self.load(props)

        if attributes.get("debug_mode"):
            self.enable_debug()

        context = HandlerContext(
            attributes=attributes,
            sections=sections,
            cascade=cascade,
            event=event,
            config=self.config,
        )
        sheet_version = attributes.get("sheet_version")
        logger.debug(f"sheet_version: {sheet_version}")
        try:
            if not sheet_version:
                for name, func in self.handlers.initial_setups.items():
                    logger.debug(f"running {name}")
                    func(context)
            else:
                for version, func in self.handlers.updaters.items():
                    if to_number(sheet_version) < to_number(version):
                        logger.debug(f"running updater {version}")
                        func(context)
            for name, func in self.handlers.openers.items():
                logger.debug(f"running {name}")
                func(context)
            set_action_calls(context)
        except Exception as e:
            attributes.drop(f"{type(e).__name__}: {e}")
            raise

        attributes.set("sheet_version", self.config.version)
        logger.info(f"Sheet Update applied. Current Sheet Version {self.config.version}")
        attributes.commit(vocal=self.vocal)
        logger.info("Sheet ready for use")
        return attributes

    def remove_repeating_row(
        self,
        row: str,
        attributes: AttributeTransaction,
        sections: Dict[str, List[str]],
    ) -> bool:
        return remove_row(row, attributes, sections, self.host, self.diagnostics)

    def enable_debug(self) -> None:
        """Raise the engine loggers to DEBUG for this session."""
        if self.debug_mode:
            return
        self.debug_mode = True
        for name in ENGINE_LOGGERS:
            logging.getLogger(name).setLevel(logging.DEBUG)
        logger.info("debug mode enabled")
