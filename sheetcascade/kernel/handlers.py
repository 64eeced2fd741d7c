"""
kernel/handlers.py - Handler registry

Named handler maps consulted by the propagation runner and the sheet
session. Populated once at startup, then frozen and treated as immutable for
the lifetime of a loaded sheet.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import (
    Any, Callable, Dict, Iterable, List, Mapping, Optional, TYPE_CHECKING,
)
import logging

from sheetcascade.errors import (
    ConfigurationFrozen,
    DiagnosticChannel,
    ErrorCode,
)

if TYPE_CHECKING:
    from sheetcascade.core.trigger import TriggerNode
    from sheetcascade.declarations.registry import SheetConfiguration
    from sheetcascade.kernel.events import SheetEvent
    from sheetcascade.transactions.proxy import AttributeTransaction


logger = logging.getLogger("kernel.handlers")


@dataclass
class HandlerContext:
    """Arguments passed to every handler."""
    attributes: "AttributeTransaction"
    sections: Dict[str, List[str]]
    cascade: Mapping[str, "TriggerNode"] = field(default_factory=dict)
    trigger: Optional["TriggerNode"] = None
    event: Optional["SheetEvent"] = None

    config: Optional["SheetConfiguration"] = None

    # Row prefix of a freshly added row (add handlers only)
    row: Optional[str] = None


HandlerFunc = Callable[[HandlerContext], Any]
ListenerFunc = Callable[["SheetEvent"], None]


# Registration types -> internal map name
HANDLER_TYPES = {
    "default": "funcs",
    "opener": "openers",
    "updater": "updaters",
    "new": "initial_setups",
    "all": "always",
    "add": "add_funcs",
}


class HandlerRegistry:
    """
    Handler-name registries.

    Maps:
        funcs           every registered handler (triggered, initial, calculation)
        openers         run on every sheet open
        updaters        version string -> migration run when the sheet is older
        initial_setups  run on the first open of a new sheet
        always          run for every direct event
        add_funcs       run when a row is added to a section
        listener_funcs  raw host listeners (accessSheet, addItem, ...)
    """

    def __init__(self, diagnostics: Optional[DiagnosticChannel] = None):
        self._diagnostics = diagnostics or DiagnosticChannel()
        self._maps: Dict[str, Dict[str, Any]] = {
            name: {} for name in HANDLER_TYPES.values()
        }
        self._listener_funcs: Dict[str, ListenerFunc] = {}
        self._frozen = False

        from sheetcascade.kernel.lifecycle import set_action_calls
        self._maps["funcs"]["setActionCalls"] = set_action_calls

    # -------------------------------------------------------------------------
    # Registration
    # -------------------------------------------------------------------------

    def register_funcs(
        self,
        funcs: Mapping[str, HandlerFunc],
        types: Iterable[str] = (),
    ) -> bool:
        """
        Register handlers under their names.

        Every handler is registered as "default" plus each listed type
        ("opener", "updater", "new", "all", "add"). Updaters are keyed by the
        sheet version they migrate to.

        Returns:
            True if every registration succeeded
        """
        self._check_open()

        type_list = ["default"] + [t for t in types if t != "default"]
        unknown = [t for t in type_list if t not in HANDLER_TYPES]
        if unknown:
            self._diagnostics.report(
                ErrorCode.INVALID_HANDLER,
                f"Unknown handler type(s) {unknown}; nothing registered",
                source="handlers",
            )
            return False

        ok = True
        for name, func in funcs.items():
            for handler_type in type_list:
                registry = self._maps[HANDLER_TYPES[handler_type]]
                if name in registry:
                    self._diagnostics.report(
                        ErrorCode.DUPLICATE_HANDLER,
                        f"Duplicate function name for {name} as {handler_type}",
                        source="handlers",
                        path=name,
                    )
                    ok = False
                elif not callable(func):
                    self._diagnostics.report(
                        ErrorCode.INVALID_HANDLER,
                        f"Function registration requires a function. Invalid value to register as {handler_type}",
                        source="handlers",
                        path=name,
                    )
                    ok = False
                else:
                    registry[name] = func
        return ok

    def register_listener(self, name: str, func: ListenerFunc) -> None:
        """Register a raw host listener function."""
        self._check_open()
        self._listener_funcs[name] = func

    def freeze(self) -> "HandlerRegistry":
        """Make every map read-only."""
        if not self._frozen:
            self._maps = {name: MappingProxyType(m) for name, m in self._maps.items()}
            self._frozen = True
            logger.debug(f"Handler registry frozen: {len(self.funcs)} functions")
        return self

    @property
    def frozen(self) -> bool:
        return self._frozen

    def _check_open(self) -> None:
        if self._frozen:
            raise ConfigurationFrozen("Handler registry is frozen; register handlers before building the sheet")

    # -------------------------------------------------------------------------
    # Lookup
    # -------------------------------------------------------------------------

    @property
    def funcs(self) -> Mapping[str, HandlerFunc]:
        return self._maps["funcs"]

    @property
    def openers(self) -> Mapping[str, HandlerFunc]:
        return self._maps["openers"]

    @property
    def updaters(self) -> Mapping[str, HandlerFunc]:
        return self._maps["updaters"]

    @property
    def initial_setups(self) -> Mapping[str, HandlerFunc]:
        return self._maps["initial_setups"]

    @property
    def always(self) -> Mapping[str, HandlerFunc]:
        return self._maps["always"]

    @property
    def add_funcs(self) -> Mapping[str, HandlerFunc]:
        return self._maps["add_funcs"]

    def get(self, name: str) -> Optional[HandlerFunc]:
        return self.funcs.get(name)

    def has(self, name: str) -> bool:
        return name in self.funcs

    def get_listener(self, name: str) -> Optional[ListenerFunc]:
        return self._listener_funcs.get(name)

    def call_func(self, name: str, context: HandlerContext) -> Any:
        """Call a registered handler by name. Returns None if it does not exist."""
        func = self.funcs.get(name)
        if func is None:
            logger.debug(f"Invalid function name: {name}")
            return None
        logger.debug(f"calling {name}")
        return func(context)
