"""
sheetcascade/declarations/registry.py - Built cascade registry

The immutable products of the declaration pass:
- RepeatingSectionDescriptor: fields declared inside one repeating section
- CascadeRegistry: read-only mapping of prefixed key -> TriggerNode
- SheetConfiguration: versioned bundle of registry, sections and handlers
  passed explicitly into the runner and the session
"""

from __future__ import annotations
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import (
    Any, Dict, Iterator, List, Mapping, Optional, Tuple, Union, TYPE_CHECKING,
)
import logging

from sheetcascade.core.enums import NodeKind
from sheetcascade.core.naming import (
    row_order_name,
    strip_type_prefix,
    templatize,
    to_section_name,
)
from sheetcascade.core.trigger import TriggerNode
from sheetcascade.declarations.schemas import (
    CascadeDocument,
    SectionSchema,
    TriggerNodeSchema,
)

if TYPE_CHECKING:
    from sheetcascade.kernel.handlers import HandlerRegistry

logger = logging.getLogger("declarations.registry")


@dataclass
class RepeatingSectionDescriptor:
    """Every field name declared inside one repeating section."""
    section: str
    fields: List[str] = field(default_factory=list)

    def add_field(self, name: str) -> bool:
        """Append a field if not already present."""
        if name in self.fields:
            return False
        self.fields.append(name)
        return True

    def attribute_names(self, row_ids: List[str]) -> List[str]:
        """Concrete attribute names for every row, plus the row-order pseudo-attribute."""
        names = [
            f"{self.section}_{row_id}_{name}"
            for row_id in row_ids
            for name in self.fields
        ]
        names.append(row_order_name(self.section))
        return names

    def to_dict(self) -> Dict[str, Any]:
        return {"section": self.section, "fields": list(self.fields)}


class CascadeRegistry:
    """
    Read-only templated cascade.

    Keys are prefixed node names (attr_, act_, roll_, fieldset_); repeating
    nodes carry the $X row placeholder.
    """

    def __init__(self, nodes: Mapping[str, TriggerNode]):
        self._nodes = MappingProxyType({key: node.clone() for key, node in nodes.items()})

    def __getitem__(self, key: str) -> TriggerNode:
        return self._nodes[key]

    def __contains__(self, key: object) -> bool:
        return key in self._nodes

    def __iter__(self) -> Iterator[str]:
        return iter(self._nodes)

    def __len__(self) -> int:
        return len(self._nodes)

    def get(self, key: str) -> Optional[TriggerNode]:
        return self._nodes.get(key)

    def keys(self):
        return self._nodes.keys()

    def items(self):
        return self._nodes.items()

    def values(self):
        return self._nodes.values()

    def lookup(self, name: str, kind: NodeKind = NodeKind.ATTRIBUTE) -> Optional[TriggerNode]:
        """Templated node for a concrete (or already templated) name."""
        return self._nodes.get(kind.key(templatize(name)))

    def lookup_template(self, key: str) -> Optional[TriggerNode]:
        """Templated node for a prefixed key such as attr_repeating_gear_-r1_weight."""
        kind = NodeKind.from_key(key) or NodeKind.ATTRIBUTE
        return self._nodes.get(kind.key(templatize(strip_type_prefix(key))))

    def listeners(self) -> Dict[str, str]:
        """Distinct listener event -> listener function name."""
        wiring: Dict[str, str] = {}
        for node in self._nodes.values():
            if node.listener and node.listener_func:
                wiring.setdefault(node.listener, node.listener_func)
        return wiring

    def base_get(self) -> List[str]:
        """Names of every non-repeating attribute node."""
        return [
            node.name for node in self._nodes.values()
            if node.kind is NodeKind.ATTRIBUTE and not node.is_repeating
        ]

    def to_dict(self) -> Dict[str, Dict[str, Any]]:
        return {key: node.to_dict() for key, node in self._nodes.items()}


@dataclass(frozen=True)
class SheetConfiguration:
    """
    Immutable, versioned configuration of one sheet definition.

    Built once at load time and handed to the PropagationRunner and the
    SheetSession instead of living in module globals.
    """
    name: str
    version: Union[int, float]
    registry: CascadeRegistry
    sections: Tuple[RepeatingSectionDescriptor, ...] = ()
    action_attributes: Tuple[str, ...] = ()
    handlers: Optional["HandlerRegistry"] = None

    def section(self, name: str) -> Optional[RepeatingSectionDescriptor]:
        section = to_section_name(name)
        for descriptor in self.sections:
            if descriptor.section == section:
                return descriptor
        return None

    @property
    def section_names(self) -> List[str]:
        return [descriptor.section for descriptor in self.sections]

    # -------------------------------------------------------------------------
    # Serialization
    # -------------------------------------------------------------------------

    def to_document(self) -> CascadeDocument:
        return CascadeDocument(
            name=self.name,
            version=self.version,
            cascades={
                key: TriggerNodeSchema.from_node(node)
                for key, node in self.registry.items()
            },
            repeating_sections=[
                SectionSchema(section=d.section, fields=list(d.fields))
                for d in self.sections
            ],
            action_attributes=list(self.action_attributes),
        )

    def to_json(self, indent: Optional[int] = 2) -> str:
        return self.to_document().model_dump_json(indent=indent)

    @classmethod
    def from_document(
        cls,
        document: CascadeDocument,
        handlers: Optional["HandlerRegistry"] = None,
    ) -> "SheetConfiguration":
        if handlers is None:
            from sheetcascade.kernel.handlers import HandlerRegistry
            handlers = HandlerRegistry()
        handlers.freeze()

        config = cls(
            name=document.name,
            version=document.version,
            registry=CascadeRegistry(
                {key: schema.to_node() for key, schema in document.cascades.items()}
            ),
            sections=tuple(
                RepeatingSectionDescriptor(section=s.section, fields=list(s.fields))
                for s in document.repeating_sections
            ),
            action_attributes=tuple(document.action_attributes),
            handlers=handlers,
        )
        logger.info(
            f"Loaded sheet {config.name} v{config.version}: "
            f"{len(config.registry)} nodes, {len(config.sections)} repeating sections"
        )
        return config

    @classmethod
    def from_json(
        cls,
        text: str,
        handlers: Optional["HandlerRegistry"] = None,
    ) -> "SheetConfiguration":
        return cls.from_document(CascadeDocument.model_validate_json(text), handlers)
