"""
sheetcascade/declarations/schemas.py - Pydantic declaration and wire models

ElementDescriptor / TriggerDefinition validate what a rendered UI element
hands to the registry builder. CascadeDocument is the serialized registry
shipped with a built sheet and loaded again at runtime.
"""

from __future__ import annotations

from typing import Dict, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field

from sheetcascade.core.enums import NodeKind
from sheetcascade.core.trigger import TriggerNode


# =============================================================================
# Declaration Schemas
# =============================================================================


class TriggerDefinition(BaseModel):
    """Explicit cascade wiring attached to a declared element."""

    model_config = ConfigDict(extra="forbid")

    affects: Optional[List[str]] = Field(
        None, description="Names of attributes this element's changes propagate to"
    )
    triggered_funcs: Optional[List[str]] = Field(
        None, description="Handlers run whenever the node changes or is affected"
    )
    listener: Optional[str] = Field(None, description="Host event string to listen for")
    listener_func: Optional[str] = Field(
        None, description="Listener function invoked when the raw event fires"
    )
    initial_func: Optional[str] = Field(
        None, description="Handler run only when this node caused the event"
    )
    calculation: Optional[str] = Field(
        None, description="Handler deriving the value when the node is reached transitively"
    )
    add_funcs: Optional[List[str]] = Field(
        None, description="Handlers run when a row is added to a repeating section"
    )
    default_value: Optional[Union[int, float, str]] = Field(
        None, description="Explicit default overriding the element's own"
    )

    def activates_listener(self) -> bool:
        """True when any field that implies a host listener was given."""
        return any(
            value is not None
            for value in (
                self.listener,
                self.triggered_funcs,
                self.listener_func,
                self.initial_func,
                self.affects,
            )
        )


class ElementDescriptor(BaseModel):
    """One declared UI element as produced by rendering it."""

    model_config = ConfigDict(extra="forbid")

    name: Optional[str] = Field(None, description="Raw element name")
    element_type: str = Field(
        default="text",
        description="Input type, or action / roll / fieldset for non-inputs",
    )
    default_value: Optional[Union[int, float, str]] = Field(
        None, description="Element value attribute"
    )
    default_checked: Optional[bool] = Field(
        None, description="Checked state of a checkbox"
    )
    trigger: Optional[TriggerDefinition] = Field(None, description="Cascade wiring")


# =============================================================================
# Wire Schemas
# =============================================================================


class TriggerNodeSchema(BaseModel):
    """Serialized TriggerNode."""

    model_config = ConfigDict(extra="forbid")

    name: str
    kind: NodeKind = NodeKind.ATTRIBUTE
    value_type: Optional[str] = None
    default_value: Optional[Union[int, float, str]] = None
    affects: List[str] = Field(default_factory=list)
    triggered_funcs: List[str] = Field(default_factory=list)
    add_funcs: List[str] = Field(default_factory=list)
    initial_func: Optional[str] = None
    calculation: Optional[str] = None
    listener: Optional[str] = None
    listener_func: Optional[str] = None

    @classmethod
    def from_node(cls, node: TriggerNode) -> "TriggerNodeSchema":
        return cls(**node.to_dict())

    def to_node(self) -> TriggerNode:
        return TriggerNode.from_dict(self.model_dump())


class SectionSchema(BaseModel):
    """Serialized repeating section descriptor."""

    section: str
    fields: List[str] = Field(default_factory=list)


class CascadeDocument(BaseModel):
    """Serialized sheet configuration."""

    schema_version: int = Field(default=1, ge=1)
    name: str = Field(..., description="Sheet name")
    version: Union[int, float] = Field(default=0, description="Sheet version")
    cascades: Dict[str, TriggerNodeSchema] = Field(default_factory=dict)
    repeating_sections: List[SectionSchema] = Field(default_factory=list)
    action_attributes: List[str] = Field(default_factory=list)
