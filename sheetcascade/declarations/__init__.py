"""
declarations/ - Cascade declaration pass

Builds the immutable SheetConfiguration from declared UI elements:
- schemas: pydantic element / trigger / document models
- builder: CascadeRegistryBuilder (register-or-merge)
- registry: CascadeRegistry, RepeatingSectionDescriptor, SheetConfiguration
"""

from .schemas import (
    TriggerDefinition,
    ElementDescriptor,
    TriggerNodeSchema,
    SectionSchema,
    CascadeDocument,
)

from .registry import (
    RepeatingSectionDescriptor,
    CascadeRegistry,
    SheetConfiguration,
)

from .builder import (
    CascadeRegistryBuilder,
    DEFAULT_LISTENER_FUNC,
)

__all__ = [
    # Schemas
    "TriggerDefinition",
    "ElementDescriptor",
    "TriggerNodeSchema",
    "SectionSchema",
    "CascadeDocument",
    # Registry
    "RepeatingSectionDescriptor",
    "CascadeRegistry",
    "SheetConfiguration",
    # Builder
    "CascadeRegistryBuilder",
    "DEFAULT_LISTENER_FUNC",
]
