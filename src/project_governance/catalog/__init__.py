"""Event type catalog.

Sub-modules:

- **event_types**: namespaced type key constants
- **payloads**: one pydantic payload model per event type
- **registry**: the immutable :class:`EventCatalog` and the default table
"""

from project_governance.catalog.registry import (
    DEFAULT_CATALOG,
    EventCatalog,
    EventTypeInfo,
    build_default_catalog,
)

__all__ = [
    "DEFAULT_CATALOG",
    "EventCatalog",
    "EventTypeInfo",
    "build_default_catalog",
]
