"""Event type catalog: the single registration point for event types.

Reducers, renderers, role editors and policy editors all enumerate from
an :class:`EventCatalog`; none of them keeps its own list.  Adding a new
kind of mutation is one :class:`EventTypeInfo` entry here plus, where the
type changes the project view, one reducer.

The catalog is an immutable table built once and passed explicitly to
whoever needs it.  :data:`DEFAULT_CATALOG` is the process-wide instance
for the project aggregate.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Iterator
from types import MappingProxyType
from typing import Any

from pydantic import BaseModel, ConfigDict, ValidationError

from project_governance.core.errors import CatalogError, MalformedPayload, UnknownEventType

from . import event_types as et
from . import payloads as p

logger = logging.getLogger(__name__)


class EventTypeInfo(BaseModel):
    """Catalog entry: key, human label and payload contract."""

    model_config = ConfigDict(frozen=True)

    event_type: str
    friendly_name: str
    payload_model: type[p.Payload]

    @property
    def namespace(self) -> str:
        return self.event_type.split(".", 1)[0] if "." in self.event_type else ""

    def payload_schema(self) -> dict[str, Any]:
        """JSON schema of the payload, for input forms."""
        return self.payload_model.model_json_schema()


def _summarise(exc: ValidationError) -> str:
    parts = []
    for err in exc.errors():
        loc = ".".join(str(x) for x in err.get("loc", ())) or "<payload>"
        parts.append(f"{loc}: {err.get('msg', 'invalid')}")
    return "; ".join(parts)


class EventCatalog:
    """Ordered, read-only registry of event types.

    Args:
        entries: Catalog entries in display order.  Duplicate keys are a
                 construction error.
    """

    def __init__(self, entries: Iterable[EventTypeInfo]) -> None:
        ordered: dict[str, EventTypeInfo] = {}
        for info in entries:
            if info.event_type in ordered:
                raise CatalogError(f"Duplicate event type: {info.event_type}")
            ordered[info.event_type] = info
        self._entries = MappingProxyType(ordered)

    # ------------------------------------------------------------------
    # Enumeration
    # ------------------------------------------------------------------

    def list_event_types(self) -> tuple[EventTypeInfo, ...]:
        """All entries in registration order."""
        return tuple(self._entries.values())

    def event_types(self) -> frozenset[str]:
        return frozenset(self._entries)

    def __contains__(self, event_type: object) -> bool:
        return event_type in self._entries

    def __iter__(self) -> Iterator[EventTypeInfo]:
        return iter(self._entries.values())

    def __len__(self) -> int:
        return len(self._entries)

    # ------------------------------------------------------------------
    # Lookup
    # ------------------------------------------------------------------

    def get(self, event_type: str) -> EventTypeInfo | None:
        return self._entries.get(event_type)

    def require(self, event_type: str, context: str = "") -> EventTypeInfo:
        """Return the entry or raise :class:`UnknownEventType`."""
        info = self._entries.get(event_type)
        if info is None:
            raise UnknownEventType(event_type, context)
        return info

    def friendly_name(self, event_type: str) -> str:
        info = self._entries.get(event_type)
        return info.friendly_name if info is not None else event_type

    def validate_payload(self, event_type: str, payload: dict[str, Any]) -> p.Payload:
        """Parse *payload* against the type's payload model.

        Raises:
            UnknownEventType: type not in the catalog.
            MalformedPayload: payload does not fit the model.
        """
        info = self.require(event_type, "payload validation")
        if not isinstance(payload, dict):
            raise MalformedPayload(event_type, "payload is not a mapping")
        try:
            return info.payload_model.model_validate(payload)
        except ValidationError as exc:
            raise MalformedPayload(event_type, _summarise(exc)) from exc

    # ------------------------------------------------------------------
    # Reference checking
    # ------------------------------------------------------------------

    def unknown_types(self, event_types: Iterable[str], context: str = "") -> frozenset[str]:
        """Return the members of *event_types* absent from the catalog.

        Every unknown reference is logged; callers decide whether to drop
        or reject it, but never treat it as valid.
        """
        unknown = frozenset(t for t in event_types if t not in self._entries)
        for t in sorted(unknown):
            logger.warning("Unknown event type referenced: type=%s context=%s", t, context)
        return unknown

    def known_subset(self, event_types: Iterable[str], context: str = "") -> frozenset[str]:
        """Return only the catalog members of *event_types* (unknowns logged)."""
        types = frozenset(event_types)
        return types - self.unknown_types(types, context)

    def ensure_known(self, event_types: Iterable[str], context: str = "") -> None:
        """Raise :class:`UnknownEventType` for the first unknown reference."""
        unknown = self.unknown_types(event_types, context)
        if unknown:
            raise UnknownEventType(sorted(unknown)[0], context)


# ---------------------------------------------------------------------------
# Default catalog
# ---------------------------------------------------------------------------

def build_default_catalog() -> EventCatalog:
    """Build the catalog of project event types."""
    return EventCatalog([
        EventTypeInfo(event_type=et.PROJECT_STARTED, friendly_name="Project Proposal",
                      payload_model=p.ProjectStartedPayload),
        EventTypeInfo(event_type=et.TITLE_CHANGED, friendly_name="Title Change",
                      payload_model=p.TitleChangedPayload),
        EventTypeInfo(event_type=et.DESCRIPTION_CHANGED, friendly_name="Description Change",
                      payload_model=p.DescriptionChangedPayload),
        EventTypeInfo(event_type=et.START_DATE_CHANGED, friendly_name="Start Date Change",
                      payload_model=p.StartDateChangedPayload),
        EventTypeInfo(event_type=et.END_DATE_CHANGED, friendly_name="End Date Change",
                      payload_model=p.EndDateChangedPayload),
        EventTypeInfo(event_type=et.OWNING_ORG_NODE_CHANGED,
                      friendly_name="Owning Organisation Node Change",
                      payload_model=p.OwningOrgNodeChangedPayload),
        EventTypeInfo(event_type=et.CUSTOM_FIELD_VALUE_SET, friendly_name="Set Custom Field Value",
                      payload_model=p.CustomFieldValueSetPayload),
        EventTypeInfo(event_type=et.PRODUCT_ADDED, friendly_name="Product Addition",
                      payload_model=p.ProductAddedPayload),
        EventTypeInfo(event_type=et.PRODUCT_REMOVED, friendly_name="Product Removal",
                      payload_model=p.ProductRemovedPayload),
        EventTypeInfo(event_type=et.PRODUCTS_BULK_IMPORTED, friendly_name="Bulk Product Import",
                      payload_model=p.ProductsBulkImportedPayload),
        EventTypeInfo(event_type=et.PROJECT_ROLE_ASSIGNED, friendly_name="Project Role Assignment",
                      payload_model=p.ProjectRoleAssignedPayload),
        EventTypeInfo(event_type=et.PROJECT_ROLE_UNASSIGNED,
                      friendly_name="Project Role Unassignment",
                      payload_model=p.ProjectRoleUnassignedPayload),
        EventTypeInfo(event_type=et.AFFILIATED_ORGANISATION_ADDED,
                      friendly_name="Affiliated Organisation Addition",
                      payload_model=p.AffiliatedOrganisationAddedPayload),
        EventTypeInfo(event_type=et.AFFILIATED_ORGANISATION_REMOVED,
                      friendly_name="Affiliated Organisation Removal",
                      payload_model=p.AffiliatedOrganisationRemovedPayload),
    ])


#: Process-wide read-only catalog, built once at import.
DEFAULT_CATALOG: EventCatalog = build_default_catalog()
