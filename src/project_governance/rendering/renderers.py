"""Renderer dispatch: event type → presentation strategy.

Every strategy renders from the event alone (payload plus the display
hints captured at issue time); none performs a lookup.  The registry
always resolves: types without a dedicated strategy, including types
this reader has never heard of, fall back to :class:`GenericRenderer`,
which derives a label from the type key and shows the free-text details.
"""

from __future__ import annotations

import re
from collections.abc import Mapping
from datetime import datetime
from types import MappingProxyType
from typing import Any, Protocol

from pydantic import BaseModel, ConfigDict

from project_governance.catalog import event_types as et
from project_governance.catalog.registry import DEFAULT_CATALOG, EventCatalog
from project_governance.core.config import RenderingConfig
from project_governance.core.enums import EventStatus
from project_governance.domain.events import Event


class RenderedEvent(BaseModel):
    """Presentation-ready description of one event."""

    model_config = ConfigDict(frozen=True)

    event_id: str
    event_type: str
    label: str
    summary: str
    details: str = ""
    actor_name: str = ""
    actor_avatar_url: str = ""
    entity_name: str = ""
    status: EventStatus
    created_at: datetime


class RenderStrategy(Protocol):
    """Turns one event into a :class:`RenderedEvent`."""

    def render(self, event: Event) -> RenderedEvent: ...


def _rendered(event: Event, label: str, summary: str) -> RenderedEvent:
    hints = event.display
    return RenderedEvent(
        event_id=event.event_id,
        event_type=event.event_type,
        label=label,
        summary=summary,
        details=hints.details,
        actor_name=hints.actor_name,
        actor_avatar_url=hints.actor_avatar_url,
        entity_name=hints.entity_name,
        status=event.status,
        created_at=event.created_at,
    )


def _text(payload: dict[str, Any], key: str) -> str:
    value = payload.get(key)
    return "" if value is None else str(value)


# ---------------------------------------------------------------------------
# Fallback
# ---------------------------------------------------------------------------

class GenericRenderer:
    """Label from the type key, body from the free-text details."""

    def __init__(self, config: RenderingConfig | None = None) -> None:
        cfg = config or RenderingConfig()
        self._namespace_separator = cfg.namespace_separator
        self._word_split = re.compile(
            "|".join(re.escape(s) for s in cfg.word_separators) or r"\s"
        )

    def label_for(self, event_type: str) -> str:
        """``project.role_unassigned`` → ``role unassigned``."""
        _, sep, rest = event_type.partition(self._namespace_separator)
        name = rest if sep and rest else event_type
        words = [w for w in self._word_split.split(name) if w]
        return " ".join(words).lower()

    def render(self, event: Event) -> RenderedEvent:
        label = self.label_for(event.event_type)
        return _rendered(event, label, event.display.details or label)


# ---------------------------------------------------------------------------
# Dedicated strategies
# ---------------------------------------------------------------------------

class _LabelledRenderer:
    def __init__(self, label: str, fallback: GenericRenderer) -> None:
        self._label = label
        self._fallback = fallback


class ScalarChangeRenderer(_LabelledRenderer):
    """``<Field> changed to <value>``."""

    def __init__(self, label: str, field: str, field_label: str, fallback: GenericRenderer) -> None:
        super().__init__(label, fallback)
        self._field = field
        self._field_label = field_label

    def render(self, event: Event) -> RenderedEvent:
        value = _text(event.payload, self._field)
        if not value:
            return self._fallback.render(event)
        return _rendered(event, self._label, f"{self._field_label} changed to {value}")


class ProjectStartedRenderer(_LabelledRenderer):
    def render(self, event: Event) -> RenderedEvent:
        title = _text(event.payload, "title") or event.display.entity_name
        return _rendered(event, self._label, f"Project proposed: {title}" if title else self._label)


class CustomFieldRenderer(_LabelledRenderer):
    def render(self, event: Event) -> RenderedEvent:
        field = _text(event.payload, "definition_id")
        if not field:
            return self._fallback.render(event)
        value = _text(event.payload, "value")
        return _rendered(event, self._label, f"Custom field {field} set to {value!r}")


class RoleAssignedRenderer(_LabelledRenderer):
    def render(self, event: Event) -> RenderedEvent:
        hints = event.display
        person = hints.person_name or _text(event.payload, "person_id")
        if not person:
            return self._fallback.render(event)
        role = hints.role_name or "Member"
        return _rendered(event, self._label, f"{person} assigned as {role}")


class RoleUnassignedRenderer(_LabelledRenderer):
    def render(self, event: Event) -> RenderedEvent:
        hints = event.display
        person = hints.person_name or _text(event.payload, "person_id")
        if not person:
            return self._fallback.render(event)
        role = hints.role_name or _text(event.payload, "project_role_id")
        return _rendered(event, self._label, f"{person} removed from {role}")


class ProductRenderer(_LabelledRenderer):
    def __init__(self, label: str, verb: str, fallback: GenericRenderer) -> None:
        super().__init__(label, fallback)
        self._verb = verb

    def render(self, event: Event) -> RenderedEvent:
        product = event.display.product_title or _text(event.payload, "product_id")
        if not product:
            return self._fallback.render(event)
        return _rendered(event, self._label, f"Product {self._verb}: {product}")


class BulkImportRenderer(_LabelledRenderer):
    def render(self, event: Event) -> RenderedEvent:
        ids = event.payload.get("product_ids")
        if not isinstance(ids, (list, tuple)) or not ids:
            return self._fallback.render(event)
        noun = "product" if len(ids) == 1 else "products"
        return _rendered(event, self._label, f"Imported {len(ids)} {noun}")


class OrganisationRenderer(_LabelledRenderer):
    def __init__(self, label: str, verb: str, fallback: GenericRenderer) -> None:
        super().__init__(label, fallback)
        self._verb = verb

    def render(self, event: Event) -> RenderedEvent:
        org = event.display.organisation_name or _text(event.payload, "organisation_id")
        if not org:
            return self._fallback.render(event)
        return _rendered(event, self._label, f"Affiliated organisation {self._verb}: {org}")


# ---------------------------------------------------------------------------
# Registry
# ---------------------------------------------------------------------------

class RendererRegistry:
    """Read-only event type → strategy table with a mandatory fallback."""

    def __init__(
        self,
        catalog: EventCatalog,
        strategies: Mapping[str, RenderStrategy],
        fallback: GenericRenderer,
    ) -> None:
        catalog.ensure_known(strategies, "renderer registration")
        self._strategies = MappingProxyType(dict(strategies))
        self._fallback = fallback

    @property
    def fallback(self) -> GenericRenderer:
        return self._fallback

    def resolve_renderer(self, event_type: str) -> RenderStrategy:
        strategy = self._strategies.get(event_type)
        if strategy is None:
            return self._fallback
        return strategy

    def render(self, event: Event) -> RenderedEvent:
        return self.resolve_renderer(event.event_type).render(event)


def build_default_renderers(
    catalog: EventCatalog = DEFAULT_CATALOG,
    config: RenderingConfig | None = None,
) -> RendererRegistry:
    """Registry covering the default project event types."""
    fallback = GenericRenderer(config)
    name = catalog.friendly_name

    strategies: dict[str, RenderStrategy] = {
        et.PROJECT_STARTED: ProjectStartedRenderer(name(et.PROJECT_STARTED), fallback),
        et.TITLE_CHANGED: ScalarChangeRenderer(
            name(et.TITLE_CHANGED), "title", "Title", fallback),
        et.DESCRIPTION_CHANGED: ScalarChangeRenderer(
            name(et.DESCRIPTION_CHANGED), "description", "Description", fallback),
        et.START_DATE_CHANGED: ScalarChangeRenderer(
            name(et.START_DATE_CHANGED), "start_date", "Start date", fallback),
        et.END_DATE_CHANGED: ScalarChangeRenderer(
            name(et.END_DATE_CHANGED), "end_date", "End date", fallback),
        et.OWNING_ORG_NODE_CHANGED: ScalarChangeRenderer(
            name(et.OWNING_ORG_NODE_CHANGED), "owning_org_node_id", "Owning organisation", fallback),
        et.CUSTOM_FIELD_VALUE_SET: CustomFieldRenderer(name(et.CUSTOM_FIELD_VALUE_SET), fallback),
        et.PRODUCT_ADDED: ProductRenderer(name(et.PRODUCT_ADDED), "added", fallback),
        et.PRODUCT_REMOVED: ProductRenderer(name(et.PRODUCT_REMOVED), "removed", fallback),
        et.PRODUCTS_BULK_IMPORTED: BulkImportRenderer(name(et.PRODUCTS_BULK_IMPORTED), fallback),
        et.PROJECT_ROLE_ASSIGNED: RoleAssignedRenderer(name(et.PROJECT_ROLE_ASSIGNED), fallback),
        et.PROJECT_ROLE_UNASSIGNED: RoleUnassignedRenderer(
            name(et.PROJECT_ROLE_UNASSIGNED), fallback),
        et.AFFILIATED_ORGANISATION_ADDED: OrganisationRenderer(
            name(et.AFFILIATED_ORGANISATION_ADDED), "added", fallback),
        et.AFFILIATED_ORGANISATION_REMOVED: OrganisationRenderer(
            name(et.AFFILIATED_ORGANISATION_REMOVED), "removed", fallback),
    }
    return RendererRegistry(catalog, strategies, fallback)
