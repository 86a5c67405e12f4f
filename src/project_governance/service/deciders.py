"""Decision rules run before an event is issued.

A decider looks at the requester's current view of the project and the
validated payload and returns the payload to emit, or ``None`` when the
intent would change nothing (assigning a role the person already holds,
removing a product that is not there).  Rule violations that make the
intent itself invalid raise :class:`MalformedPayload`.
"""

from __future__ import annotations

from collections.abc import Callable, Mapping
from types import MappingProxyType
from typing import Any

from project_governance.catalog import event_types as et
from project_governance.catalog import payloads as p
from project_governance.core.errors import MalformedPayload
from project_governance.domain.models import EntitySnapshot

Decider = Callable[[EntitySnapshot, p.Payload], dict[str, Any] | None]


def _dump(payload: p.Payload) -> dict[str, Any]:
    return payload.model_dump(mode="json")


# ---------------------------------------------------------------------------
# Scalar fields
# ---------------------------------------------------------------------------

def decide_project_started(
    view: EntitySnapshot, d: p.ProjectStartedPayload,
) -> dict[str, Any] | None:
    if d.start_date and d.end_date and d.end_date < d.start_date:
        raise MalformedPayload(et.PROJECT_STARTED, "end_date is before start_date")
    return _dump(d)


def _unless_equal(field: str) -> Decider:
    def decide(view: EntitySnapshot, d: p.Payload) -> dict[str, Any] | None:
        if getattr(view, field) == getattr(d, field):
            return None
        return _dump(d)
    return decide


def decide_custom_field_value_set(
    view: EntitySnapshot, d: p.CustomFieldValueSetPayload,
) -> dict[str, Any] | None:
    if view.custom_fields.get(d.definition_id) == d.value:
        return None
    return _dump(d)


# ---------------------------------------------------------------------------
# Relationships
# ---------------------------------------------------------------------------

def decide_product_added(
    view: EntitySnapshot, d: p.ProductAddedPayload,
) -> dict[str, Any] | None:
    return None if view.has_product(d.product_id) else _dump(d)


def decide_product_removed(
    view: EntitySnapshot, d: p.ProductRemovedPayload,
) -> dict[str, Any] | None:
    return _dump(d) if view.has_product(d.product_id) else None


def decide_products_bulk_imported(
    view: EntitySnapshot, d: p.ProductsBulkImportedPayload,
) -> dict[str, Any] | None:
    """Dedupe the batch and drop products already attached."""
    fresh: list[str] = []
    for product_id in d.product_ids:
        if product_id and product_id not in fresh and not view.has_product(product_id):
            fresh.append(product_id)
    if not fresh:
        return None
    return {"product_ids": fresh}


def decide_project_role_assigned(
    view: EntitySnapshot, d: p.ProjectRoleAssignedPayload,
) -> dict[str, Any] | None:
    return None if view.has_member(d.person_id, d.project_role_id) else _dump(d)


def decide_project_role_unassigned(
    view: EntitySnapshot, d: p.ProjectRoleUnassignedPayload,
) -> dict[str, Any] | None:
    return _dump(d) if view.has_member(d.person_id, d.project_role_id) else None


def decide_affiliated_organisation_added(
    view: EntitySnapshot, d: p.AffiliatedOrganisationAddedPayload,
) -> dict[str, Any] | None:
    return None if view.has_organisation(d.organisation_id) else _dump(d)


def decide_affiliated_organisation_removed(
    view: EntitySnapshot, d: p.AffiliatedOrganisationRemovedPayload,
) -> dict[str, Any] | None:
    return _dump(d) if view.has_organisation(d.organisation_id) else None


DEFAULT_DECIDERS: Mapping[str, Decider] = MappingProxyType({
    et.PROJECT_STARTED: decide_project_started,
    et.TITLE_CHANGED: _unless_equal("title"),
    et.DESCRIPTION_CHANGED: _unless_equal("description"),
    et.START_DATE_CHANGED: _unless_equal("start_date"),
    et.END_DATE_CHANGED: _unless_equal("end_date"),
    et.OWNING_ORG_NODE_CHANGED: _unless_equal("owning_org_node_id"),
    et.CUSTOM_FIELD_VALUE_SET: decide_custom_field_value_set,
    et.PRODUCT_ADDED: decide_product_added,
    et.PRODUCT_REMOVED: decide_product_removed,
    et.PRODUCTS_BULK_IMPORTED: decide_products_bulk_imported,
    et.PROJECT_ROLE_ASSIGNED: decide_project_role_assigned,
    et.PROJECT_ROLE_UNASSIGNED: decide_project_role_unassigned,
    et.AFFILIATED_ORGANISATION_ADDED: decide_affiliated_organisation_added,
    et.AFFILIATED_ORGANISATION_REMOVED: decide_affiliated_organisation_removed,
})


def decide(
    event_type: str, view: EntitySnapshot, payload: p.Payload,
    deciders: Mapping[str, Decider] = DEFAULT_DECIDERS,
) -> dict[str, Any] | None:
    """Run the decider for *event_type*; types without one pass through."""
    decider = deciders.get(event_type)
    if decider is None:
        return _dump(payload)
    return decider(view, payload)
