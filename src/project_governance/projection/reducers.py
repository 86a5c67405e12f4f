"""Per-event-type reducers for the project aggregate.

A reducer is a pure function ``(snapshot, event, payload, ctx) -> snapshot``.
It never mutates its inputs: scalar changes go through
:meth:`EntitySnapshot.evolve`, collections are rebuilt as new tuples.

The same reducer serves two folds:

- the optimistic fold over pending events (``ctx.pending=True``), where
  added relationships become synthetic entries flagged ``pending``;
- the confirmed fold the store of record runs on approval
  (``ctx.pending=False``).

Adding a relationship that is already present is a no-op, so replaying an
approved event over a snapshot that already contains it changes nothing.
"""

from __future__ import annotations

from collections.abc import Callable, Mapping
from dataclasses import dataclass
from types import MappingProxyType

from project_governance.catalog import event_types as et
from project_governance.catalog import payloads as p
from project_governance.catalog.registry import DEFAULT_CATALOG, EventCatalog
from project_governance.core.ids import entry_key
from project_governance.domain.events import Event
from project_governance.domain.models import (
    EntitySnapshot,
    OrganisationRef,
    ProductRef,
    ProjectMember,
)


@dataclass(frozen=True)
class ReduceContext:
    """Fold-wide settings handed to every reducer."""

    pending: bool
    pending_id_prefix: str = "pending"

    def entry_id(self, *parts: str) -> str:
        return entry_key(*parts, prefix=self.pending_id_prefix if self.pending else "")


Reducer = Callable[[EntitySnapshot, Event, p.Payload, ReduceContext], EntitySnapshot]


# ---------------------------------------------------------------------------
# Scalar fields
# ---------------------------------------------------------------------------

def reduce_project_started(
    s: EntitySnapshot, e: Event, d: p.ProjectStartedPayload, ctx: ReduceContext,
) -> EntitySnapshot:
    return s.evolve(
        title=d.title,
        description=d.description,
        start_date=d.start_date,
        end_date=d.end_date,
        owning_org_node_id=d.owning_org_node_id or s.owning_org_node_id,
    )


def reduce_title_changed(
    s: EntitySnapshot, e: Event, d: p.TitleChangedPayload, ctx: ReduceContext,
) -> EntitySnapshot:
    return s.evolve(title=d.title)


def reduce_description_changed(
    s: EntitySnapshot, e: Event, d: p.DescriptionChangedPayload, ctx: ReduceContext,
) -> EntitySnapshot:
    return s.evolve(description=d.description)


def reduce_start_date_changed(
    s: EntitySnapshot, e: Event, d: p.StartDateChangedPayload, ctx: ReduceContext,
) -> EntitySnapshot:
    return s.evolve(start_date=d.start_date)


def reduce_end_date_changed(
    s: EntitySnapshot, e: Event, d: p.EndDateChangedPayload, ctx: ReduceContext,
) -> EntitySnapshot:
    return s.evolve(end_date=d.end_date)


def reduce_owning_org_node_changed(
    s: EntitySnapshot, e: Event, d: p.OwningOrgNodeChangedPayload, ctx: ReduceContext,
) -> EntitySnapshot:
    return s.evolve(owning_org_node_id=d.owning_org_node_id)


def reduce_custom_field_value_set(
    s: EntitySnapshot, e: Event, d: p.CustomFieldValueSetPayload, ctx: ReduceContext,
) -> EntitySnapshot:
    return s.evolve(custom_fields={**s.custom_fields, d.definition_id: d.value})


# ---------------------------------------------------------------------------
# Products
# ---------------------------------------------------------------------------

def _with_product(
    s: EntitySnapshot, product_id: str, title: str, ctx: ReduceContext,
) -> EntitySnapshot:
    if s.has_product(product_id):
        return s
    entry = ProductRef(product_id=product_id, title=title, pending=ctx.pending)
    return s.evolve(products=s.products + (entry,))


def reduce_product_added(
    s: EntitySnapshot, e: Event, d: p.ProductAddedPayload, ctx: ReduceContext,
) -> EntitySnapshot:
    return _with_product(s, d.product_id, e.display.product_title, ctx)


def reduce_products_bulk_imported(
    s: EntitySnapshot, e: Event, d: p.ProductsBulkImportedPayload, ctx: ReduceContext,
) -> EntitySnapshot:
    for product_id in d.product_ids:
        s = _with_product(s, product_id, "", ctx)
    return s


def reduce_product_removed(
    s: EntitySnapshot, e: Event, d: p.ProductRemovedPayload, ctx: ReduceContext,
) -> EntitySnapshot:
    return s.evolve(
        products=tuple(x for x in s.products if x.product_id != d.product_id)
    )


# ---------------------------------------------------------------------------
# Members
# ---------------------------------------------------------------------------

def reduce_project_role_assigned(
    s: EntitySnapshot, e: Event, d: p.ProjectRoleAssignedPayload, ctx: ReduceContext,
) -> EntitySnapshot:
    if s.has_member(d.person_id, d.project_role_id):
        return s
    member = ProjectMember(
        member_id=ctx.entry_id(d.person_id, d.project_role_id),
        person_id=d.person_id,
        project_role_id=d.project_role_id,
        name=e.display.person_name,
        email=e.display.person_email,
        role_name=e.display.role_name,
        pending=ctx.pending,
    )
    return s.evolve(members=s.members + (member,))


def reduce_project_role_unassigned(
    s: EntitySnapshot, e: Event, d: p.ProjectRoleUnassignedPayload, ctx: ReduceContext,
) -> EntitySnapshot:
    return s.evolve(
        members=tuple(
            m for m in s.members
            if not (m.person_id == d.person_id and m.project_role_id == d.project_role_id)
        )
    )


# ---------------------------------------------------------------------------
# Affiliated organisations
# ---------------------------------------------------------------------------

def reduce_affiliated_organisation_added(
    s: EntitySnapshot, e: Event, d: p.AffiliatedOrganisationAddedPayload, ctx: ReduceContext,
) -> EntitySnapshot:
    if s.has_organisation(d.organisation_id):
        return s
    entry = OrganisationRef(
        organisation_id=d.organisation_id,
        name=e.display.organisation_name,
        pending=ctx.pending,
    )
    return s.evolve(affiliated_organisations=s.affiliated_organisations + (entry,))


def reduce_affiliated_organisation_removed(
    s: EntitySnapshot, e: Event, d: p.AffiliatedOrganisationRemovedPayload, ctx: ReduceContext,
) -> EntitySnapshot:
    return s.evolve(
        affiliated_organisations=tuple(
            o for o in s.affiliated_organisations
            if o.organisation_id != d.organisation_id
        )
    )


# ---------------------------------------------------------------------------
# Reducer table
# ---------------------------------------------------------------------------

class ReducerTable:
    """Read-only mapping from event type to reducer.

    Every key must be a catalog member; an unknown key is a construction
    error, not something discovered during a fold.
    """

    def __init__(self, catalog: EventCatalog, reducers: Mapping[str, Reducer]) -> None:
        catalog.ensure_known(reducers, "reducer registration")
        self._catalog = catalog
        self._reducers = MappingProxyType(dict(reducers))

    @property
    def catalog(self) -> EventCatalog:
        return self._catalog

    def get(self, event_type: str) -> Reducer | None:
        return self._reducers.get(event_type)

    def __contains__(self, event_type: object) -> bool:
        return event_type in self._reducers

    def event_types(self) -> frozenset[str]:
        return frozenset(self._reducers)


_DEFAULT_REDUCERS: dict[str, Reducer] = {
    et.PROJECT_STARTED: reduce_project_started,
    et.TITLE_CHANGED: reduce_title_changed,
    et.DESCRIPTION_CHANGED: reduce_description_changed,
    et.START_DATE_CHANGED: reduce_start_date_changed,
    et.END_DATE_CHANGED: reduce_end_date_changed,
    et.OWNING_ORG_NODE_CHANGED: reduce_owning_org_node_changed,
    et.CUSTOM_FIELD_VALUE_SET: reduce_custom_field_value_set,
    et.PRODUCT_ADDED: reduce_product_added,
    et.PRODUCT_REMOVED: reduce_product_removed,
    et.PRODUCTS_BULK_IMPORTED: reduce_products_bulk_imported,
    et.PROJECT_ROLE_ASSIGNED: reduce_project_role_assigned,
    et.PROJECT_ROLE_UNASSIGNED: reduce_project_role_unassigned,
    et.AFFILIATED_ORGANISATION_ADDED: reduce_affiliated_organisation_added,
    et.AFFILIATED_ORGANISATION_REMOVED: reduce_affiliated_organisation_removed,
}


def build_default_reducers(catalog: EventCatalog = DEFAULT_CATALOG) -> ReducerTable:
    """Reducer table for every default project event type."""
    return ReducerTable(catalog, _DEFAULT_REDUCERS)
