"""Shared fixtures for the project-governance test suite.

Organisation tree used throughout::

    ROOT
    └── ORG-A
        └── ORG-A1      (owns project P1)
    ORG-B

Actors:

- alice: editor + manager on project P1, owner of P1
- bob: admin at ORG-A (reaches ORG-A1 and P1 through inheritance)
- carol: no roles
- root: system administrator
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from project_governance.catalog import DEFAULT_CATALOG
from project_governance.catalog import event_types as et
from project_governance.core.clock import SimClock
from project_governance.core.enums import EventStatus
from project_governance.domain.events import Event, EventDisplayHints
from project_governance.domain.models import (
    Actor,
    EntitySnapshot,
    Membership,
    Role,
    Scope,
)
from project_governance.infrastructure.directory import InMemoryDirectory
from project_governance.infrastructure.event_store import InMemoryProjectStore
from project_governance.policy.hierarchy import OrgHierarchy
from project_governance.projection.projector import Projector
from project_governance.service.mutation import MutationService

T0 = datetime(2024, 1, 1, tzinfo=timezone.utc)


# ---------------------------------------------------------------------------
# Roles
# ---------------------------------------------------------------------------

EDITOR = Role(
    role_id="role-editor",
    key="editor",
    display_name="Editor",
    allowed_event_types=frozenset({et.TITLE_CHANGED, et.DESCRIPTION_CHANGED}),
)

MANAGER = Role(
    role_id="role-manager",
    key="manager",
    display_name="Manager",
    allowed_event_types=frozenset({
        et.PROJECT_ROLE_ASSIGNED,
        et.PROJECT_ROLE_UNASSIGNED,
        et.PRODUCT_ADDED,
        et.PRODUCT_REMOVED,
        et.PRODUCTS_BULK_IMPORTED,
    }),
)

ADMIN = Role(
    role_id="role-admin",
    key="admin",
    display_name="Administrator",
    allowed_event_types=DEFAULT_CATALOG.event_types(),
)


# ---------------------------------------------------------------------------
# Event helper
# ---------------------------------------------------------------------------

def make_event(
    event_type: str,
    payload: dict | None = None,
    *,
    entity_id: str = "P1",
    actor_id: str = "alice",
    seconds: int = 0,
    status: EventStatus = EventStatus.PENDING,
    display: EventDisplayHints | None = None,
    event_id: str | None = None,
) -> Event:
    """Build an event ``seconds`` after T0."""
    fields = dict(
        event_type=event_type,
        payload=payload or {},
        actor_id=actor_id,
        entity_id=entity_id,
        created_at=T0 + timedelta(seconds=seconds),
        status=status,
        display=display or EventDisplayHints(),
    )
    if event_id is not None:
        fields["event_id"] = event_id
    return Event(**fields)


@pytest.fixture
def event_factory():
    return make_event


# ---------------------------------------------------------------------------
# Clock
# ---------------------------------------------------------------------------

@pytest.fixture
def sim_clock() -> SimClock:
    """Clock that moves one second per reading."""
    return SimClock(start=T0, auto_advance_ms=1000)


# ---------------------------------------------------------------------------
# Actors
# ---------------------------------------------------------------------------

@pytest.fixture
def alice() -> Actor:
    return Actor(actor_id="alice", display_name="Alice Jansen")


@pytest.fixture
def bob() -> Actor:
    return Actor(actor_id="bob", display_name="Bob de Vries")


@pytest.fixture
def carol() -> Actor:
    return Actor(actor_id="carol", display_name="Carol Smit")


@pytest.fixture
def root_admin() -> Actor:
    return Actor(actor_id="root", display_name="Root", is_sys_admin=True)


# ---------------------------------------------------------------------------
# Scopes and directory
# ---------------------------------------------------------------------------

@pytest.fixture
def hierarchy() -> OrgHierarchy:
    return OrgHierarchy({
        "ROOT": None,
        "ORG-A": "ROOT",
        "ORG-A1": "ORG-A",
        "ORG-B": None,
    })


@pytest.fixture
def p1_scope() -> Scope:
    return Scope.project("P1", "ORG-A1")


@pytest.fixture
def directory(hierarchy, alice, bob, carol, root_admin, p1_scope) -> InMemoryDirectory:
    d = InMemoryDirectory(hierarchy)
    for actor in (alice, bob, carol, root_admin):
        d.add_actor(actor)
    d.add_membership(Membership(
        membership_id="m-alice", actor_id="alice", scope=p1_scope, roles=(EDITOR, MANAGER),
    ))
    d.add_membership(Membership(
        membership_id="m-bob", actor_id="bob", scope=Scope.organisation("ORG-A"), roles=(ADMIN,),
    ))
    d.set_project_owner("P1", "alice")
    return d


# ---------------------------------------------------------------------------
# Store and service
# ---------------------------------------------------------------------------

@pytest.fixture
def p1_snapshot() -> EntitySnapshot:
    return EntitySnapshot(
        entity_id="P1",
        title="Alpha",
        description="First project",
        owning_org_node_id="ORG-A1",
    )


@pytest.fixture
def projector() -> Projector:
    return Projector()


@pytest.fixture
def store(sim_clock, projector, p1_snapshot) -> InMemoryProjectStore:
    s = InMemoryProjectStore(projector=projector, clock=sim_clock)
    s.put_snapshot(p1_snapshot)
    return s


@pytest.fixture
def service(directory, store, sim_clock) -> MutationService:
    return MutationService.from_settings(directory, store=store, clock=sim_clock)
