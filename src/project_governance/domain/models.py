"""Core domain models used across the governance core.

These are the canonical "truth models" for the system: the project
aggregate and its attached entries, actors, scopes and role bindings.
All of them are frozen; collections are tuples so a fold can share
structure with its input without ever mutating it.
"""

from __future__ import annotations

from datetime import date
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, model_validator

from project_governance.core.enums import ScopeKind


# ---------------------------------------------------------------------------
# Project aggregate
# ---------------------------------------------------------------------------

class ProjectMember(BaseModel):
    """A person holding one project role."""

    model_config = ConfigDict(frozen=True)

    member_id: str
    person_id: str
    project_role_id: str
    name: str = ""
    email: str = ""
    role_name: str = ""
    pending: bool = False  # Synthetic entry from an unapproved event


class ProductRef(BaseModel):
    """A research output attached to the project."""

    model_config = ConfigDict(frozen=True)

    product_id: str
    title: str = ""
    pending: bool = False


class OrganisationRef(BaseModel):
    """An affiliated organisation attached to the project."""

    model_config = ConfigDict(frozen=True)

    organisation_id: str
    name: str = ""
    pending: bool = False


class EntitySnapshot(BaseModel):
    """Confirmed project aggregate as read from the store of record.

    Replaced wholesale on every confirmed read.  Projection returns new
    instances; nothing here is ever edited in place.
    """

    model_config = ConfigDict(frozen=True)

    entity_id: str
    title: str = ""
    description: str = ""
    start_date: date | None = None
    end_date: date | None = None
    owning_org_node_id: str = ""
    custom_fields: dict[str, str] = Field(default_factory=dict)
    members: tuple[ProjectMember, ...] = ()
    products: tuple[ProductRef, ...] = ()
    affiliated_organisations: tuple[OrganisationRef, ...] = ()

    @property
    def confirmed_members(self) -> tuple[ProjectMember, ...]:
        return tuple(m for m in self.members if not m.pending)

    @property
    def confirmed_member_count(self) -> int:
        """Authoritative member count; pending entries never count."""
        return len(self.confirmed_members)

    @property
    def confirmed_product_count(self) -> int:
        return sum(1 for p in self.products if not p.pending)

    def has_member(self, person_id: str, project_role_id: str) -> bool:
        return any(
            m.person_id == person_id and m.project_role_id == project_role_id
            for m in self.members
        )

    def has_product(self, product_id: str) -> bool:
        return any(p.product_id == product_id for p in self.products)

    def has_organisation(self, organisation_id: str) -> bool:
        return any(
            o.organisation_id == organisation_id
            for o in self.affiliated_organisations
        )

    def evolve(self, **changes: Any) -> EntitySnapshot:
        """Return a copy with *changes* applied."""
        return self.model_copy(update=changes)


# ---------------------------------------------------------------------------
# Actors and scopes
# ---------------------------------------------------------------------------

class Actor(BaseModel):
    """A person acting on the system."""

    model_config = ConfigDict(frozen=True)

    actor_id: str
    display_name: str = ""
    avatar_url: str = ""
    is_sys_admin: bool = False


class Scope(BaseModel):
    """A project, or an organisation node and its subtree.

    Project scopes carry their owning organisation node so containment can
    be decided without a lookup.  For organisation scopes ``org_node_id``
    always equals ``scope_id``.
    """

    model_config = ConfigDict(frozen=True)

    kind: ScopeKind
    scope_id: str
    org_node_id: str = ""

    @model_validator(mode="before")
    @classmethod
    def _org_scope_is_its_own_node(cls, data: Any) -> Any:
        if isinstance(data, dict) and data.get("kind") == ScopeKind.ORGANISATION:
            data = {**data, "org_node_id": data.get("scope_id", "")}
        return data

    @classmethod
    def project(cls, project_id: str, org_node_id: str = "") -> Scope:
        return cls(kind=ScopeKind.PROJECT, scope_id=project_id, org_node_id=org_node_id)

    @classmethod
    def organisation(cls, node_id: str) -> Scope:
        return cls(kind=ScopeKind.ORGANISATION, scope_id=node_id, org_node_id=node_id)

    @property
    def is_project(self) -> bool:
        return self.kind == ScopeKind.PROJECT

    def __str__(self) -> str:
        return f"{self.kind.value}:{self.scope_id}"


# ---------------------------------------------------------------------------
# Roles
# ---------------------------------------------------------------------------

class Role(BaseModel):
    """A named set of event types its holders may emit."""

    model_config = ConfigDict(frozen=True)

    role_id: str
    key: str
    display_name: str = ""
    allowed_event_types: frozenset[str] = frozenset()


class RoleBinding(BaseModel):
    """One role held at one scope."""

    model_config = ConfigDict(frozen=True)

    role: Role
    scope: Scope


class Membership(BaseModel):
    """Binds an actor to one or more roles at a scope."""

    model_config = ConfigDict(frozen=True)

    membership_id: str
    actor_id: str
    scope: Scope
    roles: tuple[Role, ...] = ()

    def bindings(self) -> tuple[RoleBinding, ...]:
        return tuple(RoleBinding(role=r, scope=self.scope) for r in self.roles)
