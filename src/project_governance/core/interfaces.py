"""Protocol interfaces for the collaborators the core consumes.

All module boundaries are defined here as Protocol classes.  Every
implementation hands back already-resolved data; retries, timeouts and
cancellation belong to the layer that implements them, not to the core.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

from .enums import EventStatus

if TYPE_CHECKING:
    from project_governance.domain.events import Event, EventDisplayHints
    from project_governance.domain.models import EntitySnapshot, RoleBinding, Scope
    from project_governance.policy.models import Policy


# ---------------------------------------------------------------------------
# Read side
# ---------------------------------------------------------------------------

@runtime_checkable
class ISnapshotReader(Protocol):
    """Confirmed aggregate reads."""

    def get_snapshot(self, entity_id: str) -> EntitySnapshot: ...


@runtime_checkable
class IEventLog(Protocol):
    """Pending event reads, in creation order."""

    def list_pending_events(self, entity_id: str) -> Sequence[Event]: ...


# ---------------------------------------------------------------------------
# Write side
# ---------------------------------------------------------------------------

@runtime_checkable
class IEventStore(ISnapshotReader, IEventLog, Protocol):
    """Store of record.

    ``append`` assigns id, timestamp and status and makes the event visible
    in one atomic step.  ``transition`` is a compare-and-set on status.
    """

    def append(
        self,
        entity_id: str,
        event_type: str,
        payload: dict[str, Any],
        actor_id: str,
        status: EventStatus,
        display: EventDisplayHints | None = None,
        event_id: str | None = None,
    ) -> Event: ...

    def transition(
        self,
        event_id: str,
        expected: EventStatus,
        new: EventStatus,
        decided_by: str,
    ) -> Event: ...

    def get_event(self, event_id: str) -> Event: ...

    def list_events(self, entity_id: str) -> Sequence[Event]: ...


# ---------------------------------------------------------------------------
# Authorization sources
# ---------------------------------------------------------------------------

@runtime_checkable
class IRoleBindingSource(Protocol):
    """Role bindings held by an actor, at every scope."""

    def list_role_bindings(self, actor_id: str) -> Iterable[RoleBinding]: ...


@runtime_checkable
class IPolicySource(Protocol):
    """Policies attached at a scope, optionally with ancestor scopes."""

    def list_policies(self, scope: Scope, inherited: bool = True) -> Iterable[Policy]: ...


@runtime_checkable
class IRecipientResolver(Protocol):
    """Live recipient queries.  Each call is a fresh read."""

    def resolve_dynamic_group(self, name: str, scope: Scope) -> Iterable[str]: ...

    def resolve_users(self, user_ids: Iterable[str]) -> Iterable[str]: ...

    def resolve_project_role(self, role_id: str, project_id: str) -> Iterable[str]: ...

    def resolve_org_role(self, role_id: str, org_node_id: str) -> Iterable[str]: ...
