"""In-memory directory: actors, memberships, policies and dynamic groups.

Implements the three live sources the policy layer reads from:
:class:`IRoleBindingSource`, :class:`IPolicySource` and
:class:`IRecipientResolver`.  Every query reads the current state, so a
membership change is visible to the very next evaluation.

``fail_source`` / ``fail_policies`` inject lookup failures for tests of
the degraded paths.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Iterable

from project_governance.catalog.registry import DEFAULT_CATALOG, EventCatalog
from project_governance.core.enums import DynamicGroup
from project_governance.domain.models import Actor, Membership, RoleBinding, Scope
from project_governance.policy.hierarchy import OrgHierarchy
from project_governance.policy.models import Policy

logger = logging.getLogger(__name__)


class DirectoryUnavailable(ConnectionError):
    """Injected lookup failure."""


class InMemoryDirectory:
    """Dict-backed directory.  No persistence across restarts.

    Args:
        hierarchy: Organisation tree; org-level grants and policies reach
                   descendant nodes through it.
        admin_role_key: Role key whose holders form ``org_admins``.
        catalog: Event types policies are checked against on registration.
    """

    def __init__(
        self,
        hierarchy: OrgHierarchy | None = None,
        admin_role_key: str = "admin",
        catalog: EventCatalog = DEFAULT_CATALOG,
    ) -> None:
        self._hierarchy = hierarchy or OrgHierarchy()
        self._admin_role_key = admin_role_key
        self._catalog = catalog
        self._lock = threading.Lock()

        self._actors: dict[str, Actor] = {}
        self._memberships: dict[str, Membership] = {}
        self._policies: dict[str, Policy] = {}
        self._owners: dict[str, str] = {}  # project_id -> actor_id

        self._failing_sources: set[str] = set()
        self._policies_failing = False

    @property
    def hierarchy(self) -> OrgHierarchy:
        return self._hierarchy

    # ------------------------------------------------------------------
    # Administration
    # ------------------------------------------------------------------

    def add_actor(self, actor: Actor) -> None:
        with self._lock:
            self._actors[actor.actor_id] = actor

    def get_actor(self, actor_id: str) -> Actor | None:
        with self._lock:
            return self._actors.get(actor_id)

    def add_membership(self, membership: Membership) -> None:
        with self._lock:
            self._memberships[membership.membership_id] = membership

    def remove_membership(self, membership_id: str) -> bool:
        """Remove a membership by ID.  Returns True if found and removed."""
        with self._lock:
            return self._memberships.pop(membership_id, None) is not None

    def add_policy(self, policy: Policy) -> None:
        """Register *policy*.  Unknown event types are logged; they never match."""
        self._catalog.unknown_types(policy.event_types, f"policy {policy.policy_id}")
        with self._lock:
            self._policies[policy.policy_id] = policy

    def remove_policy(self, policy_id: str) -> bool:
        with self._lock:
            return self._policies.pop(policy_id, None) is not None

    def set_project_owner(self, project_id: str, actor_id: str) -> None:
        with self._lock:
            self._owners[project_id] = actor_id

    # -- Testing helpers ---------------------------------------------------

    def fail_source(self, source: str, failing: bool = True) -> None:
        """Make one recipient source raise.

        *source* is a dynamic group name, ``"users"``, or
        ``"project_role:<id>"`` / ``"org_role:<id>"``.
        """
        with self._lock:
            if failing:
                self._failing_sources.add(source)
            else:
                self._failing_sources.discard(source)

    def fail_policies(self, failing: bool = True) -> None:
        with self._lock:
            self._policies_failing = failing

    # ------------------------------------------------------------------
    # IRoleBindingSource
    # ------------------------------------------------------------------

    def list_role_bindings(self, actor_id: str) -> list[RoleBinding]:
        with self._lock:
            memberships = [m for m in self._memberships.values() if m.actor_id == actor_id]
        return [b for m in memberships for b in m.bindings()]

    # ------------------------------------------------------------------
    # IPolicySource
    # ------------------------------------------------------------------

    def list_policies(self, scope: Scope, inherited: bool = True) -> list[Policy]:
        """Project policies first, then organisation policies closest first."""
        with self._lock:
            if self._policies_failing:
                raise DirectoryUnavailable("policy store unavailable")
            policies = list(self._policies.values())

        nodes: tuple[str, ...] = ()
        if scope.org_node_id:
            nodes = (
                self._hierarchy.lineage(scope.org_node_id)
                if inherited else (scope.org_node_id,)
            )

        result: list[Policy] = []
        if scope.is_project:
            result.extend(p for p in policies if p.project_id == scope.scope_id)
        for node in nodes:
            result.extend(p for p in policies if p.org_node_id == node)
        return result

    # ------------------------------------------------------------------
    # IRecipientResolver
    # ------------------------------------------------------------------

    def resolve_dynamic_group(self, name: str, scope: Scope) -> list[str]:
        self._check(name)
        if name == DynamicGroup.PROJECT_MEMBERS:
            if not scope.is_project:
                return []
            return sorted({
                m.actor_id for m in self._snapshot_memberships()
                if m.scope.is_project and m.scope.scope_id == scope.scope_id
            })
        if name == DynamicGroup.PROJECT_OWNER:
            with self._lock:
                owner = self._owners.get(scope.scope_id) if scope.is_project else None
            return [owner] if owner else []
        if name == DynamicGroup.ORG_ADMINS:
            if not scope.org_node_id:
                return []
            lineage = set(self._hierarchy.lineage(scope.org_node_id))
            return sorted({
                m.actor_id for m in self._snapshot_memberships()
                if not m.scope.is_project
                and m.scope.scope_id in lineage
                and any(r.key == self._admin_role_key for r in m.roles)
            })
        raise LookupError(f"Unknown dynamic group: {name}")

    def resolve_users(self, user_ids: Iterable[str]) -> list[str]:
        """Known actors among *user_ids*; unknown ids are dropped."""
        self._check("users")
        requested = list(user_ids)
        with self._lock:
            known = [u for u in requested if u in self._actors]
        dropped = set(requested) - set(known)
        if dropped:
            logger.debug("Dropping unknown recipient ids: %s", sorted(dropped))
        return known

    def resolve_project_role(self, role_id: str, project_id: str) -> list[str]:
        self._check(f"project_role:{role_id}")
        return sorted({
            m.actor_id for m in self._snapshot_memberships()
            if m.scope.is_project
            and m.scope.scope_id == project_id
            and any(r.role_id == role_id for r in m.roles)
        })

    def resolve_org_role(self, role_id: str, org_node_id: str) -> list[str]:
        """Holders of *role_id* at *org_node_id* or any of its ancestors."""
        self._check(f"org_role:{role_id}")
        lineage = set(self._hierarchy.lineage(org_node_id))
        return sorted({
            m.actor_id for m in self._snapshot_memberships()
            if not m.scope.is_project
            and m.scope.scope_id in lineage
            and any(r.role_id == role_id for r in m.roles)
        })

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _snapshot_memberships(self) -> list[Membership]:
        with self._lock:
            return list(self._memberships.values())

    def _check(self, source: str) -> None:
        with self._lock:
            failing = source in self._failing_sources
        if failing:
            raise DirectoryUnavailable(f"{source} lookup unavailable")
