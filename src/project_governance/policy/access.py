"""Emission authorization.

An actor may emit an event type at a scope when some role it holds at a
containing scope lists that type.  Role grants only ever add: the
allowed set is a union over every reaching binding, so granting a role
can never shrink it, and a binding held at an organisation node cannot
be taken away by anything held further down.
"""

from __future__ import annotations

import logging

from pydantic import BaseModel, ConfigDict

from project_governance.catalog.registry import EventCatalog
from project_governance.core.config import AccessConfig
from project_governance.core.errors import UnauthorizedEmission
from project_governance.core.interfaces import IRoleBindingSource
from project_governance.domain.models import Actor, Scope
from project_governance.observability.metrics import record_unauthorized_emission

from .hierarchy import OrgHierarchy

logger = logging.getLogger(__name__)


class AvailableEvent(BaseModel):
    """A catalog entry annotated with whether the actor may emit it."""

    model_config = ConfigDict(frozen=True)

    event_type: str
    friendly_name: str
    allowed: bool


class AccessEngine:
    """Decides which event types an actor may emit at a scope.

    Args:
        catalog: Known event types; role entries outside it are dropped.
        bindings: Live source of role bindings.
        hierarchy: Organisation tree used for scope containment.
        config: Access settings (system administrator bypass).
    """

    def __init__(
        self,
        catalog: EventCatalog,
        bindings: IRoleBindingSource,
        hierarchy: OrgHierarchy,
        config: AccessConfig | None = None,
    ) -> None:
        self._catalog = catalog
        self._bindings = bindings
        self._hierarchy = hierarchy
        self._config = config or AccessConfig()

    @property
    def hierarchy(self) -> OrgHierarchy:
        return self._hierarchy

    def allowed_event_types(self, actor: Actor, scope: Scope) -> frozenset[str]:
        """Union of allowed types over every role reaching *scope*."""
        if actor.is_sys_admin and self._config.sys_admin_bypass:
            return self._catalog.event_types()

        allowed: set[str] = set()
        for binding in self._bindings.list_role_bindings(actor.actor_id):
            if self._hierarchy.contains(binding.scope, scope):
                allowed |= binding.role.allowed_event_types

        return self._catalog.known_subset(allowed, f"roles of {actor.actor_id} at {scope}")

    def is_allowed(self, actor: Actor, scope: Scope, event_type: str) -> bool:
        return event_type in self.allowed_event_types(actor, scope)

    def ensure_allowed(self, actor: Actor, scope: Scope, event_type: str) -> None:
        """Raise :class:`UnauthorizedEmission` unless *actor* may emit *event_type*."""
        if self.is_allowed(actor, scope, event_type):
            return
        logger.warning(
            "Emission denied: actor=%s type=%s scope=%s",
            actor.actor_id, event_type, scope,
        )
        record_unauthorized_emission(event_type)
        raise UnauthorizedEmission(actor.actor_id, event_type, scope.scope_id)

    def list_available_events(self, actor: Actor, scope: Scope) -> list[AvailableEvent]:
        """Every catalog entry, flagged with whether *actor* may emit it."""
        allowed = self.allowed_event_types(actor, scope)
        return [
            AvailableEvent(
                event_type=info.event_type,
                friendly_name=info.friendly_name,
                allowed=info.event_type in allowed,
            )
            for info in self._catalog.list_event_types()
        ]
