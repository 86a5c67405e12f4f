"""Mutation service: the single entry point for changing a project.

Issuing an intent runs a fixed pipeline::

    known type -> emission check -> payload validation -> decider
        -> policy routing -> one atomic append with the final status

Nothing is appended unless every earlier step passed, so an unauthorized
or malformed intent leaves no trace in the store of record.  Events no
approval policy holds back are appended already approved and confirmed
on the spot; the rest wait as pending and show up only in their
requester's optimistic view until someone resolves them.
"""

from __future__ import annotations

import logging
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from project_governance.catalog.registry import DEFAULT_CATALOG, EventCatalog
from project_governance.core.clock import IClock
from project_governance.core.config import Settings
from project_governance.core.enums import EventStatus
from project_governance.core.ids import payload_fingerprint
from project_governance.core.interfaces import IEventStore
from project_governance.domain.events import Event, EventDisplayHints
from project_governance.domain.models import Actor, EntitySnapshot, Scope
from project_governance.infrastructure.directory import InMemoryDirectory
from project_governance.infrastructure.event_store import InMemoryProjectStore
from project_governance.observability.metrics import record_event_issued
from project_governance.policy.access import AccessEngine, AvailableEvent
from project_governance.policy.approval import ApprovalManager
from project_governance.policy.engine import PolicyEngine, routing_scope
from project_governance.policy.models import RoutingDecision
from project_governance.projection.projector import Projector
from project_governance.projection.reducers import build_default_reducers
from project_governance.rendering.renderers import (
    RenderedEvent,
    RendererRegistry,
    build_default_renderers,
)

from .deciders import decide

logger = logging.getLogger(__name__)


class MutationIntent(BaseModel):
    """A requested change, before it becomes an event."""

    model_config = ConfigDict(frozen=True)

    entity_id: str
    event_type: str
    payload: dict[str, Any] = Field(default_factory=dict)
    display: EventDisplayHints | None = None


class MutationResult(BaseModel):
    """Outcome of :meth:`MutationService.issue`.

    ``event`` is ``None`` when the intent would not change the project;
    nothing was appended and no policy was evaluated.
    """

    model_config = ConfigDict(frozen=True)

    event: Event | None = None
    decision: RoutingDecision | None = None

    @property
    def is_noop(self) -> bool:
        return self.event is None

    @property
    def is_pending(self) -> bool:
        return self.event is not None and self.event.is_pending


class MutationService:
    """Composes catalog, access, policy routing, projection and rendering.

    Args:
        store: Store of record.
        access: Emission authorization.
        policies: Policy routing.
        approvals: Resolution of pending events.
        projector: Optimistic fold for :meth:`view`.
        renderers: Renderer dispatch for :meth:`render_history`.
        catalog: Known event types.
    """

    def __init__(
        self,
        store: IEventStore,
        access: AccessEngine,
        policies: PolicyEngine,
        approvals: ApprovalManager,
        projector: Projector | None = None,
        renderers: RendererRegistry | None = None,
        catalog: EventCatalog = DEFAULT_CATALOG,
    ) -> None:
        self._store = store
        self._access = access
        self._policies = policies
        self._approvals = approvals
        self._projector = projector or Projector()
        self._renderers = renderers or build_default_renderers(catalog)
        self._catalog = catalog

    @classmethod
    def from_settings(
        cls,
        directory: InMemoryDirectory,
        settings: Settings | None = None,
        store: IEventStore | None = None,
        clock: IClock | None = None,
        catalog: EventCatalog = DEFAULT_CATALOG,
    ) -> MutationService:
        """Wire a service over *directory* with the default tables."""
        cfg = settings or Settings()
        projector = Projector(build_default_reducers(catalog), cfg.projection)
        if store is None:
            store = InMemoryProjectStore(projector=projector, clock=clock)
        access = AccessEngine(catalog, directory, directory.hierarchy, cfg.access)
        policies = PolicyEngine(catalog, directory, directory, cfg.policy)
        return cls(
            store=store,
            access=access,
            policies=policies,
            approvals=ApprovalManager(store, policies, cfg.access),
            projector=projector,
            renderers=build_default_renderers(catalog, cfg.rendering),
            catalog=catalog,
        )

    @property
    def store(self) -> IEventStore:
        return self._store

    @property
    def approvals(self) -> ApprovalManager:
        return self._approvals

    # ------------------------------------------------------------------
    # Issue
    # ------------------------------------------------------------------

    def issue(self, actor: Actor, intent: MutationIntent) -> MutationResult:
        """Turn *intent* into a stored event.

        Raises:
            UnknownEventType: type not in the catalog.
            UnauthorizedEmission: *actor* may not emit the type here.
            MalformedPayload: payload does not fit the type.
        """
        self._catalog.require(intent.event_type, "issue")
        snapshot = self._store.get_snapshot(intent.entity_id)
        scope = self.scope_for(snapshot, intent)

        self._access.ensure_allowed(actor, scope, intent.event_type)
        payload = self._catalog.validate_payload(intent.event_type, intent.payload)

        requester_view = self.view(intent.entity_id, requester_id=actor.actor_id)
        emitted = decide(intent.event_type, requester_view, payload)
        if emitted is None:
            logger.info(
                "Intent changes nothing: type=%s entity=%s actor=%s",
                intent.event_type, intent.entity_id, actor.actor_id,
            )
            return MutationResult()

        display = self._display_for(actor, snapshot, intent)
        candidate = Event(
            event_type=intent.event_type,
            payload=emitted,
            actor_id=actor.actor_id,
            entity_id=intent.entity_id,
            display=display,
        )
        decision = self._policies.evaluate(
            candidate, scope, snapshot, actor_name=display.actor_name,
        )
        status = EventStatus.PENDING if decision.requires_approval else EventStatus.APPROVED

        event = self._store.append(
            intent.entity_id,
            intent.event_type,
            emitted,
            actor.actor_id,
            status,
            display,
            event_id=candidate.event_id,
        )
        record_event_issued(event.event_type, status.value)
        logger.info(
            "Event issued: id=%s type=%s entity=%s actor=%s status=%s payload=%s policies=%s",
            event.event_id,
            event.event_type,
            event.entity_id,
            actor.actor_id,
            status.value,
            payload_fingerprint(event.event_type, emitted),
            ",".join(decision.matched_policy_ids) or "-",
        )
        return MutationResult(event=event, decision=decision)

    # ------------------------------------------------------------------
    # Approval
    # ------------------------------------------------------------------

    def approve(self, event_id: str, approver: Actor) -> Event:
        return self._approvals.approve(event_id, approver)

    def reject(self, event_id: str, approver: Actor) -> Event:
        return self._approvals.reject(event_id, approver)

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def view(self, entity_id: str, requester_id: str | None = None) -> EntitySnapshot:
        """Confirmed snapshot with pending events folded on top.

        Only *requester_id*'s own pending events are folded; with ``None``
        every pending event is.
        """
        snapshot = self._store.get_snapshot(entity_id)
        pending = self._store.list_pending_events(entity_id)
        if requester_id is not None:
            pending = [e for e in pending if e.actor_id == requester_id]
        return self._projector.project(snapshot, pending)

    def render_history(self, entity_id: str) -> list[RenderedEvent]:
        """Every event of *entity_id*, rendered, in creation order."""
        return [self._renderers.render(e) for e in self._store.list_events(entity_id)]

    def render_pending(self, entity_id: str) -> list[RenderedEvent]:
        return [self._renderers.render(e) for e in self._store.list_pending_events(entity_id)]

    def list_available_events(self, actor: Actor, scope: Scope) -> list[AvailableEvent]:
        return self._access.list_available_events(actor, scope)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    @staticmethod
    def scope_for(snapshot: EntitySnapshot, intent: MutationIntent) -> Scope:
        """Project scope of the intent's target, as approval will see it."""
        return routing_scope(snapshot, intent.entity_id, intent.event_type, intent.payload)

    @staticmethod
    def _display_for(
        actor: Actor, snapshot: EntitySnapshot, intent: MutationIntent,
    ) -> EventDisplayHints:
        hints = intent.display or EventDisplayHints()
        defaults = {
            "actor_name": actor.display_name,
            "actor_avatar_url": actor.avatar_url,
            "entity_name": snapshot.title or str(intent.payload.get("title") or ""),
        }
        update = {k: v for k, v in defaults.items() if v and not getattr(hints, k)}
        return hints.model_copy(update=update) if update else hints
