"""Approval workflow for pending events.

Manages the resolution of events the policy engine held back:

1. **approvers_for()**: re-evaluates the event's policies against the live
   directory to find who may decide it right now.
2. **approve() / reject()**: guarded ``pending -> approved|rejected``
   transition in the store of record.

Approved and rejected are terminal.  The transition itself is a
compare-and-set in the store, so of two concurrent resolutions exactly
one wins and the other raises :class:`ConflictingApprovalTransition`.
"""

from __future__ import annotations

import logging
import threading

from pydantic import BaseModel

from project_governance.core.config import AccessConfig
from project_governance.core.enums import EventStatus
from project_governance.core.errors import (
    ConflictingApprovalTransition,
    UnauthorizedApproval,
)
from project_governance.core.interfaces import IEventStore
from project_governance.domain.events import Event
from project_governance.domain.models import Actor
from project_governance.observability.metrics import record_approval_transition

from .engine import PolicyEngine, routing_scope

logger = logging.getLogger(__name__)


class ApprovalSummary(BaseModel):
    """Summary statistics for approval workflow health."""

    approved: int = 0
    rejected: int = 0
    conflicts: int = 0
    unauthorized: int = 0
    avg_decision_time_seconds: float = 0.0


class ApprovalManager:
    """Resolves pending events.

    Args:
        store: Store of record; owns the status transition.
        engine: Policy engine used to re-derive the live approver set.
        config: Access settings; system administrators may resolve any
                event when the bypass is on.
    """

    def __init__(
        self,
        store: IEventStore,
        engine: PolicyEngine,
        config: AccessConfig | None = None,
    ) -> None:
        self._store = store
        self._engine = engine
        self._config = config or AccessConfig()

        # Metrics
        self._stats_lock = threading.Lock()
        self._counts: dict[str, int] = {
            "approved": 0, "rejected": 0, "conflict": 0, "unauthorized": 0,
        }
        self._decision_total = 0.0
        self._decision_count = 0

    # ------------------------------------------------------------------
    # Approver set
    # ------------------------------------------------------------------

    def approvers_for(self, event: Event) -> frozenset[str]:
        """Actors currently reached by an approval policy matching *event*."""
        snapshot = self._store.get_snapshot(event.entity_id)
        scope = routing_scope(snapshot, event.entity_id, event.event_type, event.payload)
        return self._engine.evaluate(event, scope, snapshot).approver_ids

    def can_resolve(self, actor: Actor, event: Event) -> bool:
        if actor.is_sys_admin and self._config.sys_admin_bypass:
            return True
        return actor.actor_id in self.approvers_for(event)

    # ------------------------------------------------------------------
    # Core workflow
    # ------------------------------------------------------------------

    def approve(self, event_id: str, approver: Actor) -> Event:
        """Approve a pending event.

        Raises:
            EventNotFound: no such event.
            ConflictingApprovalTransition: event already resolved.
            UnauthorizedApproval: *approver* may not decide this event.
        """
        return self._resolve(event_id, approver, EventStatus.APPROVED)

    def reject(self, event_id: str, approver: Actor) -> Event:
        """Reject a pending event.  Raises as :meth:`approve`."""
        return self._resolve(event_id, approver, EventStatus.REJECTED)

    def _resolve(self, event_id: str, approver: Actor, status: EventStatus) -> Event:
        event = self._store.get_event(event_id)

        if event.is_terminal:
            logger.warning(
                "Cannot %s terminal event %s (status=%s)",
                _verb(status), event_id, event.status.value,
            )
            self._count("conflict")
            raise ConflictingApprovalTransition(
                event_id, EventStatus.PENDING.value, event.status.value,
            )

        if not self.can_resolve(approver, event):
            logger.warning(
                "Approval refused: id=%s actor=%s is not an approver",
                event_id, approver.actor_id,
            )
            self._count("unauthorized")
            raise UnauthorizedApproval(
                f"Actor {approver.actor_id} may not resolve event {event_id}"
            )

        try:
            resolved = self._store.transition(
                event_id, EventStatus.PENDING, status, approver.actor_id,
            )
        except ConflictingApprovalTransition:
            logger.warning(
                "Lost resolution race: id=%s by=%s wanted=%s",
                event_id, approver.actor_id, status.value,
            )
            self._count("conflict")
            raise

        dt = 0.0
        if resolved.decided_at is not None:
            dt = (resolved.decided_at - resolved.created_at).total_seconds()
        self._count(status.value, decision_seconds=dt)

        logger.info(
            "Approval %s: id=%s type=%s by=%s (%.1fs)",
            "granted" if status == EventStatus.APPROVED else "rejected",
            event_id,
            resolved.event_type,
            approver.actor_id,
            dt,
        )
        return resolved

    # ------------------------------------------------------------------
    # Query
    # ------------------------------------------------------------------

    def get_pending(self, entity_id: str) -> list[Event]:
        """Pending events of *entity_id*, in creation order."""
        return list(self._store.list_pending_events(entity_id))

    def get_summary(self) -> ApprovalSummary:
        with self._stats_lock:
            counts = dict(self._counts)
            avg_dt = self._decision_total / self._decision_count if self._decision_count else 0.0
        return ApprovalSummary(
            approved=counts["approved"],
            rejected=counts["rejected"],
            conflicts=counts["conflict"],
            unauthorized=counts["unauthorized"],
            avg_decision_time_seconds=round(avg_dt, 2),
        )

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _count(self, outcome: str, decision_seconds: float | None = None) -> None:
        with self._stats_lock:
            self._counts[outcome] += 1
            if decision_seconds is not None:
                self._decision_total += decision_seconds
                self._decision_count += 1
        record_approval_transition(outcome)


def _verb(status: EventStatus) -> str:
    return "approve" if status == EventStatus.APPROVED else "reject"
