"""In-memory store of record for project events and confirmed snapshots.

The store owns two things per project: the event log (creation order)
and the confirmed snapshot.  Approved events are folded into the
confirmed snapshot with :meth:`Projector.confirm` at the moment they are
approved, so ``get_snapshot`` always reflects approval order.

Every mutation runs under one lock:

- ``append`` builds the complete event (id, timestamp, status) first and
  publishes it in a single step; no reader ever sees a half-built event.
- ``transition`` is a compare-and-set on status.  Of two concurrent
  resolutions exactly one succeeds; the other raises
  :class:`ConflictingApprovalTransition` and the first status stays.

No persistence across restarts.  Good for: unit tests, local
development, embedding behind a real database adapter.
"""

from __future__ import annotations

import logging
import threading
from typing import Any

from project_governance.core.clock import IClock, WallClock
from project_governance.core.enums import EventStatus
from project_governance.core.errors import (
    ConflictingApprovalTransition,
    EventNotFound,
    TransitionError,
)
from project_governance.domain.events import Event, EventDisplayHints
from project_governance.domain.models import EntitySnapshot
from project_governance.projection.projector import Projector

logger = logging.getLogger(__name__)


class InMemoryProjectStore:
    """Dict-backed event log plus confirmed snapshots.

    Args:
        projector: Folds approved events into confirmed snapshots.
        clock: Source of creation and decision timestamps.
    """

    def __init__(
        self,
        projector: Projector | None = None,
        clock: IClock | None = None,
    ) -> None:
        self._projector = projector or Projector()
        self._clock = clock or WallClock()
        self._lock = threading.Lock()

        self._events: dict[str, Event] = {}
        self._order: dict[str, list[str]] = {}  # entity_id -> event ids
        self._snapshots: dict[str, EntitySnapshot] = {}

    # ------------------------------------------------------------------
    # Snapshots
    # ------------------------------------------------------------------

    def put_snapshot(self, snapshot: EntitySnapshot) -> None:
        """Seed or replace the confirmed snapshot of a project."""
        with self._lock:
            self._snapshots[snapshot.entity_id] = snapshot

    def get_snapshot(self, entity_id: str) -> EntitySnapshot:
        """Confirmed snapshot; an empty one for a project never seen."""
        with self._lock:
            return self._snapshots.get(entity_id) or EntitySnapshot(entity_id=entity_id)

    # ------------------------------------------------------------------
    # Events
    # ------------------------------------------------------------------

    def append(
        self,
        entity_id: str,
        event_type: str,
        payload: dict[str, Any],
        actor_id: str,
        status: EventStatus,
        display: EventDisplayHints | None = None,
        event_id: str | None = None,
    ) -> Event:
        """Create, store and return a new event with *status*.

        An event stored already approved is confirmed immediately.  A
        caller that routed the event before storing it passes the id it
        routed under as *event_id*; otherwise one is generated.
        """
        fields: dict[str, Any] = {}
        if event_id is not None:
            fields["event_id"] = event_id
        with self._lock:
            if event_id is not None and event_id in self._events:
                raise ValueError(f"Duplicate event id: {event_id}")
            event = Event(
                event_type=event_type,
                payload=dict(payload),
                actor_id=actor_id,
                entity_id=entity_id,
                created_at=self._clock.now(),
                status=status,
                display=display or EventDisplayHints(),
                **fields,
            )
            self._events[event.event_id] = event
            self._order.setdefault(entity_id, []).append(event.event_id)
            if status == EventStatus.APPROVED:
                self._confirm(event)

        logger.debug(
            "Event appended: id=%s type=%s entity=%s status=%s",
            event.event_id, event_type, entity_id, status.value,
        )
        return event

    def transition(
        self,
        event_id: str,
        expected: EventStatus,
        new: EventStatus,
        decided_by: str,
    ) -> Event:
        """Move *event_id* from *expected* to *new* or fail without change.

        Raises:
            EventNotFound: no such event.
            ConflictingApprovalTransition: current status is not *expected*.
            TransitionError: *new* is not a terminal status.
        """
        if new == EventStatus.PENDING:
            raise TransitionError(f"Cannot transition event {event_id} back to pending")

        with self._lock:
            current = self._events.get(event_id)
            if current is None:
                raise EventNotFound(f"Event not found: {event_id}")
            if current.status != expected:
                raise ConflictingApprovalTransition(
                    event_id, expected.value, current.status.value,
                )

            resolved = current.resolved(new, decided_by, self._clock.now())
            self._events[event_id] = resolved
            if new == EventStatus.APPROVED:
                self._confirm(resolved)

        logger.debug(
            "Event transitioned: id=%s %s -> %s by=%s",
            event_id, expected.value, new.value, decided_by,
        )
        return resolved

    def get_event(self, event_id: str) -> Event:
        with self._lock:
            event = self._events.get(event_id)
        if event is None:
            raise EventNotFound(f"Event not found: {event_id}")
        return event

    def list_events(self, entity_id: str) -> list[Event]:
        """All events of *entity_id* in creation order."""
        with self._lock:
            return [self._events[i] for i in self._order.get(entity_id, ())]

    def list_pending_events(self, entity_id: str) -> list[Event]:
        return [e for e in self.list_events(entity_id) if e.is_pending]

    # -- Testing helpers ---------------------------------------------------

    def clear(self) -> None:
        """Remove all events and snapshots.  Testing only."""
        with self._lock:
            self._events.clear()
            self._order.clear()
            self._snapshots.clear()

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _confirm(self, event: Event) -> None:
        # Caller holds the lock
        snapshot = self._snapshots.get(event.entity_id) or EntitySnapshot(
            entity_id=event.entity_id,
        )
        self._snapshots[event.entity_id] = self._projector.confirm(snapshot, event)
