"""Projector: the one canonical fold of events onto a project snapshot.

``project(snapshot, events)`` produces the optimistic view a requester
sees while some of their changes still wait for approval.

Fold rules
----------
1.  Events are visited in the order given.  Callers pass them in creation
    order, which is how the store lists them; the fold never compares
    timestamps.
2.  Only ``pending`` events are folded.  Approved events already live in
    the snapshot and rejected ones are gone for good.
3.  Each event goes through the reducer registered for its type.  An
    unknown type, a type without a reducer, a malformed payload or an
    event for another entity leaves the view unchanged; the fold never
    raises for a single bad event.
4.  Inputs are never mutated, so the fold is safe to run concurrently and
    replaying the same inputs always yields an equal result.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass

from project_governance.catalog.registry import EventCatalog
from project_governance.core.config import ProjectionConfig
from project_governance.core.enums import EventStatus
from project_governance.core.errors import MalformedPayload
from project_governance.domain.events import Event
from project_governance.domain.models import EntitySnapshot
from project_governance.observability.metrics import record_projection_skip

from .reducers import ReduceContext, ReducerTable, build_default_reducers

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ProjectionReport:
    """Projected view plus what happened to each input event."""

    view: EntitySnapshot
    applied: tuple[str, ...] = ()
    skipped_unknown: tuple[str, ...] = ()
    skipped_malformed: tuple[str, ...] = ()
    skipped_foreign: tuple[str, ...] = ()
    ignored_resolved: int = 0

    @property
    def skipped(self) -> tuple[str, ...]:
        return self.skipped_unknown + self.skipped_malformed + self.skipped_foreign


class Projector:
    """Folds events onto snapshots with a fixed reducer table.

    Args:
        reducers: Reducer table; defaults to the project reducers over the
                  default catalog.
        config: Projection settings (pending entry id prefix).
    """

    def __init__(
        self,
        reducers: ReducerTable | None = None,
        config: ProjectionConfig | None = None,
    ) -> None:
        self._reducers = reducers or build_default_reducers()
        self._config = config or ProjectionConfig()

    @property
    def catalog(self) -> EventCatalog:
        return self._reducers.catalog

    # ------------------------------------------------------------------
    # Optimistic fold
    # ------------------------------------------------------------------

    def project(self, snapshot: EntitySnapshot, events: Sequence[Event]) -> EntitySnapshot:
        """Fold pending *events* onto *snapshot* and return the view."""
        return self.project_with_report(snapshot, events).view

    def project_with_report(
        self, snapshot: EntitySnapshot, events: Sequence[Event],
    ) -> ProjectionReport:
        ctx = ReduceContext(pending=True, pending_id_prefix=self._config.pending_id_prefix)
        view = snapshot
        applied: list[str] = []
        unknown: list[str] = []
        malformed: list[str] = []
        foreign: list[str] = []
        ignored = 0

        for event in events:
            if event.status != EventStatus.PENDING:
                ignored += 1
                continue
            if event.entity_id != snapshot.entity_id:
                logger.warning(
                    "Skipping event for another entity: event=%s entity=%s view=%s",
                    event.event_id, event.entity_id, snapshot.entity_id,
                )
                record_projection_skip("foreign_entity")
                foreign.append(event.event_id)
                continue

            outcome, view = self._apply(view, event, ctx)
            if outcome == "applied":
                applied.append(event.event_id)
            elif outcome == "unknown":
                unknown.append(event.event_id)
            else:
                malformed.append(event.event_id)

        return ProjectionReport(
            view=view,
            applied=tuple(applied),
            skipped_unknown=tuple(unknown),
            skipped_malformed=tuple(malformed),
            skipped_foreign=tuple(foreign),
            ignored_resolved=ignored,
        )

    # ------------------------------------------------------------------
    # Confirmed fold
    # ------------------------------------------------------------------

    def confirm(self, snapshot: EntitySnapshot, event: Event) -> EntitySnapshot:
        """Apply one approved event to the confirmed snapshot.

        Used by the store of record; entries it adds are not flagged
        pending.  Bad events leave the snapshot unchanged, as in the
        optimistic fold.
        """
        ctx = ReduceContext(pending=False, pending_id_prefix=self._config.pending_id_prefix)
        _, result = self._apply(snapshot, event, ctx)
        return result

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _apply(
        self, snapshot: EntitySnapshot, event: Event, ctx: ReduceContext,
    ) -> tuple[str, EntitySnapshot]:
        reducer = self._reducers.get(event.event_type)
        if reducer is None:
            if event.event_type not in self.catalog:
                logger.info(
                    "Unknown event type left out of projection: type=%s event=%s",
                    event.event_type, event.event_id,
                )
            else:
                logger.debug("No reducer for %s; view unchanged", event.event_type)
            record_projection_skip("unknown_type")
            return "unknown", snapshot

        try:
            payload = self.catalog.validate_payload(event.event_type, event.payload)
            return "applied", reducer(snapshot, event, payload, ctx)
        except MalformedPayload as exc:
            logger.warning(
                "Skipping malformed event %s: %s", event.event_id, exc.reason,
            )
            record_projection_skip("malformed")
            return "malformed", snapshot


_default_projector: Projector | None = None


def project(snapshot: EntitySnapshot, events: Sequence[Event]) -> EntitySnapshot:
    """Fold pending *events* onto *snapshot* with the default reducers."""
    global _default_projector
    if _default_projector is None:
        _default_projector = Projector()
    return _default_projector.project(snapshot, events)
