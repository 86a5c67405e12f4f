"""Domain event record.

Design invariants
-----------------
1.  Every event is **immutable** (``frozen=True``).  Resolution produces a
    new ``Event`` via :meth:`Event.resolved`, never an in-place edit.
2.  ``event_type`` is a catalog key; ``payload`` is the type-specific body
    whose shape the catalog's payload model defines.
3.  ``event_id`` is a UUID4 generated at creation time; the store uses it
    as the identity key for status transitions.
4.  ``display`` carries denormalized presentation hints so renderers never
    have to look anything up.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from project_governance.core.enums import EventStatus
from project_governance.core.ids import new_event_id, utc_now


class EventDisplayHints(BaseModel):
    """Denormalized display data captured when the event was issued."""

    model_config = ConfigDict(frozen=True)

    actor_name: str = ""
    actor_avatar_url: str = ""
    entity_name: str = ""
    person_name: str = ""
    person_email: str = ""
    role_name: str = ""
    product_title: str = ""
    organisation_name: str = ""
    details: str = ""  # Free-text fallback for unrecognised types


class Event(BaseModel):
    """Immutable, typed, timestamped record of an intended change."""

    model_config = ConfigDict(frozen=True)

    event_id: str = Field(default_factory=new_event_id)
    event_type: str
    payload: dict[str, Any] = Field(default_factory=dict)
    actor_id: str
    entity_id: str
    created_at: datetime = Field(default_factory=utc_now)
    status: EventStatus = EventStatus.PENDING
    display: EventDisplayHints = Field(default_factory=EventDisplayHints)

    # Resolution
    decided_by: str = ""
    decided_at: datetime | None = None

    @property
    def is_pending(self) -> bool:
        return self.status == EventStatus.PENDING

    @property
    def is_terminal(self) -> bool:
        """Approved and rejected are final states."""
        return self.status in (EventStatus.APPROVED, EventStatus.REJECTED)

    def resolved(
        self,
        status: EventStatus,
        decided_by: str,
        decided_at: datetime,
    ) -> Event:
        """Return a copy carrying the resolution."""
        return self.model_copy(
            update={
                "status": status,
                "decided_by": decided_by,
                "decided_at": decided_at,
            }
        )
