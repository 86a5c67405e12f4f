"""Tests for the event record (``domain/events.py``) and id helpers.

Covers:
- Defaults: UUID4 ids, UTC timestamps, pending status.
- Every event is immutable (frozen model).
- ``resolved()`` returns a copy and leaves the original untouched.
- Payload fingerprints are deterministic and key-order independent.
"""

from __future__ import annotations

from datetime import datetime, timezone

import pytest
from pydantic import ValidationError

from project_governance.catalog import event_types as et
from project_governance.core.enums import EventStatus
from project_governance.core.ids import entry_key, new_event_id, payload_fingerprint, utc_now
from project_governance.domain.events import Event, EventDisplayHints


class TestEventDefaults:

    def test_default_fields_populated(self):
        e = Event(event_type=et.TITLE_CHANGED, actor_id="alice", entity_id="P1")
        assert isinstance(e.event_id, str)
        assert len(e.event_id) == 36  # UUID4 format
        assert e.created_at.tzinfo == timezone.utc
        assert e.status == EventStatus.PENDING
        assert e.display == EventDisplayHints()
        assert e.decided_at is None

    def test_event_ids_are_unique(self):
        ids = {Event(event_type="x", actor_id="a", entity_id="P1").event_id for _ in range(50)}
        assert len(ids) == 50

    def test_frozen(self, event_factory):
        e = event_factory(et.TITLE_CHANGED, {"title": "Beta"})
        with pytest.raises(ValidationError):
            e.status = EventStatus.APPROVED  # type: ignore[misc]


class TestResolution:

    def test_resolved_copies(self, event_factory):
        e = event_factory(et.TITLE_CHANGED, {"title": "Beta"})
        at = datetime(2024, 1, 2, tzinfo=timezone.utc)

        r = e.resolved(EventStatus.REJECTED, "bob", at)

        assert r.status == EventStatus.REJECTED
        assert r.decided_by == "bob"
        assert r.decided_at == at
        assert r.event_id == e.event_id
        assert e.status == EventStatus.PENDING
        assert r.is_terminal and not r.is_pending

    def test_pending_is_not_terminal(self, event_factory):
        assert not event_factory(et.TITLE_CHANGED).is_terminal


class TestIds:

    def test_new_event_id_is_uuid4(self):
        assert len(new_event_id()) == 36
        assert new_event_id() != new_event_id()

    def test_utc_now_is_aware(self):
        assert utc_now().tzinfo == timezone.utc

    def test_entry_key(self):
        assert entry_key("P1", "R1") == "P1-R1"
        assert entry_key("P1", "R1", prefix="pending") == "pending-P1-R1"

    def test_fingerprint_ignores_key_order(self):
        assert payload_fingerprint(et.TITLE_CHANGED, {"a": 1, "b": 2}) == payload_fingerprint(
            et.TITLE_CHANGED, {"b": 2, "a": 1},
        )

    def test_fingerprint_covers_type_and_payload(self):
        title = payload_fingerprint(et.TITLE_CHANGED, {"title": "Beta"})
        assert len(title) == 16
        assert len(payload_fingerprint(et.TITLE_CHANGED, {"title": "Beta"}, length=8)) == 8
        assert title != payload_fingerprint(et.TITLE_CHANGED, {"title": "Gamma"})
        assert title != payload_fingerprint(et.DESCRIPTION_CHANGED, {"title": "Beta"})

