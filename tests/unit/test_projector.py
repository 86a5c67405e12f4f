"""Tests for the projector and the project reducers.

Covers:
- Scalar changes and relationship entries (pending flags, synthetic ids)
- Sequence-order folding and order sensitivity
- Unknown types, malformed payloads and foreign events leave the view unchanged
- Inputs are never mutated
- Confirmed fold used by the store of record
"""

from __future__ import annotations

from datetime import date, datetime, timezone

import pytest

from project_governance.catalog import EventCatalog
from project_governance.catalog import event_types as et
from project_governance.catalog.registry import DEFAULT_CATALOG
from project_governance.core.config import ProjectionConfig
from project_governance.core.enums import EventStatus
from project_governance.core.errors import UnknownEventType
from project_governance.domain.events import Event, EventDisplayHints
from project_governance.domain.models import EntitySnapshot, ProductRef, ProjectMember
from project_governance.projection import Projector, ReducerTable, project
from project_governance.projection.reducers import ReduceContext, reduce_title_changed


@pytest.fixture
def empty() -> EntitySnapshot:
    return EntitySnapshot(entity_id="P1")


# ===========================================================================
# Scenarios
# ===========================================================================


class TestScenarios:

    def test_pending_title_change_shows_in_view(self, projector, event_factory):
        snapshot = EntitySnapshot(entity_id="P1", title="Alpha")
        view = projector.project(snapshot, [event_factory(et.TITLE_CHANGED, {"title": "Beta"})])
        assert view.title == "Beta"
        assert snapshot.title == "Alpha"

    def test_pending_role_assignment_adds_flagged_member(self, projector, empty, event_factory):
        event = event_factory(
            et.PROJECT_ROLE_ASSIGNED, {"person_id": "P1", "project_role_id": "R1"},
            display=EventDisplayHints(person_name="Pat", role_name="Researcher"),
        )
        view = projector.project(empty, [event])

        assert len(view.members) == 1
        member = view.members[0]
        assert member.pending is True
        assert member.person_id == "P1"
        assert member.project_role_id == "R1"
        assert member.member_id == "pending-P1-R1"
        assert member.name == "Pat"
        assert view.confirmed_member_count == 0

    def test_empty_event_list_returns_equal_snapshot(self, projector, p1_snapshot):
        assert projector.project(p1_snapshot, []) == p1_snapshot


# ===========================================================================
# Reducers
# ===========================================================================


class TestReducers:

    def test_scalar_fields(self, projector, empty, event_factory):
        view = projector.project(empty, [
            event_factory(et.DESCRIPTION_CHANGED, {"description": "New"}, seconds=1),
            event_factory(et.START_DATE_CHANGED, {"start_date": "2024-02-01"}, seconds=2),
            event_factory(et.END_DATE_CHANGED, {"end_date": "2025-02-01"}, seconds=3),
            event_factory(et.OWNING_ORG_NODE_CHANGED, {"owning_org_node_id": "ORG-B"}, seconds=4),
            event_factory(et.CUSTOM_FIELD_VALUE_SET, {"definition_id": "grant", "value": "NWO-1"},
                          seconds=5),
        ])
        assert view.description == "New"
        assert view.start_date == date(2024, 2, 1)
        assert view.end_date == date(2025, 2, 1)
        assert view.owning_org_node_id == "ORG-B"
        assert view.custom_fields == {"grant": "NWO-1"}

    def test_project_started_sets_fields(self, projector, empty, event_factory):
        view = projector.project(empty, [event_factory(et.PROJECT_STARTED, {
            "title": "Gamma", "description": "d", "start_date": "2024-03-01",
            "owning_org_node_id": "ORG-A1",
        })])
        assert view.title == "Gamma"
        assert view.start_date == date(2024, 3, 1)
        assert view.owning_org_node_id == "ORG-A1"

    def test_custom_field_keeps_other_values(self, projector, event_factory):
        snapshot = EntitySnapshot(entity_id="P1", custom_fields={"a": "1"})
        view = projector.project(snapshot, [
            event_factory(et.CUSTOM_FIELD_VALUE_SET, {"definition_id": "b", "value": "2"}),
        ])
        assert view.custom_fields == {"a": "1", "b": "2"}
        assert snapshot.custom_fields == {"a": "1"}

    def test_products_add_remove_and_bulk(self, projector, empty, event_factory):
        view = projector.project(empty, [
            event_factory(et.PRODUCT_ADDED, {"product_id": "X1"}, seconds=1,
                          display=EventDisplayHints(product_title="Dataset")),
            event_factory(et.PRODUCTS_BULK_IMPORTED, {"product_ids": ["X2", "X3", "X1"]}, seconds=2),
            event_factory(et.PRODUCT_REMOVED, {"product_id": "X2"}, seconds=3),
        ])
        assert [p.product_id for p in view.products] == ["X1", "X3"]
        assert all(p.pending for p in view.products)
        assert view.products[0].title == "Dataset"

    def test_unassign_removes_confirmed_member(self, projector, event_factory):
        snapshot = EntitySnapshot(entity_id="P1", members=(
            ProjectMember(member_id="m1", person_id="P1", project_role_id="R1"),
            ProjectMember(member_id="m2", person_id="P2", project_role_id="R1"),
        ))
        view = projector.project(snapshot, [
            event_factory(et.PROJECT_ROLE_UNASSIGNED, {"person_id": "P1", "project_role_id": "R1"}),
        ])
        assert [m.person_id for m in view.members] == ["P2"]
        assert snapshot.confirmed_member_count == 2

    def test_affiliated_organisations(self, projector, empty, event_factory):
        view = projector.project(empty, [
            event_factory(et.AFFILIATED_ORGANISATION_ADDED, {"organisation_id": "O1"}, seconds=1,
                          display=EventDisplayHints(organisation_name="SURF")),
            event_factory(et.AFFILIATED_ORGANISATION_ADDED, {"organisation_id": "O2"}, seconds=2),
            event_factory(et.AFFILIATED_ORGANISATION_REMOVED, {"organisation_id": "O2"}, seconds=3),
        ])
        assert [o.organisation_id for o in view.affiliated_organisations] == ["O1"]
        assert view.affiliated_organisations[0].name == "SURF"

    def test_adding_present_entry_is_noop(self, projector, event_factory):
        snapshot = EntitySnapshot(entity_id="P1", products=(ProductRef(product_id="X1"),))
        view = projector.project(snapshot, [event_factory(et.PRODUCT_ADDED, {"product_id": "X1"})])
        assert view == snapshot

    def test_reduce_context_ids(self):
        assert ReduceContext(pending=True).entry_id("P1", "R1") == "pending-P1-R1"
        assert ReduceContext(pending=False).entry_id("P1", "R1") == "P1-R1"

    def test_pending_prefix_is_configurable(self, empty, event_factory):
        projector = Projector(config=ProjectionConfig(pending_id_prefix="tmp"))
        view = projector.project(empty, [
            event_factory(et.PROJECT_ROLE_ASSIGNED, {"person_id": "P1", "project_role_id": "R1"}),
        ])
        assert view.members[0].member_id == "tmp-P1-R1"


# ===========================================================================
# Ordering
# ===========================================================================


class TestOrdering:

    def test_later_in_sequence_wins(self, projector, p1_snapshot, event_factory):
        e1 = event_factory(et.TITLE_CHANGED, {"title": "Beta"}, seconds=1)
        e2 = event_factory(et.TITLE_CHANGED, {"title": "Gamma"}, seconds=2)
        assert projector.project(p1_snapshot, [e1, e2]).title == "Gamma"
        assert projector.project(p1_snapshot, [e2, e1]).title == "Beta"

    def test_order_changes_result(self, projector, empty, event_factory):
        add = event_factory(et.PRODUCT_ADDED, {"product_id": "X1"}, seconds=1)
        remove = event_factory(et.PRODUCT_REMOVED, {"product_id": "X1"}, seconds=2)
        assert projector.project(empty, [add, remove]).products == ()
        assert [p.product_id for p in projector.project(empty, [remove, add]).products] == ["X1"]

    def test_mixed_naive_and_aware_timestamps(self, projector):
        naive = Event(
            event_type=et.TITLE_CHANGED, payload={"title": "Beta"}, actor_id="alice",
            entity_id="P1", created_at=datetime(2024, 1, 1),
        )
        aware = Event(
            event_type=et.TITLE_CHANGED, payload={"title": "Gamma"}, actor_id="alice",
            entity_id="P1", created_at=datetime(2024, 1, 2, tzinfo=timezone.utc),
        )
        snapshot = EntitySnapshot(entity_id="P1", title="Alpha")

        assert projector.project(snapshot, [naive, aware]).title == "Gamma"
        assert projector.project(snapshot, [aware, naive]).title == "Beta"


# ===========================================================================
# Robustness
# ===========================================================================


class TestRobustness:

    def test_unknown_type_is_skipped(self, projector, p1_snapshot, event_factory):
        unknown = event_factory("project.teleported", {"to": "Mars"}, seconds=1)
        title = event_factory(et.TITLE_CHANGED, {"title": "Beta"}, seconds=2)

        report = projector.project_with_report(p1_snapshot, [unknown, title])

        assert report.view.title == "Beta"
        assert report.skipped_unknown == (unknown.event_id,)
        assert report.applied == (title.event_id,)

    def test_malformed_payload_is_skipped(self, projector, p1_snapshot, event_factory):
        bad = event_factory(et.PROJECT_ROLE_ASSIGNED, {"person_id": "P9"}, seconds=1)
        good = event_factory(et.DESCRIPTION_CHANGED, {"description": "Updated"}, seconds=2)

        report = projector.project_with_report(p1_snapshot, [bad, good])

        assert report.view.members == ()
        assert report.view.description == "Updated"
        assert report.skipped_malformed == (bad.event_id,)

    def test_foreign_entity_is_skipped(self, projector, p1_snapshot, event_factory):
        other = event_factory(et.TITLE_CHANGED, {"title": "Other"}, entity_id="P2")
        report = projector.project_with_report(p1_snapshot, [other])
        assert report.view == p1_snapshot
        assert report.skipped_foreign == (other.event_id,)

    def test_resolved_events_are_ignored(self, projector, p1_snapshot, event_factory):
        events = [
            event_factory(et.TITLE_CHANGED, {"title": "Approved"}, status=EventStatus.APPROVED),
            event_factory(et.TITLE_CHANGED, {"title": "Rejected"}, status=EventStatus.REJECTED),
        ]
        report = projector.project_with_report(p1_snapshot, events)
        assert report.view == p1_snapshot
        assert report.ignored_resolved == 2

    def test_inputs_are_not_mutated(self, projector, event_factory):
        snapshot = EntitySnapshot(entity_id="P1", title="Alpha", custom_fields={"a": "1"})
        before = snapshot.model_dump()
        events = [
            event_factory(et.TITLE_CHANGED, {"title": "Beta"}, seconds=1),
            event_factory(et.CUSTOM_FIELD_VALUE_SET, {"definition_id": "a", "value": "2"}, seconds=2),
            event_factory(et.PRODUCT_ADDED, {"product_id": "X1"}, seconds=3),
        ]
        payloads = [dict(e.payload) for e in events]

        projector.project(snapshot, events)

        assert snapshot.model_dump() == before
        assert [e.payload for e in events] == payloads

    def test_module_level_project_uses_defaults(self, p1_snapshot, event_factory):
        view = project(p1_snapshot, [event_factory(et.TITLE_CHANGED, {"title": "Beta"})])
        assert view.title == "Beta"


# ===========================================================================
# Reducer table
# ===========================================================================


class TestReducerTable:

    def test_unknown_key_rejected_at_construction(self):
        with pytest.raises(UnknownEventType):
            ReducerTable(DEFAULT_CATALOG, {"project.teleported": reduce_title_changed})

    def test_catalog_type_without_reducer_is_skipped(self, p1_snapshot, event_factory):
        table = ReducerTable(DEFAULT_CATALOG, {et.TITLE_CHANGED: reduce_title_changed})
        projector = Projector(table)
        report = projector.project_with_report(p1_snapshot, [
            event_factory(et.DESCRIPTION_CHANGED, {"description": "x"}),
        ])
        assert report.view == p1_snapshot
        assert len(report.skipped_unknown) == 1

    def test_custom_catalog(self, p1_snapshot, event_factory):
        catalog = EventCatalog([DEFAULT_CATALOG.require(et.TITLE_CHANGED)])
        projector = Projector(ReducerTable(catalog, {et.TITLE_CHANGED: reduce_title_changed}))
        assert projector.catalog is catalog
        assert projector.project(p1_snapshot, [
            event_factory(et.TITLE_CHANGED, {"title": "Beta"}),
        ]).title == "Beta"


# ===========================================================================
# Confirmed fold
# ===========================================================================


class TestConfirm:

    def test_confirmed_entries_are_not_pending(self, projector, event_factory):
        snapshot = EntitySnapshot(entity_id="P1")
        event = event_factory(
            et.PROJECT_ROLE_ASSIGNED, {"person_id": "P1", "project_role_id": "R1"},
            status=EventStatus.APPROVED,
        )
        confirmed = projector.confirm(snapshot, event)
        assert confirmed.confirmed_member_count == 1
        assert confirmed.members[0].member_id == "P1-R1"

    def test_confirm_skips_malformed(self, projector, p1_snapshot, event_factory):
        event = event_factory(et.TITLE_CHANGED, {}, status=EventStatus.APPROVED)
        assert projector.confirm(p1_snapshot, event) == p1_snapshot
