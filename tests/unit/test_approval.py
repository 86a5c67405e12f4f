"""Tests for the approval workflow.

Covers:
- Live approver set derived from matching approval policies
- approve / reject lifecycle and confirmation into the snapshot
- Unauthorized resolvers and system administrator bypass
- Terminal states: a second resolution is a conflict
- Summary statistics
"""

from __future__ import annotations

import threading

import pytest

from project_governance.catalog import DEFAULT_CATALOG
from project_governance.catalog import event_types as et
from project_governance.core.config import AccessConfig
from project_governance.core.enums import DynamicGroup, EventStatus, PolicyAction
from project_governance.core.errors import (
    ConflictingApprovalTransition,
    EventNotFound,
    UnauthorizedApproval,
)
from project_governance.policy import ApprovalManager, Policy, PolicyEngine, RecipientSpec
from project_governance.service import MutationIntent

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _approval_policy(**overrides) -> Policy:
    defaults = dict(
        policy_id="pol-roles",
        name="Role changes need an org admin",
        event_types=frozenset({et.PROJECT_ROLE_ASSIGNED}),
        action=PolicyAction.REQUEST_APPROVAL,
        recipients=RecipientSpec(dynamic_groups=(DynamicGroup.ORG_ADMINS.value,)),
        org_node_id="ORG-A",
    )
    defaults.update(overrides)
    return Policy(**defaults)


@pytest.fixture
def pending_event(service, directory, alice):
    directory.add_policy(_approval_policy())
    result = service.issue(alice, MutationIntent(
        entity_id="P1",
        event_type=et.PROJECT_ROLE_ASSIGNED,
        payload={"person_id": "X", "project_role_id": "R1"},
    ))
    assert result.is_pending
    return result.event


@pytest.fixture
def approvals(service) -> ApprovalManager:
    return service.approvals


# ===========================================================================
# Approver set
# ===========================================================================


class TestApprovers:

    def test_approvers_from_matching_policy(self, approvals, pending_event):
        assert approvals.approvers_for(pending_event) == frozenset({"bob"})

    def test_approver_set_is_live(self, approvals, directory, pending_event):
        directory.remove_membership("m-bob")
        assert approvals.approvers_for(pending_event) == frozenset()

    def test_requester_is_not_an_approver(self, approvals, alice, pending_event):
        assert not approvals.can_resolve(alice, pending_event)

    def test_sys_admin_may_resolve(self, approvals, root_admin, pending_event):
        assert approvals.can_resolve(root_admin, pending_event)

    def test_sys_admin_without_bypass(self, store, directory, root_admin, pending_event):
        engine = PolicyEngine(DEFAULT_CATALOG, directory, directory)
        strict = ApprovalManager(store, engine, AccessConfig(sys_admin_bypass=False))
        assert not strict.can_resolve(root_admin, pending_event)


class TestProjectProposal:

    @pytest.fixture
    def proposal(self, service, directory, bob):
        directory.add_policy(_approval_policy(
            policy_id="pol-proposals",
            name="New projects need an org admin",
            event_types=frozenset({et.PROJECT_STARTED}),
        ))
        result = service.issue(bob, MutationIntent(
            entity_id="P9",
            event_type=et.PROJECT_STARTED,
            payload={"title": "Gamma", "owning_org_node_id": "ORG-A1"},
        ))
        assert result.is_pending
        assert result.decision.approver_ids == frozenset({"bob"})
        return result.event

    def test_approvers_match_issue_time(self, approvals, proposal):
        assert approvals.approvers_for(proposal) == frozenset({"bob"})

    def test_org_admin_approves_proposal(self, approvals, store, bob, proposal):
        resolved = approvals.approve(proposal.event_id, bob)

        assert resolved.status == EventStatus.APPROVED
        snapshot = store.get_snapshot("P9")
        assert snapshot.title == "Gamma"
        assert snapshot.owning_org_node_id == "ORG-A1"

    def test_outsider_still_refused(self, approvals, carol, proposal):
        with pytest.raises(UnauthorizedApproval):
            approvals.approve(proposal.event_id, carol)


# ===========================================================================
# Lifecycle
# ===========================================================================


class TestLifecycle:

    def test_approve_confirms(self, approvals, store, bob, pending_event):
        resolved = approvals.approve(pending_event.event_id, bob)

        assert resolved.status == EventStatus.APPROVED
        assert resolved.decided_by == "bob"
        snapshot = store.get_snapshot("P1")
        assert snapshot.has_member("X", "R1")
        assert snapshot.members[0].pending is False

    def test_reject_discards(self, approvals, store, bob, pending_event):
        resolved = approvals.reject(pending_event.event_id, bob)

        assert resolved.status == EventStatus.REJECTED
        assert not store.get_snapshot("P1").has_member("X", "R1")
        assert approvals.get_pending("P1") == []

    def test_unauthorized_resolver(self, approvals, store, carol, pending_event):
        with pytest.raises(UnauthorizedApproval):
            approvals.approve(pending_event.event_id, carol)
        assert store.get_event(pending_event.event_id).is_pending

    def test_second_resolution_conflicts(self, approvals, root_admin, bob, pending_event):
        approvals.approve(pending_event.event_id, bob)

        with pytest.raises(ConflictingApprovalTransition) as exc_info:
            approvals.reject(pending_event.event_id, root_admin)
        assert exc_info.value.actual == "approved"

    def test_unknown_event(self, approvals, bob):
        with pytest.raises(EventNotFound):
            approvals.approve("missing", bob)

    def test_get_pending_in_creation_order(self, service, approvals, alice, pending_event):
        second = service.issue(alice, MutationIntent(
            entity_id="P1",
            event_type=et.PROJECT_ROLE_ASSIGNED,
            payload={"person_id": "Y", "project_role_id": "R1"},
        )).event
        assert [e.event_id for e in approvals.get_pending("P1")] == [
            pending_event.event_id, second.event_id,
        ]


class TestSummary:

    def test_counts(self, service, approvals, alice, bob, carol, pending_event):
        rejected, refused = (
            service.issue(alice, MutationIntent(
                entity_id="P1",
                event_type=et.PROJECT_ROLE_ASSIGNED,
                payload={"person_id": person, "project_role_id": "R1"},
            )).event
            for person in ("Y", "Z")
        )

        approvals.approve(pending_event.event_id, bob)
        approvals.reject(rejected.event_id, bob)
        with pytest.raises(UnauthorizedApproval):
            approvals.approve(refused.event_id, carol)
        with pytest.raises(ConflictingApprovalTransition):
            approvals.approve(pending_event.event_id, bob)

        summary = approvals.get_summary()
        assert summary.approved == 1
        assert summary.rejected == 1
        assert summary.unauthorized == 1
        assert summary.conflicts == 1
        assert summary.avg_decision_time_seconds > 0

    def test_empty_summary(self, approvals):
        summary = approvals.get_summary()
        assert summary.approved == 0
        assert summary.avg_decision_time_seconds == 0.0

    def test_concurrent_resolutions_all_counted(self, service, approvals, directory, alice, bob):
        directory.add_policy(_approval_policy())
        events = [
            service.issue(alice, MutationIntent(
                entity_id="P1",
                event_type=et.PROJECT_ROLE_ASSIGNED,
                payload={"person_id": f"person-{i}", "project_role_id": "R1"},
            )).event
            for i in range(20)
        ]
        barrier = threading.Barrier(len(events))

        def resolve(event_id):
            barrier.wait()
            approvals.approve(event_id, bob)

        threads = [threading.Thread(target=resolve, args=(e.event_id,)) for e in events]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        summary = approvals.get_summary()
        assert summary.approved == 20
        assert summary.conflicts == 0
        assert summary.avg_decision_time_seconds > 0
