"""Emission authorization, policy routing and the approval workflow."""

from project_governance.policy.access import AccessEngine, AvailableEvent
from project_governance.policy.approval import ApprovalManager, ApprovalSummary
from project_governance.policy.engine import PolicyEngine, routing_scope
from project_governance.policy.hierarchy import OrgHierarchy
from project_governance.policy.models import (
    Notification,
    Policy,
    PolicyCondition,
    RecipientSpec,
    ResolvedRecipient,
    RoutingDecision,
)

__all__ = [
    "AccessEngine",
    "ApprovalManager",
    "ApprovalSummary",
    "AvailableEvent",
    "Notification",
    "OrgHierarchy",
    "Policy",
    "PolicyCondition",
    "PolicyEngine",
    "RecipientSpec",
    "ResolvedRecipient",
    "RoutingDecision",
    "routing_scope",
]
