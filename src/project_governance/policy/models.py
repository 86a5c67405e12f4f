"""Event policy models.

Defines the data structures for policy routing:

- :class:`PolicyCondition`: one check on an ``event.*``, ``project.*`` or
  ``custom_field.*`` field.
- :class:`Policy`: event types, conditions, action and recipients attached
  at an organisation node or a project.
- :class:`RoutingDecision`: what the engine concluded for one event.

Policies are pure data; :class:`~project_governance.policy.engine.PolicyEngine`
evaluates them.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, model_validator

from project_governance.core.enums import PolicyAction


# ---------------------------------------------------------------------------
# Policy definition
# ---------------------------------------------------------------------------

class PolicyCondition(BaseModel):
    """A single condition; all of a policy's conditions must pass.

    ``operator`` is kept as a plain string so that a policy carrying an
    operator this build does not know still loads; such a condition fails
    at evaluation time.
    """

    model_config = ConfigDict(frozen=True)

    field: str                          # "<source>.<name>"
    operator: str
    value: Any = None


class RecipientSpec(BaseModel):
    """Who a policy reaches."""

    model_config = ConfigDict(frozen=True)

    dynamic_groups: tuple[str, ...] = ()
    user_ids: tuple[str, ...] = ()
    project_role_ids: tuple[str, ...] = ()
    org_role_ids: tuple[str, ...] = ()


class Policy(BaseModel):
    """A configurable trigger on emitted events.

    Attached to exactly one of an organisation node (then it also applies
    to every descendant node and their projects) or a single project.
    """

    model_config = ConfigDict(frozen=True)

    policy_id: str
    name: str
    description: str = ""
    event_types: frozenset[str]
    conditions: tuple[PolicyCondition, ...] = ()
    action: PolicyAction
    message_template: str = ""
    recipients: RecipientSpec = Field(default_factory=RecipientSpec)
    org_node_id: str = ""
    project_id: str = ""
    enabled: bool = True

    @model_validator(mode="after")
    def _single_attachment(self) -> Policy:
        if bool(self.org_node_id) == bool(self.project_id):
            raise ValueError(
                "policy must be attached to exactly one of org_node_id or project_id"
            )
        return self

    @property
    def requests_approval(self) -> bool:
        return self.action == PolicyAction.REQUEST_APPROVAL

    def matches_event_type(self, event_type: str) -> bool:
        return event_type in self.event_types


# ---------------------------------------------------------------------------
# Evaluation results
# ---------------------------------------------------------------------------

class ResolvedRecipient(BaseModel):
    """One actor to notify; ``approver`` if reached via an approval policy."""

    model_config = ConfigDict(frozen=True)

    actor_id: str
    approver: bool = False


class Notification(BaseModel):
    """Message one matching policy sends."""

    model_config = ConfigDict(frozen=True)

    policy_id: str
    action: PolicyAction
    recipients: frozenset[str] = frozenset()
    message: str = ""


class RoutingDecision(BaseModel):
    """Aggregate result of evaluating every visible policy for one event."""

    model_config = ConfigDict(frozen=True)

    apply_immediately: bool
    requires_approval: bool
    notify: frozenset[ResolvedRecipient] = frozenset()
    matched_policy_ids: tuple[str, ...] = ()
    approval_policy_ids: tuple[str, ...] = ()
    failed_policy_ids: tuple[str, ...] = ()
    notifications: tuple[Notification, ...] = ()
    policy_source_failed: bool = False

    @property
    def recipient_ids(self) -> frozenset[str]:
        return frozenset(r.actor_id for r in self.notify)

    @property
    def approver_ids(self) -> frozenset[str]:
        return frozenset(r.actor_id for r in self.notify if r.approver)
