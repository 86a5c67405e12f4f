"""Policy routing engine.

Classifies an emitted event against every enabled policy visible at its
scope (the scope itself plus all ancestor organisation nodes):

1. **Match**: the policy lists the event type and all its conditions pass.
2. **Classify**: the event needs approval when any matching policy has
   the ``request_approval`` action; otherwise it applies immediately.
3. **Route**: recipients of all matching policies are resolved live and
   unioned; recipients reached through an approval policy are approvers.

A failed recipient query costs only that policy's notification and never
changes the classification.  A failed policy source cannot prove that no
approval is needed, so by default it fails closed.

Usage::

    engine = PolicyEngine(catalog, directory, directory)
    decision = engine.evaluate(event, Scope.project("P1", "ORG-A"), snapshot)
    if decision.requires_approval:
        ...
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable, Mapping
from datetime import date, datetime
from typing import Any

from project_governance.catalog import event_types as et
from project_governance.catalog.registry import EventCatalog
from project_governance.core.config import PolicyConfig
from project_governance.core.enums import ConditionOperator, PolicyAction
from project_governance.core.errors import PolicyRecipientResolutionFailure
from project_governance.core.interfaces import IPolicySource, IRecipientResolver
from project_governance.domain.events import Event
from project_governance.domain.models import EntitySnapshot, Scope
from project_governance.observability.metrics import (
    record_policy_match,
    record_recipient_failure,
)

from .models import (
    Notification,
    Policy,
    PolicyCondition,
    ResolvedRecipient,
    RoutingDecision,
)

logger = logging.getLogger(__name__)


def routing_scope(
    snapshot: EntitySnapshot,
    entity_id: str,
    event_type: str,
    payload: Mapping[str, Any],
) -> Scope:
    """Project scope an event on *entity_id* is routed and resolved at.

    A project that has not started yet has no owning node on record; a
    ``project.started`` proposal is placed by its own ``owning_org_node_id``.
    """
    org_node_id = snapshot.owning_org_node_id
    if not org_node_id and event_type == et.PROJECT_STARTED:
        org_node_id = str(payload.get("owning_org_node_id") or "")
    return Scope.project(entity_id, org_node_id)


class _KeepMissing(dict):
    """``format_map`` mapping that leaves unknown placeholders verbatim."""

    def __missing__(self, key: str) -> str:
        return "{" + key + "}"


class PolicyEngine:
    """Evaluates event policies and resolves their recipients.

    Args:
        catalog: Supplies friendly names for messages.
        policies: Live policy source.
        recipients: Live recipient resolver.
        config: Failure handling and default message texts.
    """

    def __init__(
        self,
        catalog: EventCatalog,
        policies: IPolicySource,
        recipients: IRecipientResolver,
        config: PolicyConfig | None = None,
    ) -> None:
        self._catalog = catalog
        self._policies = policies
        self._recipients = recipients
        self._config = config or PolicyConfig()

    # ------------------------------------------------------------------
    # Evaluation
    # ------------------------------------------------------------------

    def evaluate(
        self,
        event: Event,
        scope: Scope,
        snapshot: EntitySnapshot | None = None,
        actor_name: str = "",
    ) -> RoutingDecision:
        """Classify *event* and resolve who hears about it."""
        try:
            visible = list(self._policies.list_policies(scope, inherited=True))
        except Exception:
            fail_closed = self._config.require_approval_on_policy_error
            logger.error(
                "Policy source failed for event %s at %s; requires_approval=%s",
                event.event_id, scope, fail_closed,
                exc_info=True,
            )
            return RoutingDecision(
                apply_immediately=not fail_closed,
                requires_approval=fail_closed,
                policy_source_failed=True,
            )

        matching = [p for p in visible if self.matches(p, event, snapshot)]
        approval_ids = tuple(p.policy_id for p in matching if p.requests_approval)
        requires_approval = bool(approval_ids)

        recipients: dict[str, bool] = {}
        notifications: list[Notification] = []
        failed: list[str] = []

        for policy in matching:
            record_policy_match(policy.action.value)
            try:
                actor_ids = self.resolve_recipients(policy, scope)
            except PolicyRecipientResolutionFailure as exc:
                logger.warning("Skipping notification: %s", exc)
                record_recipient_failure(exc.source)
                failed.append(policy.policy_id)
                continue

            for actor_id in actor_ids:
                recipients[actor_id] = recipients.get(actor_id, False) or policy.requests_approval
            notifications.append(Notification(
                policy_id=policy.policy_id,
                action=policy.action,
                recipients=actor_ids,
                message=self.build_message(policy, event, snapshot, actor_name),
            ))

        logger.info(
            "Policy routing: event=%s type=%s visible=%d matched=%d approval=%s recipients=%d",
            event.event_id,
            event.event_type,
            len(visible),
            len(matching),
            requires_approval,
            len(recipients),
        )

        return RoutingDecision(
            apply_immediately=not requires_approval,
            requires_approval=requires_approval,
            notify=frozenset(
                ResolvedRecipient(actor_id=a, approver=ap) for a, ap in recipients.items()
            ),
            matched_policy_ids=tuple(p.policy_id for p in matching),
            approval_policy_ids=approval_ids,
            failed_policy_ids=tuple(failed),
            notifications=tuple(notifications),
        )

    def matches(self, policy: Policy, event: Event, snapshot: EntitySnapshot | None) -> bool:
        """Enabled, lists the type, and every condition passes (AND)."""
        if not policy.enabled or not policy.matches_event_type(event.event_type):
            return False
        return all(self.check_condition(c, event, snapshot) for c in policy.conditions)

    # ------------------------------------------------------------------
    # Conditions
    # ------------------------------------------------------------------

    def check_condition(
        self,
        condition: PolicyCondition,
        event: Event,
        snapshot: EntitySnapshot | None,
    ) -> bool:
        value = _extract_value(condition.field, event, snapshot)
        try:
            operator = ConditionOperator(condition.operator)
        except ValueError:
            logger.warning(
                "Unknown condition operator %r on %s; condition fails",
                condition.operator, condition.field,
            )
            return False

        expected = condition.value
        try:
            if operator == ConditionOperator.EQUALS:
                return _text(value) == _text(expected)
            if operator == ConditionOperator.NOT_EQUALS:
                return _text(value) != _text(expected)
            if operator == ConditionOperator.CONTAINS:
                return _text(expected) in _text(value)
            if operator == ConditionOperator.STARTS_WITH:
                return _text(value).startswith(_text(expected))
            if operator == ConditionOperator.GREATER_THAN:
                return float(value) > float(expected)
            if operator == ConditionOperator.LESS_THAN:
                return float(value) < float(expected)
            if operator == ConditionOperator.BETWEEN:
                low, high = expected
                return float(low) <= float(value) <= float(high)
            if operator == ConditionOperator.IN:
                return _text(value) in _texts(expected)
            if operator == ConditionOperator.NOT_IN:
                return _text(value) not in _texts(expected)
            if operator == ConditionOperator.EXISTS:
                return _text(value) != ""
            if operator == ConditionOperator.NOT_EXISTS:
                return _text(value) == ""
        except (TypeError, ValueError):
            logger.warning(
                "Type mismatch evaluating %s %s %r; condition fails",
                condition.field, operator.value, expected,
            )
            return False

        return False

    # ------------------------------------------------------------------
    # Recipients
    # ------------------------------------------------------------------

    def resolve_recipients(self, policy: Policy, scope: Scope) -> frozenset[str]:
        """Resolve every recipient source of *policy* at *scope*.

        Raises:
            PolicyRecipientResolutionFailure: any underlying query failed.
        """
        spec = policy.recipients
        found: set[str] = set()

        for group in spec.dynamic_groups:
            found.update(self._query(
                policy, "dynamic_group", group,
                lambda g=group: self._recipients.resolve_dynamic_group(g, scope),
            ))

        if spec.user_ids:
            found.update(self._query(
                policy, "users", ",".join(spec.user_ids),
                lambda: self._recipients.resolve_users(spec.user_ids),
            ))

        if scope.is_project:
            for role_id in spec.project_role_ids:
                found.update(self._query(
                    policy, "project_role", role_id,
                    lambda r=role_id: self._recipients.resolve_project_role(r, scope.scope_id),
                ))

        if scope.org_node_id:
            for role_id in spec.org_role_ids:
                found.update(self._query(
                    policy, "org_role", role_id,
                    lambda r=role_id: self._recipients.resolve_org_role(r, scope.org_node_id),
                ))

        return frozenset(found)

    @staticmethod
    def _query(
        policy: Policy, source: str, key: str, call: Callable[[], Iterable[str]],
    ) -> list[str]:
        try:
            return list(call())
        except Exception as exc:
            raise PolicyRecipientResolutionFailure(
                policy.policy_id, source, f"{key}: {exc}",
            ) from exc

    # ------------------------------------------------------------------
    # Messages
    # ------------------------------------------------------------------

    def build_message(
        self,
        policy: Policy,
        event: Event,
        snapshot: EntitySnapshot | None,
        actor_name: str = "",
    ) -> str:
        """Fill the policy's template, or the default text for its action."""
        template = policy.message_template
        if not template:
            template = (
                self._config.default_approval_message
                if policy.action == PolicyAction.REQUEST_APPROVAL
                else self._config.default_notify_message
            )

        title = snapshot.title if snapshot is not None else ""
        values = _KeepMissing(
            event_type=event.event_type,
            friendly_name=self._catalog.friendly_name(event.event_type),
            project_title=title or event.display.entity_name,
            actor_name=actor_name or event.display.actor_name or event.actor_id,
        )
        try:
            return template.format_map(values)
        except (AttributeError, IndexError, KeyError, ValueError):
            logger.warning("Unusable message template on policy %s", policy.policy_id)
            return template


# ---------------------------------------------------------------------------
# Field extraction
# ---------------------------------------------------------------------------

def _extract_value(field: str, event: Event, snapshot: EntitySnapshot | None) -> Any:
    source, sep, name = field.partition(".")
    if not sep or not name:
        return None

    if source == "event":
        identity = {
            "event_id": event.event_id,
            "event_type": event.event_type,
            "actor_id": event.actor_id,
            "entity_id": event.entity_id,
        }
        if name in identity:
            return identity[name]
        return event.payload.get(name)

    if snapshot is None:
        return None
    if source == "project":
        if name == "member_count":
            return snapshot.confirmed_member_count
        if name == "product_count":
            return snapshot.confirmed_product_count
        if name in EntitySnapshot.model_fields:
            return getattr(snapshot, name)
        return None
    if source == "custom_field":
        return snapshot.custom_fields.get(name)
    return None


def _text(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (date, datetime)):
        return value.isoformat()
    return str(value)


def _texts(values: Any) -> frozenset[str]:
    if isinstance(values, (str, bytes)) or not isinstance(values, Iterable):
        raise TypeError("expected a list of values")
    return frozenset(_text(v) for v in values)
