"""Enumerations used across the governance core."""

from enum import Enum


class EventStatus(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class ScopeKind(str, Enum):
    PROJECT = "project"
    ORGANISATION = "organisation"


class PolicyAction(str, Enum):
    """What a matching policy does with an emitted event."""

    NOTIFY = "notify"
    REQUEST_APPROVAL = "request_approval"


class DynamicGroup(str, Enum):
    """Recipient sets computed live at evaluation time."""

    PROJECT_MEMBERS = "project_members"
    PROJECT_OWNER = "project_owner"
    ORG_ADMINS = "org_admins"


class ConditionOperator(str, Enum):
    """Comparison operators for policy conditions."""

    EQUALS = "equals"
    NOT_EQUALS = "not_equals"
    CONTAINS = "contains"
    STARTS_WITH = "starts_with"
    GREATER_THAN = "greater_than"
    LESS_THAN = "less_than"
    BETWEEN = "between"            # value[0] <= field <= value[1]
    IN = "in"
    NOT_IN = "not_in"
    EXISTS = "exists"
    NOT_EXISTS = "not_exists"
