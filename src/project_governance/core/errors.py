"""Custom exception hierarchy for the project governance core."""


class GovernanceError(Exception):
    """Base exception for all project governance errors."""


# --- Configuration ---
class ConfigError(GovernanceError):
    """Invalid or missing configuration."""


# --- Catalog ---
class CatalogError(GovernanceError):
    """Event type catalog error."""


class UnknownEventType(CatalogError):
    """Event type referenced but absent from the catalog."""

    def __init__(self, event_type: str, context: str = ""):
        self.event_type = event_type
        self.context = context
        where = f" ({context})" if context else ""
        super().__init__(f"Unknown event type: {event_type}{where}")


# --- Payload ---
class PayloadError(GovernanceError):
    """Event payload error."""


class MalformedPayload(PayloadError):
    """Payload is missing fields or has values the reducer cannot use."""

    def __init__(self, event_type: str, reason: str):
        self.event_type = event_type
        self.reason = reason
        super().__init__(f"Malformed payload for {event_type}: {reason}")


# --- Permissions ---
class PermissionDenied(GovernanceError):
    """Actor is not allowed to perform the requested action."""


class UnauthorizedEmission(PermissionDenied):
    """Actor attempted to emit an event type outside its allowed set."""

    def __init__(self, actor_id: str, event_type: str, scope_id: str):
        self.actor_id = actor_id
        self.event_type = event_type
        self.scope_id = scope_id
        super().__init__(
            f"Actor {actor_id} may not emit {event_type} in scope {scope_id}"
        )


class UnauthorizedApproval(PermissionDenied):
    """Actor attempted to resolve an event it is not an approver for."""


# --- Event lifecycle ---
class TransitionError(GovernanceError):
    """Event status transition failure."""


class EventNotFound(TransitionError):
    """No event with the given id exists in the store."""


class ConflictingApprovalTransition(TransitionError):
    """Event was already resolved; the later transition is rejected."""

    def __init__(self, event_id: str, expected: str, actual: str):
        self.event_id = event_id
        self.expected = expected
        self.actual = actual
        super().__init__(
            f"Event {event_id} is {actual}, expected {expected}"
        )


# --- Policy routing ---
class RecipientResolutionError(GovernanceError):
    """Recipient lookup error."""


class PolicyRecipientResolutionFailure(RecipientResolutionError):
    """A recipient query failed while resolving one policy."""

    def __init__(self, policy_id: str, source: str, reason: str):
        self.policy_id = policy_id
        self.source = source
        self.reason = reason
        super().__init__(
            f"Policy {policy_id}: resolving {source} failed: {reason}"
        )


# --- Organisation hierarchy ---
class HierarchyError(GovernanceError):
    """Organisation hierarchy is inconsistent (cycle, unknown parent)."""
