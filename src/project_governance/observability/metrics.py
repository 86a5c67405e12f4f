"""Prometheus metrics.

Counters for event issuance, authorization, approval transitions,
projection skips and recipient resolution.  Exposed over HTTP only when
``start_metrics_server`` is called.
"""

from __future__ import annotations

import logging

from prometheus_client import Counter, Info, start_http_server

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# System metrics
# ---------------------------------------------------------------------------

SYSTEM_INFO = Info("governance_system", "Project governance core information")

# ---------------------------------------------------------------------------
# Issuance
# ---------------------------------------------------------------------------

EVENTS_ISSUED = Counter(
    "governance_events_issued_total",
    "Events appended to the store",
    ["event_type", "status"],
)

UNAUTHORIZED_EMISSIONS = Counter(
    "governance_unauthorized_emissions_total",
    "Emission attempts rejected before append",
    ["event_type"],
)

# ---------------------------------------------------------------------------
# Approval
# ---------------------------------------------------------------------------

APPROVAL_TRANSITIONS = Counter(
    "governance_approval_transitions_total",
    "Resolution attempts on pending events",
    ["outcome"],  # approved | rejected | conflict | unauthorized
)

# ---------------------------------------------------------------------------
# Projection
# ---------------------------------------------------------------------------

PROJECTION_SKIPS = Counter(
    "governance_projection_skips_total",
    "Pending events left out of a projected view",
    ["reason"],  # unknown_type | malformed | foreign_entity
)

# ---------------------------------------------------------------------------
# Policy routing
# ---------------------------------------------------------------------------

POLICY_MATCHES = Counter(
    "governance_policy_matches_total",
    "Policies matched during evaluation",
    ["action"],
)

RECIPIENT_RESOLUTION_FAILURES = Counter(
    "governance_recipient_resolution_failures_total",
    "Recipient queries that failed, skipping one policy's notification",
    ["source"],
)


def start_metrics_server(port: int = 9090) -> None:
    """Start the Prometheus HTTP endpoint."""
    SYSTEM_INFO.info({"component": "project_governance"})
    start_http_server(port)
    logger.info("Metrics server listening on port %d", port)


def record_event_issued(event_type: str, status: str) -> None:
    EVENTS_ISSUED.labels(event_type=event_type, status=status).inc()


def record_unauthorized_emission(event_type: str) -> None:
    UNAUTHORIZED_EMISSIONS.labels(event_type=event_type).inc()


def record_approval_transition(outcome: str) -> None:
    APPROVAL_TRANSITIONS.labels(outcome=outcome).inc()


def record_projection_skip(reason: str) -> None:
    PROJECTION_SKIPS.labels(reason=reason).inc()


def record_policy_match(action: str) -> None:
    POLICY_MATCHES.labels(action=action).inc()


def record_recipient_failure(source: str) -> None:
    RECIPIENT_RESOLUTION_FAILURES.labels(source=source).inc()
