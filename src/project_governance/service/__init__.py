"""Mutation service and decision rules."""

from project_governance.service.mutation import (
    MutationIntent,
    MutationResult,
    MutationService,
)

__all__ = ["MutationIntent", "MutationResult", "MutationService"]
