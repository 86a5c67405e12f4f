"""Projection of pending events onto confirmed project snapshots."""

from project_governance.projection.projector import ProjectionReport, Projector, project
from project_governance.projection.reducers import (
    ReduceContext,
    ReducerTable,
    build_default_reducers,
)

__all__ = [
    "ProjectionReport",
    "Projector",
    "ReduceContext",
    "ReducerTable",
    "build_default_reducers",
    "project",
]
