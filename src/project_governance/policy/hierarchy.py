"""Organisation hierarchy and scope containment.

The hierarchy is a parent map over organisation node ids.  It is checked
once at construction (every parent known, no cycles) and read-only
afterwards, so containment queries never fail.
"""

from __future__ import annotations

from collections.abc import Mapping
from types import MappingProxyType

from project_governance.core.errors import HierarchyError
from project_governance.domain.models import Scope


class OrgHierarchy:
    """Immutable organisation tree.

    Args:
        parents: ``node_id -> parent_id``; roots map to ``None`` or ``""``.
    """

    def __init__(self, parents: Mapping[str, str | None] | None = None) -> None:
        cleaned: dict[str, str | None] = {
            node: (parent or None) for node, parent in (parents or {}).items()
        }
        for node, parent in cleaned.items():
            if parent is not None and parent not in cleaned:
                raise HierarchyError(f"Node {node} has unknown parent {parent}")
        self._parents = MappingProxyType(cleaned)

        # Walk every chain once so a cycle surfaces here, not mid-query
        self._ancestors: dict[str, tuple[str, ...]] = {}
        for node in cleaned:
            self._ancestors[node] = self._walk(node)

    def _walk(self, node: str) -> tuple[str, ...]:
        chain: list[str] = []
        seen = {node}
        parent = self._parents.get(node)
        while parent is not None:
            if parent in seen:
                raise HierarchyError(f"Cycle in organisation hierarchy at {parent}")
            seen.add(parent)
            chain.append(parent)
            parent = self._parents.get(parent)
        return tuple(chain)

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def __contains__(self, node: object) -> bool:
        return node in self._parents

    def parent(self, node: str) -> str | None:
        return self._parents.get(node)

    def ancestors(self, node: str) -> tuple[str, ...]:
        """Ancestors of *node*, closest first.  Unknown nodes have none."""
        return self._ancestors.get(node, ())

    def lineage(self, node: str) -> tuple[str, ...]:
        """*node* followed by its ancestors."""
        return (node, *self.ancestors(node))

    def is_ancestor(self, ancestor: str, node: str) -> bool:
        return ancestor in self.ancestors(node)

    def contains(self, container: Scope, target: Scope) -> bool:
        """Whether a role held at *container* reaches *target*.

        A project scope reaches only itself.  An organisation scope reaches
        its own node, every descendant node, and every project owned by one
        of those nodes.
        """
        if container.is_project:
            return target.is_project and target.scope_id == container.scope_id
        if not target.org_node_id:
            return False
        return container.scope_id in self.lineage(target.org_node_id)
