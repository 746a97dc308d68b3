"""Dependency chain reconstruction."""

from __future__ import annotations

from typing import Dict, List

from .graph import GraphIndex
from .models import DependencyChain


class ChainBuilder:
    """Build the longest dependency chain ending at each item.

    Chains are measured in items, not days, and run over the graph with its
    cycle-closing edges removed, so a cycle truncates the chain where it would
    revisit an item. When two dependencies give equally long chains, the one
    listed first wins.
    """

    def __init__(self, index: GraphIndex):
        self.index = index

    def build(self) -> List[DependencyChain]:
        dependencies = self.index.acyclic_dependencies()
        visited: Dict[str, List[str]] = {}

        # dependencies always precede their dependents in topological order
        for item_id in self.index.topological_order():
            longest: List[str] = []
            for dep_id in dependencies[item_id]:
                candidate = visited[dep_id]
                if len(candidate) > len(longest):
                    longest = candidate
            visited[item_id] = longest + [item_id]

        return [
            DependencyChain(item_id=item_id, chain=visited[item_id])
            for item_id in self.index.order
        ]
