"""Dependency graph indexing for work items.

``GraphIndex`` resolves each item's dependency ids against the item set,
inverts them into a dependents index, and finds the edges that close
dependency cycles so the scheduling passes can run over an acyclic graph.
"""

from __future__ import annotations

import logging
import heapq
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from .models import WorkItem

logger = logging.getLogger("timeline.graph")

Edge = Tuple[str, str]


class CyclicDependencyError(ValueError):
    """Raised when dependency cycles are rejected instead of broken."""

    def __init__(self, edges: Sequence[Edge]):
        self.edges = list(edges)
        described = ", ".join(f"{item_id} -> {dep_id}" for item_id, dep_id in self.edges)
        super().__init__(f"Dependency cycle detected (closing edges: {described})")


class GraphIndex:
    """Id lookup plus forward and reverse dependency edges for a set of items.

    Dependency ids with no matching item are dropped, as are repeated ids in a
    single item's dependency list. When two items share an id the first one
    wins.
    """

    def __init__(self, items: Iterable[WorkItem]):
        self.by_id: Dict[str, WorkItem] = {}
        self.order: List[str] = []

        for item in items:
            if item.id in self.by_id:
                logger.warning(f"Duplicate work item id ignored: {item.id}")
                continue
            self.by_id[item.id] = item
            self.order.append(item.id)

        self.dependencies: Dict[str, List[str]] = {}
        for item_id in self.order:
            resolved: List[str] = []
            for dep_id in self.by_id[item_id].dependencies:
                if dep_id in self.by_id and dep_id not in resolved:
                    resolved.append(dep_id)
            self.dependencies[item_id] = resolved

        self.dependents: Dict[str, List[str]] = self._invert(self.dependencies)
        self._cycle_edges: Optional[List[Edge]] = None

    def __len__(self) -> int:
        return len(self.order)

    def _invert(self, dependencies: Dict[str, List[str]]) -> Dict[str, List[str]]:
        dependents: Dict[str, List[str]] = {item_id: [] for item_id in self.order}
        for item_id in self.order:
            for dep_id in dependencies[item_id]:
                dependents[dep_id].append(item_id)
        return dependents

    @property
    def cycle_edges(self) -> List[Edge]:
        """Edges ``(item_id, dependency_id)`` that close a dependency cycle.

        Found by an iterative depth-first walk over items in input order and
        dependencies in listed order: an edge pointing back at an item still on
        the active walk (a self-dependency included) closes a cycle. Removing
        these edges leaves the graph acyclic, and the result depends only on
        the input order.
        """
        if self._cycle_edges is None:
            self._cycle_edges = self._find_cycle_edges()
        return list(self._cycle_edges)

    def _find_cycle_edges(self) -> List[Edge]:
        on_path = set()
        done = set()
        closing: List[Edge] = []

        for root in self.order:
            if root in done:
                continue
            on_path.add(root)
            # each frame is (item id, index of the next dependency to visit)
            stack: List[List] = [[root, 0]]
            while stack:
                frame = stack[-1]
                item_id, position = frame
                deps = self.dependencies[item_id]
                if position == len(deps):
                    stack.pop()
                    on_path.discard(item_id)
                    done.add(item_id)
                    continue
                frame[1] += 1
                dep_id = deps[position]
                if dep_id in on_path:
                    closing.append((item_id, dep_id))
                elif dep_id not in done:
                    on_path.add(dep_id)
                    stack.append([dep_id, 0])

        if closing:
            logger.debug(f"Found {len(closing)} cycle-closing dependency edges: {closing}")
        return closing

    def acyclic_dependencies(self) -> Dict[str, List[str]]:
        """Resolved dependencies with every cycle-closing edge removed."""
        closing = set(self.cycle_edges)
        return {
            item_id: [dep_id for dep_id in deps if (item_id, dep_id) not in closing]
            for item_id, deps in self.dependencies.items()
        }

    def acyclic_dependents(self) -> Dict[str, List[str]]:
        return self._invert(self.acyclic_dependencies())

    def roots(self) -> List[str]:
        """Items with no resolved dependency, in input order."""
        return [item_id for item_id in self.order if not self.dependencies[item_id]]

    def topological_order(self) -> List[str]:
        """Kahn ordering over the acyclic edge set, ties broken by input order."""
        dependencies = self.acyclic_dependencies()
        dependents = self._invert(dependencies)
        position = {item_id: index for index, item_id in enumerate(self.order)}
        in_degree = {item_id: len(deps) for item_id, deps in dependencies.items()}

        ready = [position[item_id] for item_id in self.order if in_degree[item_id] == 0]
        heapq.heapify(ready)
        ordered: List[str] = []
        while ready:
            item_id = self.order[heapq.heappop(ready)]
            ordered.append(item_id)
            for dependent_id in dependents[item_id]:
                in_degree[dependent_id] -= 1
                if in_degree[dependent_id] == 0:
                    heapq.heappush(ready, position[dependent_id])

        return ordered
