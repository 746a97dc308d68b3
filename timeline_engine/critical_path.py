"""Critical Path Method (CPM) scheduling.

Times are whole-day offsets from the project anchor (day 0). The forward pass
walks items in topological order to find earliest start/finish, the backward
pass walks the same order reversed from the project horizon to find latest
start/finish. Items whose earliest and latest start coincide have no slack and
make up the critical path.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date
from typing import Dict, List, Optional

from .dates import offset_date
from .graph import GraphIndex
from .models import CriticalPath

logger = logging.getLogger("timeline.engine")


@dataclass(slots=True)
class CpmSchedule:
    """Per-item CPM times stored in lists addressed by input position."""

    order: List[str]
    durations: List[int]
    earliest_start: List[int]
    earliest_finish: List[int]
    latest_start: List[int]
    latest_finish: List[int]
    horizon: int = 0
    has_start: bool = True
    position: Dict[str, int] = field(default_factory=dict)

    def __post_init__(self):
        if not self.position:
            self.position = {item_id: index for index, item_id in enumerate(self.order)}

    def slack(self, item_id: str) -> int:
        index = self.position[item_id]
        return self.latest_start[index] - self.earliest_start[index]

    def critical_items(self) -> List[str]:
        """Zero-slack items sorted by earliest start, input order on ties."""
        critical = [
            item_id for index, item_id in enumerate(self.order)
            if self.earliest_start[index] == self.latest_start[index]
        ]
        return sorted(critical, key=lambda item_id: self.earliest_start[self.position[item_id]])

    def critical_path(self, anchor: date) -> Optional[CriticalPath]:
        if not self.order or not self.has_start:
            return None

        path = self.critical_items()
        if not path:
            return None

        return CriticalPath(
            path=path,
            total_duration_days=self.horizon,
            project_start_date=anchor,
            project_end_date=offset_date(anchor, self.horizon),
        )


class CriticalPathCalculator:
    """Two-pass CPM over a ``GraphIndex``.

    ``durations`` maps item id to its duration in days (at least 1). Cycle
    closing edges are ignored; callers that must not ignore them check
    ``GraphIndex.cycle_edges`` first.
    """

    def __init__(self, index: GraphIndex, durations: Dict[str, int]):
        self.index = index
        self.durations = durations

    def compute(self) -> CpmSchedule:
        order = self.index.order
        count = len(order)
        position = {item_id: index for index, item_id in enumerate(order)}
        durations = [self.durations[item_id] for item_id in order]
        dependencies = self.index.acyclic_dependencies()
        dependents = self.index.acyclic_dependents()
        processing = [position[item_id] for item_id in self.index.topological_order()]

        earliest_start = [0] * count
        earliest_finish = [0] * count
        for index in processing:
            start = 0
            for dep_id in dependencies[order[index]]:
                start = max(start, earliest_finish[position[dep_id]])
            earliest_start[index] = start
            earliest_finish[index] = start + durations[index]

        horizon = max(earliest_finish, default=0)

        latest_start = [0] * count
        latest_finish = [0] * count
        for index in reversed(processing):
            finish = horizon
            for dependent_id in dependents[order[index]]:
                finish = min(finish, latest_start[position[dependent_id]])
            latest_finish[index] = finish
            latest_start[index] = finish - durations[index]

        # judged on the declared edges: an all-cyclic set has no real start
        has_start = bool(self.index.roots())
        if count and not has_start:
            logger.warning("No work item without dependencies; critical path unavailable")

        return CpmSchedule(
            order=list(order),
            durations=durations,
            earliest_start=earliest_start,
            earliest_finish=earliest_finish,
            latest_start=latest_start,
            latest_finish=latest_finish,
            horizon=horizon,
            has_start=has_start,
            position=position,
        )
