"""Timeline computation for a project's work items.

``compute_timeline`` runs the whole pipeline for one snapshot of work items:
durations are normalized, dependency chains rebuilt, CPM times computed, and
the resulting schedule reported as milestones and overlaps. Nothing is kept
between calls and the input items are never modified.
"""

from __future__ import annotations

import logging
from datetime import date
from enum import Enum
from typing import Dict, Iterable, List, Tuple, Union

from .chains import ChainBuilder
from .critical_path import CpmSchedule, CriticalPathCalculator
from .dates import calculate_end_date, calculate_start_date, format_date, offset_date
from .graph import CyclicDependencyError, GraphIndex
from .milestones import MilestoneAggregator
from .models import ScheduledItem, TimelineResult, WorkItem
from .overlaps import OverlapDetector
from .timeline_logging import log_operation, log_performance, observability_hooks

logger = logging.getLogger("timeline.engine")


class CyclePolicy(str, Enum):
    """What to do with dependency cycles."""
    BREAK = "break"    # ignore the edge that closes each cycle
    REJECT = "reject"  # raise CyclicDependencyError

    @classmethod
    def parse(cls, value: Union[str, "CyclePolicy", None]) -> "CyclePolicy":
        if isinstance(value, cls):
            return value
        if not value:
            return cls.BREAK
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            raise ValueError(
                f"Unknown cycle policy: {value!r} (expected 'break' or 'reject')"
            ) from None


def display_range(item: WorkItem, duration: int, computed_start: date) -> Tuple[date, date]:
    """Dates shown for an item: explicit ones first, computed ones otherwise.

    A lone explicit bound is completed from the item's duration.
    """
    start, end = item.explicit_start, item.explicit_end
    if start and end:
        return start, end
    if start:
        return start, calculate_end_date(start, duration)
    if end:
        return calculate_start_date(end, duration), end
    return computed_start, calculate_end_date(computed_start, duration)


class TimelineOrchestrator:
    """Run chain building, CPM and reporting over one set of work items."""

    def __init__(self, cycle_policy: CyclePolicy = CyclePolicy.BREAK):
        self.cycle_policy = CyclePolicy.parse(cycle_policy)
        self.milestones = MilestoneAggregator()
        self.overlaps = OverlapDetector()

    def compute(self, items: Iterable[WorkItem], anchor: date) -> TimelineResult:
        work_items = list(items)
        index = GraphIndex(work_items)

        broken_edges = index.cycle_edges
        if broken_edges:
            if self.cycle_policy is CyclePolicy.REJECT:
                raise CyclicDependencyError(broken_edges)
            logger.warning(f"Ignoring {len(broken_edges)} dependency edges that close cycles")
            observability_hooks.log_timeline_event(
                "cycle_broken",
                edges=[list(edge) for edge in broken_edges],
            )

        durations: Dict[str, int] = {
            item_id: index.by_id[item_id].resolved_duration() for item_id in index.order
        }

        with log_operation("build_dependency_chains", item_count=len(index)):
            chains = ChainBuilder(index).build()

        with log_operation("critical_path", item_count=len(index)):
            schedule = CriticalPathCalculator(index, durations).compute()
            critical_path = schedule.critical_path(anchor)

        scheduled = self._schedule_items(index, schedule, anchor)
        milestones = self.milestones.aggregate(scheduled)
        overlaps = self.overlaps.detect(scheduled)

        if critical_path:
            on_path = set(critical_path.path)
            for item in scheduled:
                item.is_on_critical_path = item.item_id in on_path

        # stable: items without a start keep their relative order, first
        scheduled.sort(key=lambda item: format_date(item.display_start) or "")

        result = TimelineResult(
            anchor=anchor,
            items=scheduled,
            dependency_chains=chains,
            critical_path=critical_path,
            milestones=milestones,
            overlaps=overlaps,
            broken_edges=broken_edges,
        )
        observability_hooks.log_timeline_event(
            "timeline_computed",
            anchor=format_date(anchor),
            item_count=len(scheduled),
            total_duration_days=critical_path.total_duration_days if critical_path else None,
            overlap_count=len(overlaps),
        )
        return result

    def _schedule_items(
        self, index: GraphIndex, schedule: CpmSchedule, anchor: date
    ) -> List[ScheduledItem]:
        scheduled = []
        for position, item_id in enumerate(index.order):
            item = index.by_id[item_id]
            duration = schedule.durations[position]
            computed_start = offset_date(anchor, schedule.earliest_start[position])
            display_start, display_end = display_range(item, duration, computed_start)
            scheduled.append(ScheduledItem(
                item_id=item_id,
                title=item.title,
                dependencies=list(item.dependencies),
                duration_days=duration,
                earliest_start=schedule.earliest_start[position],
                earliest_finish=schedule.earliest_finish[position],
                latest_start=schedule.latest_start[position],
                latest_finish=schedule.latest_finish[position],
                display_start=display_start,
                display_end=display_end,
            ))
        return scheduled


@log_performance("compute_timeline")
def compute_timeline(
    items: Iterable[WorkItem],
    anchor: date,
    cycle_policy: CyclePolicy = CyclePolicy.BREAK,
) -> TimelineResult:
    """Compute the schedule, critical path, milestones and overlaps.

    ``anchor`` is the calendar date of day 0 ("today"). Raises
    ``CyclicDependencyError`` only when ``cycle_policy`` is ``REJECT``.
    """
    return TimelineOrchestrator(cycle_policy).compute(items, anchor)

