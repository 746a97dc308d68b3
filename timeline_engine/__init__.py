"""Timeline engine: CPM scheduling and timeline reports for project features."""

from .graph import CyclicDependencyError, GraphIndex
from .models import (
    CriticalPath,
    DependencyChain,
    Milestone,
    Overlap,
    ScheduledItem,
    TimelineResult,
    WorkItem,
)
from .timeline import CyclePolicy, TimelineOrchestrator, compute_timeline

__all__ = [
    "compute_timeline",
    "CyclePolicy",
    "CyclicDependencyError",
    "GraphIndex",
    "TimelineOrchestrator",
    "WorkItem",
    "ScheduledItem",
    "DependencyChain",
    "CriticalPath",
    "Milestone",
    "Overlap",
    "TimelineResult",
]
