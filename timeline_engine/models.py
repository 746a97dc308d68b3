"""Data models for timeline computation.

This module contains the records exchanged with the timeline engine: the work
items it reads, the scheduled items it produces, and the report entries
(dependency chains, critical path, milestones, overlaps) bundled into a
``TimelineResult``.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from datetime import date
from typing import Any, Dict, List, Optional, Tuple

from .dates import format_date, parse_date

# Duration used when an item has neither a duration nor an effort estimate
DEFAULT_DURATION_DAYS = 7
DAYS_PER_WEEK = 7


def _first_present(data: Dict[str, Any], *keys: str) -> Any:
    for key in keys:
        if data.get(key) is not None:
            return data[key]
    return None


def _whole_days(value: Any) -> int:
    try:
        return int(value)
    except OverflowError:
        raise ValueError(f"Duration must be a finite number of days, got: {value!r}") from None


def _weeks(value: Any) -> float:
    weeks = float(value)
    if not math.isfinite(weeks):
        raise ValueError(f"Effort estimate must be a finite number of weeks, got: {value!r}")
    return weeks


def _dependency_ids(value: Any) -> Tuple[str, ...]:
    # a bare string is one id, not a sequence of one-letter ids
    if isinstance(value, str):
        return (value,) if value else ()
    if not isinstance(value, (list, tuple)):
        raise ValueError(f"Dependencies must be a list of ids, got {type(value).__name__}")
    return tuple(str(dep) for dep in value)


@dataclass(slots=True, frozen=True)
class WorkItem:
    """A schedulable project feature as supplied by the calling layer."""

    id: str
    dependencies: Tuple[str, ...] = ()
    duration_days: Optional[int] = None
    effort_weeks: Optional[float] = None
    explicit_start: Optional[date] = None
    explicit_end: Optional[date] = None
    title: str = ""

    def resolved_duration(self) -> int:
        """Duration in days: explicit, else effort weeks x 7, else 7."""
        if self.duration_days and 0 < self.duration_days < math.inf:
            return int(self.duration_days)
        if self.effort_weeks and 0 < self.effort_weeks < math.inf:
            return max(1, int(math.ceil(self.effort_weeks * DAYS_PER_WEEK)))
        return DEFAULT_DURATION_DAYS

    def to_dict(self) -> Dict[str, Any]:
        """Convert to the stored (snake_case) record shape."""
        return {
            "id": self.id,
            "title": self.title,
            "dependencies": list(self.dependencies),
            "duration": self.duration_days,
            "estimated_effort_weeks": self.effort_weeks,
            "start_date": format_date(self.explicit_start),
            "end_date": format_date(self.explicit_end),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "WorkItem":
        """Create from a stored record or an API (camelCase) record.

        Raises ``ValueError`` for malformed dates or numbers.
        """
        item_id = _first_present(data, "id", "_id")
        dependencies = _first_present(data, "dependencies", "depends_on", "dependsOn") or []
        duration = _first_present(data, "duration", "duration_days", "durationDays")
        effort = _first_present(
            data, "estimated_effort_weeks", "effort_estimate_weeks", "effortEstimateWeeks"
        )
        return cls(
            id=str(item_id) if item_id is not None else "",
            dependencies=_dependency_ids(dependencies),
            duration_days=_whole_days(duration) if duration is not None else None,
            effort_weeks=_weeks(effort) if effort is not None else None,
            explicit_start=parse_date(_first_present(data, "start_date", "startDate")),
            explicit_end=parse_date(_first_present(data, "end_date", "endDate")),
            title=data.get("title") or "",
        )

    def validate(self) -> List[str]:
        """Validate the item and return any issues."""
        issues = []

        if not self.id:
            issues.append("Work item ID is required")
        if self.duration_days is not None and self.duration_days < 0:
            issues.append(f"Duration must not be negative, got: {self.duration_days}")
        if self.effort_weeks is not None and self.effort_weeks < 0:
            issues.append(f"Effort estimate must not be negative, got: {self.effort_weeks}")
        if self.effort_weeks is not None and not math.isfinite(self.effort_weeks):
            issues.append(f"Effort estimate must be finite, got: {self.effort_weeks}")
        if self.explicit_start and self.explicit_end and self.explicit_end < self.explicit_start:
            issues.append(
                f"End date {self.explicit_end.isoformat()} is before start date "
                f"{self.explicit_start.isoformat()}"
            )

        return issues


@dataclass(slots=True)
class ScheduledItem:
    """Schedule computed for one work item."""

    item_id: str
    title: str
    dependencies: List[str]
    duration_days: int
    earliest_start: int
    earliest_finish: int
    latest_start: int
    latest_finish: int
    display_start: Optional[date] = None
    display_end: Optional[date] = None
    is_on_critical_path: bool = False

    @property
    def slack_days(self) -> int:
        return self.latest_start - self.earliest_start

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary representation."""
        return {
            "id": self.item_id,
            "title": self.title,
            "dependsOn": list(self.dependencies),
            "duration": self.duration_days,
            "startDate": format_date(self.display_start),
            "endDate": format_date(self.display_end),
            "earliestStart": self.earliest_start,
            "earliestFinish": self.earliest_finish,
            "latestStart": self.latest_start,
            "latestFinish": self.latest_finish,
            "slackDays": self.slack_days,
            "isOnCriticalPath": self.is_on_critical_path,
        }


@dataclass(slots=True)
class DependencyChain:
    """Longest dependency chain ending at ``item_id``, root-most item first."""

    item_id: str
    chain: List[str] = field(default_factory=list)

    @property
    def depth(self) -> int:
        return len(self.chain) - 1

    def to_dict(self) -> Dict[str, Any]:
        return {
            "featureId": self.item_id,
            "chain": list(self.chain),
            "depth": self.depth,
        }


@dataclass(slots=True)
class CriticalPath:
    """Zero-slack items ordered by earliest start, with the project span."""

    path: List[str]
    total_duration_days: int
    project_start_date: date
    project_end_date: date

    def to_dict(self) -> Dict[str, Any]:
        return {
            "path": list(self.path),
            "totalDuration": self.total_duration_days,
            "startDate": format_date(self.project_start_date),
            "endDate": format_date(self.project_end_date),
        }


@dataclass(slots=True)
class Milestone:
    """Items completing on the same calendar date."""

    completion_date: date
    item_ids: List[str]
    description: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "date": format_date(self.completion_date),
            "features": list(self.item_ids),
            "description": self.description,
        }


@dataclass(slots=True)
class Overlap:
    """Days shared by two items' scheduled ranges."""

    item_id_a: str
    item_id_b: str
    overlap_days: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            "feature1": self.item_id_a,
            "feature2": self.item_id_b,
            "overlapDays": self.overlap_days,
        }


@dataclass(slots=True)
class TimelineResult:
    """Everything computed by one ``compute_timeline`` call."""

    anchor: date
    items: List[ScheduledItem] = field(default_factory=list)
    dependency_chains: List[DependencyChain] = field(default_factory=list)
    critical_path: Optional[CriticalPath] = None
    milestones: List[Milestone] = field(default_factory=list)
    overlaps: List[Overlap] = field(default_factory=list)
    # (item_id, dependency_id) edges ignored to break dependency cycles
    broken_edges: List[Tuple[str, str]] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to the camelCase wire representation."""
        return {
            "features": [item.to_dict() for item in self.items],
            "timeline": {
                "dependencyChains": [chain.to_dict() for chain in self.dependency_chains],
                "criticalPath": self.critical_path.to_dict() if self.critical_path else None,
                "milestones": [milestone.to_dict() for milestone in self.milestones],
                "overlaps": [overlap.to_dict() for overlap in self.overlaps],
            },
            "anchorDate": format_date(self.anchor),
            "brokenDependencies": [
                {"featureId": item_id, "dependsOn": dep_id}
                for item_id, dep_id in self.broken_edges
            ],
        }
