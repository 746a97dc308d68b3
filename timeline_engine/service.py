"""Payload-level timeline service.

This module is the calling layer around the engine: it turns stored or API
work-item records into ``WorkItem`` values, supplies the anchor date, runs
``compute_timeline``, and reports failures as error dictionaries instead of
raising, the way the MCP tools return results.
"""

from __future__ import annotations

import logging
from datetime import date
from typing import Any, Callable, Dict, Iterable, List, Optional, Tuple, Union

from .dates import check_overlap, format_date, parse_date
from .graph import CyclicDependencyError
from .models import WorkItem
from .timeline import CyclePolicy, compute_timeline
from .timeline_logging import log_error_with_context, log_operation, log_performance

logger = logging.getLogger("timeline.service")


class TimelineService:
    """Compute project timelines from raw work-item records."""

    def __init__(
        self,
        cycle_policy: Union[CyclePolicy, str, None] = CyclePolicy.BREAK,
        today: Callable[[], date] = date.today,
    ):
        """Initialize the service with a cycle policy and a clock for the anchor."""
        self.cycle_policy = CyclePolicy.parse(cycle_policy)
        self.today = today

    # ------------------------------------------------------------------
    # Record conversion
    # ------------------------------------------------------------------

    def load_items(self, records: Iterable[Dict[str, Any]]) -> Tuple[List[WorkItem], List[str]]:
        """Convert records into work items and collect validation warnings.

        Raises ``ValueError`` for records that cannot be scheduled at all
        (malformed values or a missing id).
        """
        items: List[WorkItem] = []
        warnings: List[str] = []
        seen = set()

        for position, record in enumerate(records):
            if not isinstance(record, dict):
                raise ValueError(f"Work item #{position} must be an object, got {type(record).__name__}")
            try:
                item = WorkItem.from_dict(record)
            except (TypeError, ValueError) as e:
                raise ValueError(f"Work item #{position} is invalid: {e}") from e

            issues = item.validate()
            if not item.id:
                raise ValueError(f"Work item #{position} is invalid: {'; '.join(issues)}")
            warnings.extend(f"{item.id}: {issue}" for issue in issues)

            if item.id in seen:
                warnings.append(f"{item.id}: duplicate id, only the first occurrence is scheduled")
            seen.add(item.id)
            items.append(item)

        return items, warnings

    def resolve_anchor(self, anchor_date: Optional[str] = None) -> date:
        """Anchor for day 0: the given ISO date, else today's date."""
        anchor = parse_date(anchor_date)
        return anchor if anchor is not None else self.today()

    # ------------------------------------------------------------------
    # Operations
    # ------------------------------------------------------------------

    @log_performance("timeline_service_compute")
    def compute(
        self,
        records: Iterable[Dict[str, Any]],
        anchor_date: Optional[str] = None,
    ) -> Dict[str, Any]:
        """Compute the full timeline for a set of work-item records."""
        records = list(records or [])
        try:
            with log_operation("compute_timeline", record_count=len(records)):
                items, warnings = self.load_items(records)
                anchor = self.resolve_anchor(anchor_date)
                result = compute_timeline(items, anchor, self.cycle_policy)

            for warning in warnings:
                logger.warning(warning)

            critical = result.critical_path
            summary = (
                f"{len(result.items)} features scheduled over {critical.total_duration_days} days"
                if critical else f"{len(result.items)} features scheduled, no critical path"
            )
            if result.broken_edges:
                summary += f"; ignored {len(result.broken_edges)} cyclic dependencies"

            return {
                **result.to_dict(),
                "cyclePolicy": self.cycle_policy.value,
                "warnings": warnings,
                "message": summary,
            }

        except CyclicDependencyError as e:
            log_error_with_context(e, {
                "operation": "compute_timeline",
                "record_count": len(records),
                "cycle_policy": self.cycle_policy.value,
            })
            return {
                "error": str(e),
                "cycles": [{"featureId": item_id, "dependsOn": dep_id} for item_id, dep_id in e.edges],
                "suggestion": "Remove one dependency from each listed cycle and try again",
                "message": f"Error: {e}",
            }

        except ValueError as e:
            log_error_with_context(e, {
                "operation": "compute_timeline",
                "record_count": len(records),
            })
            return {
                "error": str(e),
                "suggestion": "Check work item ids, numeric estimates and ISO (YYYY-MM-DD) dates",
                "message": f"Error: {e}",
            }

    def critical_path(
        self,
        records: Iterable[Dict[str, Any]],
        anchor_date: Optional[str] = None,
    ) -> Dict[str, Any]:
        """Return only the critical path and per-feature slack."""
        response = self.compute(records, anchor_date)
        if "error" in response:
            return response

        return {
            "criticalPath": response["timeline"]["criticalPath"],
            "slack": {feature["id"]: feature["slackDays"] for feature in response["features"]},
            "anchorDate": response["anchorDate"],
            "message": response["message"],
        }

    def overlap(
        self,
        start1: Optional[str],
        end1: Optional[str],
        start2: Optional[str],
        end2: Optional[str],
    ) -> Dict[str, Any]:
        """Count the days two inclusive date ranges share."""
        try:
            days = check_overlap(start1, end1, start2, end2)
        except ValueError as e:
            log_error_with_context(e, {"operation": "check_overlap"})
            return {
                "error": str(e),
                "suggestion": "Dates must be ISO formatted (YYYY-MM-DD)",
                "message": f"Error: {e}",
            }

        return {
            "overlapDays": days,
            "overlaps": days > 0,
            "ranges": [
                {"startDate": format_date(parse_date(start1)), "endDate": format_date(parse_date(end1))},
                {"startDate": format_date(parse_date(start2)), "endDate": format_date(parse_date(end2))},
            ],
        }
