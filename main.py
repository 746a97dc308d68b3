"""MCP server exposing the timeline engine as tools."""

from __future__ import annotations

import json
import os
from datetime import date
from pathlib import Path
from typing import Any, Dict, List, Optional

from mcp.server.fastmcp import FastMCP

from timeline_engine.dates import parse_date
from timeline_engine.service import TimelineService
from timeline_engine.timeline import CyclePolicy
from timeline_engine.timeline_logging import operation_timings, setup_logging

mcp = FastMCP("timeline-engine")


def _configured_policy() -> CyclePolicy:
    return CyclePolicy.parse(os.getenv("TIMELINE_CYCLE_POLICY"))


def _configured_today() -> date:
    """Anchor date: TIMELINE_ANCHOR_DATE when set, otherwise the current date."""
    fixed = parse_date(os.getenv("TIMELINE_ANCHOR_DATE"))
    return fixed if fixed is not None else date.today()


def _service(cycle_policy: Optional[str] = None) -> TimelineService:
    policy = CyclePolicy.parse(cycle_policy) if cycle_policy else _configured_policy()
    return TimelineService(cycle_policy=policy, today=_configured_today)


@mcp.tool()
def compute_timeline(
    features: List[Dict[str, Any]],
    anchor_date: Optional[str] = None,
    cycle_policy: Optional[str] = None,
) -> Dict[str, Any]:
    """Compute a project timeline (CPM schedule, critical path, milestones, overlaps).

    Each feature needs an 'id' and may carry 'dependencies' (or 'depends_on' /
    'dependsOn'), 'duration' in days, 'estimated_effort_weeks', and explicit
    'start_date' / 'end_date' ISO dates. Features without a duration or effort
    estimate are scheduled for 7 days.

    anchor_date is day 0 of the schedule (defaults to today). cycle_policy is
    'break' (ignore the dependency that closes a cycle) or 'reject' (return an
    error listing the cycles).
    """
    try:
        service = _service(cycle_policy)
    except ValueError as e:
        return {"error": str(e), "suggestion": "Use cycle_policy='break' or 'reject'", "message": f"Error: {e}"}
    return service.compute(features, anchor_date)


@mcp.tool()
def get_critical_path(
    features: List[Dict[str, Any]],
    anchor_date: Optional[str] = None,
) -> Dict[str, Any]:
    """Return only the critical path and each feature's slack in days."""
    return _service().critical_path(features, anchor_date)


@mcp.tool()
def check_overlap(
    start_date_1: str,
    end_date_1: str,
    start_date_2: str,
    end_date_2: str,
) -> Dict[str, Any]:
    """Count the days two inclusive date ranges (ISO YYYY-MM-DD) have in common."""
    return _service().overlap(start_date_1, end_date_1, start_date_2, end_date_2)


@mcp.resource("timeline://policy")
def resource_policy() -> str:
    """Describe the scheduling rules the server applies."""
    policy = _configured_policy()
    lines = [
        "Timeline Engine Policy",
        "",
        f"- Cycle policy: {policy.value}",
        "- Default duration: 7 days (effort weeks x 7 when estimated)",
        "- Explicit start/end dates override computed dates for display",
        "- Date ranges are inclusive of both start and end day",
    ]
    return "\n".join(lines)


@mcp.resource("timeline://metrics")
def resource_metrics() -> str:
    """Count, failures, last and mean duration (seconds) of each timed operation."""
    summary = operation_timings.summary()
    if not summary:
        return "No timeline operations have run yet."
    return json.dumps(summary, indent=2)


def run() -> None:
    """Configure logging from the environment and serve over stdio."""
    log_file = os.getenv("TIMELINE_LOG_FILE")
    setup_logging(
        os.getenv("TIMELINE_LOG_LEVEL", "INFO").upper(),
        Path(log_file) if log_file else None,
    )
    mcp.run(transport="stdio")


if __name__ == "__main__":
    run()
