"""Completion milestones."""

from __future__ import annotations

from datetime import date
from typing import Dict, Iterable, List

from .models import Milestone, ScheduledItem


def describe_milestone(count: int) -> str:
    return f"{count} feature{'s' if count > 1 else ''} completing"


class MilestoneAggregator:
    """Group scheduled items by the date they finish."""

    def aggregate(self, items: Iterable[ScheduledItem]) -> List[Milestone]:
        by_date: Dict[date, List[str]] = {}
        for item in items:
            if item.display_end is None:
                continue
            by_date.setdefault(item.display_end, []).append(item.item_id)

        # ISO dates sort lexically in calendar order
        return [
            Milestone(
                completion_date=completion_date,
                item_ids=item_ids,
                description=describe_milestone(len(item_ids)),
            )
            for completion_date, item_ids in sorted(
                by_date.items(), key=lambda entry: entry[0].isoformat()
            )
        ]
