"""Pairwise schedule overlap detection."""

from __future__ import annotations

from typing import List, Sequence

from .dates import check_overlap
from .models import Overlap, ScheduledItem


class OverlapDetector:
    """Report every pair of items whose date ranges share at least one day.

    Compares all pairs, so the cost grows with the square of the item count;
    project item counts stay in the tens.
    """

    def detect(self, items: Sequence[ScheduledItem]) -> List[Overlap]:
        overlaps: List[Overlap] = []
        for i, first in enumerate(items):
            for second in items[i + 1:]:
                days = check_overlap(
                    first.display_start, first.display_end,
                    second.display_start, second.display_end,
                )
                if days > 0:
                    overlaps.append(Overlap(first.item_id, second.item_id, days))
        return overlaps
