"""Calendar helpers for timeline computation.

All dates are plain ``datetime.date`` values inside the engine and ISO
``YYYY-MM-DD`` strings at the wire boundary. Ranges are inclusive: an item
starting on day ``d`` with a duration of ``n`` days ends on ``d + n - 1``.
"""

from __future__ import annotations

from datetime import date, datetime, timedelta
from typing import Optional, Union

DateLike = Union[date, datetime, str, None]


def parse_date(value: DateLike) -> Optional[date]:
    """Coerce ``value`` to a ``date``; empty values give ``None``.

    Strings may carry a time part (``2024-01-10T00:00:00Z``), which is dropped.
    Raises ``ValueError`` for strings that are not ISO dates.
    """
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    text = str(value).strip()
    if not text:
        return None
    try:
        return date.fromisoformat(text[:10])
    except ValueError:
        raise ValueError(f"Invalid ISO date: {value!r}") from None


def format_date(value: Optional[date]) -> Optional[str]:
    return value.isoformat() if value else None


def _shift(day: date, days: int) -> date:
    try:
        return day + timedelta(days=days)
    except OverflowError:
        raise ValueError(
            f"Date out of range: {day.isoformat()} shifted by {days} days"
        ) from None


def calculate_end_date(start: DateLike, duration_days: int) -> date:
    """Inclusive end date of a range of ``duration_days`` starting on ``start``."""
    start_date = parse_date(start)
    if start_date is None:
        raise ValueError("A start date is required")
    return _shift(start_date, duration_days - 1)


def calculate_start_date(end: DateLike, duration_days: int) -> date:
    """Start date of a range of ``duration_days`` ending (inclusive) on ``end``."""
    end_date = parse_date(end)
    if end_date is None:
        raise ValueError("An end date is required")
    return _shift(end_date, -(duration_days - 1))


def check_overlap(start1: DateLike, end1: DateLike, start2: DateLike, end2: DateLike) -> int:
    """Count the days two inclusive ranges share.

    Returns 0 when any bound is missing or the ranges are disjoint.
    """
    s1, e1, s2, e2 = (parse_date(v) for v in (start1, end1, start2, end2))
    if s1 is None or e1 is None or s2 is None or e2 is None:
        return 0

    if s1 > e2 or s2 > e1:
        return 0

    overlap_start = max(s1, s2)
    overlap_end = min(e1, e2)
    # inverted ranges (end before start) share nothing
    if overlap_end < overlap_start:
        return 0
    return (overlap_end - overlap_start).days + 1


def offset_date(anchor: date, days: int) -> date:
    """Calendar date ``days`` after ``anchor``; ``ValueError`` past the supported range."""
    return _shift(anchor, days)
