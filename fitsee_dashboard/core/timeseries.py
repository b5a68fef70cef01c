"""
Daily time-series bucketing for chart data.
"""

from collections import Counter
from dataclasses import dataclass
from datetime import datetime
from typing import Iterable, List

from .date_range import to_naive_utc


@dataclass(frozen=True)
class DailyCount:
    """Number of events on one UTC calendar day."""
    date: str  # ISO calendar date, YYYY-MM-DD
    count: int


def bucket_by_day(timestamps: Iterable[datetime]) -> List[DailyCount]:
    """Group timestamps into per-day counts.

    Day boundaries are UTC; input order does not matter. Only days with at
    least one event appear, in ascending date order.

    Args:
        timestamps: Event timestamps (aware or naive UTC)

    Returns:
        List of DailyCount ordered by date ascending
    """
    counts = Counter(to_naive_utc(ts).date() for ts in timestamps)
    return [
        DailyCount(date=day.isoformat(), count=counts[day])
        for day in sorted(counts)
    ]
