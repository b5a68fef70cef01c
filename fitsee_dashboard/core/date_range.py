"""
Date-range resolution for dashboard filters.

Maps a symbolic filter token plus optional custom bounds to a timestamp
range usable both in memory and as an SQL predicate.
"""

from dataclasses import dataclass
from datetime import date, datetime, time, timedelta, timezone
from enum import Enum
from typing import List, Optional, Tuple


class DateFilter(Enum):
    """Supported date filter tokens."""
    ALL = "all"
    TODAY = "today"
    SEVEN_DAYS = "7days"
    THIRTY_DAYS = "30days"
    CUSTOM = "custom"

    @classmethod
    def parse(cls, token: Optional[str], default: "DateFilter") -> "DateFilter":
        """Parse a query-string token, degrading to ``default`` when absent
        and to ``ALL`` when unknown."""
        if token is None or not token.strip():
            return default
        try:
            return cls(token.strip().lower())
        except ValueError:
            return cls.ALL


@dataclass(frozen=True)
class DateRange:
    """Half-open timestamp range ``start <= ts < end``.

    Either bound may be None. Bounds are naive UTC datetimes, matching how
    the store records timestamps.
    """
    start: Optional[datetime] = None
    end: Optional[datetime] = None

    def __post_init__(self):
        if self.start is not None and self.end is not None and self.start > self.end:
            raise ValueError("start must not be after end")

    @property
    def is_unbounded(self) -> bool:
        return self.start is None and self.end is None

    def contains(self, timestamp: datetime) -> bool:
        """Check whether a timestamp falls inside the range."""
        ts = to_naive_utc(timestamp)
        if self.start is not None and ts < self.start:
            return False
        if self.end is not None and ts >= self.end:
            return False
        return True

    def sql_predicate(self, column: str) -> Tuple[str, List[str]]:
        """Render the range as an SQL condition and its parameters.

        Returns an empty condition for an unbounded range.
        """
        conditions = []
        params = []
        if self.start is not None:
            conditions.append(f"{column} >= ?")
            params.append(self.start.isoformat())
        if self.end is not None:
            conditions.append(f"{column} < ?")
            params.append(self.end.isoformat())
        return " AND ".join(conditions), params


ALL_TIME = DateRange()


def to_naive_utc(timestamp: datetime) -> datetime:
    """Normalize a datetime to naive UTC; naive input is assumed to be UTC."""
    if timestamp.tzinfo is not None:
        return timestamp.astimezone(timezone.utc).replace(tzinfo=None)
    return timestamp


def _parse_calendar_date(value: Optional[str]) -> Optional[date]:
    if value is None:
        return None
    try:
        return date.fromisoformat(value.strip()[:10])
    except ValueError:
        return None


def resolve_date_range(
    token: Optional[str],
    start: Optional[str] = None,
    end: Optional[str] = None,
    now: Optional[datetime] = None,
    default: DateFilter = DateFilter.ALL
) -> DateRange:
    """Resolve a filter token into a DateRange.

    Relative filters are anchored at UTC midnight of the current day.
    A custom range covers whole calendar days, end date inclusive.
    Incomplete or malformed custom ranges fall back to all time.

    Args:
        token: Filter token from the query string (``dateFilter``)
        start: Custom range start date (``YYYY-MM-DD``)
        end: Custom range end date (``YYYY-MM-DD``), inclusive
        now: Reference time; defaults to the current UTC time
        default: Filter applied when no token is given

    Returns:
        Resolved DateRange (unbounded for ``all``)
    """
    date_filter = DateFilter.parse(token, default)
    reference = to_naive_utc(now) if now is not None else datetime.now(timezone.utc).replace(tzinfo=None)
    today = datetime.combine(reference.date(), time.min)

    if date_filter == DateFilter.TODAY:
        return DateRange(start=today)
    if date_filter == DateFilter.SEVEN_DAYS:
        return DateRange(start=today - timedelta(days=7))
    if date_filter == DateFilter.THIRTY_DAYS:
        return DateRange(start=today - timedelta(days=30))
    if date_filter == DateFilter.CUSTOM:
        start_date = _parse_calendar_date(start)
        end_date = _parse_calendar_date(end)
        if start_date is None or end_date is None or start_date > end_date:
            return ALL_TIME
        if end_date == date.max:
            # no day after the last representable date
            return DateRange(start=datetime.combine(start_date, time.min))
        return DateRange(
            start=datetime.combine(start_date, time.min),
            end=datetime.combine(end_date + timedelta(days=1), time.min)
        )
    return ALL_TIME
