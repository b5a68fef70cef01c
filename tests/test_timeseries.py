"""
Unit tests for daily bucketing of events.
"""

import random
from datetime import datetime, timedelta, timezone

from fitsee_dashboard.core.timeseries import DailyCount, bucket_by_day


class TestBucketByDay:
    """Test grouping timestamps into UTC calendar days."""

    def test_empty_input(self):
        assert bucket_by_day([]) == []

    def test_same_day_collapses(self):
        timestamps = [
            datetime(2024, 1, 1, 0, 0),
            datetime(2024, 1, 1, 12, 0),
            datetime(2024, 1, 1, 23, 59, 59),
            datetime(2024, 1, 3, 8, 0),
        ]
        assert bucket_by_day(timestamps) == [
            DailyCount(date="2024-01-01", count=3),
            DailyCount(date="2024-01-03", count=1),
        ]

    def test_unordered_input_is_sorted(self):
        timestamps = [datetime(2024, 1, 5), datetime(2024, 1, 2), datetime(2024, 1, 5, 6)]
        buckets = bucket_by_day(timestamps)
        assert [b.date for b in buckets] == ["2024-01-02", "2024-01-05"]

    def test_day_boundaries_are_utc(self):
        tz = timezone(timedelta(hours=-8))
        # 20:00 local on Jan 1 is 04:00 UTC on Jan 2
        buckets = bucket_by_day([datetime(2024, 1, 1, 20, 0, tzinfo=tz)])
        assert buckets == [DailyCount(date="2024-01-02", count=1)]

    def test_bucket_invariants(self):
        rng = random.Random(42)
        start = datetime(2024, 1, 1)
        timestamps = [start + timedelta(minutes=rng.randint(0, 60 * 24 * 20)) for _ in range(500)]

        buckets = bucket_by_day(timestamps)

        assert sum(b.count for b in buckets) == len(timestamps)
        assert all(b.count > 0 for b in buckets)
        dates = [b.date for b in buckets]
        assert dates == sorted(set(dates))
