"""
Report Cache Tests

Uses an in-process stand-in for the Redis client so the read-through and
invalidation paths can be exercised without a server.
"""

from datetime import datetime, timezone
from typing import List

import pytest
import redis

from ppe_compliance.schemas import MonthlySummary, WorkerReportRow
from ppe_compliance.services.cache import ReportCache


class BrokenRedis:
    def get(self, key):
        raise redis.ConnectionError("connection refused")

    def setex(self, key, ttl, value):
        raise redis.ConnectionError("connection refused")

    def scan_iter(self, match="*"):
        raise redis.ConnectionError("connection refused")


def summary(total=3):
    return MonthlySummary(
        year=2024,
        month=1,
        total_violations=total,
        previous_month_total=0,
        change=total,
        trend="up",
        period_start=datetime(2024, 1, 1, tzinfo=timezone.utc),
        period_end=datetime(2024, 2, 1, tzinfo=timezone.utc),
    )


class TestKeys:
    """Cache key layout"""

    def test_key_with_and_without_narrowing(self):
        cache = ReportCache()
        assert cache.key("summary", 2024, 1) == "reports:2024:01:summary:*:*"
        assert cache.key("by-worker", 2024, 11, "Main Gate", "HELMET") == "reports:2024:11:by-worker:Main Gate:HELMET"


class TestReadThrough:
    """fetch computes once, then serves from the cache"""

    def test_disabled_cache_always_computes(self):
        calls = []
        cache = ReportCache(client=None)
        assert not cache.enabled
        for _ in range(2):
            cache.fetch("k", MonthlySummary, lambda: calls.append(1) or summary())
        assert len(calls) == 2

    def test_hit_skips_compute(self, fake_redis):
        calls = []
        cache = ReportCache(client=fake_redis, ttl=120)

        def compute():
            calls.append(1)
            return summary()

        first = cache.fetch("reports:2024:01:summary:*:*", MonthlySummary, compute)
        second = cache.fetch("reports:2024:01:summary:*:*", MonthlySummary, compute)
        assert len(calls) == 1
        assert first == second
        assert fake_redis.ttls["reports:2024:01:summary:*:*"] == 120

    def test_lists_of_rows_round_trip(self, fake_redis):
        cache = ReportCache(client=fake_redis)
        row = WorkerReportRow(
            worker_id=1, worker_name="Juan", employee_id="EMP001", department="Civil Works",
            total_violations=2, helmet_violations=1, vest_violations=1,
            period_start=datetime(2024, 1, 1, tzinfo=timezone.utc),
            period_end=datetime(2024, 2, 1, tzinfo=timezone.utc),
        )
        cache.fetch("k", List[WorkerReportRow], lambda: [row])
        assert cache.fetch("k", List[WorkerReportRow], lambda: []) == [row]

    def test_redis_errors_fall_back_to_compute(self):
        cache = ReportCache(client=BrokenRedis())
        assert cache.fetch("k", MonthlySummary, lambda: summary(7)).total_violations == 7
        assert cache.invalidate_month(2024, 1) == 0


class TestInvalidation:
    """A new violation drops every cached report of its month"""

    def test_only_the_given_month_is_dropped(self, fake_redis):
        cache = ReportCache(client=fake_redis)
        for key in (
            cache.key("summary", 2024, 1),
            cache.key("by-worker", 2024, 1, "Main Gate"),
            cache.key("summary", 2024, 2),
        ):
            cache.store(key, MonthlySummary, summary())

        assert cache.invalidate_month(2024, 1) == 2
        assert list(fake_redis.store) == [cache.key("summary", 2024, 2)]

    def test_detection_drops_its_month_and_the_next(self, fake_redis):
        cache = ReportCache(client=fake_redis)
        for year, month in ((2024, 11), (2024, 12), (2025, 1), (2025, 2)):
            cache.store(cache.key("summary", year, month), MonthlySummary, summary())

        assert cache.invalidate_detection(datetime(2024, 12, 31, 23, 0, tzinfo=timezone.utc)) == 2
        assert sorted(fake_redis.store) == [cache.key("summary", 2024, 11), cache.key("summary", 2025, 2)]

    def test_invalidate_all_drops_every_report(self, fake_redis):
        cache = ReportCache(client=fake_redis)
        for key in (cache.key("summary", 2023, 6), cache.key("by-worker", 2024, 1, "Main Gate")):
            cache.store(key, MonthlySummary, summary())
        fake_redis.store["sessions:1"] = "{}"

        assert cache.invalidate_all() == 2
        assert list(fake_redis.store) == ["sessions:1"]

    def test_disabled_cache_invalidates_nothing(self):
        assert ReportCache(client=None).invalidate_month(2024, 1) == 0
        assert ReportCache(client=None).invalidate_all() == 0
