# ppe_compliance/services/cache.py
"""
Read-through cache for monthly reports.

Entries are keyed by report kind, period and narrowing, expire after
``REPORT_CACHE_TTL`` seconds and are dropped for the detection month and the
month after it when a violation is recorded. Renaming a camera zone drops
every entry, since zone narrowing is part of the key. Without ``REDIS_URL``
the cache is a pass-through. Redis errors never fail a report: the report is computed
from the store instead.
"""
import logging
from typing import Callable, Optional

import redis
from pydantic import TypeAdapter

from ppe_compliance.config import REDIS_URL, REPORT_CACHE_TTL
from ppe_compliance.periods import month_of, next_month

log = logging.getLogger(__name__)

_REDIS_CLIENT = None


def get_redis():
    global _REDIS_CLIENT
    if _REDIS_CLIENT is not None:
        return _REDIS_CLIENT
    if not REDIS_URL:
        return None
    _REDIS_CLIENT = redis.Redis.from_url(REDIS_URL)
    return _REDIS_CLIENT


class ReportCache:
    def __init__(self, client=None, ttl: int = REPORT_CACHE_TTL, prefix: str = "reports"):
        self.client = client
        self.ttl = ttl
        self.prefix = prefix

    @property
    def enabled(self) -> bool:
        return self.client is not None

    def key(self, kind: str, year: int, month: int, location_zone: Optional[str] = None, category: Optional[str] = None) -> str:
        return f"{self.prefix}:{year:04d}:{month:02d}:{kind}:{location_zone or '*'}:{category or '*'}"

    def fetch(self, key: str, response_type, compute: Callable):
        if self.client is None:
            return compute()

        adapter = TypeAdapter(response_type)
        try:
            raw = self.client.get(key)
        except redis.RedisError:
            log.warning("report cache read failed for %s", key, exc_info=True)
            return compute()

        if raw is not None:
            log.debug("report cache hit %s", key)
            return adapter.validate_json(raw)

        log.debug("report cache miss %s", key)
        value = compute()
        self.store(key, response_type, value)
        return value

    def store(self, key: str, response_type, value):
        if self.client is None:
            return
        adapter = TypeAdapter(response_type)
        try:
            self.client.setex(key, self.ttl, adapter.dump_json(value))
        except redis.RedisError:
            log.warning("report cache write failed for %s", key, exc_info=True)

    def _invalidate(self, pattern: str) -> int:
        if self.client is None:
            return 0
        try:
            keys = list(self.client.scan_iter(match=pattern))
            if keys:
                self.client.delete(*keys)
        except redis.RedisError:
            log.warning("report cache invalidation failed for %s", pattern, exc_info=True)
            return 0
        if keys:
            log.info("invalidated %d cached reports matching %s", len(keys), pattern)
        return len(keys)

    def invalidate_month(self, year: int, month: int) -> int:
        return self._invalidate(f"{self.prefix}:{year:04d}:{month:02d}:*")

    def invalidate_detection(self, detected_at) -> int:
        """Drop reports that count a violation detected at ``detected_at``.

        That is its own month and the month after, whose summary compares
        against it.
        """
        year, month = month_of(detected_at)
        return self.invalidate_month(year, month) + self.invalidate_month(*next_month(year, month))

    def invalidate_all(self) -> int:
        return self._invalidate(f"{self.prefix}:*")


def get_report_cache() -> ReportCache:
    return ReportCache(get_redis())
