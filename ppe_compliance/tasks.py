# ppe_compliance/tasks.py
import logging
from datetime import datetime, timezone
from typing import List

from ppe_compliance.celery_app import celery
from ppe_compliance.database import SessionLocal
from ppe_compliance.periods import previous_month
from ppe_compliance.schemas import CategoryReportRow, MonthlySummary, WorkerReportRow
from ppe_compliance.services import reports as report_service
from ppe_compliance.services.cache import get_report_cache

log = logging.getLogger(__name__)


def warm_reports(db, cache, year: int, month: int) -> dict:
    """Compute the unfiltered monthly reports and store them in the cache."""
    rf = report_service.build_report_filter(year, month)
    by_worker = report_service.report_by_worker(db, rf)
    by_category = report_service.report_by_category(db, rf)
    summary = report_service.monthly_summary(db, rf)

    cache.store(rf.cache_key(cache, "by-worker"), List[WorkerReportRow], by_worker)
    cache.store(rf.cache_key(cache, "by-category"), List[CategoryReportRow], by_category)
    cache.store(rf.cache_key(cache, "summary"), MonthlySummary, summary)

    return {
        "year": year,
        "month": month,
        "workers": len(by_worker),
        "total_violations": summary.total_violations,
        "cached": cache.enabled,
    }


@celery.task(name="ppe_compliance.tasks.warm_monthly_reports")
def warm_monthly_reports(year: int, month: int) -> dict:
    cache = get_report_cache()
    if not cache.enabled:
        log.info("report cache disabled, skipping warm-up for %04d-%02d", year, month)
        return {"year": year, "month": month, "cached": False}
    sess = SessionLocal()
    try:
        result = warm_reports(sess, cache, year, month)
    finally:
        sess.close()
    log.info("warmed reports for %04d-%02d: %s", year, month, result)
    return result


@celery.task(name="ppe_compliance.tasks.warm_previous_month")
def warm_previous_month() -> dict:
    today = datetime.now(timezone.utc)
    year, month = previous_month(today.year, today.month)
    return warm_monthly_reports(year, month)
