# ppe_compliance/router/reports.py
from typing import List, Optional

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ppe_compliance.database import get_db
from ppe_compliance.models import User
from ppe_compliance.router.auth import require_analyst
from ppe_compliance.schemas import (
    CategoryReportRow,
    ExportRow,
    MonthlySummary,
    ReportRequest,
    WorkerReportRow,
)
from ppe_compliance.services import reports as report_service
from ppe_compliance.services.cache import get_report_cache

router = APIRouter(prefix="/reports", tags=["Reports"])


@router.post("/violations-by-worker", response_model=List[WorkerReportRow])
def violations_by_worker(
    request: ReportRequest,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_analyst),
):
    rf = report_service.report_filter_from_request(request)
    cache = get_report_cache()
    return cache.fetch(
        rf.cache_key(cache, "by-worker"),
        List[WorkerReportRow],
        lambda: report_service.report_by_worker(db, rf),
    )


@router.post("/violations-by-category", response_model=List[CategoryReportRow])
def violations_by_category(
    request: ReportRequest,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_analyst),
):
    rf = report_service.report_filter_from_request(request)
    cache = get_report_cache()
    return cache.fetch(
        rf.cache_key(cache, "by-category"),
        List[CategoryReportRow],
        lambda: report_service.report_by_category(db, rf),
    )


@router.get("/monthly-summary", response_model=MonthlySummary)
def get_monthly_summary(
    year: int,
    month: int,
    location_zone: Optional[str] = None,
    category: Optional[str] = None,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_analyst),
):
    rf = report_service.build_report_filter(year, month, location_zone, category)
    cache = get_report_cache()
    return cache.fetch(
        rf.cache_key(cache, "summary"),
        MonthlySummary,
        lambda: report_service.monthly_summary(db, rf),
    )


@router.post("/export-rows", response_model=List[ExportRow])
def get_export_rows(
    request: ReportRequest,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_analyst),
):
    # export rows bypass the report cache
    rf = report_service.report_filter_from_request(request)
    return report_service.export_rows(db, rf)
