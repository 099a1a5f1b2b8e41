# ppe_compliance/services/reports.py
"""
Monthly compliance reports.

Every report covers one calendar month, ``[first instant, first instant of
next month)`` in UTC, optionally narrowed to one camera zone and/or one PPE
category. Narrowing is applied to the raw violations before any grouping, so
it changes what is counted rather than which rows are shown.

All aggregation happens in the database (GROUP BY with conditional sums and
LIMITed rankings); nothing here iterates over individual violations except
``export_rows``, which exists to hand the flat row set to a document renderer.
"""
import dataclasses
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import List, Optional

from sqlalchemy import case, func
from sqlalchemy.orm import Session

from ppe_compliance.enums import PPECategory, parse_enum
from ppe_compliance.errors import ValidationFailed
from ppe_compliance.models import Camera, Violation, Worker
from ppe_compliance.periods import month_bounds, previous_month, to_utc
from ppe_compliance.schemas import (
    CategoryReportRow,
    ExportRow,
    MonthlySummary,
    ReportRequest,
    WorkerCount,
    WorkerReportRow,
    ZoneCount,
)
from ppe_compliance.services.violations import shaped_query

log = logging.getLogger(__name__)

TOP_N = 5

CATEGORY_COLUMNS = {
    PPECategory.HELMET: "helmet_violations",
    PPECategory.VEST: "vest_violations",
    PPECategory.MASK: "mask_violations",
    PPECategory.GLOVES: "gloves_violations",
}


@dataclass(frozen=True)
class ReportFilter:
    year: int
    month: int
    period_start: datetime
    period_end: datetime
    location_zone: Optional[str] = None
    category: Optional[PPECategory] = None

    def predicates(self) -> list:
        # callers always join Camera, so the zone clause is safe to add
        clauses = [
            Violation.detected_at >= self.period_start,
            Violation.detected_at < self.period_end,
        ]
        if self.location_zone is not None:
            clauses.append(Camera.zone == self.location_zone)
        if self.category is not None:
            clauses.append(Violation.category == self.category)
        return clauses

    def cache_key(self, cache, kind: str) -> str:
        category = self.category.value if self.category is not None else None
        return cache.key(kind, self.year, self.month, self.location_zone, category)


def build_report_filter(year, month, location_zone: Optional[str] = None, category: Optional[str] = None) -> ReportFilter:
    """Validate a report request. Raises before any query is issued."""
    start, end = month_bounds(year, month)

    parsed_category = None
    if category is not None and str(category).strip():
        parsed_category = parse_enum(PPECategory, category)
        if parsed_category is None:
            raise ValidationFailed("category", f"Unknown violation category '{category}'")

    zone = location_zone.strip() if location_zone else None
    return ReportFilter(
        year=year,
        month=month,
        period_start=start,
        period_end=end,
        location_zone=zone or None,
        category=parsed_category,
    )


def report_filter_from_request(request: ReportRequest) -> ReportFilter:
    return build_report_filter(request.year, request.month, request.location_zone, request.category)


def report_by_worker(db: Session, rf: ReportFilter) -> List[WorkerReportRow]:
    """Report A: per-worker totals and category breakdown.

    Inner join: workers without a qualifying violation in the period do not
    appear at all.
    """
    breakdown = [
        func.sum(case((Violation.category == category, 1), else_=0)).label(column)
        for category, column in CATEGORY_COLUMNS.items()
    ]
    rows = (
        db.query(
            Worker.id.label("worker_id"),
            Worker.name.label("worker_name"),
            Worker.employee_id,
            Worker.department,
            func.count(Violation.id).label("total_violations"),
            *breakdown,
        )
        .join(Violation, Violation.worker_id == Worker.id)
        .join(Camera, Violation.camera_id == Camera.id)
        .filter(*rf.predicates())
        .group_by(Worker.id, Worker.name, Worker.employee_id, Worker.department)
        .order_by(func.count(Violation.id).desc(), Worker.id.asc())
        .all()
    )

    out = []
    for r in rows:
        counts = {column: int(getattr(r, column) or 0) for column in CATEGORY_COLUMNS.values()}
        out.append(WorkerReportRow(
            worker_id=r.worker_id,
            worker_name=r.worker_name,
            employee_id=r.employee_id,
            department=r.department or "",
            total_violations=int(r.total_violations),
            period_start=rf.period_start,
            period_end=rf.period_end,
            **counts,
        ))
    log.debug("worker report %04d-%02d: %d workers", rf.year, rf.month, len(out))
    return out


def _top_workers(db: Session, rf: ReportFilter, category: PPECategory) -> List[WorkerCount]:
    count = func.count(Violation.id)
    rows = (
        db.query(Worker.id, Worker.name, Worker.employee_id, count.label("violation_count"))
        .join(Violation, Violation.worker_id == Worker.id)
        .join(Camera, Violation.camera_id == Camera.id)
        .filter(*rf.predicates(), Violation.category == category)
        .group_by(Worker.id, Worker.name, Worker.employee_id)
        .order_by(count.desc(), Worker.id.asc())
        .limit(TOP_N)
        .all()
    )
    return [
        WorkerCount(worker_id=r.id, worker_name=r.name, employee_id=r.employee_id, violation_count=r.violation_count)
        for r in rows
    ]


def _top_zones(db: Session, rf: ReportFilter, category: PPECategory) -> List[ZoneCount]:
    count = func.count(Violation.id)
    rows = (
        db.query(Camera.id, Camera.zone, count.label("violation_count"))
        .join(Violation, Violation.camera_id == Camera.id)
        .filter(*rf.predicates(), Violation.category == category)
        .group_by(Camera.id, Camera.zone)
        .order_by(count.desc(), Camera.id.asc())
        .limit(TOP_N)
        .all()
    )
    return [
        ZoneCount(camera_id=r.id, location_zone=r.zone, violation_count=r.violation_count)
        for r in rows
    ]


def report_by_category(db: Session, rf: ReportFilter) -> List[CategoryReportRow]:
    """Report B: one row per category with top-5 workers and top-5 cameras.

    Rankings are never padded; a category with three offending workers lists
    three.
    """
    totals = dict(
        db.query(Violation.category, func.count(Violation.id))
        .join(Camera, Violation.camera_id == Camera.id)
        .filter(*rf.predicates())
        .group_by(Violation.category)
        .all()
    )

    out = []
    for category in PPECategory:
        total = totals.get(category, 0)
        if total:
            top_violators = _top_workers(db, rf, category)
            top_zones = _top_zones(db, rf, category)
        else:
            top_violators, top_zones = [], []
        out.append(CategoryReportRow(
            category=category,
            total_violations=total,
            top_violators=top_violators,
            top_zones=top_zones,
            period_start=rf.period_start,
            period_end=rf.period_end,
        ))
    return out


def _count(db: Session, rf: ReportFilter) -> int:
    return (
        db.query(func.count(Violation.id))
        .join(Camera, Violation.camera_id == Camera.id)
        .filter(*rf.predicates())
        .scalar() or 0
    )


def _leader(db: Session, rf: ReportFilter, column, *extra):
    count = func.count(Violation.id)
    row = (
        db.query(column, count)
        .select_from(Violation)
        .join(Worker, Violation.worker_id == Worker.id)
        .join(Camera, Violation.camera_id == Camera.id)
        .filter(*rf.predicates(), *extra)
        .group_by(column)
        .order_by(count.desc(), column.asc())
        .first()
    )
    return row[0] if row else None


def monthly_summary(db: Session, rf: ReportFilter) -> MonthlySummary:
    total = _count(db, rf)

    prev_year, prev_month = previous_month(rf.year, rf.month)
    previous = dataclasses.replace(
        rf,
        year=prev_year,
        month=prev_month,
        period_start=datetime(prev_year, prev_month, 1, tzinfo=timezone.utc),
        period_end=rf.period_start,
    )
    previous_total = _count(db, previous)

    change = total - previous_total
    if change > 0:
        trend = "up"
    elif change < 0:
        trend = "down"
    else:
        trend = "flat"

    return MonthlySummary(
        year=rf.year,
        month=rf.month,
        total_violations=total,
        previous_month_total=previous_total,
        change=change,
        change_percent=round(change / previous_total * 100, 2) if previous_total else None,
        trend=trend,
        most_common_category=_leader(db, rf, Violation.category),
        top_zone=_leader(db, rf, Camera.zone),
        top_department=_leader(db, rf, Worker.department, Worker.department != ""),
        period_start=rf.period_start,
        period_end=rf.period_end,
    )


def export_rows(db: Session, rf: ReportFilter) -> List[ExportRow]:
    """Flat, newest-first rows for an external Excel/PDF renderer."""
    rows = (
        shaped_query(db)
        .filter(*rf.predicates())
        .order_by(Violation.detected_at.desc(), Violation.id.desc())
        .all()
    )
    out = []
    for r in rows:
        v = r.Violation
        out.append(ExportRow(
            violation_id=v.id,
            worker_name=r.worker_name,
            worker_employee_id=r.worker_employee_id,
            location_zone=r.location_zone,
            category=v.category,
            detected_at=to_utc(v.detected_at),
            confidence_score=v.confidence_score,
            status=v.status,
            notes=v.notes,
        ))
    return out
