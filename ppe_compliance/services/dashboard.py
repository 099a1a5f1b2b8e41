# ppe_compliance/services/dashboard.py
from datetime import datetime
from typing import Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from ppe_compliance.enums import PPECategory, ViolationStatus
from ppe_compliance.models import Violation
from ppe_compliance.periods import utc_day_bounds
from ppe_compliance.schemas import DashboardStats


def dashboard_stats(db: Session, now: Optional[datetime] = None) -> DashboardStats:
    """Counters for the supervisor dashboard. Never filtered by the caller."""
    start, end = utc_day_bounds(now)

    total_today = (
        db.query(func.count(Violation.id))
        .filter(Violation.detected_at >= start, Violation.detected_at < end)
        .scalar() or 0
    )

    pending_count = (
        db.query(func.count(Violation.id))
        .filter(Violation.status == ViolationStatus.PENDING)
        .scalar() or 0
    )

    counts_by_category = {c.value: 0 for c in PPECategory}
    rows = (
        db.query(Violation.category, func.count(Violation.id))
        .group_by(Violation.category)
        .all()
    )
    for category, count in rows:
        counts_by_category[category.value] = count

    return DashboardStats(
        total_today=total_today,
        pending_count=pending_count,
        counts_by_category=counts_by_category,
    )
