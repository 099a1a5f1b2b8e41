# ppe_compliance/services/violations.py
import logging
import math
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy.orm import Session

from ppe_compliance.enums import ViolationStatus
from ppe_compliance.errors import ReferenceNotFound, ViolationNotFound
from ppe_compliance.filters import QueryPlan
from ppe_compliance.models import Camera, Violation, Worker
from ppe_compliance.periods import to_utc
from ppe_compliance.schemas import PagedViolations, ViolationCreate, ViolationOut, ViolationUpdate

log = logging.getLogger(__name__)


def shaped_query(db: Session):
    """Violations joined with the worker and camera columns every row displays."""
    return (
        db.query(
            Violation,
            Worker.name.label("worker_name"),
            Worker.employee_id.label("worker_employee_id"),
            Camera.zone.label("location_zone"),
        )
        .join(Worker, Violation.worker_id == Worker.id)
        .join(Camera, Violation.camera_id == Camera.id)
    )


def shape_row(row) -> ViolationOut:
    v = row.Violation
    return ViolationOut(
        id=v.id,
        worker_id=v.worker_id,
        worker_name=row.worker_name,
        worker_employee_id=row.worker_employee_id,
        camera_id=v.camera_id,
        location_zone=row.location_zone,
        category=v.category,
        status=v.status,
        evidence_url=v.evidence_url,
        confidence_score=v.confidence_score,
        detected_at=to_utc(v.detected_at),
        notes=v.notes,
        created_at=to_utc(v.created_at),
    )


def search_violations(db: Session, plan: QueryPlan) -> PagedViolations:
    query = shaped_query(db).filter(*plan.predicates())

    total_count = query.order_by(None).count()
    rows = (
        query.order_by(*plan.order_by())
        .offset(plan.offset)
        .limit(plan.limit)
        .all()
    )
    total_pages = math.ceil(total_count / plan.page_size) if total_count else 0

    return PagedViolations(
        items=[shape_row(r) for r in rows],
        total_count=total_count,
        page_number=plan.page_number,
        page_size=plan.page_size,
        total_pages=total_pages,
    )


def get_violation(db: Session, violation_id: int) -> Optional[ViolationOut]:
    row = shaped_query(db).filter(Violation.id == violation_id).first()
    if row is None:
        return None
    return shape_row(row)


def create_violation(db: Session, payload: ViolationCreate, cache=None) -> ViolationOut:
    detected_at = to_utc(payload.detected_at)
    try:
        if db.query(Worker.id).filter(Worker.id == payload.worker_id).first() is None:
            raise ReferenceNotFound("worker_id", f"Worker {payload.worker_id} not found")
        if db.query(Camera.id).filter(Camera.id == payload.camera_id).first() is None:
            raise ReferenceNotFound("camera_id", f"Camera {payload.camera_id} not found")

        violation = Violation(
            worker_id=payload.worker_id,
            camera_id=payload.camera_id,
            category=payload.category,
            evidence_url=payload.evidence_url,
            confidence_score=payload.confidence_score,
            detected_at=detected_at,
            status=ViolationStatus.PENDING,
            notes=None,
            created_at=datetime.now(timezone.utc),
        )
        db.add(violation)
        db.commit()
    except Exception:
        db.rollback()
        raise

    log.info(
        "recorded %s violation %s for worker %s at camera %s",
        violation.category.value, violation.id, violation.worker_id, violation.camera_id,
    )
    if cache is not None:
        cache.invalidate_detection(detected_at)
    return get_violation(db, violation.id)


def update_violation(db: Session, violation_id: int, payload: ViolationUpdate) -> ViolationOut:
    violation = (
        db.query(Violation)
        .filter(Violation.id == violation_id)
        .with_for_update()
        .first()
    )
    if violation is None:
        db.rollback()
        raise ViolationNotFound(violation_id)

    changes = payload.model_dump(exclude_unset=True)
    changed = []
    if changes.get("status") is not None and violation.status != changes["status"]:
        violation.status = changes["status"]
        changed.append("status")
    if "notes" in changes and violation.notes != changes["notes"]:
        violation.notes = changes["notes"]
        changed.append("notes")

    # status and notes land in one commit
    try:
        db.commit()
    except Exception:
        db.rollback()
        raise

    if changed:
        log.info("violation %s updated: %s", violation_id, ", ".join(changed))
    return get_violation(db, violation_id)
