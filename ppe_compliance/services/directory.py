# ppe_compliance/services/directory.py
import logging
from datetime import datetime, timezone
from typing import List, Optional

from sqlalchemy import func, or_
from sqlalchemy.orm import Session

from ppe_compliance.errors import ValidationFailed
from ppe_compliance.filters import compile_query
from ppe_compliance.models import Camera, Violation, Worker
from ppe_compliance.periods import DEFAULT_PAGE_SIZE, clamp_page_number, clamp_page_size, to_utc
from ppe_compliance.schemas import (
    CameraCreate,
    CameraOut,
    CameraUpdate,
    CategoryBreakdown,
    PagedViolations,
    PagedWorkers,
    ViolationQuery,
    WorkerDetail,
    WorkerOut,
)
from ppe_compliance.services.reports import CATEGORY_COLUMNS
from ppe_compliance.services.violations import search_violations, shape_row, shaped_query

log = logging.getLogger(__name__)

WORKER_PAGE_SIZE = 100
RECENT_VIOLATIONS = 10
SEARCH_LIMIT = 10


# -----------------------------
# Workers
# -----------------------------
def _worker_out(worker: Worker, total_violations: int) -> WorkerOut:
    return WorkerOut(
        id=worker.id,
        name=worker.name,
        employee_id=worker.employee_id,
        department=worker.department or "",
        is_active=worker.is_active,
        total_violations=total_violations or 0,
        created_at=to_utc(worker.created_at),
    )


def _workers_with_counts(db: Session):
    return (
        db.query(Worker, func.count(Violation.id).label("total_violations"))
        .outerjoin(Violation, Violation.worker_id == Worker.id)
        .group_by(Worker.id)
    )


def list_workers(
    db: Session,
    page_number: int = 1,
    page_size: int = WORKER_PAGE_SIZE,
    department: Optional[str] = None,
    include_inactive: bool = False,
) -> PagedWorkers:
    page_number = clamp_page_number(page_number)
    page_size = clamp_page_size(page_size, default=WORKER_PAGE_SIZE)

    filters = []
    if department and department.strip():
        filters.append(Worker.department == department.strip())
    if not include_inactive:
        filters.append(Worker.is_active.is_(True))

    total_count = db.query(func.count(Worker.id)).filter(*filters).scalar() or 0
    rows = (
        _workers_with_counts(db)
        .filter(*filters)
        .order_by(Worker.name.asc(), Worker.id.asc())
        .offset((page_number - 1) * page_size)
        .limit(page_size)
        .all()
    )
    return PagedWorkers(
        items=[_worker_out(w, total) for w, total in rows],
        total_count=total_count,
        page_number=page_number,
        page_size=page_size,
    )


def get_worker_detail(db: Session, worker_id: int) -> Optional[WorkerDetail]:
    worker = db.query(Worker).filter(Worker.id == worker_id).first()
    if not worker:
        return None

    counts = dict(
        db.query(Violation.category, func.count(Violation.id))
        .filter(Violation.worker_id == worker_id)
        .group_by(Violation.category)
        .all()
    )
    breakdown = CategoryBreakdown(
        total_violations=sum(counts.values()),
        **{column: counts.get(category, 0) for category, column in CATEGORY_COLUMNS.items()},
    )

    recent = (
        shaped_query(db)
        .filter(Violation.worker_id == worker_id)
        .order_by(Violation.detected_at.desc(), Violation.id.desc())
        .limit(RECENT_VIOLATIONS)
        .all()
    )

    return WorkerDetail(
        id=worker.id,
        name=worker.name,
        employee_id=worker.employee_id,
        department=worker.department or "",
        is_active=worker.is_active,
        breakdown=breakdown,
        recent_violations=[shape_row(r) for r in recent],
    )


def worker_violations(
    db: Session,
    worker_id: int,
    page_number: int = 1,
    page_size: int = DEFAULT_PAGE_SIZE,
    category: Optional[str] = None,
) -> Optional[PagedViolations]:
    """Newest-first violations of one worker; None when the worker does not exist."""
    if db.query(Worker.id).filter(Worker.id == worker_id).first() is None:
        return None
    query = ViolationQuery(worker_id=worker_id, category=category, page_number=page_number, page_size=page_size)
    return search_violations(db, compile_query(query))


def search_workers(db: Session, q: str, department: Optional[str] = None) -> List[WorkerOut]:
    text = (q or "").strip()
    if not text:
        raise ValidationFailed("q", "Search query must not be empty")

    pattern = f"%{text.lower()}%"
    query = _workers_with_counts(db).filter(
        or_(func.lower(Worker.name).like(pattern), func.lower(Worker.employee_id).like(pattern))
    )
    if department and department.strip():
        query = query.filter(Worker.department == department.strip())

    rows = query.order_by(Worker.name.asc(), Worker.id.asc()).limit(SEARCH_LIMIT).all()
    return [_worker_out(w, total) for w, total in rows]


# -----------------------------
# Cameras
# -----------------------------
def camera_violations(
    db: Session,
    camera_id: int,
    page_number: int = 1,
    page_size: int = DEFAULT_PAGE_SIZE,
) -> Optional[PagedViolations]:
    if db.query(Camera.id).filter(Camera.id == camera_id).first() is None:
        return None
    query = ViolationQuery(camera_id=camera_id, page_number=page_number, page_size=page_size)
    return search_violations(db, compile_query(query))


def _camera_out(camera: Camera, total_violations: int) -> CameraOut:
    return CameraOut(
        id=camera.id,
        device_id=camera.device_id,
        zone=camera.zone,
        description=camera.description,
        is_active=camera.is_active,
        total_violations=total_violations or 0,
        created_at=to_utc(camera.created_at),
        updated_at=to_utc(camera.updated_at),
    )


def _cameras_with_counts(db: Session):
    return (
        db.query(Camera, func.count(Violation.id).label("total_violations"))
        .outerjoin(Violation, Violation.camera_id == Camera.id)
        .group_by(Camera.id)
    )


def list_cameras(db: Session, include_inactive: bool = True) -> List[CameraOut]:
    query = _cameras_with_counts(db)
    if not include_inactive:
        query = query.filter(Camera.is_active.is_(True))
    rows = query.order_by(Camera.zone.asc(), Camera.id.asc()).all()
    return [_camera_out(c, total) for c, total in rows]


def get_camera(db: Session, camera_id: int) -> Optional[CameraOut]:
    row = _cameras_with_counts(db).filter(Camera.id == camera_id).first()
    if row is None:
        return None
    camera, total = row
    return _camera_out(camera, total)


def create_camera(db: Session, payload: CameraCreate) -> CameraOut:
    existing = db.query(Camera.id).filter(Camera.device_id == payload.device_id).first()
    if existing:
        raise ValidationFailed("device_id", f"Camera '{payload.device_id}' already exists.")

    camera = Camera(
        device_id=payload.device_id,
        zone=payload.zone,
        description=payload.description,
        is_active=payload.is_active,
        created_at=datetime.now(timezone.utc),
    )
    try:
        db.add(camera)
        db.commit()
    except Exception:
        db.rollback()
        raise
    db.refresh(camera)
    log.info("camera %s added in zone %s", camera.device_id, camera.zone)
    return _camera_out(camera, 0)


def update_camera(db: Session, camera_id: int, payload: CameraUpdate, cache=None) -> Optional[CameraOut]:
    camera = db.query(Camera).filter(Camera.id == camera_id).first()
    if not camera:
        return None

    changes = payload.model_dump(exclude_unset=True)
    zone_changed = changes.get("zone") is not None and changes["zone"] != camera.zone
    if zone_changed:
        camera.zone = changes["zone"]
    if "description" in changes:
        camera.description = changes["description"]
    if changes.get("is_active") is not None:
        camera.is_active = changes["is_active"]
    camera.updated_at = datetime.now(timezone.utc)

    try:
        db.commit()
    except Exception:
        db.rollback()
        raise

    if zone_changed:
        log.info("camera %s moved to zone %s", camera_id, changes["zone"])
        if cache is not None:
            cache.invalidate_all()
    return get_camera(db, camera_id)


def deactivate_camera(db: Session, camera_id: int) -> Optional[CameraOut]:
    """Cameras are referenced by violations, so they are switched off, never deleted."""
    return update_camera(db, camera_id, CameraUpdate(is_active=False))
