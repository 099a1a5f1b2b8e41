# ppe_compliance/router/violations.py
from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from ppe_compliance.database import get_db
from ppe_compliance.errors import ViolationNotFound
from ppe_compliance.filters import compile_query
from ppe_compliance.models import User
from ppe_compliance.router.auth import get_current_user, require_supervisor, verify_ingest_key
from ppe_compliance.schemas import (
    DashboardStats,
    PagedViolations,
    ViolationCreate,
    ViolationOut,
    ViolationQuery,
    ViolationUpdate,
)
from ppe_compliance.services import violations as violation_service
from ppe_compliance.services.cache import get_report_cache
from ppe_compliance.services.dashboard import dashboard_stats

router = APIRouter(prefix="/violations", tags=["Violations"])


@router.post("/search", response_model=PagedViolations)
def search_violations(
    query: ViolationQuery,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    return violation_service.search_violations(db, compile_query(query))


@router.get("/statistics/dashboard", response_model=DashboardStats)
def get_dashboard(db: Session = Depends(get_db), current_user: User = Depends(get_current_user)):
    return dashboard_stats(db)


@router.post("", response_model=ViolationOut, status_code=201, dependencies=[Depends(verify_ingest_key)])
def create_violation(violation: ViolationCreate, db: Session = Depends(get_db)):
    return violation_service.create_violation(db, violation, cache=get_report_cache())


@router.get("/{violation_id}", response_model=ViolationOut)
def get_violation(
    violation_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    violation = violation_service.get_violation(db, violation_id)
    if violation is None:
        raise HTTPException(status_code=404, detail="Violation not found")
    return violation


@router.put("/{violation_id}", response_model=ViolationOut)
def update_violation(
    violation_id: int,
    payload: ViolationUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_supervisor),
):
    try:
        return violation_service.update_violation(db, violation_id, payload)
    except ViolationNotFound:
        raise HTTPException(status_code=404, detail="Violation not found")
