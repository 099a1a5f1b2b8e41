# ppe_compliance/router/workers.py
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from ppe_compliance.database import get_db
from ppe_compliance.router.auth import get_current_user
from ppe_compliance.periods import DEFAULT_PAGE_SIZE
from ppe_compliance.schemas import PagedViolations, PagedWorkers, WorkerDetail, WorkerOut
from ppe_compliance.services import directory

router = APIRouter(prefix="/workers", tags=["Workers"])


@router.get("", response_model=PagedWorkers)
def get_workers(
    page_number: int = 1,
    page_size: int = directory.WORKER_PAGE_SIZE,
    department: Optional[str] = None,
    include_inactive: bool = False,
    current_user=Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return directory.list_workers(
        db,
        page_number=page_number,
        page_size=page_size,
        department=department,
        include_inactive=include_inactive,
    )


@router.get("/search", response_model=List[WorkerOut])
def search_workers(
    q: str = "",
    department: Optional[str] = None,
    current_user=Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return directory.search_workers(db, q, department)


@router.get("/{worker_id}", response_model=WorkerDetail)
def get_worker(worker_id: int, current_user=Depends(get_current_user), db: Session = Depends(get_db)):
    worker = directory.get_worker_detail(db, worker_id)
    if worker is None:
        raise HTTPException(status_code=404, detail="Worker not found")
    return worker


@router.get("/{worker_id}/violations", response_model=PagedViolations)
def get_worker_violations(
    worker_id: int,
    page_number: int = 1,
    page_size: int = DEFAULT_PAGE_SIZE,
    category: Optional[str] = None,
    current_user=Depends(get_current_user),
    db: Session = Depends(get_db),
):
    page = directory.worker_violations(db, worker_id, page_number, page_size, category)
    if page is None:
        raise HTTPException(status_code=404, detail="Worker not found")
    return page
