# ppe_compliance/router/cameras.py
from typing import List

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from ppe_compliance.database import get_db
from ppe_compliance.models import User
from ppe_compliance.router.auth import get_current_user, require_supervisor
from ppe_compliance.periods import DEFAULT_PAGE_SIZE
from ppe_compliance.schemas import CameraCreate, CameraOut, CameraUpdate, PagedViolations
from ppe_compliance.services import directory
from ppe_compliance.services.cache import get_report_cache

router = APIRouter(prefix="/cameras", tags=["Cameras"])


@router.get("", response_model=List[CameraOut])
def get_cameras(
    include_inactive: bool = True,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    return directory.list_cameras(db, include_inactive=include_inactive)


@router.get("/{camera_id}", response_model=CameraOut)
def get_camera(camera_id: int, db: Session = Depends(get_db), current_user: User = Depends(get_current_user)):
    camera = directory.get_camera(db, camera_id)
    if camera is None:
        raise HTTPException(status_code=404, detail="Camera not found")
    return camera


@router.get("/{camera_id}/violations", response_model=PagedViolations)
def get_camera_violations(
    camera_id: int,
    page_number: int = 1,
    page_size: int = DEFAULT_PAGE_SIZE,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    page = directory.camera_violations(db, camera_id, page_number, page_size)
    if page is None:
        raise HTTPException(status_code=404, detail="Camera not found")
    return page


@router.post("", response_model=CameraOut, status_code=201)
def add_camera(
    payload: CameraCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_supervisor),
):
    return directory.create_camera(db, payload)


@router.put("/{camera_id}", response_model=CameraOut)
def edit_camera(
    camera_id: int,
    payload: CameraUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_supervisor),
):
    camera = directory.update_camera(db, camera_id, payload, cache=get_report_cache())
    if camera is None:
        raise HTTPException(status_code=404, detail="Camera not found")
    return camera


@router.delete("/{camera_id}", response_model=CameraOut)
def remove_camera(
    camera_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_supervisor),
):
    camera = directory.deactivate_camera(db, camera_id)
    if camera is None:
        raise HTTPException(status_code=404, detail="Camera not found")
    return camera
