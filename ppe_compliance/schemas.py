# ppe_compliance/schemas.py
from datetime import date, datetime
from typing import Annotated, Dict, List, Optional

from pydantic import BaseModel, BeforeValidator, Field, field_validator

from ppe_compliance.enums import PPECategory, ViolationStatus, UserRole
from ppe_compliance.periods import DEFAULT_PAGE_SIZE


def _upper(value):
    if isinstance(value, str):
        return value.strip().upper()
    return value


# closed enums, matched case-insensitively and rejected when unknown
CategoryField = Annotated[PPECategory, BeforeValidator(_upper)]
StatusField = Annotated[ViolationStatus, BeforeValidator(_upper)]


# -----------------------------
# Auth
# -----------------------------
class LoginSchema(BaseModel):
    email: str
    password: str


class UserOut(BaseModel):
    id: int
    name: str
    email: str
    role: UserRole

    class Config:
        from_attributes = True


class TokenResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    user: UserOut


# -----------------------------
# Violations
# -----------------------------
class ViolationQuery(BaseModel):
    # category/status stay raw strings: unknown values become "no filter"
    location_zone: Optional[str] = None
    category: Optional[str] = None
    worker_id: Optional[int] = None
    camera_id: Optional[int] = None
    date_from: Optional[datetime] = None
    date_to: Optional[date] = None
    status: Optional[str] = None
    page_number: Optional[int] = 1
    page_size: Optional[int] = DEFAULT_PAGE_SIZE
    sort_by: Optional[str] = "DetectedAt"
    sort_order: Optional[str] = "DESC"


class ViolationCreate(BaseModel):
    worker_id: int
    camera_id: int
    category: CategoryField
    evidence_url: str = ""
    confidence_score: int = Field(ge=0, le=100)
    detected_at: datetime


class ViolationUpdate(BaseModel):
    status: Optional[StatusField] = None
    notes: Optional[str] = None


class ViolationOut(BaseModel):
    id: int
    worker_id: int
    worker_name: str
    worker_employee_id: str
    camera_id: int
    location_zone: str
    category: PPECategory
    status: ViolationStatus
    evidence_url: str
    confidence_score: int
    detected_at: datetime
    notes: Optional[str] = None
    created_at: Optional[datetime] = None


class PagedViolations(BaseModel):
    items: List[ViolationOut]
    total_count: int
    page_number: int
    page_size: int
    total_pages: int


class DashboardStats(BaseModel):
    total_today: int
    pending_count: int
    counts_by_category: Dict[str, int]


# -----------------------------
# Reports
# -----------------------------
class ReportRequest(BaseModel):
    year: int
    month: int
    location_zone: Optional[str] = None
    category: Optional[str] = None


class WorkerReportRow(BaseModel):
    worker_id: int
    worker_name: str
    employee_id: str
    department: str
    total_violations: int
    helmet_violations: int = 0
    vest_violations: int = 0
    mask_violations: int = 0
    gloves_violations: int = 0
    period_start: datetime
    period_end: datetime


class WorkerCount(BaseModel):
    worker_id: int
    worker_name: str
    employee_id: str
    violation_count: int


class ZoneCount(BaseModel):
    camera_id: int
    location_zone: str
    violation_count: int


class CategoryReportRow(BaseModel):
    category: PPECategory
    total_violations: int
    top_violators: List[WorkerCount]
    top_zones: List[ZoneCount]
    period_start: datetime
    period_end: datetime


class MonthlySummary(BaseModel):
    year: int
    month: int
    total_violations: int
    previous_month_total: int
    change: int
    change_percent: Optional[float] = None
    trend: str
    most_common_category: Optional[PPECategory] = None
    top_zone: Optional[str] = None
    top_department: Optional[str] = None
    period_start: datetime
    period_end: datetime


class ExportRow(BaseModel):
    violation_id: int
    worker_name: str
    worker_employee_id: str
    location_zone: str
    category: PPECategory
    detected_at: datetime
    confidence_score: int
    status: ViolationStatus
    notes: Optional[str] = None


# -----------------------------
# Workers & cameras
# -----------------------------
class WorkerOut(BaseModel):
    id: int
    name: str
    employee_id: str
    department: str
    is_active: bool
    total_violations: int = 0
    created_at: Optional[datetime] = None


class PagedWorkers(BaseModel):
    items: List[WorkerOut]
    total_count: int
    page_number: int
    page_size: int


class CategoryBreakdown(BaseModel):
    helmet_violations: int = 0
    vest_violations: int = 0
    mask_violations: int = 0
    gloves_violations: int = 0
    total_violations: int = 0


class WorkerDetail(BaseModel):
    id: int
    name: str
    employee_id: str
    department: str
    is_active: bool
    breakdown: CategoryBreakdown
    recent_violations: List[ViolationOut]


class CameraOut(BaseModel):
    id: int
    device_id: str
    zone: str
    description: Optional[str] = None
    is_active: bool
    total_violations: int = 0
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class CameraCreate(BaseModel):
    device_id: str = Field(min_length=1)
    zone: str = Field(min_length=1)
    description: Optional[str] = None
    is_active: bool = True

    @field_validator("device_id", "zone")
    @classmethod
    def not_blank(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("must not be blank")
        return value


class CameraUpdate(BaseModel):
    zone: Optional[str] = None
    description: Optional[str] = None
    is_active: Optional[bool] = None

    @field_validator("zone")
    @classmethod
    def zone_not_blank(cls, value):
        if value is not None and not value.strip():
            raise ValueError("must not be blank")
        return value.strip() if value is not None else value
