# ppe_compliance/filters.py
"""
Violation search filter compilation.

Turns a ``ViolationQuery`` into a ``QueryPlan``: a normalised, immutable
description of the predicates, ordering and page window of a search. Building
a plan never touches the database; the search service applies it to a joined
Violation/Worker/Camera query.

Optional filters are permissive: blank values and category/status strings
that do not name a known enum member are dropped instead of rejected, so a
dashboard holding stale filter state keeps working.
"""
import enum
import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Optional

from ppe_compliance.enums import PPECategory, ViolationStatus, parse_enum
from ppe_compliance.models import Camera, Violation
from ppe_compliance.periods import clamp_page_number, clamp_page_size, start_of_day, to_utc
from ppe_compliance.schemas import ViolationQuery

log = logging.getLogger(__name__)


class SortKey(str, enum.Enum):
    DETECTED_AT = "DetectedAt"
    WORKER_ID = "WorkerId"
    LOCATION_ZONE = "LocationZone"


_SORT_ALIASES = {
    "detectedat": SortKey.DETECTED_AT,
    "workerid": SortKey.WORKER_ID,
    "locationzone": SortKey.LOCATION_ZONE,
    "camerazone": SortKey.LOCATION_ZONE,
}


@dataclass(frozen=True)
class QueryPlan:
    location_zone: Optional[str] = None
    category: Optional[PPECategory] = None
    worker_id: Optional[int] = None
    camera_id: Optional[int] = None
    detected_from: Optional[datetime] = None
    detected_before: Optional[datetime] = None
    status: Optional[ViolationStatus] = None
    sort_key: SortKey = SortKey.DETECTED_AT
    descending: bool = True
    page_number: int = 1
    page_size: int = 50

    @property
    def offset(self) -> int:
        return (self.page_number - 1) * self.page_size

    @property
    def limit(self) -> int:
        return self.page_size

    def predicates(self) -> list:
        """SQLAlchemy criteria for the plan; an empty list matches everything."""
        clauses = []
        if self.location_zone is not None:
            clauses.append(Camera.zone == self.location_zone)
        if self.category is not None:
            clauses.append(Violation.category == self.category)
        if self.worker_id is not None:
            clauses.append(Violation.worker_id == self.worker_id)
        if self.camera_id is not None:
            clauses.append(Violation.camera_id == self.camera_id)
        if self.detected_from is not None:
            clauses.append(Violation.detected_at >= self.detected_from)
        if self.detected_before is not None:
            clauses.append(Violation.detected_at < self.detected_before)
        if self.status is not None:
            clauses.append(Violation.status == self.status)
        return clauses

    def order_by(self) -> list:
        if self.sort_key is SortKey.WORKER_ID:
            column = Violation.worker_id
        elif self.sort_key is SortKey.LOCATION_ZONE:
            column = Camera.zone
        else:
            column = Violation.detected_at
        # id breaks ties so pages never overlap
        if self.descending:
            return [column.desc(), Violation.id.desc()]
        return [column.asc(), Violation.id.asc()]


def _blank_to_none(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    value = value.strip()
    return value or None


def _optional_enum(enum_cls, raw: Optional[str], field: str):
    text = _blank_to_none(raw)
    if text is None:
        return None
    value = parse_enum(enum_cls, text)
    if value is None:
        log.debug("ignoring unrecognised %s filter %r", field, raw)
    return value


def parse_sort_key(raw: Optional[str]) -> SortKey:
    if not raw:
        return SortKey.DETECTED_AT
    return _SORT_ALIASES.get(raw.strip().lower(), SortKey.DETECTED_AT)


def parse_descending(raw: Optional[str]) -> bool:
    if raw and raw.strip().upper() == "ASC":
        return False
    return True


def lower_bound(value) -> Optional[datetime]:
    if value is None:
        return None
    if isinstance(value, datetime):
        return to_utc(value)
    return start_of_day(value)


def inclusive_day_upper_bound(value) -> Optional[datetime]:
    """``dateTo`` covers its whole calendar day: compile to ``< day + 1``."""
    if value is None:
        return None
    if isinstance(value, datetime):
        value = to_utc(value).date()
    return start_of_day(value) + timedelta(days=1)


def compile_query(query: ViolationQuery) -> QueryPlan:
    return QueryPlan(
        location_zone=_blank_to_none(query.location_zone),
        category=_optional_enum(PPECategory, query.category, "category"),
        worker_id=query.worker_id,
        camera_id=query.camera_id,
        detected_from=lower_bound(query.date_from),
        detected_before=inclusive_day_upper_bound(query.date_to),
        status=_optional_enum(ViolationStatus, query.status, "status"),
        sort_key=parse_sort_key(query.sort_by),
        descending=parse_descending(query.sort_order),
        page_number=clamp_page_number(query.page_number),
        page_size=clamp_page_size(query.page_size),
    )
