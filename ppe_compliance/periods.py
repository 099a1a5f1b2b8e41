# ppe_compliance/periods.py
from datetime import date, datetime, time, timedelta, timezone
from typing import Optional, Tuple

from ppe_compliance.errors import InvalidPeriod

MIN_REPORT_YEAR = 2000
MAX_REPORT_YEAR = 2100

DEFAULT_PAGE_SIZE = 50
MAX_PAGE_SIZE = 500


def to_utc(dt: Optional[datetime]) -> Optional[datetime]:
    """Normalise a datetime to an aware UTC value. Naive values are taken as UTC."""
    if dt is None:
        return None
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def start_of_day(day: date) -> datetime:
    return datetime.combine(day, time.min, tzinfo=timezone.utc)


def utc_day_bounds(now: Optional[datetime] = None) -> Tuple[datetime, datetime]:
    """[midnight today, midnight tomorrow) in UTC."""
    now_utc = to_utc(now) if now is not None else datetime.now(timezone.utc)
    start = start_of_day(now_utc.date())
    return start, start + timedelta(days=1)


def validate_period(year, month):
    if not isinstance(year, int) or isinstance(year, bool):
        raise InvalidPeriod("year", "year must be an integer")
    if not isinstance(month, int) or isinstance(month, bool):
        raise InvalidPeriod("month", "month must be an integer")
    if month < 1 or month > 12:
        raise InvalidPeriod("month", f"month must be between 1 and 12, got {month}")
    if year < MIN_REPORT_YEAR or year > MAX_REPORT_YEAR:
        raise InvalidPeriod("year", f"year must be between {MIN_REPORT_YEAR} and {MAX_REPORT_YEAR}, got {year}")


def month_bounds(year: int, month: int) -> Tuple[datetime, datetime]:
    """Half-open [first instant of month, first instant of next month) in UTC."""
    validate_period(year, month)
    start = datetime(year, month, 1, tzinfo=timezone.utc)
    if month == 12:
        end = datetime(year + 1, 1, 1, tzinfo=timezone.utc)
    else:
        end = datetime(year, month + 1, 1, tzinfo=timezone.utc)
    return start, end


def previous_month(year: int, month: int) -> Tuple[int, int]:
    if month == 1:
        return year - 1, 12
    return year, month - 1


def next_month(year: int, month: int) -> Tuple[int, int]:
    if month == 12:
        return year + 1, 1
    return year, month + 1


def month_of(dt: datetime) -> Tuple[int, int]:
    dt = to_utc(dt)
    return dt.year, dt.month


def clamp_page_number(page_number) -> int:
    if page_number is None or page_number < 1:
        return 1
    return int(page_number)


def clamp_page_size(page_size, default: int = DEFAULT_PAGE_SIZE) -> int:
    if page_size is None:
        return default
    if page_size < 1:
        return 1
    if page_size > MAX_PAGE_SIZE:
        return MAX_PAGE_SIZE
    return int(page_size)
