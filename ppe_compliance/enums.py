# ppe_compliance/enums.py
import enum
from typing import Optional, Type, TypeVar

E = TypeVar("E", bound=enum.Enum)


class PPECategory(str, enum.Enum):
    HELMET = "HELMET"
    VEST = "VEST"
    MASK = "MASK"
    GLOVES = "GLOVES"


class ViolationStatus(str, enum.Enum):
    PENDING = "PENDING"
    ACKNOWLEDGED = "ACKNOWLEDGED"
    RESOLVED = "RESOLVED"


class UserRole(str, enum.Enum):
    SUPERVISOR = "SUPERVISOR"
    ANALYST = "ANALYST"


def parse_enum(enum_cls: Type[E], raw) -> Optional[E]:
    """Case-insensitive lookup of ``raw`` in ``enum_cls``.

    Returns None for missing, blank or unknown values; callers decide whether
    that means "no filter" or a rejected request.
    """
    if raw is None:
        return None
    if isinstance(raw, enum_cls):
        return raw
    text = str(raw).strip().upper()
    if not text:
        return None
    try:
        return enum_cls(text)
    except ValueError:
        return None
