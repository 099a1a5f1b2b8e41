# ppe_compliance/errors.py


class ComplianceError(Exception):
    """Base class for errors raised by the query and reporting engine."""


class ValidationFailed(ComplianceError):
    def __init__(self, field: str, message: str):
        super().__init__(message)
        self.field = field
        self.message = message


class ReferenceNotFound(ValidationFailed):
    """A worker or camera referenced by a new violation does not exist."""


class InvalidPeriod(ValidationFailed):
    pass


class ViolationNotFound(ComplianceError):
    def __init__(self, violation_id: int):
        super().__init__(f"Violation {violation_id} not found")
        self.violation_id = violation_id
