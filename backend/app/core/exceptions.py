from enum import Enum


class ReasonCode(str, Enum):
    validation_error = "validation_error"
    not_found = "not_found"
    invalid_interval = "invalid_interval"
    outside_working_hours = "outside_working_hours"
    teacher_unavailable = "teacher_unavailable"
    teacher_double_booked = "teacher_double_booked"
    class_double_booked = "class_double_booked"
    room_double_booked = "room_double_booked"
    overlapping_availability_block = "overlapping_availability_block"
    unauthorized_transition = "unauthorized_transition"
    stale_state_conflict = "stale_state_conflict"
    storage_unavailable = "storage_unavailable"


class AppError(Exception):
    """Base class for all application exceptions."""
    code: ReasonCode = ReasonCode.validation_error

    def __init__(self, message: str, status_code: int = 500, details: dict = None, code: ReasonCode = None):
        self.message = message
        self.status_code = status_code
        self.details = details or {}
        if code is not None:
            self.code = code
        super().__init__(self.message)


class ValidationError(AppError):
    """Raised when input has the wrong shape for the requested operation."""
    def __init__(self, message: str, details: dict = None):
        super().__init__(message, status_code=422, details=details, code=ReasonCode.validation_error)


class NotFoundError(AppError):
    """Raised when a referenced entity does not exist in the tenant."""
    def __init__(self, resource_type: str, resource_id: str | None = None):
        message = f"{resource_type} not found in this school."
        super().__init__(
            message,
            status_code=404,
            details={"resource_type": resource_type, "resource_id": resource_id},
            code=ReasonCode.not_found,
        )


class ConflictError(AppError):
    """Raised when a scheduling rule rejects a placement or write."""
    def __init__(self, code: ReasonCode, message: str, details: dict = None):
        status_code = 422 if code == ReasonCode.invalid_interval else 409
        super().__init__(message, status_code=status_code, details=details, code=code)


class StaleStateConflictError(ConflictError):
    """Raised when the state a decision relied on changed underneath it."""
    def __init__(self, message: str, details: dict = None):
        super().__init__(ReasonCode.stale_state_conflict, message, details=details)


class UnauthorizedTransitionError(AppError):
    """Raised when an actor may not perform a transition, or the state forbids it."""
    def __init__(self, message: str, *, status_code: int = 409, details: dict = None):
        super().__init__(message, status_code=status_code, details=details, code=ReasonCode.unauthorized_transition)


class StorageUnavailableError(AppError):
    """Raised when the backing store cannot be reached at all."""
    def __init__(self, message: str = "The scheduling store is temporarily unavailable."):
        super().__init__(message, status_code=503, code=ReasonCode.storage_unavailable)
