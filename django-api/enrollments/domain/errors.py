"""Domain error codes for the enrollments module."""

from dataclasses import dataclass
from enum import Enum


class ErrorCode(Enum):
    """Domain error codes.

    Per-activity failures in a batch carry one of these as their reason;
    the rest are raised as ``DomainError`` subclasses.
    """

    NOT_FOUND = "NOT_FOUND"
    ACTIVITY_NOT_FOUND = "ACTIVITY_NOT_FOUND"
    TOKEN_NOT_FOUND = "TOKEN_NOT_FOUND"
    ENROLLMENT_NOT_FOUND = "ENROLLMENT_NOT_FOUND"
    DUPLICATE_REQUEST = "DUPLICATE_REQUEST"
    ALREADY_ENROLLED = "ALREADY_ENROLLED"
    SCHEDULE_CONFLICT = "SCHEDULE_CONFLICT"
    ACTIVITY_FULL = "ACTIVITY_FULL"
    ACTIVITY_NOT_PUBLISHED = "ACTIVITY_NOT_PUBLISHED"
    ACTIVITY_INACTIVE = "ACTIVITY_INACTIVE"
    ALREADY_ATTENDED = "ALREADY_ATTENDED"
    INVALID_TIME_WINDOW = "INVALID_TIME_WINDOW"
    INVALID_REQUEST = "INVALID_REQUEST"
    INVALID_STUDENT_ID = "INVALID_STUDENT_ID"
    STORE_UNAVAILABLE = "STORE_UNAVAILABLE"


@dataclass(eq=False)
class DomainError(Exception):
    """Base domain error with code and user-safe message."""

    code: ErrorCode
    message: str

    def __str__(self) -> str:
        return f"{self.code.value}: {self.message}"


class ActivityNotFoundError(DomainError):
    """Raised when an activity is not in the catalog."""

    def __init__(self, activity_id: str) -> None:
        super().__init__(
            code=ErrorCode.ACTIVITY_NOT_FOUND,
            message="Activity not found",
        )
        self.activity_id = activity_id


class EnrollmentNotFoundError(DomainError):
    """Raised when an enrollment does not exist for the given student."""

    def __init__(self, enrollment_id: str) -> None:
        super().__init__(
            code=ErrorCode.ENROLLMENT_NOT_FOUND,
            message="Enrollment not found",
        )
        self.enrollment_id = enrollment_id


class InvalidEnrollmentRequestError(DomainError):
    """Raised when a request is malformed as a whole (empty, oversized, blank ids)."""

    def __init__(self, message: str) -> None:
        super().__init__(code=ErrorCode.INVALID_REQUEST, message=message)


class InvalidStudentIdError(DomainError):
    """Raised when a student ID is blank."""

    def __init__(self) -> None:
        super().__init__(
            code=ErrorCode.INVALID_STUDENT_ID,
            message="Invalid student ID",
        )


class DuplicateActivityError(DomainError):
    """Raised when the same activity appears twice in a conflict candidate set."""

    def __init__(self, activity_ids: list[str]) -> None:
        super().__init__(
            code=ErrorCode.DUPLICATE_REQUEST,
            message="Activity listed more than once",
        )
        self.activity_ids = activity_ids


class AlreadyEnrolledError(DomainError):
    """Raised by stores when the student already holds a seat in the activity."""

    def __init__(self, activity_id: str, student_id: str) -> None:
        super().__init__(
            code=ErrorCode.ALREADY_ENROLLED,
            message="Student is already enrolled in this activity",
        )
        self.activity_id = activity_id
        self.student_id = student_id


class StoreUnavailableError(DomainError):
    """Raised by stores on transient infrastructure failures.

    Callers may retry; it never means the activity is full.
    """

    def __init__(self, operation: str) -> None:
        super().__init__(
            code=ErrorCode.STORE_UNAVAILABLE,
            message="Enrollment store temporarily unavailable",
        )
        self.operation = operation
