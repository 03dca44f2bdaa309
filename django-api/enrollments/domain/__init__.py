from enrollments.domain.models import (
    Activity,
    ActivityKind,
    AdmissionDecision,
    AttendanceResult,
    AttendanceStatus,
    BatchEnrollmentResult,
    CapacitySnapshot,
    CapacityStatus,
    ConflictReport,
    CounterState,
    Enrollment,
    EnrollmentFailure,
    NewEnrollment,
    ScheduleConflict,
    ScheduledWindow,
)
from enrollments.domain.value_objects import (
    ActivityId,
    AttendanceToken,
    Capacity,
    EnrollmentId,
    StudentId,
    TimeWindow,
)

__all__ = [
    "Activity",
    "ActivityKind",
    "AdmissionDecision",
    "AttendanceResult",
    "AttendanceStatus",
    "BatchEnrollmentResult",
    "CapacitySnapshot",
    "CapacityStatus",
    "ConflictReport",
    "CounterState",
    "Enrollment",
    "EnrollmentFailure",
    "NewEnrollment",
    "ScheduleConflict",
    "ScheduledWindow",
    "ActivityId",
    "AttendanceToken",
    "Capacity",
    "EnrollmentId",
    "StudentId",
    "TimeWindow",
]
