from enrollments.handlers.views import (
    ActivityDetailView,
    ActivityListView,
    CapacityStatusView,
    ConfirmAttendanceView,
    EnrollBatchView,
    StudentEnrollmentDetailView,
    StudentEnrollmentListView,
    StudentEnrollmentSummaryView,
    ValidateConflictsView,
)

__all__ = [
    "ActivityDetailView",
    "ActivityListView",
    "CapacityStatusView",
    "ConfirmAttendanceView",
    "EnrollBatchView",
    "StudentEnrollmentDetailView",
    "StudentEnrollmentListView",
    "StudentEnrollmentSummaryView",
    "ValidateConflictsView",
]
