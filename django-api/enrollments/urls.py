from django.urls import path

from enrollments.handlers import (
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

urlpatterns = [
    path("activities", ActivityListView.as_view(), name="activity-list"),
    path(
        "activities/capacity-status",
        CapacityStatusView.as_view(),
        name="activity-capacity-status",
    ),
    path("activities/<str:activity_id>", ActivityDetailView.as_view(), name="activity-detail"),
    path("enrollments", EnrollBatchView.as_view(), name="enrollment-batch"),
    path(
        "enrollments/validate-conflicts",
        ValidateConflictsView.as_view(),
        name="enrollment-validate-conflicts",
    ),
    path("attendance/confirm", ConfirmAttendanceView.as_view(), name="attendance-confirm"),
    path(
        "students/<str:student_id>/enrollments",
        StudentEnrollmentListView.as_view(),
        name="student-enrollment-list",
    ),
    path(
        "students/<str:student_id>/enrollments/summary",
        StudentEnrollmentSummaryView.as_view(),
        name="student-enrollment-summary",
    ),
    path(
        "students/<str:student_id>/enrollments/<str:enrollment_id>",
        StudentEnrollmentDetailView.as_view(),
        name="student-enrollment-detail",
    ),
]
