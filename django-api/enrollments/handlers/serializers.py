"""Serializers for parsing requests and transforming domain models to API responses."""

from rest_framework import serializers


class EnrollBatchRequestSerializer(serializers.Serializer):
    studentId = serializers.CharField()
    activityIds = serializers.ListField(child=serializers.CharField())


class ValidateConflictsRequestSerializer(serializers.Serializer):
    activityIds = serializers.ListField(child=serializers.CharField())
    studentId = serializers.CharField(required=False)


class ConfirmAttendanceRequestSerializer(serializers.Serializer):
    token = serializers.CharField(trim_whitespace=True, allow_blank=True)


class ActivitySerializer(serializers.Serializer):
    """Serializer for Activity domain model."""

    id = serializers.CharField(source="id.value")
    title = serializers.CharField()
    kind = serializers.CharField(source="kind.value")
    location = serializers.CharField()
    startTime = serializers.DateTimeField(source="starts_at")
    endTime = serializers.DateTimeField(source="ends_at")
    capacity = serializers.SerializerMethodField()
    enrolledCount = serializers.IntegerField(source="enrolled_count")
    published = serializers.BooleanField()
    active = serializers.BooleanField()

    def get_capacity(self, activity) -> int | None:
        return activity.capacity.value if activity.capacity else None


class EnrollmentSerializer(serializers.Serializer):
    """Serializer for Enrollment domain model."""

    id = serializers.UUIDField(source="id.value")
    studentId = serializers.CharField(source="student_id.value")
    activityId = serializers.CharField(source="activity_id.value")
    seatNumber = serializers.CharField(source="seat_number")
    attendanceToken = serializers.CharField(source="attendance_token.value")
    attended = serializers.BooleanField()
    attendedAt = serializers.DateTimeField(source="attended_at", allow_null=True)
    enrolledAt = serializers.DateTimeField(source="created_at")


class ScheduleConflictSerializer(serializers.Serializer):
    """One overlap, seen from the requested activity."""

    activityId = serializers.CharField(source="first.activity_id.value")
    activityTitle = serializers.CharField(source="first.title")
    conflictingActivityId = serializers.CharField(source="second.activity_id.value")
    conflictingActivityTitle = serializers.CharField(source="second.title")
    conflictingIsEnrolled = serializers.BooleanField(source="second.existing")
    overlapStart = serializers.DateTimeField(source="overlap.start")
    overlapEnd = serializers.DateTimeField(source="overlap.end")


class EnrollmentFailureSerializer(serializers.Serializer):
    activityId = serializers.CharField(source="activity_id.value")
    reason = serializers.CharField(source="reason.value")
    conflictWith = ScheduleConflictSerializer(source="conflicts", many=True)


class BatchEnrollmentResultSerializer(serializers.Serializer):
    succeeded = EnrollmentSerializer(many=True)
    failed = EnrollmentFailureSerializer(many=True)
    success = serializers.BooleanField()
    partial = serializers.BooleanField()


class ConflictReportSerializer(serializers.Serializer):
    hasConflicts = serializers.BooleanField(source="has_conflicts")
    conflicts = ScheduleConflictSerializer(many=True)
    unknownActivityIds = serializers.SerializerMethodField()
    duplicateActivityIds = serializers.SerializerMethodField()

    def get_unknownActivityIds(self, report) -> list[str]:
        return [activity_id.value for activity_id in report.unknown_activity_ids]

    def get_duplicateActivityIds(self, report) -> list[str]:
        return [activity_id.value for activity_id in report.duplicate_activity_ids]


class CapacitySnapshotSerializer(serializers.Serializer):
    activityId = serializers.CharField(source="activity_id.value")
    status = serializers.CharField(source="status.value")
    currentCount = serializers.IntegerField(source="current_count")
    capacity = serializers.IntegerField(allow_null=True)
    availableSpots = serializers.IntegerField(source="available_spots", allow_null=True)


class AttendanceResultSerializer(serializers.Serializer):
    status = serializers.CharField(source="status.value")
    enrollment = EnrollmentSerializer(allow_null=True)
