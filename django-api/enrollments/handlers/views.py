"""HTTP handlers (views) - handle HTTP concerns only.

Handlers:
- Parse requests and validate input format
- Call services for business logic
- Map domain errors to HTTP responses
- Never contain business logic
- Never expose internal error details
"""

from django.core.cache import cache
from rest_framework import status
from rest_framework.request import Request
from rest_framework.response import Response
from rest_framework.views import APIView

from enrollments.caching import (
    ACTIVITY_LIST_KEY,
    activity_detail_key,
    capacity_status_key,
    is_storable_activity_id,
)
from enrollments.conf import engine_setting
from enrollments.domain import AttendanceStatus
from enrollments.domain.errors import (
    ActivityNotFoundError,
    DomainError,
    ErrorCode,
    InvalidEnrollmentRequestError,
)
from enrollments.handlers.serializers import (
    ActivitySerializer,
    AttendanceResultSerializer,
    BatchEnrollmentResultSerializer,
    CapacitySnapshotSerializer,
    ConfirmAttendanceRequestSerializer,
    ConflictReportSerializer,
    EnrollBatchRequestSerializer,
    EnrollmentSerializer,
    ValidateConflictsRequestSerializer,
)
from enrollments.services.catalog_service import CatalogService
from enrollments.services.enrollment_service import EnrollmentService
from enrollments.stores.django_store import DjangoEnrollmentStore

_ERROR_STATUS = {
    ErrorCode.ACTIVITY_NOT_FOUND: status.HTTP_404_NOT_FOUND,
    ErrorCode.ENROLLMENT_NOT_FOUND: status.HTTP_404_NOT_FOUND,
    ErrorCode.INVALID_REQUEST: status.HTTP_400_BAD_REQUEST,
    ErrorCode.INVALID_STUDENT_ID: status.HTTP_400_BAD_REQUEST,
    ErrorCode.STORE_UNAVAILABLE: status.HTTP_503_SERVICE_UNAVAILABLE,
}

_ATTENDANCE_STATUS = {
    AttendanceStatus.OK: status.HTTP_200_OK,
    AttendanceStatus.ALREADY_ATTENDED: status.HTTP_409_CONFLICT,
    AttendanceStatus.NOT_FOUND: status.HTTP_404_NOT_FOUND,
    AttendanceStatus.STORE_UNAVAILABLE: status.HTTP_503_SERVICE_UNAVAILABLE,
}


def get_enrollment_service() -> EnrollmentService:
    return EnrollmentService(
        DjangoEnrollmentStore(),
        max_batch_size=engine_setting("MAX_ACTIVITIES_PER_REQUEST"),
        seat_padding=engine_setting("SEAT_NUMBER_PADDING"),
    )


def get_catalog_service() -> CatalogService:
    return CatalogService(DjangoEnrollmentStore())


def _error_response(error: DomainError) -> Response:
    return Response(
        {"code": error.code.value, "message": error.message},
        status=_ERROR_STATUS.get(error.code, status.HTTP_400_BAD_REQUEST),
    )


def _invalid_body(errors: dict) -> Response:
    return Response(
        {"code": ErrorCode.INVALID_REQUEST.value, "message": "Invalid request", "fields": errors},
        status=status.HTTP_400_BAD_REQUEST,
    )


class ActivityListView(APIView):
    """Handler for GET /api/activities"""

    def get(self, request: Request) -> Response:
        data = cache.get(ACTIVITY_LIST_KEY)
        if data is None:
            try:
                activities = get_catalog_service().list_activities()
            except DomainError as error:
                return _error_response(error)
            data = ActivitySerializer(activities, many=True).data
            cache.set(ACTIVITY_LIST_KEY, data, engine_setting("CATALOG_CACHE_TIMEOUT"))
        return Response(data)


class ActivityDetailView(APIView):
    """Handler for GET /api/activities/{activity_id}"""

    def get(self, request: Request, activity_id: str) -> Response:
        if not is_storable_activity_id(activity_id):
            return _error_response(ActivityNotFoundError(activity_id))
        key = activity_detail_key(activity_id)
        data = cache.get(key)
        if data is None:
            try:
                activity = get_catalog_service().get_activity(activity_id)
            except DomainError as error:
                return _error_response(error)
            data = ActivitySerializer(activity).data
            cache.set(key, data, engine_setting("CATALOG_CACHE_TIMEOUT"))
        return Response(data)


class CapacityStatusView(APIView):
    """Handler for GET /api/activities/capacity-status?activityIds=a,b

    Readings may be cached for a few seconds; they only guide the UI.
    """

    def get(self, request: Request) -> Response:
        activity_ids = [
            value.strip()
            for param in request.query_params.getlist("activityIds")
            for value in param.split(",")
            if value.strip()
        ]
        activity_ids = list(dict.fromkeys(activity_ids))
        if not activity_ids:
            return _error_response(
                InvalidEnrollmentRequestError("At least one activity must be selected")
            )
        # Ids that cannot be stored are unknown; omit them.
        activity_ids = [a for a in activity_ids if is_storable_activity_id(a)]

        found = {}
        for activity_id in activity_ids:
            cached = cache.get(capacity_status_key(activity_id))
            if cached is not None:
                found[activity_id] = cached
        missing = [a for a in activity_ids if a not in found]

        if missing:
            try:
                snapshots = get_enrollment_service().capacity_status(missing)
            except DomainError as error:
                return _error_response(error)
            timeout = engine_setting("CAPACITY_STATUS_CACHE_TIMEOUT")
            for item in CapacitySnapshotSerializer(snapshots, many=True).data:
                found[item["activityId"]] = item
                cache.set(capacity_status_key(item["activityId"]), item, timeout)

        return Response([found[a] for a in activity_ids if a in found])


class EnrollBatchView(APIView):
    """Handler for POST /api/enrollments

    Always answers with the per-activity breakdown; ``success`` is true when
    at least one activity was enrolled and ``partial`` when some also failed.
    """

    def post(self, request: Request) -> Response:
        body = EnrollBatchRequestSerializer(data=request.data)
        if not body.is_valid():
            return _invalid_body(body.errors)
        try:
            result = get_enrollment_service().enroll_batch(
                body.validated_data["studentId"], body.validated_data["activityIds"]
            )
        except DomainError as error:
            return _error_response(error)
        code = status.HTTP_201_CREATED if result.success else status.HTTP_200_OK
        return Response(BatchEnrollmentResultSerializer(result).data, status=code)


class ValidateConflictsView(APIView):
    """Handler for POST /api/enrollments/validate-conflicts"""

    def post(self, request: Request) -> Response:
        body = ValidateConflictsRequestSerializer(data=request.data)
        if not body.is_valid():
            return _invalid_body(body.errors)
        try:
            report = get_enrollment_service().validate_conflicts(
                body.validated_data["activityIds"], body.validated_data.get("studentId")
            )
        except DomainError as error:
            return _error_response(error)
        return Response(ConflictReportSerializer(report).data)


class ConfirmAttendanceView(APIView):
    """Handler for POST /api/attendance/confirm (QR scan or manual entry)"""

    def post(self, request: Request) -> Response:
        body = ConfirmAttendanceRequestSerializer(data=request.data)
        if not body.is_valid():
            return _invalid_body(body.errors)
        result = get_enrollment_service().confirm_attendance(body.validated_data["token"])
        return Response(
            AttendanceResultSerializer(result).data, status=_ATTENDANCE_STATUS[result.status]
        )


class StudentEnrollmentListView(APIView):
    """Handler for GET /api/students/{student_id}/enrollments"""

    def get(self, request: Request, student_id: str) -> Response:
        try:
            enrollments = get_enrollment_service().list_enrollments(student_id)
        except DomainError as error:
            return _error_response(error)
        return Response(EnrollmentSerializer(enrollments, many=True).data)


class StudentEnrollmentSummaryView(APIView):
    """Handler for GET /api/students/{student_id}/enrollments/summary"""

    def get(self, request: Request, student_id: str) -> Response:
        try:
            count = get_enrollment_service().count_enrollments(student_id)
        except DomainError as error:
            return _error_response(error)
        return Response({"count": count})


class StudentEnrollmentDetailView(APIView):
    """Handler for DELETE /api/students/{student_id}/enrollments/{enrollment_id}"""

    def delete(self, request: Request, student_id: str, enrollment_id: str) -> Response:
        try:
            get_enrollment_service().cancel_enrollment(student_id, enrollment_id)
        except DomainError as error:
            return _error_response(error)
        return Response(status=status.HTTP_204_NO_CONTENT)
