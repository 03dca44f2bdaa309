"""Enrollment admission engine.

Orchestrates conflict screening and capacity admission for a batch of
requested activities, issues seats and attendance tokens, and confirms
attendance at most once per enrollment. The service keeps no state between
calls; everything is read from the store on each invocation.

A batch is never rolled back as a whole: each activity is admitted in its
own unit of work, so activities admitted before a sibling fails, or before
the caller abandons the request, stay enrolled.
"""

import logging
from collections import Counter
from collections.abc import Callable, Iterable, Sequence
from datetime import UTC, datetime

from enrollments.domain import (
    Activity,
    ActivityId,
    AttendanceResult,
    AttendanceStatus,
    AttendanceToken,
    BatchEnrollmentResult,
    CapacitySnapshot,
    ConflictReport,
    Enrollment,
    EnrollmentFailure,
    EnrollmentId,
    NewEnrollment,
    ScheduleConflict,
    ScheduledWindow,
    StudentId,
)
from enrollments.conf import DEFAULTS
from enrollments.domain.errors import (
    AlreadyEnrolledError,
    EnrollmentNotFoundError,
    ErrorCode,
    InvalidEnrollmentRequestError,
    InvalidStudentIdError,
    StoreUnavailableError,
)
from enrollments.services.capacity_controller import CapacityController
from enrollments.services.catalog_service import CatalogService
from enrollments.services.conflict_detector import ScheduleConflictDetector
from enrollments.stores.interfaces import EnrollmentStore

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(UTC)


def _by_activity(item: Enrollment | EnrollmentFailure) -> str:
    return item.activity_id.value


class EnrollmentService:
    """Single entry point for enrollment, conflict checks and attendance."""

    def __init__(
        self,
        store: EnrollmentStore,
        *,
        max_batch_size: int = DEFAULTS["MAX_ACTIVITIES_PER_REQUEST"],
        seat_padding: int = DEFAULTS["SEAT_NUMBER_PADDING"],
        clock: Callable[[], datetime] = _utcnow,
        token_factory: Callable[[], AttendanceToken] = AttendanceToken.generate,
    ) -> None:
        self._store = store
        self._catalog = CatalogService(store)
        self._capacity = CapacityController(store)
        self._detector = ScheduleConflictDetector()
        self._max_batch_size = max_batch_size
        self._seat_padding = seat_padding
        self._clock = clock
        self._token_factory = token_factory

    # -- enrollment ---------------------------------------------------------

    def enroll_batch(self, student_id: str, activity_ids: Sequence[str]) -> BatchEnrollmentResult:
        """Enroll a student into each requested activity independently.

        Per-activity problems are returned as failures, never raised.

        Raises:
            InvalidStudentIdError: If the student id is blank.
            InvalidEnrollmentRequestError: If the list is empty, too long,
                or contains a blank id.
        """
        student = self._parse_student(student_id)
        requested = self._parse_activity_ids(activity_ids, limit=self._max_batch_size)
        failures: list[EnrollmentFailure] = []

        counts = Counter(requested)
        for activity_id in counts:
            if counts[activity_id] > 1:
                failures.append(EnrollmentFailure(activity_id, ErrorCode.DUPLICATE_REQUEST))
        unique = [a for a in counts if counts[a] == 1]

        try:
            activities = self._catalog.get_activities(unique)
            existing = self._store.get_student_enrollments(student)
            held = self._catalog.get_activities(e.activity_id for e in existing)
        except StoreUnavailableError:
            logger.warning("Store unavailable while loading batch for student %s", student)
            failures.extend(EnrollmentFailure(a, ErrorCode.STORE_UNAVAILABLE) for a in unique)
            return self._finish(student, [], failures)

        held_ids = {e.activity_id for e in existing}
        candidates: list[ScheduledWindow] = []
        for activity_id in unique:
            activity = activities.get(activity_id)
            if activity is None:
                failures.append(EnrollmentFailure(activity_id, ErrorCode.NOT_FOUND))
                continue
            if activity_id in held_ids:
                failures.append(EnrollmentFailure(activity_id, ErrorCode.ALREADY_ENROLLED))
                continue
            try:
                window = activity.window
            except ValueError:
                failures.append(EnrollmentFailure(activity_id, ErrorCode.INVALID_TIME_WINDOW))
                continue
            candidates.append(ScheduledWindow(activity_id, activity.title, window))

        blocked = self._screen(self._held_windows(held.values()), candidates)
        for activity_id, conflicts in blocked.items():
            logger.debug(
                "Activity %s conflicts with %s",
                activity_id,
                ", ".join(c.second.title for c in conflicts),
            )
            failures.append(
                EnrollmentFailure(activity_id, ErrorCode.SCHEDULE_CONFLICT, tuple(conflicts))
            )

        succeeded: list[Enrollment] = []
        admissible = [w.activity_id for w in candidates if w.activity_id not in blocked]
        for activity_id in sorted(admissible, key=lambda a: a.value):
            outcome = self._admit(student, activities[activity_id])
            if isinstance(outcome, Enrollment):
                succeeded.append(outcome)
            else:
                failures.append(outcome)

        return self._finish(student, succeeded, failures)

    def _screen(
        self, held: list[ScheduledWindow], candidates: list[ScheduledWindow]
    ) -> dict[ActivityId, list[ScheduleConflict]]:
        """Group every conflict touching a candidate under that candidate."""
        candidate_ids = {w.activity_id for w in candidates}
        blocked: dict[ActivityId, list[ScheduleConflict]] = {}
        for conflict in self._detector.find_conflicts(held + candidates):
            for side in (conflict.first, conflict.second):
                if side.activity_id in candidate_ids:
                    blocked.setdefault(side.activity_id, []).append(
                        conflict.seen_from(side.activity_id)
                    )
        return blocked

    def _held_windows(self, activities: Iterable[Activity]) -> list[ScheduledWindow]:
        windows = []
        for activity in activities:
            try:
                window = activity.window
            except ValueError:
                logger.warning("Skipping enrolled activity %s with invalid schedule", activity.id)
                continue
            windows.append(ScheduledWindow(activity.id, activity.title, window, existing=True))
        return windows

    def _admit(self, student: StudentId, activity: Activity) -> Enrollment | EnrollmentFailure:
        try:
            with self._store.atomic():
                decision = self._capacity.try_admit(activity.id)
                if not decision.admitted:
                    reason = decision.reason
                    if reason is ErrorCode.ACTIVITY_NOT_FOUND:
                        reason = ErrorCode.NOT_FOUND
                    return EnrollmentFailure(activity.id, reason)
                return self._store.create_enrollment(
                    NewEnrollment(
                        student_id=student,
                        activity_id=activity.id,
                        created_at=self._clock(),
                        seat_number=self._seat_number(activity, decision.seat_index),
                        attendance_token=self._token_factory(),
                    )
                )
        except AlreadyEnrolledError:
            logger.info("Student %s already holds a seat in %s", student, activity.id)
            return EnrollmentFailure(activity.id, ErrorCode.ALREADY_ENROLLED)
        except StoreUnavailableError:
            logger.warning("Store unavailable while admitting %s into %s", student, activity.id)
            return EnrollmentFailure(activity.id, ErrorCode.STORE_UNAVAILABLE)

    def _seat_number(self, activity: Activity, index: int) -> str:
        prefix = activity.location.strip() or activity.id.value
        return f"{prefix}-{index:0{self._seat_padding}d}"

    def _finish(
        self,
        student: StudentId,
        succeeded: list[Enrollment],
        failures: list[EnrollmentFailure],
    ) -> BatchEnrollmentResult:
        result = BatchEnrollmentResult(
            succeeded=tuple(sorted(succeeded, key=_by_activity)),
            failed=tuple(sorted(failures, key=_by_activity)),
        )
        logger.info(
            "Batch enrollment for %s: %d succeeded, %d failed",
            student,
            len(result.succeeded),
            len(result.failed),
        )
        return result

    # -- advisory reads -----------------------------------------------------

    def validate_conflicts(
        self, activity_ids: Sequence[str], student_id: str | None = None
    ) -> ConflictReport:
        """Run the conflict screen without enrolling.

        When ``student_id`` is given the student's current enrollments take
        part in the screen. Unknown and repeated ids are listed, not raised;
        a repeated id is left out of the screen, as a batch would reject it.
        """
        counts = Counter(self._parse_activity_ids(activity_ids))
        duplicates = tuple(a for a in counts if counts[a] > 1)
        requested = [a for a in counts if counts[a] == 1]
        activities = self._catalog.get_activities(requested)
        unknown = tuple(a for a in requested if a not in activities)

        candidates = []
        for activity_id in requested:
            activity = activities.get(activity_id)
            if activity is None:
                continue
            try:
                candidates.append(ScheduledWindow(activity_id, activity.title, activity.window))
            except ValueError:
                continue

        held: list[ScheduledWindow] = []
        if student_id is not None:
            student = self._parse_student(student_id)
            existing = self._store.get_student_enrollments(student)
            held_ids = [e.activity_id for e in existing if e.activity_id not in activities]
            held = self._held_windows(self._catalog.get_activities(held_ids).values())

        candidate_ids = {w.activity_id for w in candidates}
        conflicts = []
        for conflict in self._detector.find_conflicts(held + candidates):
            if conflict.first.activity_id in candidate_ids:
                conflicts.append(conflict)
            elif conflict.second.activity_id in candidate_ids:
                conflicts.append(conflict.seen_from(conflict.second.activity_id))
        return ConflictReport(
            conflicts=tuple(conflicts),
            unknown_activity_ids=unknown,
            duplicate_activity_ids=duplicates,
        )

    def capacity_status(self, activity_ids: Sequence[str]) -> list[CapacitySnapshot]:
        """Occupancy of the known activities among ``activity_ids``.

        Advisory only; the authoritative check happens at admission time.
        """
        return self._capacity.get_statuses(self._parse_activity_ids(activity_ids))

    def list_enrollments(self, student_id: str) -> list[Enrollment]:
        return self._store.get_student_enrollments(self._parse_student(student_id))

    def count_enrollments(self, student_id: str) -> int:
        return len(self.list_enrollments(student_id))

    # -- cancellation -------------------------------------------------------

    def cancel_enrollment(self, student_id: str, enrollment_id: str) -> bool:
        """Cancel one of the student's enrollments, releasing its seat.

        Idempotent: cancelling an enrollment that no longer exists returns
        False.

        Raises:
            EnrollmentNotFoundError: If the id is malformed or belongs to
                another student.
        """
        student = self._parse_student(student_id)
        try:
            key = EnrollmentId.from_string(enrollment_id)
        except ValueError:
            raise EnrollmentNotFoundError(enrollment_id) from None

        enrollment = self._store.get_enrollment(key)
        if enrollment is None:
            return False
        if enrollment.student_id != student:
            raise EnrollmentNotFoundError(enrollment_id)

        removed = self._store.delete_enrollment(key)
        if removed:
            logger.info("Cancelled enrollment %s of %s in %s", key, student, enrollment.activity_id)
        return removed

    # -- attendance ---------------------------------------------------------

    def confirm_attendance(self, token: str) -> AttendanceResult:
        """Mark the enrollment behind ``token`` as attended, once.

        A second presentation of the same token reports ALREADY_ATTENDED and
        leaves ``attended_at`` as it was.
        """
        raw = (token or "").strip()
        if not raw:
            return AttendanceResult(AttendanceStatus.NOT_FOUND)
        key = AttendanceToken(raw)

        try:
            if self._store.get_enrollment_by_token(key) is None:
                logger.info("Attendance token %s not found", key.masked())
                return AttendanceResult(AttendanceStatus.NOT_FOUND)
            flipped = self._store.set_attended(key, self._clock())
            enrollment = self._store.get_enrollment_by_token(key)
        except StoreUnavailableError:
            logger.warning("Store unavailable while confirming token %s", key.masked())
            return AttendanceResult(AttendanceStatus.STORE_UNAVAILABLE)

        if enrollment is None:
            return AttendanceResult(AttendanceStatus.NOT_FOUND)
        if not flipped:
            logger.info("Token %s replayed for enrollment %s", key.masked(), enrollment.id)
            return AttendanceResult(AttendanceStatus.ALREADY_ATTENDED, enrollment)
        logger.info("Attendance confirmed for enrollment %s", enrollment.id)
        return AttendanceResult(AttendanceStatus.OK, enrollment)

    # -- parsing ------------------------------------------------------------

    def _parse_student(self, student_id: str) -> StudentId:
        try:
            return StudentId.from_string(student_id or "")
        except ValueError:
            raise InvalidStudentIdError() from None

    def _parse_activity_ids(
        self, activity_ids: Sequence[str], limit: int | None = None
    ) -> list[ActivityId]:
        if isinstance(activity_ids, str) or not activity_ids:
            raise InvalidEnrollmentRequestError("At least one activity must be selected")
        if limit is not None and len(activity_ids) > limit:
            raise InvalidEnrollmentRequestError(
                f"Cannot enroll in more than {limit} activities at once"
            )
        try:
            return [ActivityId.from_string(value or "") for value in activity_ids]
        except (ValueError, AttributeError):
            raise InvalidEnrollmentRequestError("Invalid activity id") from None
