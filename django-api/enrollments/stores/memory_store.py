"""In-process EnrollmentStore guarded by per-activity locks.

Used by tests and local tooling. Counters for different activities never
share a lock.
"""

import threading
from collections.abc import Callable, Iterable, Iterator
from contextlib import contextmanager
from dataclasses import replace
from datetime import datetime

from enrollments.domain import (
    Activity,
    ActivityId,
    AttendanceToken,
    CounterState,
    Enrollment,
    EnrollmentId,
    NewEnrollment,
    StudentId,
)
from enrollments.domain.errors import AlreadyEnrolledError
from enrollments.stores.interfaces import EnrollmentStore


class InMemoryEnrollmentStore(EnrollmentStore):
    """Dict-backed store with journaled rollback for ``atomic()`` blocks."""

    def __init__(self, activities: Iterable[Activity] = ()) -> None:
        self._activities: dict[ActivityId, Activity] = {}
        self._counters: dict[ActivityId, CounterState] = {}
        self._enrollments: dict[EnrollmentId, Enrollment] = {}
        self._tokens: dict[str, EnrollmentId] = {}
        self._activity_locks: dict[ActivityId, threading.Lock] = {}
        self._rows_lock = threading.Lock()
        self._local = threading.local()
        for activity in activities:
            self.add_activity(activity)

    def add_activity(self, activity: Activity) -> None:
        with self._rows_lock:
            self._activities[activity.id] = activity
            self._counters[activity.id] = CounterState(
                enrolled_count=activity.enrolled_count,
                seat_sequence=activity.enrolled_count,
            )
            self._activity_locks.setdefault(activity.id, threading.Lock())

    @contextmanager
    def atomic(self) -> Iterator[None]:
        if getattr(self._local, "journal", None) is not None:
            # Nested blocks join the outermost unit of work.
            yield
            return
        self._local.journal = []
        try:
            yield
        except BaseException:
            for undo in reversed(self._local.journal):
                undo()
            raise
        finally:
            self._local.journal = None

    def _record(self, undo: Callable[[], None]) -> None:
        journal = getattr(self._local, "journal", None)
        if journal is not None:
            journal.append(undo)

    def _with_count(self, activity: Activity) -> Activity:
        return replace(activity, enrolled_count=self._counters[activity.id].enrolled_count)

    def list_activities(self, published_only: bool = True) -> list[Activity]:
        with self._rows_lock:
            activities = [self._with_count(a) for a in self._activities.values()]
        if published_only:
            activities = [a for a in activities if a.published]
        return sorted(activities, key=lambda a: (a.starts_at, a.id.value))

    def get_activity(self, activity_id: ActivityId) -> Activity | None:
        with self._rows_lock:
            activity = self._activities.get(activity_id)
            return self._with_count(activity) if activity else None

    def get_activities(self, activity_ids: Iterable[ActivityId]) -> dict[ActivityId, Activity]:
        with self._rows_lock:
            return {
                activity_id: self._with_count(self._activities[activity_id])
                for activity_id in activity_ids
                if activity_id in self._activities
            }

    def get_student_enrollments(self, student_id: StudentId) -> list[Enrollment]:
        with self._rows_lock:
            rows = [e for e in self._enrollments.values() if e.student_id == student_id]
        return sorted(rows, key=lambda e: e.created_at)

    def increment_if_below_capacity(self, activity_id: ActivityId) -> CounterState | None:
        lock = self._activity_locks.get(activity_id)
        if lock is None:
            return None
        with lock:
            activity = self._activities[activity_id]
            current = self._counters[activity_id]
            if activity.capacity is not None and current.enrolled_count >= activity.capacity.value:
                return None
            updated = CounterState(
                enrolled_count=current.enrolled_count + 1,
                seat_sequence=current.seat_sequence + 1,
            )
            self._counters[activity_id] = updated
        # The seat sequence keeps its gap on rollback, like a database sequence.
        self._record(lambda: self._adjust_count(activity_id, -1))
        return updated

    def _adjust_count(self, activity_id: ActivityId, delta: int) -> None:
        with self._activity_locks[activity_id]:
            current = self._counters[activity_id]
            self._counters[activity_id] = replace(
                current, enrolled_count=max(current.enrolled_count + delta, 0)
            )

    def create_enrollment(self, record: NewEnrollment) -> Enrollment:
        enrollment = Enrollment(
            id=EnrollmentId.new(),
            student_id=record.student_id,
            activity_id=record.activity_id,
            created_at=record.created_at,
            seat_number=record.seat_number,
            attendance_token=record.attendance_token,
        )
        with self._rows_lock:
            if record.attendance_token.value in self._tokens:
                raise ValueError("Attendance token already issued")
            for existing in self._enrollments.values():
                if existing.activity_id != record.activity_id:
                    continue
                if existing.student_id == record.student_id:
                    raise AlreadyEnrolledError(
                        record.activity_id.value, record.student_id.value
                    )
                if existing.seat_number == record.seat_number:
                    raise ValueError("Seat number already issued")
            self._enrollments[enrollment.id] = enrollment
            self._tokens[record.attendance_token.value] = enrollment.id
        self._record(lambda: self._forget(enrollment.id))
        return enrollment

    def _forget(self, enrollment_id: EnrollmentId) -> Enrollment | None:
        with self._rows_lock:
            enrollment = self._enrollments.pop(enrollment_id, None)
            if enrollment is not None:
                self._tokens.pop(enrollment.attendance_token.value, None)
            return enrollment

    def get_enrollment(self, enrollment_id: EnrollmentId) -> Enrollment | None:
        with self._rows_lock:
            return self._enrollments.get(enrollment_id)

    def get_enrollment_by_token(self, token: AttendanceToken) -> Enrollment | None:
        with self._rows_lock:
            enrollment_id = self._tokens.get(token.value)
            return self._enrollments.get(enrollment_id) if enrollment_id else None

    def set_attended(self, token: AttendanceToken, attended_at: datetime) -> bool:
        with self._rows_lock:
            enrollment_id = self._tokens.get(token.value)
            if enrollment_id is None:
                return False
            enrollment = self._enrollments[enrollment_id]
            if enrollment.attended:
                return False
            self._enrollments[enrollment_id] = replace(
                enrollment, attended=True, attended_at=attended_at
            )
            return True

    def delete_enrollment(self, enrollment_id: EnrollmentId) -> bool:
        enrollment = self._forget(enrollment_id)
        if enrollment is None:
            return False
        self._adjust_count(enrollment.activity_id, -1)
        return True
