"""Store interfaces (repository pattern).

Stores must be swappable and return domain models. Transient infrastructure
failures surface as StoreUnavailableError, never as an empty result.
"""

from abc import ABC, abstractmethod
from collections.abc import Iterable
from contextlib import AbstractContextManager
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


class EnrollmentStore(ABC):
    """Interface for activity and enrollment persistence operations."""

    @abstractmethod
    def atomic(self) -> AbstractContextManager[None]:
        """Unit of work: everything inside commits together or not at all."""
        ...

    @abstractmethod
    def list_activities(self, published_only: bool = True) -> list[Activity]:
        """Return activities ordered by start time ascending."""
        ...

    @abstractmethod
    def get_activity(self, activity_id: ActivityId) -> Activity | None:
        """Return an activity by ID, or None if not found."""
        ...

    @abstractmethod
    def get_activities(self, activity_ids: Iterable[ActivityId]) -> dict[ActivityId, Activity]:
        """Return the known activities among ``activity_ids``; unknown ids are absent."""
        ...

    @abstractmethod
    def get_student_enrollments(self, student_id: StudentId) -> list[Enrollment]:
        """Return the student's live enrollments ordered by created_at ascending."""
        ...

    @abstractmethod
    def increment_if_below_capacity(self, activity_id: ActivityId) -> CounterState | None:
        """Atomically add one to the activity's counters if a seat is free.

        Returns the counters after the increment, or None when the activity
        is full or missing. Concurrent callers on the same activity are
        serialized; a None result performs no mutation.
        """
        ...

    @abstractmethod
    def create_enrollment(self, record: NewEnrollment) -> Enrollment:
        """Persist a new enrollment row.

        Raises:
            AlreadyEnrolledError: If the student already holds a seat in the activity.
        """
        ...

    @abstractmethod
    def get_enrollment(self, enrollment_id: EnrollmentId) -> Enrollment | None:
        ...

    @abstractmethod
    def get_enrollment_by_token(self, token: AttendanceToken) -> Enrollment | None:
        ...

    @abstractmethod
    def set_attended(self, token: AttendanceToken, attended_at: datetime) -> bool:
        """Flip ``attended`` to true if it is false. Returns whether it flipped."""
        ...

    @abstractmethod
    def delete_enrollment(self, enrollment_id: EnrollmentId) -> bool:
        """Remove an enrollment and release its seat. Returns False if already gone."""
        ...
