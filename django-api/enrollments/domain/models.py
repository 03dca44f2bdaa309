"""Domain models representing persisted state and engine outcomes.

These are pure domain objects with no API input rules.
Django ORM models are in enrollments/models.py (persistence layer).
"""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum

from enrollments.domain.errors import ErrorCode
from enrollments.domain.value_objects import (
    ActivityId,
    AttendanceToken,
    Capacity,
    EnrollmentId,
    StudentId,
    TimeWindow,
)


class ActivityKind(Enum):
    WORKSHOP = "workshop"
    COMPETITION = "competition"
    TALK = "talk"


class CapacityStatus(Enum):
    """Occupancy classes shown to students before they submit."""

    UNLIMITED = "UNLIMITED"
    AVAILABLE = "AVAILABLE"
    FEW_SPOTS = "FEW_SPOTS"
    NEARLY_FULL = "NEARLY_FULL"
    FULL = "FULL"


class AttendanceStatus(Enum):
    OK = "OK"
    ALREADY_ATTENDED = "ALREADY_ATTENDED"
    NOT_FOUND = "NOT_FOUND"
    STORE_UNAVAILABLE = "STORE_UNAVAILABLE"


@dataclass(frozen=True)
class Activity:
    """Domain representation of a catalog Activity.

    ``starts_at``/``ends_at`` are kept raw so a malformed row can still be
    loaded and reported; use ``window`` to get a validated interval.
    """

    id: ActivityId
    title: str
    kind: ActivityKind
    location: str
    starts_at: datetime
    ends_at: datetime
    capacity: Capacity | None
    published: bool
    active: bool
    enrolled_count: int = 0

    @property
    def window(self) -> TimeWindow:
        """Raises ValueError when the activity ends before it starts."""
        return TimeWindow(start=self.starts_at, end=self.ends_at)

    @property
    def is_unlimited(self) -> bool:
        return self.capacity is None


@dataclass(frozen=True)
class Enrollment:
    """Domain representation of an Enrollment."""

    id: EnrollmentId
    student_id: StudentId
    activity_id: ActivityId
    created_at: datetime
    seat_number: str
    attendance_token: AttendanceToken
    attended: bool = False
    attended_at: datetime | None = None


@dataclass(frozen=True)
class NewEnrollment:
    """Values the engine hands to the store to create an Enrollment row."""

    student_id: StudentId
    activity_id: ActivityId
    created_at: datetime
    seat_number: str
    attendance_token: AttendanceToken


@dataclass(frozen=True)
class CounterState:
    """Per-activity counters right after a successful increment.

    ``seat_sequence`` only ever grows; ``enrolled_count`` drops on cancellation.
    """

    enrolled_count: int
    seat_sequence: int


@dataclass(frozen=True)
class ScheduledWindow:
    """A time window tagged with the activity it belongs to."""

    activity_id: ActivityId
    title: str
    window: TimeWindow
    existing: bool = False


@dataclass(frozen=True)
class ScheduleConflict:
    """Two scheduled windows that overlap, and the shared interval."""

    first: ScheduledWindow
    second: ScheduledWindow
    overlap: TimeWindow

    def involves(self, activity_id: ActivityId) -> bool:
        return activity_id in (self.first.activity_id, self.second.activity_id)

    def counterpart(self, activity_id: ActivityId) -> ScheduledWindow:
        return self.second if self.first.activity_id == activity_id else self.first

    def seen_from(self, activity_id: ActivityId) -> "ScheduleConflict":
        """Same conflict with ``activity_id`` as ``first``."""
        if self.first.activity_id == activity_id:
            return self
        return ScheduleConflict(first=self.second, second=self.first, overlap=self.overlap)


@dataclass(frozen=True)
class ConflictReport:
    conflicts: tuple[ScheduleConflict, ...] = ()
    unknown_activity_ids: tuple[ActivityId, ...] = ()
    duplicate_activity_ids: tuple[ActivityId, ...] = ()

    @property
    def has_conflicts(self) -> bool:
        return bool(self.conflicts)


@dataclass(frozen=True)
class CapacitySnapshot:
    """Advisory occupancy reading; may be stale by the time it is shown."""

    activity_id: ActivityId
    status: CapacityStatus
    current_count: int
    capacity: int | None

    @property
    def available_spots(self) -> int | None:
        if self.capacity is None:
            return None
        return max(self.capacity - self.current_count, 0)


@dataclass(frozen=True)
class AdmissionDecision:
    activity_id: ActivityId
    admitted: bool
    current_count: int
    capacity: int | None
    reason: ErrorCode | None = None
    seat_index: int | None = None


@dataclass(frozen=True)
class EnrollmentFailure:
    activity_id: ActivityId
    reason: ErrorCode
    conflicts: tuple[ScheduleConflict, ...] = ()


@dataclass(frozen=True)
class BatchEnrollmentResult:
    """Per-activity breakdown of one batch; successes are never rolled back."""

    succeeded: tuple[Enrollment, ...]
    failed: tuple[EnrollmentFailure, ...]

    @property
    def success(self) -> bool:
        return len(self.succeeded) > 0

    @property
    def complete(self) -> bool:
        return self.success and not self.failed

    @property
    def partial(self) -> bool:
        return self.success and bool(self.failed)


@dataclass(frozen=True)
class AttendanceResult:
    status: AttendanceStatus
    enrollment: Enrollment | None = None

    @property
    def ok(self) -> bool:
        return self.status is AttendanceStatus.OK
