"""Domain primitives that enforce validity at creation time."""

import secrets
from dataclasses import dataclass
from datetime import datetime
from typing import Self
from uuid import UUID, uuid4


@dataclass(frozen=True)
class ActivityId:
    """Catalog identifier for an Activity (e.g. ``intro-react``)."""

    value: str

    def __post_init__(self) -> None:
        if not self.value or not self.value.strip():
            raise ValueError("Activity id cannot be blank")

    @classmethod
    def from_string(cls, value: str) -> Self:
        return cls(value=value.strip())

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True)
class StudentId:
    """Identifier of the enrolling student, owned by the auth system."""

    value: str

    def __post_init__(self) -> None:
        if not self.value or not self.value.strip():
            raise ValueError("Student id cannot be blank")

    @classmethod
    def from_string(cls, value: str) -> Self:
        return cls(value=value.strip())

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True)
class EnrollmentId:
    """Unique identifier for an Enrollment."""

    value: UUID

    @classmethod
    def new(cls) -> Self:
        return cls(value=uuid4())

    @classmethod
    def from_string(cls, value: str) -> Self:
        return cls(value=UUID(value))

    def __str__(self) -> str:
        return str(self.value)


@dataclass(frozen=True)
class AttendanceToken:
    """Opaque single-use token presented at the door (QR payload or typed)."""

    value: str

    def __post_init__(self) -> None:
        if not self.value:
            raise ValueError("Attendance token cannot be empty")

    @classmethod
    def generate(cls) -> Self:
        return cls(value=secrets.token_urlsafe(24))

    def masked(self) -> str:
        """Short form that is safe to write to logs."""
        return f"{self.value[:6]}…"

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True)
class Capacity:
    """Non-negative integer representing capacity."""

    value: int

    def __post_init__(self) -> None:
        if self.value < 0:
            raise ValueError("Capacity cannot be negative")


@dataclass(frozen=True)
class TimeWindow:
    """Half-open interval ``[start, end)`` during which an activity runs."""

    start: datetime
    end: datetime

    def __post_init__(self) -> None:
        if self.end <= self.start:
            raise ValueError("Time window must end after it starts")

    def overlaps(self, other: "TimeWindow") -> bool:
        # Back-to-back windows share only an endpoint and do not overlap.
        return self.start < other.end and other.start < self.end

    def intersection(self, other: "TimeWindow") -> "TimeWindow | None":
        if not self.overlaps(other):
            return None
        return TimeWindow(start=max(self.start, other.start), end=min(self.end, other.end))
