"""Django ORM implementation of the EnrollmentStore."""

import functools
import logging
from collections.abc import Callable, Iterable
from contextlib import AbstractContextManager
from datetime import datetime
from typing import ParamSpec, TypeVar

from django.db import IntegrityError, InterfaceError, OperationalError, transaction
from django.db.models import F, Q

from enrollments import models
from enrollments.domain import (
    Activity,
    ActivityId,
    ActivityKind,
    AttendanceToken,
    Capacity,
    CounterState,
    Enrollment,
    EnrollmentId,
    NewEnrollment,
    StudentId,
)
from enrollments.domain.errors import AlreadyEnrolledError, StoreUnavailableError
from enrollments.stores.interfaces import EnrollmentStore

logger = logging.getLogger(__name__)

P = ParamSpec("P")
R = TypeVar("R")


def _translate_db_errors(method: Callable[P, R]) -> Callable[P, R]:
    """Turn connection-level database failures into StoreUnavailableError."""

    @functools.wraps(method)
    def wrapper(*args: P.args, **kwargs: P.kwargs) -> R:
        try:
            return method(*args, **kwargs)
        except (OperationalError, InterfaceError) as exc:
            logger.warning("Store operation %s failed: %s", method.__name__, exc)
            raise StoreUnavailableError(method.__name__) from exc

    return wrapper


def _to_activity(row: models.Activity) -> Activity:
    return Activity(
        id=ActivityId(row.id),
        title=row.title,
        kind=ActivityKind(row.kind),
        location=row.location,
        starts_at=row.starts_at,
        ends_at=row.ends_at,
        capacity=Capacity(row.capacity) if row.capacity is not None else None,
        published=row.published,
        active=row.is_active,
        enrolled_count=row.enrolled_count,
    )


def _to_enrollment(row: models.Enrollment) -> Enrollment:
    return Enrollment(
        id=EnrollmentId(row.id),
        student_id=StudentId(row.student_id),
        activity_id=ActivityId(row.activity_id),
        created_at=row.created_at,
        seat_number=row.seat_number,
        attendance_token=AttendanceToken(row.attendance_token),
        attended=row.attended,
        attended_at=row.attended_at,
    )


class DjangoEnrollmentStore(EnrollmentStore):
    """Database-backed enrollment store using Django ORM."""

    def atomic(self) -> AbstractContextManager[None]:
        return transaction.atomic()

    @_translate_db_errors
    def list_activities(self, published_only: bool = True) -> list[Activity]:
        queryset = models.Activity.objects.order_by("starts_at", "id")
        if published_only:
            queryset = queryset.filter(published=True)
        return [_to_activity(row) for row in queryset]

    @_translate_db_errors
    def get_activity(self, activity_id: ActivityId) -> Activity | None:
        row = models.Activity.objects.filter(pk=activity_id.value).first()
        return _to_activity(row) if row else None

    @_translate_db_errors
    def get_activities(self, activity_ids: Iterable[ActivityId]) -> dict[ActivityId, Activity]:
        keys = [activity_id.value for activity_id in activity_ids]
        rows = models.Activity.objects.filter(pk__in=keys)
        return {ActivityId(row.id): _to_activity(row) for row in rows}

    @_translate_db_errors
    def get_student_enrollments(self, student_id: StudentId) -> list[Enrollment]:
        rows = models.Enrollment.objects.filter(student_id=student_id.value).order_by(
            "created_at"
        )
        return [_to_enrollment(row) for row in rows]

    @_translate_db_errors
    def increment_if_below_capacity(self, activity_id: ActivityId) -> CounterState | None:
        with transaction.atomic():
            # The conditional UPDATE is the compare-and-increment; the row lock
            # it takes is held until the surrounding transaction commits.
            updated = (
                models.Activity.objects.filter(pk=activity_id.value)
                .filter(Q(capacity__isnull=True) | Q(enrolled_count__lt=F("capacity")))
                .update(
                    enrolled_count=F("enrolled_count") + 1,
                    seat_sequence=F("seat_sequence") + 1,
                )
            )
            if not updated:
                return None
            counters = models.Activity.objects.values("enrolled_count", "seat_sequence").get(
                pk=activity_id.value
            )
        return CounterState(
            enrolled_count=counters["enrolled_count"],
            seat_sequence=counters["seat_sequence"],
        )

    @_translate_db_errors
    def create_enrollment(self, record: NewEnrollment) -> Enrollment:
        try:
            # Savepoint so the enclosing transaction stays usable after a violation.
            with transaction.atomic():
                row = models.Enrollment.objects.create(
                    student_id=record.student_id.value,
                    activity_id=record.activity_id.value,
                    created_at=record.created_at,
                    seat_number=record.seat_number,
                    attendance_token=record.attendance_token.value,
                )
        except IntegrityError:
            held = models.Enrollment.objects.filter(
                activity_id=record.activity_id.value, student_id=record.student_id.value
            ).exists()
            if held:
                raise AlreadyEnrolledError(
                    record.activity_id.value, record.student_id.value
                ) from None
            raise
        return _to_enrollment(row)

    @_translate_db_errors
    def get_enrollment(self, enrollment_id: EnrollmentId) -> Enrollment | None:
        row = models.Enrollment.objects.filter(pk=enrollment_id.value).first()
        return _to_enrollment(row) if row else None

    @_translate_db_errors
    def get_enrollment_by_token(self, token: AttendanceToken) -> Enrollment | None:
        row = models.Enrollment.objects.filter(attendance_token=token.value).first()
        return _to_enrollment(row) if row else None

    @_translate_db_errors
    def set_attended(self, token: AttendanceToken, attended_at: datetime) -> bool:
        updated = models.Enrollment.objects.filter(
            attendance_token=token.value, attended=False
        ).update(attended=True, attended_at=attended_at)
        return updated == 1

    @_translate_db_errors
    def delete_enrollment(self, enrollment_id: EnrollmentId) -> bool:
        with transaction.atomic():
            row = (
                models.Enrollment.objects.select_for_update()
                .filter(pk=enrollment_id.value)
                .first()
            )
            if row is None:
                return False
            activity_id = row.activity_id
            row.delete()
            models.Activity.objects.filter(pk=activity_id, enrolled_count__gt=0).update(
                enrolled_count=F("enrolled_count") - 1
            )
        return True
