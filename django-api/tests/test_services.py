"""Unit tests for EnrollmentService and CatalogService.

These test admission rules, partial-failure aggregation and error mapping
against the in-memory store.
Run with: pytest tests/test_services.py -v
"""

from datetime import timedelta

import pytest

from enrollments.conf import DEFAULTS
from enrollments.domain import ActivityId, AttendanceStatus, StudentId
from enrollments.domain.errors import (
    ActivityNotFoundError,
    EnrollmentNotFoundError,
    ErrorCode,
    InvalidEnrollmentRequestError,
    InvalidStudentIdError,
    StoreUnavailableError,
)
from enrollments.services.catalog_service import CatalogService
from enrollments.services.enrollment_service import EnrollmentService


def reasons(result) -> dict[str, ErrorCode]:
    return {f.activity_id.value: f.reason for f in result.failed}


def enrolled_ids(result) -> list[str]:
    return [e.activity_id.value for e in result.succeeded]


class TestEnrollBatch:
    """Tests for batch admission."""

    def test_intro_to_react_scenario(self, store, service, activity_factory):
        """Two students get sequential seats; the third finds the activity full."""
        store.add_activity(activity_factory("intro-react", title="Intro to React", capacity=2))

        first = service.enroll_batch("s1", ["intro-react"])
        assert enrolled_ids(first) == ["intro-react"]
        assert first.succeeded[0].seat_number == "Aula 101-001"
        assert first.succeeded[0].attended is False
        assert first.complete

        second = service.enroll_batch("s2", ["intro-react"])
        assert second.succeeded[0].seat_number == "Aula 101-002"
        assert store.get_activity(ActivityId("intro-react")).enrolled_count == 2

        third = service.enroll_batch("s3", ["intro-react"])
        assert not third.success
        assert reasons(third) == {"intro-react": ErrorCode.ACTIVITY_FULL}

    def test_partial_failure_is_not_rolled_back(self, store, service, activity_factory):
        """[A (capacity 1), B (capacity 0)] enrolls A and reports B full."""
        store.add_activity(activity_factory("a", capacity=1, start=0, end=1))
        store.add_activity(activity_factory("b", capacity=0, start=2, end=3))

        result = service.enroll_batch("s1", ["a", "b"])

        assert enrolled_ids(result) == ["a"]
        assert reasons(result) == {"b": ErrorCode.ACTIVITY_FULL}
        assert result.success
        assert result.partial
        assert not result.complete
        assert len(store.get_student_enrollments(StudentId("s1"))) == 1

    def test_overlapping_siblings_exclude_each_other(self, store, service, activity_factory):
        """X and Y overlap: both fail with SCHEDULE_CONFLICT naming the other."""
        store.add_activity(activity_factory("x", title="Workshop X", start=0, end=2))
        store.add_activity(activity_factory("y", title="Workshop Y", start=1, end=3))

        result = service.enroll_batch("s1", ["x", "y"])

        assert result.succeeded == ()
        assert reasons(result) == {
            "x": ErrorCode.SCHEDULE_CONFLICT,
            "y": ErrorCode.SCHEDULE_CONFLICT,
        }
        by_id = {f.activity_id.value: f for f in result.failed}
        assert by_id["x"].conflicts[0].second.title == "Workshop Y"
        assert by_id["y"].conflicts[0].second.title == "Workshop X"
        assert store.get_activity(ActivityId("x")).enrolled_count == 0

    def test_conflict_with_existing_enrollment(self, store, service, activity_factory):
        """A new activity overlapping a held one fails; the held one is untouched."""
        store.add_activity(activity_factory("held", title="Held Talk", start=0, end=2))
        store.add_activity(activity_factory("new", start=1, end=3))
        store.add_activity(activity_factory("later", start=5, end=6))
        service.enroll_batch("s1", ["held"])

        result = service.enroll_batch("s1", ["new", "later"])

        assert enrolled_ids(result) == ["later"]
        failure = result.failed[0]
        assert failure.reason is ErrorCode.SCHEDULE_CONFLICT
        assert failure.conflicts[0].second.title == "Held Talk"
        assert failure.conflicts[0].second.existing

    def test_back_to_back_activities_are_admitted(self, store, service, activity_factory):
        store.add_activity(activity_factory("morning", start=0, end=2))
        store.add_activity(activity_factory("noon", start=2, end=4))
        result = service.enroll_batch("s1", ["morning", "noon"])
        assert enrolled_ids(result) == ["morning", "noon"]

    def test_duplicate_ids_are_rejected_without_touching_siblings(
        self, store, service, activity_factory
    ):
        store.add_activity(activity_factory("a", start=0, end=1))
        store.add_activity(activity_factory("b", start=2, end=3))
        result = service.enroll_batch("s1", ["a", "b", "a"])
        assert enrolled_ids(result) == ["b"]
        assert reasons(result) == {"a": ErrorCode.DUPLICATE_REQUEST}

    def test_unknown_activity_is_not_found(self, store, service, activity_factory):
        store.add_activity(activity_factory("a"))
        result = service.enroll_batch("s1", ["ghost", "a"])
        assert enrolled_ids(result) == ["a"]
        assert reasons(result) == {"ghost": ErrorCode.NOT_FOUND}

    def test_already_enrolled(self, store, service, activity_factory):
        store.add_activity(activity_factory("a"))
        service.enroll_batch("s1", ["a"])
        result = service.enroll_batch("s1", ["a"])
        assert reasons(result) == {"a": ErrorCode.ALREADY_ENROLLED}
        assert store.get_activity(ActivityId("a")).enrolled_count == 1

    def test_double_submit_past_a_stale_read(self, store, service, activity_factory, monkeypatch):
        """A request that missed the first enrollment still gets a per-activity answer."""
        store.add_activity(activity_factory("a", start=0, end=1))
        store.add_activity(activity_factory("b", start=2, end=3))
        service.enroll_batch("s1", ["a"])
        monkeypatch.setattr(store, "get_student_enrollments", lambda student_id: [])

        result = service.enroll_batch("s1", ["a", "b"])

        assert enrolled_ids(result) == ["b"]
        assert reasons(result) == {"a": ErrorCode.ALREADY_ENROLLED}
        assert store.get_activity(ActivityId("a")).enrolled_count == 1

    def test_malformed_window_fails_only_that_activity(self, store, service, activity_factory):
        store.add_activity(activity_factory("broken", start=3, end=3))
        store.add_activity(activity_factory("fine", start=0, end=1))
        result = service.enroll_batch("s1", ["broken", "fine"])
        assert enrolled_ids(result) == ["fine"]
        assert reasons(result) == {"broken": ErrorCode.INVALID_TIME_WINDOW}

    def test_admission_preconditions(self, store, service, activity_factory):
        store.add_activity(activity_factory("draft", published=False, start=0, end=1))
        store.add_activity(activity_factory("paused", active=False, start=2, end=3))
        result = service.enroll_batch("s1", ["draft", "paused"])
        assert reasons(result) == {
            "draft": ErrorCode.ACTIVITY_NOT_PUBLISHED,
            "paused": ErrorCode.ACTIVITY_INACTIVE,
        }

    def test_seat_numbers_are_unique(self, store, service, activity_factory):
        """Three students in one activity get three distinct seats."""
        store.add_activity(activity_factory("lab", location="Lab 3", capacity=5))
        seats = [service.enroll_batch(s, ["lab"]).succeeded[0].seat_number for s in "abc"]
        assert seats == ["Lab 3-001", "Lab 3-002", "Lab 3-003"]

    def test_tokens_are_unique(self, store, service, activity_factory):
        store.add_activity(activity_factory("lab", capacity=None))
        tokens = {
            service.enroll_batch(f"s{i}", ["lab"]).succeeded[0].attendance_token
            for i in range(10)
        }
        assert len(tokens) == 10

    def test_results_are_ordered_by_activity_id(self, store, service, activity_factory):
        for offset, name in enumerate(["c", "a", "b"]):
            store.add_activity(activity_factory(name, start=offset * 2, end=offset * 2 + 1))
        result = service.enroll_batch("s1", ["c", "a", "b"])
        assert enrolled_ids(result) == ["a", "b", "c"]

    def test_enrollment_records_creation_time(self, store, service, clock, activity_factory):
        store.add_activity(activity_factory("a"))
        result = service.enroll_batch("s1", ["a"])
        assert result.succeeded[0].created_at == clock.now

    @pytest.mark.parametrize("activity_ids", [[], ["  "], "intro-react"])
    def test_malformed_request_is_rejected(self, service, activity_ids):
        with pytest.raises(InvalidEnrollmentRequestError):
            service.enroll_batch("s1", activity_ids)

    def test_too_many_activities_is_rejected(self, store):
        service = EnrollmentService(store, max_batch_size=2)
        with pytest.raises(InvalidEnrollmentRequestError):
            service.enroll_batch("s1", ["a", "b", "c"])

    def test_default_batch_limit_follows_engine_defaults(self, store):
        service = EnrollmentService(store)
        too_many = [f"a{i}" for i in range(DEFAULTS["MAX_ACTIVITIES_PER_REQUEST"] + 1)]
        with pytest.raises(InvalidEnrollmentRequestError):
            service.enroll_batch("s1", too_many)

    def test_blank_student_is_rejected(self, service):
        with pytest.raises(InvalidStudentIdError):
            service.enroll_batch("  ", ["a"])


class TestStoreFailures:
    """Infrastructure failures are reported per activity, never as full."""

    def test_unavailable_store_during_admission(
        self, store, service, activity_factory, monkeypatch
    ):
        for offset, name in enumerate(["a", "b", "c"]):
            store.add_activity(activity_factory(name, start=offset * 2, end=offset * 2 + 1))
        increment = store.increment_if_below_capacity

        def flaky(activity_id):
            if activity_id == ActivityId("b"):
                raise StoreUnavailableError("increment_if_below_capacity")
            return increment(activity_id)

        monkeypatch.setattr(store, "increment_if_below_capacity", flaky)
        result = service.enroll_batch("s1", ["a", "b", "c"])

        assert enrolled_ids(result) == ["a", "c"]
        assert reasons(result) == {"b": ErrorCode.STORE_UNAVAILABLE}
        assert store.get_activity(ActivityId("b")).enrolled_count == 0

    def test_failed_insert_releases_the_seat(self, store, service, activity_factory, monkeypatch):
        """The counter increment and the row insert commit together."""
        store.add_activity(activity_factory("a", capacity=1))

        def broken(record):
            raise StoreUnavailableError("create_enrollment")

        monkeypatch.setattr(store, "create_enrollment", broken)
        result = service.enroll_batch("s1", ["a"])

        assert reasons(result) == {"a": ErrorCode.STORE_UNAVAILABLE}
        assert store.get_activity(ActivityId("a")).enrolled_count == 0

    def test_unavailable_store_while_loading(self, store, service, activity_factory, monkeypatch):
        store.add_activity(activity_factory("a"))

        def down(student_id):
            raise StoreUnavailableError("get_student_enrollments")

        monkeypatch.setattr(store, "get_student_enrollments", down)
        result = service.enroll_batch("s1", ["a", "b"])
        assert reasons(result) == {
            "a": ErrorCode.STORE_UNAVAILABLE,
            "b": ErrorCode.STORE_UNAVAILABLE,
        }

    def test_abandoned_request_keeps_earlier_admissions(
        self, store, service, activity_factory, monkeypatch
    ):
        """A caller that goes away mid-batch leaves earlier activities enrolled."""
        store.add_activity(activity_factory("a", start=0, end=1))
        store.add_activity(activity_factory("b", start=2, end=3))
        create = store.create_enrollment

        class ClientDisconnected(Exception):
            pass

        def disconnect_on_b(record):
            if record.activity_id == ActivityId("b"):
                raise ClientDisconnected()
            return create(record)

        monkeypatch.setattr(store, "create_enrollment", disconnect_on_b)
        with pytest.raises(ClientDisconnected):
            service.enroll_batch("s1", ["a", "b"])

        held = store.get_student_enrollments(StudentId("s1"))
        assert [e.activity_id.value for e in held] == ["a"]
        assert store.get_activity(ActivityId("a")).enrolled_count == 1
        assert store.get_activity(ActivityId("b")).enrolled_count == 0


class TestConfirmAttendance:
    """Tests for single-use attendance tokens."""

    def test_token_is_honored_once(self, store, service, clock, activity_factory):
        store.add_activity(activity_factory("a"))
        token = service.enroll_batch("s1", ["a"]).succeeded[0].attendance_token.value

        first = service.confirm_attendance(token)
        assert first.status is AttendanceStatus.OK
        assert first.ok
        assert first.enrollment.attended
        assert first.enrollment.attended_at == clock.now
        first_seen = clock.now

        clock.now = clock.now + timedelta(hours=1)
        second = service.confirm_attendance(token)
        assert second.status is AttendanceStatus.ALREADY_ATTENDED
        assert not second.ok
        assert second.enrollment.attended_at == first_seen

    def test_manual_entry_is_trimmed(self, store, service, activity_factory):
        store.add_activity(activity_factory("a"))
        token = service.enroll_batch("s1", ["a"]).succeeded[0].attendance_token.value
        assert service.confirm_attendance(f"  {token}\n").ok

    @pytest.mark.parametrize("token", ["unknown-token", "", "   ", None])
    def test_unknown_token(self, service, token):
        result = service.confirm_attendance(token)
        assert result.status is AttendanceStatus.NOT_FOUND
        assert result.enrollment is None

    def test_unavailable_store(self, store, service, activity_factory, monkeypatch):
        store.add_activity(activity_factory("a"))
        token = service.enroll_batch("s1", ["a"]).succeeded[0].attendance_token.value

        def down(token, attended_at):
            raise StoreUnavailableError("set_attended")

        monkeypatch.setattr(store, "set_attended", down)
        result = service.confirm_attendance(token)
        assert result.status is AttendanceStatus.STORE_UNAVAILABLE


class TestCancelEnrollment:
    def test_cancellation_frees_capacity(self, store, service, activity_factory):
        store.add_activity(activity_factory("a", capacity=1))
        enrollment = service.enroll_batch("s1", ["a"]).succeeded[0]

        assert service.cancel_enrollment("s1", str(enrollment.id))
        assert store.get_activity(ActivityId("a")).enrolled_count == 0
        assert service.enroll_batch("s2", ["a"]).success

    def test_cancellation_is_idempotent(self, store, service, activity_factory):
        store.add_activity(activity_factory("a"))
        enrollment = service.enroll_batch("s1", ["a"]).succeeded[0]
        assert service.cancel_enrollment("s1", str(enrollment.id))
        assert not service.cancel_enrollment("s1", str(enrollment.id))
        assert store.get_activity(ActivityId("a")).enrolled_count == 0

    def test_seat_labels_are_not_reused(self, store, service, activity_factory):
        store.add_activity(activity_factory("a", capacity=3))
        seats = {s: service.enroll_batch(s, ["a"]).succeeded[0] for s in ("s1", "s2", "s3")}
        service.cancel_enrollment("s1", str(seats["s1"].id))

        newcomer = service.enroll_batch("s4", ["a"]).succeeded[0]
        held = {e.seat_number for e in (seats["s2"], seats["s3"])}
        assert newcomer.seat_number not in held
        assert newcomer.seat_number == "Aula 101-004"

    def test_other_students_enrollment_is_not_found(self, store, service, activity_factory):
        store.add_activity(activity_factory("a"))
        enrollment = service.enroll_batch("s1", ["a"]).succeeded[0]
        with pytest.raises(EnrollmentNotFoundError):
            service.cancel_enrollment("intruder", str(enrollment.id))
        assert store.get_activity(ActivityId("a")).enrolled_count == 1

    def test_malformed_enrollment_id(self, service):
        with pytest.raises(EnrollmentNotFoundError):
            service.cancel_enrollment("s1", "not-a-uuid")


class TestValidateConflicts:
    def test_sibling_conflict_reported_once(self, store, service, activity_factory):
        store.add_activity(activity_factory("x", start=0, end=2))
        store.add_activity(activity_factory("y", start=1, end=3))
        report = service.validate_conflicts(["x", "y"])
        assert report.has_conflicts
        assert len(report.conflicts) == 1
        assert report.conflicts[0].first.activity_id == ActivityId("x")
        assert store.get_activity(ActivityId("x")).enrolled_count == 0

    def test_includes_student_enrollments(self, store, service, activity_factory):
        store.add_activity(activity_factory("held", start=0, end=2))
        store.add_activity(activity_factory("new", start=1, end=3))
        service.enroll_batch("s1", ["held"])

        report = service.validate_conflicts(["new"], student_id="s1")

        assert report.has_conflicts
        conflict = report.conflicts[0]
        assert conflict.first.activity_id == ActivityId("new")
        assert conflict.second.activity_id == ActivityId("held")
        assert conflict.second.existing

    def test_without_student_only_requested_are_screened(self, store, service, activity_factory):
        store.add_activity(activity_factory("held", start=0, end=2))
        store.add_activity(activity_factory("new", start=1, end=3))
        service.enroll_batch("s1", ["held"])
        assert not service.validate_conflicts(["new"]).has_conflicts

    def test_unknown_ids_are_listed(self, store, service, activity_factory):
        store.add_activity(activity_factory("a"))
        report = service.validate_conflicts(["a", "ghost"])
        assert not report.has_conflicts
        assert report.unknown_activity_ids == (ActivityId("ghost"),)
        assert report.duplicate_activity_ids == ()

    def test_repeated_ids_are_listed_separately(self, store, service, activity_factory):
        """A repeated id is reported as such, not as an overlap with itself."""
        store.add_activity(activity_factory("a", start=0, end=2))
        store.add_activity(activity_factory("b", start=1, end=3))
        report = service.validate_conflicts(["a", "b", "a"])
        assert report.duplicate_activity_ids == (ActivityId("a"),)
        assert not report.has_conflicts
        assert service.enroll_batch("s1", ["a", "b", "a"]).failed[0].reason is (
            ErrorCode.DUPLICATE_REQUEST
        )


class TestStudentEnrollments:
    def test_list_and_count(self, store, service, activity_factory):
        store.add_activity(activity_factory("a", start=0, end=1))
        store.add_activity(activity_factory("b", start=2, end=3))
        service.enroll_batch("s1", ["a", "b"])
        assert [e.activity_id.value for e in service.list_enrollments("s1")] == ["a", "b"]
        assert service.count_enrollments("s1") == 2
        assert service.count_enrollments("s2") == 0


class TestCatalogService:
    """Tests for CatalogService."""

    def test_get_activity_blank_id_raises_error(self, store):
        with pytest.raises(ActivityNotFoundError):
            CatalogService(store).get_activity("  ")

    def test_get_activity_not_found_raises_error(self, store):
        """get_activity raises ActivityNotFoundError when store returns None."""
        with pytest.raises(ActivityNotFoundError):
            CatalogService(store).get_activity("missing")

    def test_list_activities_hides_unpublished(self, store, activity_factory):
        store.add_activity(activity_factory("late", start=4, end=5))
        store.add_activity(activity_factory("early", start=0, end=1))
        store.add_activity(activity_factory("draft", published=False))
        listed = CatalogService(store).list_activities()
        assert [a.id.value for a in listed] == ["early", "late"]
