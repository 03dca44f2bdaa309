"""Pytest configuration and shared fixtures."""

from datetime import UTC, datetime, timedelta

import pytest
from rest_framework.test import APIClient

from enrollments import models
from enrollments.domain import Activity, ActivityId, ActivityKind, Capacity
from enrollments.services.enrollment_service import EnrollmentService
from enrollments.stores.memory_store import InMemoryEnrollmentStore

EVENT_DAY = datetime(2025, 3, 15, 9, 0, tzinfo=UTC)
FIXED_NOW = datetime(2025, 3, 1, 12, 0, tzinfo=UTC)


@pytest.fixture
def api_client() -> APIClient:
    return APIClient()


@pytest.fixture(autouse=True)
def clear_cache():
    from django.core.cache import cache
    cache.clear()
    yield
    cache.clear()


@pytest.fixture
def activity_factory():
    """Build domain activities; times are offsets in hours from 09:00 on event day."""

    def build(
        activity_id: str = "intro-react",
        *,
        title: str | None = None,
        location: str = "Aula 101",
        start: float = 0,
        end: float = 2,
        capacity: int | None = 2,
        enrolled: int = 0,
        published: bool = True,
        active: bool = True,
        kind: ActivityKind = ActivityKind.WORKSHOP,
    ) -> Activity:
        return Activity(
            id=ActivityId(activity_id),
            title=title or activity_id.replace("-", " ").title(),
            kind=kind,
            location=location,
            starts_at=EVENT_DAY + timedelta(hours=start),
            ends_at=EVENT_DAY + timedelta(hours=end),
            capacity=Capacity(capacity) if capacity is not None else None,
            published=published,
            active=active,
            enrolled_count=enrolled,
        )

    return build


@pytest.fixture
def store() -> InMemoryEnrollmentStore:
    return InMemoryEnrollmentStore()


@pytest.fixture
def clock():
    """Controllable clock; set ``clock.now`` to move time."""

    class Clock:
        now = FIXED_NOW

        def __call__(self) -> datetime:
            return self.now

    return Clock()


@pytest.fixture
def service(store: InMemoryEnrollmentStore, clock) -> EnrollmentService:
    return EnrollmentService(store, clock=clock)


@pytest.fixture
def orm_activity():
    """Create Activity rows; times are offsets in hours from 09:00 on event day."""

    def create(
        activity_id: str = "intro-react",
        *,
        title: str = "Intro to React",
        location: str = "Aula 101",
        start: float = 0,
        end: float = 2,
        capacity: int | None = 2,
        published: bool = True,
        is_active: bool = True,
    ) -> models.Activity:
        return models.Activity.objects.create(
            id=activity_id,
            title=title,
            kind=models.Activity.Kind.WORKSHOP,
            location=location,
            starts_at=EVENT_DAY + timedelta(hours=start),
            ends_at=EVENT_DAY + timedelta(hours=end),
            capacity=capacity,
            published=published,
            is_active=is_active,
        )

    return create
