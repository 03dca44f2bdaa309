"""Tests for cache behavior.

Run with: pytest tests/test_cache.py -v
"""

import pytest
from django.core.cache import cache
from rest_framework.test import APIClient

from enrollments import models
from enrollments.caching import ACTIVITY_LIST_KEY, activity_detail_key, capacity_status_key


def capacity_of(client: APIClient, activity_id: str) -> dict:
    return client.get("/api/activities/capacity-status", {"activityIds": activity_id}).json()[0]


@pytest.mark.django_db
class TestCacheInvalidation:
    """Tests for cache invalidation on model changes."""

    def test_activity_save_invalidates_list_cache(self, api_client: APIClient, orm_activity):
        """Saving an activity invalidates the activities:list cache key."""
        activity = orm_activity("talk", title="Old title")
        api_client.get("/api/activities")
        assert cache.get(ACTIVITY_LIST_KEY) is not None

        activity.title = "New title"
        activity.save()

        assert cache.get(ACTIVITY_LIST_KEY) is None
        assert api_client.get("/api/activities").json()[0]["title"] == "New title"

    def test_activity_save_invalidates_detail_cache(self, api_client: APIClient, orm_activity):
        """Saving an activity invalidates the activities:{id} cache key."""
        activity = orm_activity("talk")
        api_client.get("/api/activities/talk")
        assert cache.get(activity_detail_key("talk")) is not None

        activity.location = "Aula 202"
        activity.save()

        assert cache.get(activity_detail_key("talk")) is None

    def test_capacity_reading_is_cached(self, api_client: APIClient, orm_activity):
        """Counter updates without a signal leave the cached reading in place."""
        orm_activity("talk", capacity=10)
        assert capacity_of(api_client, "talk")["currentCount"] == 0

        models.Activity.objects.filter(pk="talk").update(enrolled_count=5)

        assert capacity_of(api_client, "talk")["currentCount"] == 0
        assert cache.get(capacity_status_key("talk"))["currentCount"] == 0

    def test_enrollment_invalidates_capacity_reading(self, api_client: APIClient, orm_activity):
        """Taking a seat invalidates the activities:{id}:capacity cache key."""
        orm_activity("talk", capacity=10)
        capacity_of(api_client, "talk")

        api_client.post(
            "/api/enrollments", {"studentId": "s1", "activityIds": ["talk"]}, format="json"
        )

        assert cache.get(capacity_status_key("talk")) is None
        assert capacity_of(api_client, "talk")["currentCount"] == 1

    def test_cancellation_invalidates_capacity_reading(self, api_client: APIClient, orm_activity):
        """Freeing a seat invalidates the capacity reading."""
        orm_activity("talk", capacity=10)
        created = api_client.post(
            "/api/enrollments", {"studentId": "s1", "activityIds": ["talk"]}, format="json"
        ).json()["succeeded"][0]
        assert capacity_of(api_client, "talk")["currentCount"] == 1

        api_client.delete(f"/api/students/s1/enrollments/{created['id']}")

        assert capacity_of(api_client, "talk")["currentCount"] == 0
