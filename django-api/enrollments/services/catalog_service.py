"""Catalog service - read-only access to activities.

Services:
- Depend only on interfaces (stores)
- Validate domain invariants
- Perform orchestration and error mapping
- Return domain models or domain errors
"""

from collections.abc import Iterable

from enrollments.domain import Activity, ActivityId
from enrollments.domain.errors import ActivityNotFoundError
from enrollments.stores.interfaces import EnrollmentStore


class CatalogService:
    """Service for activity catalog operations."""

    def __init__(self, store: EnrollmentStore) -> None:
        self._store = store

    def list_activities(self) -> list[Activity]:
        """Return published activities, earliest first."""
        return self._store.list_activities(published_only=True)

    def get_activity(self, activity_id: str) -> Activity:
        """Return an activity by ID.

        Raises:
            ActivityNotFoundError: If the id is blank or the activity does not exist.
        """
        try:
            key = ActivityId.from_string(activity_id)
        except ValueError:
            raise ActivityNotFoundError(activity_id) from None
        activity = self._store.get_activity(key)
        if activity is None:
            raise ActivityNotFoundError(activity_id)
        return activity

    def get_activities(self, activity_ids: Iterable[ActivityId]) -> dict[ActivityId, Activity]:
        """Return the known activities among ``activity_ids``."""
        activity_ids = list(activity_ids)
        if not activity_ids:
            return {}
        return self._store.get_activities(activity_ids)
