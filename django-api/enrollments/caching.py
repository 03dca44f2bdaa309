"""Cache keys for advisory reads, and their invalidation."""

from django.core.cache import cache
from django.core.exceptions import ValidationError
from django.core.validators import validate_slug

from enrollments.models import Activity

ACTIVITY_LIST_KEY = "activities:list"


def is_storable_activity_id(activity_id: str) -> bool:
    """Whether ``activity_id`` could name a stored activity, and so be a cache key part."""
    if len(activity_id) > Activity._meta.get_field("id").max_length:
        return False
    try:
        validate_slug(activity_id)
    except ValidationError:
        return False
    return True


def activity_detail_key(activity_id: str) -> str:
    return f"activities:{activity_id}"


def capacity_status_key(activity_id: str) -> str:
    return f"activities:{activity_id}:capacity"


def invalidate_activity(activity_id: str) -> None:
    cache.delete_many(
        [ACTIVITY_LIST_KEY, activity_detail_key(activity_id), capacity_status_key(activity_id)]
    )
