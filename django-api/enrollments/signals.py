"""Django signals for cache invalidation.

Counter updates are done with queryset ``update()`` and send no signal; the
Enrollment insert/delete that accompanies every counter change does.
"""

from django.db.models.signals import post_delete, post_save
from django.dispatch import receiver

from enrollments.caching import invalidate_activity
from enrollments.models import Activity, Enrollment


@receiver([post_save, post_delete], sender=Activity)
def invalidate_activity_cache(sender, instance, **kwargs):
    """Invalidate caches when an activity is saved or deleted."""
    invalidate_activity(instance.pk)


@receiver([post_save, post_delete], sender=Enrollment)
def invalidate_enrollment_cache(sender, instance, **kwargs):
    """Invalidate the activity's capacity reading when a seat is taken or freed."""
    invalidate_activity(instance.activity_id)
