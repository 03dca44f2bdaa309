"""Capacity admission: the only code path that touches an activity's counter."""

import logging
from collections.abc import Iterable

from enrollments.domain import (
    Activity,
    ActivityId,
    AdmissionDecision,
    Capacity,
    CapacitySnapshot,
    CapacityStatus,
)
from enrollments.domain.errors import ErrorCode
from enrollments.stores.interfaces import EnrollmentStore

logger = logging.getLogger(__name__)

FEW_SPOTS_PERCENT = 70
NEARLY_FULL_PERCENT = 90


def classify_occupancy(current_count: int, capacity: Capacity | None) -> CapacityStatus:
    """Map an occupancy reading to its display class.

    Presentation only: admission is gated on ``current_count < capacity``.
    """
    if capacity is None:
        return CapacityStatus.UNLIMITED
    if current_count >= capacity.value:
        return CapacityStatus.FULL
    if current_count * 100 >= NEARLY_FULL_PERCENT * capacity.value:
        return CapacityStatus.NEARLY_FULL
    if current_count * 100 >= FEW_SPOTS_PERCENT * capacity.value:
        return CapacityStatus.FEW_SPOTS
    return CapacityStatus.AVAILABLE


def snapshot(activity: Activity) -> CapacitySnapshot:
    return CapacitySnapshot(
        activity_id=activity.id,
        status=classify_occupancy(activity.enrolled_count, activity.capacity),
        current_count=activity.enrolled_count,
        capacity=activity.capacity.value if activity.capacity else None,
    )


class CapacityController:
    """Decides whether one more enrollment fits into an activity."""

    def __init__(self, store: EnrollmentStore) -> None:
        self._store = store

    def try_admit(self, activity_id: ActivityId) -> AdmissionDecision:
        """Claim one seat, or explain why not.

        The published/active checks read the current catalog row; the seat
        itself is claimed with the store's atomic increment, so two callers
        racing for the last seat cannot both succeed. A rejected admission
        leaves the counter untouched.

        Raises:
            StoreUnavailableError: If the store cannot be reached.
        """
        activity = self._store.get_activity(activity_id)
        if activity is None:
            return AdmissionDecision(
                activity_id=activity_id,
                admitted=False,
                current_count=0,
                capacity=None,
                reason=ErrorCode.ACTIVITY_NOT_FOUND,
            )

        capacity = activity.capacity.value if activity.capacity else None
        if not activity.published:
            reason = ErrorCode.ACTIVITY_NOT_PUBLISHED
        elif not activity.active:
            reason = ErrorCode.ACTIVITY_INACTIVE
        else:
            reason = None
        if reason is not None:
            return AdmissionDecision(
                activity_id=activity_id,
                admitted=False,
                current_count=activity.enrolled_count,
                capacity=capacity,
                reason=reason,
            )

        counters = self._store.increment_if_below_capacity(activity_id)
        if counters is None:
            logger.info("Activity %s is full (%s/%s)", activity_id, activity.enrolled_count, capacity)
            return AdmissionDecision(
                activity_id=activity_id,
                admitted=False,
                current_count=capacity if capacity is not None else activity.enrolled_count,
                capacity=capacity,
                reason=ErrorCode.ACTIVITY_FULL,
            )

        return AdmissionDecision(
            activity_id=activity_id,
            admitted=True,
            current_count=counters.enrolled_count,
            capacity=capacity,
            seat_index=counters.seat_sequence,
        )

    def get_statuses(self, activity_ids: Iterable[ActivityId]) -> list[CapacitySnapshot]:
        """Advisory readings for the known activities, in request order."""
        activity_ids = list(dict.fromkeys(activity_ids))
        activities = self._store.get_activities(activity_ids)
        return [snapshot(activities[a]) for a in activity_ids if a in activities]
