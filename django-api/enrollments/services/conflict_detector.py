"""Schedule conflict detection over a student's candidate set.

Pure computation; no store access. The candidate set is a handful of
activities, so every unordered pair is compared directly.
"""

from collections import Counter
from collections.abc import Sequence
from itertools import combinations

from enrollments.domain import ScheduleConflict, ScheduledWindow
from enrollments.domain.errors import DuplicateActivityError


class ScheduleConflictDetector:
    """Finds every overlapping pair among tagged time windows."""

    def find_conflicts(self, windows: Sequence[ScheduledWindow]) -> list[ScheduleConflict]:
        """Return all overlapping pairs, in input order.

        Raises:
            DuplicateActivityError: If an activity appears more than once.
        """
        counts = Counter(w.activity_id for w in windows)
        duplicates = sorted(a.value for a, n in counts.items() if n > 1)
        if duplicates:
            raise DuplicateActivityError(duplicates)

        conflicts = []
        for first, second in combinations(windows, 2):
            overlap = first.window.intersection(second.window)
            if overlap is not None:
                conflicts.append(ScheduleConflict(first=first, second=second, overlap=overlap))
        return conflicts
