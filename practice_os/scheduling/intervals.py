"""Overlap and gap primitives for half-open minute intervals."""

from practice_os.scheduling.errors import InvalidIntervalError
from practice_os.scheduling.models import Interval


def overlaps(a: Interval, b: Interval) -> bool:
    """Return True if *a* and *b* share at least one minute.

    Touching endpoints (``a.end == b.start``) do not overlap. Intervals on
    different dates never overlap.
    """
    if a.date != b.date:
        return False
    return a.start_minute < b.end_minute and b.start_minute < a.end_minute


def gap_minutes(a: Interval, b: Interval) -> int:
    """Minutes between the closer pair of endpoints of *a* and *b*.

    Overlapping intervals report 0; a negative gap is never returned.
    """
    if a.date != b.date:
        raise InvalidIntervalError(
            f"Cannot compare intervals on different dates: {a.date} and {b.date}"
        )
    if overlaps(a, b):
        return 0
    return max(0, max(a.start_minute, b.start_minute) - min(a.end_minute, b.end_minute))
