"""Conflict classification between a candidate interval and existing bookings.

Each active booking on the candidate's date yields at most one entry:

  overlap           -> severity high, gap 0
  touching (gap 0)  -> back_to_back, medium (only if the rules say so)
  0 < gap < buffer  -> buffer_violation, low
  otherwise         -> nothing

Results are ordered by severity (high first), then by the booking's start
minute, then by booking id, so the output never depends on input order.
"""

import logging
from typing import Iterable, Optional

from practice_os.scheduling.intervals import gap_minutes, overlaps
from practice_os.scheduling.models import (
    BookedAppointment,
    ClassifierRules,
    Conflict,
    ConflictKind,
    Interval,
    Severity,
)

logger = logging.getLogger(__name__)


def _classify_pair(
    candidate: Interval,
    appointment: BookedAppointment,
    rules: ClassifierRules,
) -> Optional[Conflict]:
    if overlaps(candidate, appointment.interval):
        return Conflict(
            with_appointment_id=appointment.id,
            kind=ConflictKind.OVERLAP,
            severity=Severity.HIGH,
            gap_minutes=0,
        )

    gap = gap_minutes(candidate, appointment.interval)
    if gap == 0 and rules.back_to_back_is_conflict:
        return Conflict(
            with_appointment_id=appointment.id,
            kind=ConflictKind.BACK_TO_BACK,
            severity=Severity.MEDIUM,
            gap_minutes=0,
        )
    if 0 < gap < rules.min_buffer_minutes:
        return Conflict(
            with_appointment_id=appointment.id,
            kind=ConflictKind.BUFFER_VIOLATION,
            severity=Severity.LOW,
            gap_minutes=gap,
        )
    return None


def classify(
    candidate: Interval,
    existing: Iterable[BookedAppointment],
    rules: Optional[ClassifierRules] = None,
    *,
    exclude_appointment_id: Optional[str] = None,
) -> list[Conflict]:
    """Classify how *candidate* collides with each existing booking.

    Args:
        candidate: Interval being validated.
        existing: Snapshot of the provider's bookings. Inactive statuses and
            bookings on other dates are ignored.
        rules: Classifier thresholds (defaults to ``ClassifierRules()``).
        exclude_appointment_id: Booking to skip, used when re-validating an
            edit of that same booking.

    Returns:
        Conflicts sorted by severity descending, then booking start ascending.
    """
    rules = rules or ClassifierRules()

    found: list[tuple[Conflict, int]] = []
    for appointment in existing:
        if not appointment.is_active:
            continue
        if appointment.interval.date != candidate.date:
            continue
        if exclude_appointment_id is not None and appointment.id == exclude_appointment_id:
            continue
        conflict = _classify_pair(candidate, appointment, rules)
        if conflict is not None:
            found.append((conflict, appointment.interval.start_minute))

    found.sort(key=lambda item: (-item[0].severity.rank, item[1], item[0].with_appointment_id))
    conflicts = [conflict for conflict, _ in found]

    if conflicts:
        logger.debug(
            f"Candidate {candidate.date} {candidate.label}: {len(conflicts)} conflict(s)"
        )
    return conflicts


def has_blocking_conflict(conflicts: Iterable[Conflict]) -> bool:
    """True if any conflict is a hard overlap."""
    return any(c.kind == ConflictKind.OVERLAP for c in conflicts)


def split_conflicts(conflicts: Iterable[Conflict]) -> tuple[list[Conflict], list[Conflict]]:
    """Split *conflicts* into (blocking overlaps, soft warnings)."""
    blocking: list[Conflict] = []
    soft: list[Conflict] = []
    for conflict in conflicts:
        (blocking if conflict.kind == ConflictKind.OVERLAP else soft).append(conflict)
    return blocking, soft
