"""Availability slot generation for a single provider-day."""

import logging
from typing import Iterable, Optional

from practice_os.scheduling.conflicts import classify, split_conflicts
from practice_os.scheduling.errors import InvalidRequestError
from practice_os.scheduling.models import (
    BookedAppointment,
    ClassifierRules,
    Interval,
    ProviderDaySchedule,
    TimeSlot,
)

logger = logging.getLogger(__name__)


def _validate_request(duration_minutes: int, granularity_minutes: int) -> None:
    if duration_minutes <= 0:
        raise InvalidRequestError(f"duration_minutes must be positive, got {duration_minutes}")
    if granularity_minutes <= 0:
        raise InvalidRequestError(
            f"granularity_minutes must be positive, got {granularity_minutes}"
        )


def generate_slots(
    schedule: ProviderDaySchedule,
    existing: Iterable[BookedAppointment],
    duration_minutes: int,
    granularity_minutes: int,
    rules: Optional[ClassifierRules] = None,
) -> list[TimeSlot]:
    """Walk each working window on a grid and mark every candidate slot.

    A slot is bookable unless it overlaps an active booking. Back-to-back and
    buffer conflicts never remove a slot; they are attached as
    ``soft_warnings`` for display.

    Grid points start at each window's start and advance by
    *granularity_minutes* while the whole slot still fits inside the window.
    Windows are walked in chronological order and slots never straddle two
    windows.

    Raises:
        InvalidRequestError: duration or granularity is not positive.
    """
    _validate_request(duration_minutes, granularity_minutes)
    rules = rules or ClassifierRules()

    snapshot = [
        appt for appt in existing
        if appt.is_active and appt.interval.date == schedule.date
    ]

    slots: list[TimeSlot] = []
    for window in schedule.sorted_windows():
        slot_start = window.start_minute
        while slot_start + duration_minutes <= window.end_minute:
            candidate = Interval(
                date=schedule.date,
                start_minute=slot_start,
                end_minute=slot_start + duration_minutes,
            )
            blocking, soft = split_conflicts(classify(candidate, snapshot, rules))
            slots.append(
                TimeSlot(
                    interval=candidate,
                    bookable=not blocking,
                    soft_warnings=soft,
                )
            )
            slot_start += granularity_minutes

    logger.debug(
        f"Provider {schedule.provider_id} {schedule.date}: "
        f"{len(slots)} slots, {sum(1 for s in slots if s.bookable)} bookable"
    )
    return slots


def bookable_only(slots: Iterable[TimeSlot]) -> list[TimeSlot]:
    """Filter *slots* down to those that can be offered for booking."""
    return [slot for slot in slots if slot.bookable]


def suggest_alternatives(
    candidate: Interval,
    schedule: ProviderDaySchedule,
    existing: Iterable[BookedAppointment],
    limit: int = 3,
    granularity_minutes: int = 15,
    rules: Optional[ClassifierRules] = None,
) -> list[TimeSlot]:
    """Nearest bookable slots with the same length as *candidate*.

    Slots are ranked by distance between their start and the candidate's
    start; ties go to the earlier slot. The candidate's own start is never
    offered back.

    Raises:
        InvalidRequestError: *limit* or *granularity_minutes* is not positive.
    """
    if limit <= 0:
        raise InvalidRequestError(f"limit must be positive, got {limit}")
    open_slots = [
        slot
        for slot in bookable_only(
            generate_slots(
                schedule,
                existing,
                candidate.duration_minutes,
                granularity_minutes,
                rules,
            )
        )
        if slot.interval.start_minute != candidate.start_minute
    ]
    open_slots.sort(
        key=lambda slot: (
            abs(slot.interval.start_minute - candidate.start_minute),
            slot.interval.start_minute,
        )
    )
    return open_slots[:limit]
