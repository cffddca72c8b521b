"""Exceptions raised by the scheduling engine."""

from __future__ import annotations

from datetime import date
from typing import TYPE_CHECKING, Optional

if TYPE_CHECKING:
    from practice_os.scheduling.models import Conflict, TimeSlot


class SchedulingError(Exception):
    """Base exception for scheduling errors."""

    pass


class InvalidIntervalError(SchedulingError):
    """Interval bounds are malformed or span a day boundary."""

    pass


class InvalidRequestError(SchedulingError):
    """Request parameters failed validation (duration, granularity, buffer)."""

    pass


class BookingRejectedError(SchedulingError):
    """Candidate overlaps an active booking and cannot be committed.

    ``alternatives`` holds the nearest open slots of the same length, if any.
    """

    def __init__(
        self,
        message: str,
        conflicts: list["Conflict"],
        alternatives: Optional[list["TimeSlot"]] = None,
    ):
        super().__init__(message)
        self.conflicts = conflicts
        self.alternatives = alternatives or []


class RetryableConflictError(SchedulingError):
    """An overlap appeared between the snapshot read and the commit.

    The caller should re-run the conflict check against a fresh snapshot and
    retry once before surfacing a hard failure.
    """

    def __init__(
        self,
        provider_id: str,
        day: date,
        conflicts: list["Conflict"],
    ):
        super().__init__(
            f"Concurrent booking detected for provider {provider_id} on {day.isoformat()}"
        )
        self.provider_id = provider_id
        self.date = day
        self.conflicts = conflicts
