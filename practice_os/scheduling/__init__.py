"""Appointment scheduling engine for Practice OS."""

from practice_os.scheduling.conflicts import classify, has_blocking_conflict
from practice_os.scheduling.errors import (
    BookingRejectedError,
    InvalidIntervalError,
    InvalidRequestError,
    RetryableConflictError,
    SchedulingError,
)
from practice_os.scheduling.intervals import gap_minutes, overlaps
from practice_os.scheduling.models import (
    AppointmentStatus,
    BookedAppointment,
    BookingResult,
    ClassifierRules,
    Conflict,
    ConflictKind,
    Interval,
    ProviderDaySchedule,
    ScoreReport,
    Severity,
    TimeSlot,
)
from practice_os.scheduling.scorer import HeuristicScorer, ScheduleScorer
from practice_os.scheduling.service import SchedulingService
from practice_os.scheduling.slots import bookable_only, generate_slots, suggest_alternatives
from practice_os.scheduling.store import AppointmentStore, InMemoryAppointmentStore

__all__ = [
    "AppointmentStatus",
    "AppointmentStore",
    "BookedAppointment",
    "BookingRejectedError",
    "BookingResult",
    "ClassifierRules",
    "Conflict",
    "ConflictKind",
    "HeuristicScorer",
    "InMemoryAppointmentStore",
    "Interval",
    "InvalidIntervalError",
    "InvalidRequestError",
    "ProviderDaySchedule",
    "RetryableConflictError",
    "ScheduleScorer",
    "SchedulingError",
    "SchedulingService",
    "ScoreReport",
    "Severity",
    "TimeSlot",
    "bookable_only",
    "classify",
    "gap_minutes",
    "generate_slots",
    "has_blocking_conflict",
    "overlaps",
    "suggest_alternatives",
]
