"""Persistence boundary for the scheduling engine.

The engine only reads snapshots through ``AppointmentStore``. The in-memory
implementation backs the CLI, the HTTP adapter and the tests; a database-backed
store must give ``insert_if_clear`` the same transactional guarantee.
"""

import logging
import threading
from datetime import date
from typing import Optional, Protocol

from practice_os.scheduling.conflicts import classify, split_conflicts
from practice_os.scheduling.errors import BookingRejectedError, RetryableConflictError
from practice_os.scheduling.models import (
    AppointmentStatus,
    BookedAppointment,
    ClassifierRules,
    Conflict,
    ProviderDaySchedule,
)

logger = logging.getLogger(__name__)

_OVERLAP_ONLY = ClassifierRules(back_to_back_is_conflict=False, min_buffer_minutes=0)


class AppointmentStore(Protocol):
    """Read/commit contract the scheduling service depends on."""

    def load_appointments(self, provider_id: str, day: date) -> list[BookedAppointment]:
        ...

    def load_provider_schedule(self, provider_id: str, day: date) -> ProviderDaySchedule:
        ...

    def insert_if_clear(self, appointment: BookedAppointment) -> BookedAppointment:
        """Commit *appointment* unless an active booking now overlaps it.

        Raises:
            RetryableConflictError: an overlap appeared since the caller's
                snapshot was read.
        """
        ...


class InMemoryAppointmentStore:
    """Thread-safe dict-backed store keyed by ``(provider_id, date)``."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._appointments: dict[tuple[str, date], dict[str, BookedAppointment]] = {}
        self._schedules: dict[tuple[str, date], ProviderDaySchedule] = {}

    # ------------------------------------------------------------------
    # Seeding
    # ------------------------------------------------------------------

    def add_schedule(self, schedule: ProviderDaySchedule) -> None:
        with self._lock:
            self._schedules[(schedule.provider_id, schedule.date)] = schedule

    def add_appointment(self, appointment: BookedAppointment) -> None:
        """Store *appointment* unconditionally (seeding and imports)."""
        key = (appointment.provider_id, appointment.interval.date)
        with self._lock:
            self._appointments.setdefault(key, {})[appointment.id] = appointment

    def update_status(
        self, appointment_id: str, status: AppointmentStatus
    ) -> Optional[BookedAppointment]:
        """Change a booking's status; returns None for an unknown id.

        Raises:
            BookingRejectedError: reactivating the booking would overlap an
                active one.
        """
        with self._lock:
            for bucket in self._appointments.values():
                appt = bucket.get(appointment_id)
                if appt is not None:
                    updated = appt.model_copy(update={"status": status})
                    if updated.is_active and not appt.is_active:
                        blocking = self._overlaps_locked(updated, bucket)
                        if blocking:
                            raise BookingRejectedError(
                                f"Reactivating {appointment_id} would overlap "
                                f"{len(blocking)} active booking(s)",
                                blocking,
                            )
                    bucket[appointment_id] = updated
                    return updated
        return None

    @staticmethod
    def _overlaps_locked(
        appointment: BookedAppointment, bucket: dict[str, BookedAppointment]
    ) -> list[Conflict]:
        blocking, _ = split_conflicts(
            classify(
                appointment.interval,
                bucket.values(),
                _OVERLAP_ONLY,
                exclude_appointment_id=appointment.id,
            )
        )
        return blocking

    # ------------------------------------------------------------------
    # AppointmentStore
    # ------------------------------------------------------------------

    def load_appointments(self, provider_id: str, day: date) -> list[BookedAppointment]:
        with self._lock:
            bucket = self._appointments.get((provider_id, day), {})
            return sorted(
                bucket.values(),
                key=lambda a: (a.interval.start_minute, a.id),
            )

    def load_provider_schedule(self, provider_id: str, day: date) -> ProviderDaySchedule:
        with self._lock:
            schedule = self._schedules.get((provider_id, day))
        if schedule is None:
            return ProviderDaySchedule.unavailable(provider_id, day)
        return schedule

    def insert_if_clear(self, appointment: BookedAppointment) -> BookedAppointment:
        key = (appointment.provider_id, appointment.interval.date)
        with self._lock:
            bucket = self._appointments.setdefault(key, {})
            blocking = self._overlaps_locked(appointment, bucket) if appointment.is_active else []
            if blocking:
                logger.warning(
                    f"Overlap appeared at commit for provider {appointment.provider_id} "
                    f"{appointment.interval.date} {appointment.interval.label}"
                )
                raise RetryableConflictError(
                    appointment.provider_id, appointment.interval.date, blocking
                )
            for other in self._appointments.values():
                other.pop(appointment.id, None)
            bucket[appointment.id] = appointment
        return appointment
