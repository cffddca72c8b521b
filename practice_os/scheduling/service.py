"""In-process scheduling facade used by the HTTP and CLI adapters."""

import logging
import threading
import weakref
from datetime import date
from typing import Optional

from practice_os.config import Settings, get_settings
from practice_os.scheduling.conflicts import classify, split_conflicts
from practice_os.scheduling.errors import (
    BookingRejectedError,
    InvalidRequestError,
    RetryableConflictError,
)
from practice_os.scheduling.models import (
    BookedAppointment,
    BookingResult,
    ClassifierRules,
    Conflict,
    Interval,
    ScoreReport,
    TimeSlot,
)
from practice_os.scheduling.scorer import HeuristicScorer, ScheduleScorer
from practice_os.scheduling.slots import generate_slots, suggest_alternatives
from practice_os.scheduling.store import AppointmentStore

logger = logging.getLogger(__name__)


class SchedulingService:
    """Checks conflicts, lists slots, scores days and commits bookings.

    All engine calls run against a fresh snapshot from *store*; nothing is
    cached between calls. Commits are serialized per ``(provider_id, date)``
    and re-validated by the store inside its own critical section.
    """

    def __init__(
        self,
        store: AppointmentStore,
        scorer: Optional[ScheduleScorer] = None,
        rules: Optional[ClassifierRules] = None,
        settings: Optional[Settings] = None,
    ) -> None:
        self.store = store
        self.settings = settings or get_settings()
        self.scorer: ScheduleScorer = scorer or HeuristicScorer(
            low_utilization_percent=self.settings.low_utilization_percent,
            high_utilization_percent=self.settings.high_utilization_percent,
            idle_gap_minutes=self.settings.idle_gap_minutes,
        )
        self.rules = rules or ClassifierRules(
            back_to_back_is_conflict=self.settings.back_to_back_is_conflict,
            min_buffer_minutes=self.settings.min_buffer_minutes,
        )
        self._registry_lock = threading.Lock()
        # Entries disappear once no commit holds or waits on the lock.
        self._commit_locks: "weakref.WeakValueDictionary[tuple[str, date], threading.Lock]" = (
            weakref.WeakValueDictionary()
        )

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def check_conflicts(
        self,
        candidate: Interval,
        provider_id: str,
        day: date,
        *,
        rules: Optional[ClassifierRules] = None,
        exclude_appointment_id: Optional[str] = None,
    ) -> list[Conflict]:
        """Classify *candidate* against the provider's current bookings.

        An empty result means the candidate is safe to book.
        """
        if candidate.date != day:
            raise InvalidRequestError(
                f"Candidate is on {candidate.date}, conflict check requested for {day}"
            )
        existing = self.store.load_appointments(provider_id, day)
        return classify(
            candidate,
            existing,
            rules or self.rules,
            exclude_appointment_id=exclude_appointment_id,
        )

    def list_available_slots(
        self,
        provider_id: str,
        day: date,
        duration_minutes: int,
        granularity_minutes: Optional[int] = None,
    ) -> list[TimeSlot]:
        """Grid of candidate slots for the provider's working windows on *day*."""
        if granularity_minutes is None:
            granularity_minutes = self.settings.default_granularity_minutes
        schedule = self.store.load_provider_schedule(provider_id, day)
        existing = self.store.load_appointments(provider_id, day)
        return generate_slots(
            schedule, existing, duration_minutes, granularity_minutes, self.rules
        )

    def get_schedule_score(self, provider_id: str, day: date) -> ScoreReport:
        """Advisory utilization report; never used to gate a booking."""
        schedule = self.store.load_provider_schedule(provider_id, day)
        appointments = self.store.load_appointments(provider_id, day)
        return self.scorer.score(appointments, schedule)

    def suggest_alternatives(
        self,
        candidate: Interval,
        provider_id: str,
        *,
        limit: Optional[int] = None,
        exclude_appointment_id: Optional[str] = None,
    ) -> list[TimeSlot]:
        """Nearest open slots of the candidate's length on the candidate's date."""
        if limit is None:
            limit = self.settings.alternative_slot_limit
        day = candidate.date
        schedule = self.store.load_provider_schedule(provider_id, day)
        existing = [
            appt
            for appt in self.store.load_appointments(provider_id, day)
            if appt.id != exclude_appointment_id
        ]
        return suggest_alternatives(
            candidate,
            schedule,
            existing,
            limit=limit,
            granularity_minutes=self.settings.default_granularity_minutes,
            rules=self.rules,
        )

    # ------------------------------------------------------------------
    # Commit
    # ------------------------------------------------------------------

    def _commit_lock(self, provider_id: str, day: date) -> threading.Lock:
        with self._registry_lock:
            lock = self._commit_locks.get((provider_id, day))
            if lock is None:
                lock = threading.Lock()
                self._commit_locks[(provider_id, day)] = lock
            return lock

    def book_appointment(
        self,
        appointment: BookedAppointment,
        *,
        rules: Optional[ClassifierRules] = None,
    ) -> BookingResult:
        """Validate and commit *appointment*.

        Overlaps reject the booking; back-to-back and buffer conflicts are
        returned as warnings.

        Raises:
            BookingRejectedError: the candidate overlaps an active booking.
            RetryableConflictError: an overlap appeared between the check and
                the commit.
        """
        day = appointment.interval.date
        conflicts = self.check_conflicts(
            appointment.interval,
            appointment.provider_id,
            day,
            rules=rules,
            exclude_appointment_id=appointment.id,
        )
        blocking, warnings = split_conflicts(conflicts)
        if blocking and appointment.is_active:
            raise BookingRejectedError(
                f"Appointment {appointment.id} overlaps {len(blocking)} existing booking(s)",
                blocking,
                self.suggest_alternatives(
                    appointment.interval,
                    appointment.provider_id,
                    exclude_appointment_id=appointment.id,
                ),
            )

        with self._commit_lock(appointment.provider_id, day):
            stored = self.store.insert_if_clear(appointment)

        logger.info(
            f"Booked {stored.id} for provider {stored.provider_id} "
            f"{day} {stored.interval.label} ({len(warnings)} warning(s))"
        )
        return BookingResult(appointment=stored, warnings=warnings)

    def book_with_retry(
        self,
        appointment: BookedAppointment,
        *,
        retries: int = 1,
        rules: Optional[ClassifierRules] = None,
    ) -> BookingResult:
        """``book_appointment`` that re-checks a fresh snapshot after a race."""
        attempt = 0
        while True:
            try:
                return self.book_appointment(appointment, rules=rules)
            except RetryableConflictError:
                if attempt >= retries:
                    raise
                attempt += 1
                logger.warning(
                    f"Retrying booking {appointment.id} after concurrent commit "
                    f"(attempt {attempt}/{retries})"
                )
