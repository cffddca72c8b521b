"""Advisory schedule scoring.

Scores describe how well a provider-day is packed. They are never used to
gate a booking and the scorer never reorders or edits appointments.
"""

import logging
from typing import Optional, Protocol, Sequence

from practice_os.scheduling.conflicts import classify
from practice_os.scheduling.models import (
    BookedAppointment,
    ClassifierRules,
    Interval,
    ProviderDaySchedule,
    ScoreReport,
    Severity,
)

logger = logging.getLogger(__name__)


class ScheduleScorer(Protocol):
    """Pluggable scorer for a provider's day."""

    def score(
        self,
        day_appointments: Sequence[BookedAppointment],
        schedule: ProviderDaySchedule,
    ) -> ScoreReport:
        ...


def _window_for(appointment: BookedAppointment, windows: list[Interval]) -> Optional[int]:
    """Index of the working window containing the appointment's start minute."""
    start = appointment.interval.start_minute
    for idx, window in enumerate(windows):
        if window.start_minute <= start < window.end_minute:
            return idx
    return None


class HeuristicScorer:
    """Deterministic utilization / gap / overlap scorer.

    Thresholds default to the application settings when not given.
    """

    def __init__(
        self,
        low_utilization_percent: Optional[float] = None,
        high_utilization_percent: Optional[float] = None,
        idle_gap_minutes: Optional[int] = None,
    ) -> None:
        from practice_os.config import get_settings

        settings = get_settings()
        self.low_utilization_percent = (
            low_utilization_percent
            if low_utilization_percent is not None
            else settings.low_utilization_percent
        )
        self.high_utilization_percent = (
            high_utilization_percent
            if high_utilization_percent is not None
            else settings.high_utilization_percent
        )
        self.idle_gap_minutes = (
            idle_gap_minutes if idle_gap_minutes is not None else settings.idle_gap_minutes
        )

    # ------------------------------------------------------------------
    # Metrics
    # ------------------------------------------------------------------

    @staticmethod
    def utilization(
        appointments: Sequence[BookedAppointment], schedule: ProviderDaySchedule
    ) -> float:
        working = schedule.working_minutes
        if working == 0:
            return 0.0
        booked = sum(a.interval.duration_minutes for a in appointments)
        return 100.0 * booked / working

    @staticmethod
    def idle_gaps(
        appointments: Sequence[BookedAppointment], windows: list[Interval]
    ) -> int:
        """Sum of positive gaps between adjacent appointments inside each window."""
        by_window: dict[int, list[BookedAppointment]] = {}
        for appt in appointments:
            idx = _window_for(appt, windows)
            if idx is not None:
                by_window.setdefault(idx, []).append(appt)

        total = 0
        for members in by_window.values():
            ordered = sorted(members, key=lambda a: (a.interval.start_minute, a.interval.end_minute))
            running_end = ordered[0].interval.end_minute
            for appt in ordered[1:]:
                if appt.interval.start_minute > running_end:
                    total += appt.interval.start_minute - running_end
                running_end = max(running_end, appt.interval.end_minute)
        return total

    @staticmethod
    def overlap_pairs(appointments: Sequence[BookedAppointment]) -> int:
        """Count unordered pairs the classifier marks high severity."""
        rules = ClassifierRules(back_to_back_is_conflict=False, min_buffer_minutes=0)
        count = 0
        for i, appt in enumerate(appointments):
            later = appointments[i + 1:]
            count += sum(
                1 for c in classify(appt.interval, later, rules)
                if c.severity == Severity.HIGH
            )
        return count

    # ------------------------------------------------------------------
    # Scoring
    # ------------------------------------------------------------------

    def score(
        self,
        day_appointments: Sequence[BookedAppointment],
        schedule: ProviderDaySchedule,
    ) -> ScoreReport:
        active = [
            a for a in day_appointments
            if a.is_active and a.interval.date == schedule.date
        ]
        windows = schedule.sorted_windows()

        utilization = self.utilization(active, schedule)
        gaps = self.idle_gaps(active, windows)
        conflicts = self.overlap_pairs(active)
        outside = sum(1 for a in active if _window_for(a, windows) is None)

        recommendations: list[str] = []
        if not windows:
            recommendations.append("no working hours configured for this date")
        if conflicts:
            recommendations.append(
                f"{conflicts} overlapping appointment pair(s): "
                "reschedule to remove double-bookings"
            )
        if windows and outside:
            recommendations.append(f"{outside} appointment(s) fall outside working hours")
        if windows and utilization < self.low_utilization_percent:
            recommendations.append(
                f"utilization below {self.low_utilization_percent:g}%: "
                "consider consolidating appointments toward the start of the day"
            )
        if utilization > self.high_utilization_percent:
            recommendations.append(
                f"utilization above {self.high_utilization_percent:g}%: "
                "consider adding buffer time or opening additional hours"
            )
        if gaps >= self.idle_gap_minutes and gaps > 0:
            recommendations.append(
                f"{gaps} idle minutes between appointments: "
                "consider filling gaps with shorter visits"
            )

        logger.debug(
            f"Score {schedule.provider_id} {schedule.date}: "
            f"utilization={utilization:.1f}% gaps={gaps} conflicts={conflicts}"
        )
        return ScoreReport(
            utilization_percent=utilization,
            gap_minutes_total=gaps,
            conflict_count=conflicts,
            recommendations=recommendations,
        )
