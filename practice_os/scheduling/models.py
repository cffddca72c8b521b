"""Pydantic models for the scheduling engine."""

from datetime import date, datetime, time, timedelta
from enum import Enum
from typing import Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from practice_os.scheduling.errors import InvalidIntervalError

MINUTES_PER_DAY = 24 * 60


def _minute_of_day(value: time) -> int:
    if value.second or value.microsecond:
        raise InvalidIntervalError(
            f"Times must fall on a whole minute, got {value.isoformat()}"
        )
    return value.hour * 60 + value.minute


def _format_minute(minute: int) -> str:
    return f"{minute // 60:02d}:{minute % 60:02d}"


class Interval(BaseModel):
    """Half-open ``[start_minute, end_minute)`` span on a single calendar date."""

    model_config = ConfigDict(frozen=True)

    date: date
    start_minute: int
    end_minute: int

    @model_validator(mode="after")
    def _check_bounds(self) -> "Interval":
        if self.start_minute < 0:
            raise InvalidIntervalError(
                f"Interval starts before midnight: start_minute={self.start_minute}"
            )
        if self.end_minute > MINUTES_PER_DAY:
            raise InvalidIntervalError(
                f"Interval crosses the day boundary: end_minute={self.end_minute}; "
                "split it into one interval per day"
            )
        if self.start_minute >= self.end_minute:
            raise InvalidIntervalError(
                f"Interval start must precede its end: {self.start_minute} >= {self.end_minute}"
            )
        return self

    @classmethod
    def from_time(
        cls,
        day: date,
        start: Union[time, str],
        duration_minutes: int,
    ) -> "Interval":
        """Build an interval from a wall-clock start (``time`` or ``"HH:MM"``) and a length."""
        if isinstance(start, str):
            try:
                start = time.fromisoformat(start)
            except ValueError:
                raise InvalidIntervalError(f"Cannot parse start time: {start!r}")
        start_minute = _minute_of_day(start)
        return cls(
            date=day,
            start_minute=start_minute,
            end_minute=start_minute + duration_minutes,
        )

    @classmethod
    def from_datetimes(cls, start: datetime, end: datetime) -> "Interval":
        """Build an interval from two naive local datetimes on the same date.

        An *end* of exactly midnight on the following day maps to minute 1440.
        """
        day = start.date()
        if end.date() == day:
            end_minute = _minute_of_day(end.time())
        elif end.date() == day + timedelta(days=1) and end.time() == time(0, 0):
            end_minute = MINUTES_PER_DAY
        else:
            raise InvalidIntervalError(
                f"Interval spans more than one date: {start.isoformat()} -> {end.isoformat()}"
            )
        return cls(date=day, start_minute=_minute_of_day(start.time()), end_minute=end_minute)

    @property
    def duration_minutes(self) -> int:
        return self.end_minute - self.start_minute

    @property
    def start_time(self) -> time:
        return time(self.start_minute // 60, self.start_minute % 60)

    @property
    def end_time(self) -> time:
        """Wall-clock end; an interval ending at midnight reports ``00:00``."""
        minute = self.end_minute % MINUTES_PER_DAY
        return time(minute // 60, minute % 60)

    @property
    def label(self) -> str:
        return f"{_format_minute(self.start_minute)}-{_format_minute(self.end_minute)}"


class AppointmentStatus(str, Enum):
    """Appointment lifecycle statuses."""

    CONFIRMED = "confirmed"
    PENDING = "pending"
    CANCELLED = "cancelled"
    COMPLETED = "completed"
    NO_SHOW = "no_show"

    @classmethod
    def _missing_(cls, value):
        if isinstance(value, str) and value.replace("-", "_") == cls.NO_SHOW.value:
            return cls.NO_SHOW
        return None

    @property
    def is_active(self) -> bool:
        """Only confirmed and pending bookings occupy the provider's time."""
        return self in (AppointmentStatus.CONFIRMED, AppointmentStatus.PENDING)


class BookedAppointment(BaseModel):
    """An existing booking as read from the persistence layer."""

    id: str
    provider_id: str
    interval: Interval
    status: AppointmentStatus = AppointmentStatus.PENDING
    patient_id: Optional[str] = None
    notes: Optional[str] = None

    @field_validator("status", mode="before")
    @classmethod
    def _normalize_status(cls, value):
        if isinstance(value, str):
            return AppointmentStatus(value)
        return value

    @property
    def is_active(self) -> bool:
        return self.status.is_active


class ProviderDaySchedule(BaseModel):
    """A provider's working windows on a single date."""

    provider_id: str
    date: date
    working_windows: list[Interval] = Field(default_factory=list)

    @model_validator(mode="after")
    def _check_windows(self) -> "ProviderDaySchedule":
        ordered = sorted(self.working_windows, key=lambda w: w.start_minute)
        for window in ordered:
            if window.date != self.date:
                raise InvalidIntervalError(
                    f"Working window {window.label} is on {window.date}, "
                    f"schedule is for {self.date}"
                )
        for prev, nxt in zip(ordered, ordered[1:]):
            if nxt.start_minute < prev.end_minute:
                raise InvalidIntervalError(
                    f"Working windows overlap: {prev.label} and {nxt.label}"
                )
        return self

    @classmethod
    def unavailable(cls, provider_id: str, day: date) -> "ProviderDaySchedule":
        """Schedule for a day the provider does not work."""
        return cls(provider_id=provider_id, date=day, working_windows=[])

    @property
    def working_minutes(self) -> int:
        return sum(w.duration_minutes for w in self.working_windows)

    def sorted_windows(self) -> list[Interval]:
        return sorted(self.working_windows, key=lambda w: w.start_minute)


class ConflictKind(str, Enum):
    """How a candidate relates to an existing booking."""

    OVERLAP = "overlap"
    BACK_TO_BACK = "back_to_back"
    BUFFER_VIOLATION = "buffer_violation"


class Severity(str, Enum):
    """Conflict severity levels."""

    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"

    @property
    def rank(self) -> int:
        return {"high": 3, "medium": 2, "low": 1}[self.value]


class Conflict(BaseModel):
    """A single candidate/booking collision."""

    with_appointment_id: str
    kind: ConflictKind
    severity: Severity
    gap_minutes: int = 0


class ClassifierRules(BaseModel):
    """Tunable thresholds for the conflict classifier."""

    back_to_back_is_conflict: bool = True
    min_buffer_minutes: int = Field(default=15, ge=0)


class TimeSlot(BaseModel):
    """A candidate slot on the availability grid."""

    interval: Interval
    bookable: bool
    soft_warnings: list[Conflict] = Field(default_factory=list)


class ScoreReport(BaseModel):
    """Advisory utilization/risk summary for one provider-day."""

    utilization_percent: float = 0.0
    gap_minutes_total: int = 0
    conflict_count: int = 0
    recommendations: list[str] = Field(default_factory=list)


class BookingResult(BaseModel):
    """Outcome of a committed booking."""

    appointment: BookedAppointment
    warnings: list[Conflict] = Field(default_factory=list)
