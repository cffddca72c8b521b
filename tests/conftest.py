"""Pytest configuration and fixtures."""

from datetime import date

import pytest

from practice_os.config import Settings
from practice_os.scheduling.models import (
    AppointmentStatus,
    BookedAppointment,
    Interval,
    ProviderDaySchedule,
)
from practice_os.scheduling.service import SchedulingService
from practice_os.scheduling.store import InMemoryAppointmentStore

DAY = date(2026, 3, 2)  # Monday


def make_appt(
    appt_id: str,
    start: str,
    minutes: int,
    status: AppointmentStatus = AppointmentStatus.CONFIRMED,
    provider_id: str = "prov-1",
    day: date = DAY,
) -> BookedAppointment:
    """Build a booking from an 'HH:MM' start and a length."""
    return BookedAppointment(
        id=appt_id,
        provider_id=provider_id,
        interval=Interval.from_time(day, start, minutes),
        status=status,
    )


def make_schedule(
    *windows: tuple[str, str],
    provider_id: str = "prov-1",
    day: date = DAY,
) -> ProviderDaySchedule:
    """Build a schedule from ('HH:MM', 'HH:MM') working windows."""
    intervals = []
    for start, end in windows:
        start_h, start_m = (int(p) for p in start.split(":"))
        end_h, end_m = (int(p) for p in end.split(":"))
        intervals.append(
            Interval(
                date=day,
                start_minute=start_h * 60 + start_m,
                end_minute=end_h * 60 + end_m,
            )
        )
    return ProviderDaySchedule(provider_id=provider_id, date=day, working_windows=intervals)


@pytest.fixture
def settings():
    """Settings with the documented defaults, independent of the environment."""
    return Settings(
        _env_file=None,
        min_buffer_minutes=15,
        back_to_back_is_conflict=True,
        default_granularity_minutes=15,
        default_duration_minutes=30,
        low_utilization_percent=60.0,
        high_utilization_percent=90.0,
        idle_gap_minutes=60,
    )


@pytest.fixture
def store():
    """In-memory store with an 08:00-17:00 day and a 12:00-13:00 booking."""
    s = InMemoryAppointmentStore()
    s.add_schedule(make_schedule(("08:00", "17:00")))
    s.add_appointment(make_appt("lunch-meeting", "12:00", 60))
    return s


@pytest.fixture
def service(store, settings):
    return SchedulingService(store, settings=settings)
