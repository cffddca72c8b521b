"""Scheduling API endpoints backed by the in-process scheduling service."""

import uuid
from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request
from pydantic import BaseModel, Field

from practice_os.scheduling.errors import InvalidIntervalError
from practice_os.scheduling.models import (
    AppointmentStatus,
    BookedAppointment,
    BookingResult,
    Conflict,
    Interval,
    ProviderDaySchedule,
    ScoreReport,
    TimeSlot,
)
from practice_os.scheduling.service import SchedulingService
from practice_os.scheduling.slots import bookable_only

router = APIRouter(prefix="/scheduling")


# ---------------------------------------------------------------------------
# Pydantic request schemas
# ---------------------------------------------------------------------------

class ConflictCheckRequest(BaseModel):
    date: date
    start_time: str = Field(description="Wall-clock start, 'HH:MM'")
    duration_minutes: int
    exclude_appointment_id: Optional[str] = None


class AppointmentCreate(BaseModel):
    id: Optional[str] = None
    date: date
    start_time: str = Field(description="Wall-clock start, 'HH:MM'")
    duration_minutes: int
    status: AppointmentStatus = AppointmentStatus.PENDING
    patient_id: Optional[str] = None
    notes: Optional[str] = None


class WorkingWindowIn(BaseModel):
    start_time: str = Field(description="'HH:MM'")
    end_time: str = Field(description="'HH:MM', '24:00' for end of day")


class ScheduleIn(BaseModel):
    date: date
    working_windows: list[WorkingWindowIn] = []


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def get_scheduling_service(request: Request) -> SchedulingService:
    return request.app.state.scheduling_service


def _parse_clock(value: str) -> int:
    """Minutes since midnight for an 'HH:MM' string; '24:00' is allowed."""
    try:
        hours, minutes = (int(part) for part in value.split(":"))
    except ValueError:
        raise InvalidIntervalError(f"Cannot parse clock time: {value!r}")
    if not (0 <= minutes < 60):
        raise InvalidIntervalError(f"Cannot parse clock time: {value!r}")
    return hours * 60 + minutes


def _candidate(day: date, start_time: str, duration_minutes: int) -> Interval:
    start = _parse_clock(start_time)
    return Interval(date=day, start_minute=start, end_minute=start + duration_minutes)


# ---------------------------------------------------------------------------
# Availability
# ---------------------------------------------------------------------------

@router.get("/providers/{provider_id}/slots", response_model=list[TimeSlot])
async def list_slots(
    provider_id: str,
    day: date = Query(..., alias="date"),
    duration_minutes: int = Query(...),
    granularity_minutes: Optional[int] = Query(None),
    bookable: bool = Query(False, alias="bookable_only"),
    service: SchedulingService = Depends(get_scheduling_service),
) -> list[TimeSlot]:
    """Grid of candidate slots for the provider on *date*."""
    slots = service.list_available_slots(
        provider_id, day, duration_minutes, granularity_minutes
    )
    return bookable_only(slots) if bookable else slots


@router.post("/providers/{provider_id}/conflicts", response_model=list[Conflict])
async def check_conflicts(
    provider_id: str,
    body: ConflictCheckRequest,
    service: SchedulingService = Depends(get_scheduling_service),
) -> list[Conflict]:
    """Classify a candidate before it is committed. Empty means safe to book."""
    candidate = _candidate(body.date, body.start_time, body.duration_minutes)
    return service.check_conflicts(
        candidate,
        provider_id,
        body.date,
        exclude_appointment_id=body.exclude_appointment_id,
    )


@router.get("/providers/{provider_id}/alternatives", response_model=list[TimeSlot])
async def list_alternatives(
    provider_id: str,
    day: date = Query(..., alias="date"),
    start_time: str = Query(...),
    duration_minutes: int = Query(...),
    limit: Optional[int] = Query(None),
    exclude_appointment_id: Optional[str] = Query(None),
    service: SchedulingService = Depends(get_scheduling_service),
) -> list[TimeSlot]:
    """Nearest open slots of the same length as the requested time."""
    return service.suggest_alternatives(
        _candidate(day, start_time, duration_minutes),
        provider_id,
        limit=limit,
        exclude_appointment_id=exclude_appointment_id,
    )


@router.get("/providers/{provider_id}/score", response_model=ScoreReport)
async def get_score(
    provider_id: str,
    day: date = Query(..., alias="date"),
    service: SchedulingService = Depends(get_scheduling_service),
) -> ScoreReport:
    """Advisory utilization / gap / overlap report for the provider-day."""
    return service.get_schedule_score(provider_id, day)


# ---------------------------------------------------------------------------
# Bookings and working hours
# ---------------------------------------------------------------------------

@router.post(
    "/providers/{provider_id}/appointments",
    response_model=BookingResult,
    status_code=201,
)
async def book_appointment(
    provider_id: str,
    body: AppointmentCreate,
    service: SchedulingService = Depends(get_scheduling_service),
) -> BookingResult:
    """Commit an appointment; overlaps are rejected with 409."""
    appointment = BookedAppointment(
        id=body.id or str(uuid.uuid4()),
        provider_id=provider_id,
        interval=_candidate(body.date, body.start_time, body.duration_minutes),
        status=body.status,
        patient_id=body.patient_id,
        notes=body.notes,
    )
    return service.book_with_retry(appointment)


@router.put("/providers/{provider_id}/schedule", response_model=ProviderDaySchedule)
async def set_schedule(
    provider_id: str,
    body: ScheduleIn,
    service: SchedulingService = Depends(get_scheduling_service),
) -> ProviderDaySchedule:
    """Replace the provider's working windows for one date."""
    add_schedule = getattr(service.store, "add_schedule", None)
    if add_schedule is None:
        raise HTTPException(status_code=501, detail="Store does not accept schedule updates")
    schedule = ProviderDaySchedule(
        provider_id=provider_id,
        date=body.date,
        working_windows=[
            Interval(
                date=body.date,
                start_minute=_parse_clock(w.start_time),
                end_minute=_parse_clock(w.end_time),
            )
            for w in body.working_windows
        ],
    )
    add_schedule(schedule)
    return schedule
