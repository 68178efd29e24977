import logging
from collections.abc import Iterable, Iterator
from datetime import date, time

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from medibook.core.config import settings
from medibook.core.errors import NotFoundError, PastDateError, ValidationError
from medibook.models.appointment import ACTIVE_STATUSES, Appointment
from medibook.models.availability import AvailableSlot, DoctorAvailability
from medibook.models.user import Doctor
from medibook.services.conflict_guard import (
    BookedInterval,
    format_minutes,
    is_blocked,
    minutes_since_midnight,
)

logger = logging.getLogger(__name__)

# (start minute, end minute) of one availability window
Window = tuple[int, int]


def day_of_week(d: date) -> int:
    """Sunday-based day index (0 = Sunday ... 6 = Saturday)."""
    return d.isoweekday() % 7


def generate_slots(
    windows: Iterable[Window],
    booked: Iterable[BookedInterval],
    duration: int,
    stride: int = 30,
) -> Iterator[int]:
    """Yield bookable start minutes, window by window in the order given.

    Candidates start at each window's opening and advance by ``stride``
    regardless of ``duration``; a candidate is kept while it ends at or before
    the window's close and does not overlap a booked interval.
    """
    booked = list(booked)
    for window_start, window_end in windows:
        current = window_start
        while current + duration <= window_end:
            if not is_blocked(current, duration, booked):
                yield current
            current += stride


async def load_availability_windows(
    session: AsyncSession, doctor_id: int, weekday: int
) -> list[DoctorAvailability]:
    result = await session.execute(
        select(DoctorAvailability)
        .where(
            DoctorAvailability.doctor_id == doctor_id,
            DoctorAvailability.day_of_week == weekday,
            DoctorAvailability.is_active == True,  # noqa: E712
        )
        .order_by(DoctorAvailability.id)
    )
    return list(result.scalars().all())


async def load_active_appointments(
    session: AsyncSession, doctor_id: int, d: date
) -> list[Appointment]:
    result = await session.execute(
        select(Appointment).where(
            Appointment.doctor_id == doctor_id,
            Appointment.appointment_date == d,
            Appointment.status.in_(ACTIVE_STATUSES),
        )
    )
    return list(result.scalars().all())


def booked_intervals(appointments: Iterable[Appointment]) -> list[BookedInterval]:
    return [
        (minutes_since_midnight(a.appointment_time), a.duration_minutes)
        for a in appointments
    ]


def validate_duration(duration: int) -> None:
    if duration <= 0:
        raise ValidationError("Duration must be a positive number of minutes")
    if duration > settings.max_duration_minutes:
        raise ValidationError(
            f"Duration cannot exceed {settings.max_duration_minutes} minutes"
        )


def ensure_wall_clock(t: time, field: str) -> None:
    """Times of day are clinic wall-clock values; an explicit UTC offset is refused."""
    if t.tzinfo is not None:
        raise ValidationError(f"{field} must not carry a timezone offset")


def ensure_not_past(d: date, today: date | None = None) -> None:
    if d < (today or settings.today()):
        raise PastDateError()


async def get_available_slots(
    session: AsyncSession,
    doctor_id: int,
    d: date,
    duration: int | None = None,
    today: date | None = None,
) -> list[AvailableSlot]:
    """Bookable slots for a doctor on a date. Read-only."""
    duration = settings.default_duration_minutes if duration is None else duration
    validate_duration(duration)
    ensure_not_past(d, today)

    doctor = await session.get(Doctor, doctor_id)
    if doctor is None or not doctor.is_active:
        raise NotFoundError("Doctor not found or inactive")

    windows = await load_availability_windows(session, doctor_id, day_of_week(d))
    if not windows:
        logger.debug("No availability for doctor %s on %s", doctor_id, d)
        return []

    appointments = await load_active_appointments(session, doctor_id, d)
    starts = generate_slots(
        [(minutes_since_midnight(w.start_time), minutes_since_midnight(w.end_time)) for w in windows],
        booked_intervals(appointments),
        duration,
        stride=settings.slot_stride_minutes,
    )
    slots = [AvailableSlot(time=format_minutes(s), available=True, duration=duration) for s in starts]
    logger.info("Found %d available slots for doctor %s on %s", len(slots), doctor_id, d)
    return slots
