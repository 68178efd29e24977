import logging

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from medibook.core.errors import ValidationError
from medibook.models.availability import (
    DoctorAvailability,
    DoctorAvailabilityCreate,
    DoctorAvailabilityPublic,
)
from medibook.services.conflict_guard import intervals_overlap, minutes_since_midnight
from medibook.services.slot_service import ensure_wall_clock

logger = logging.getLogger(__name__)

DAY_NAMES = ["Sunday", "Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday"]


def _to_public(row: DoctorAvailability) -> DoctorAvailabilityPublic:
    return DoctorAvailabilityPublic(
        id=row.id,
        day_of_week=row.day_of_week,
        day_name=DAY_NAMES[row.day_of_week],
        start_time=row.start_time,
        end_time=row.end_time,
        is_active=row.is_active,
    )


def validate_window(window: DoctorAvailabilityCreate) -> None:
    ensure_wall_clock(window.start_time, "start_time")
    ensure_wall_clock(window.end_time, "end_time")
    if not 0 <= window.day_of_week <= 6:
        raise ValidationError("day_of_week must be between 0 (Sunday) and 6 (Saturday)")
    if window.start_time >= window.end_time:
        raise ValidationError("Availability start_time must be before end_time")


def validate_schedule(windows: list[DoctorAvailabilityCreate]) -> None:
    """Every window valid on its own, and no two windows of the same day overlapping."""
    for window in windows:
        validate_window(window)
    by_day: dict[int, list[tuple[int, int]]] = {}
    for window in windows:
        span = (minutes_since_midnight(window.start_time), minutes_since_midnight(window.end_time))
        for other in by_day.get(window.day_of_week, []):
            if intervals_overlap(*span, *other):
                raise ValidationError(f"Overlapping availability windows on day {window.day_of_week}")
        by_day.setdefault(window.day_of_week, []).append(span)


async def list_doctor_availability(
    session: AsyncSession, doctor_id: int
) -> list[DoctorAvailabilityPublic]:
    result = await session.execute(
        select(DoctorAvailability)
        .where(DoctorAvailability.doctor_id == doctor_id)
        .order_by(DoctorAvailability.day_of_week, DoctorAvailability.start_time)
    )
    return [_to_public(row) for row in result.scalars().all()]


async def replace_doctor_availability(
    session: AsyncSession, doctor_id: int, windows: list[DoctorAvailabilityCreate]
) -> list[DoctorAvailabilityPublic]:
    """Swap the doctor's whole weekly schedule for ``windows``.

    Everything is validated before any row is touched; an empty list clears
    the schedule.
    """
    validate_schedule(windows)

    await session.execute(delete(DoctorAvailability).where(DoctorAvailability.doctor_id == doctor_id))
    for window in windows:
        session.add(
            DoctorAvailability(
                doctor_id=doctor_id,
                day_of_week=window.day_of_week,
                start_time=window.start_time,
                end_time=window.end_time,
                is_active=window.is_active,
            )
        )
    await session.flush()
    logger.info("Replaced availability for doctor %s with %d window(s)", doctor_id, len(windows))
    return await list_doctor_availability(session, doctor_id)
