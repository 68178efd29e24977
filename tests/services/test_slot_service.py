import asyncio
from datetime import time, timedelta

import pytest

from conftest import MONDAY, TODAY, add_appointment
from medibook.core.errors import NotFoundError, PastDateError, ValidationError
from medibook.models import Doctor, DoctorAvailability
from medibook.services.slot_service import day_of_week, generate_slots, get_available_slots


def slot_times(session_maker, doctor_id: int, d=MONDAY, duration=None, today=TODAY) -> list[str]:
    async def run() -> list[str]:
        async with session_maker() as session:
            slots = await get_available_slots(session, doctor_id, d, duration, today=today)
            return [s.time for s in slots]

    return asyncio.run(run())


def test_day_of_week_is_sunday_based() -> None:
    assert day_of_week(MONDAY) == 1
    assert day_of_week(MONDAY - timedelta(days=1)) == 0
    assert day_of_week(MONDAY + timedelta(days=5)) == 6


def test_generate_slots_keeps_stride_when_duration_is_longer() -> None:
    assert list(generate_slots([(540, 660)], [], 60, stride=30)) == [540, 570, 600]


def test_generate_slots_keeps_window_order() -> None:
    assert list(generate_slots([(840, 900), (540, 600)], [], 30)) == [840, 870, 540, 570]


def test_generate_slots_drops_candidate_that_overruns_window() -> None:
    assert list(generate_slots([(540, 585)], [], 30)) == [540]


def test_free_monday_lists_every_half_hour(session_maker, world) -> None:
    assert slot_times(session_maker, world['house'].id) == [
        '09:00', '09:30', '10:00', '10:30', '11:00', '11:30',
    ]


def test_confirmed_appointment_removes_its_slot(session_maker, world) -> None:
    add_appointment(
        session_maker,
        patient_id=world['alice'].id,
        doctor_id=world['house'].id,
        appointment_date=MONDAY,
        appointment_time=time(10, 0),
        status='confirmed',
    )

    assert slot_times(session_maker, world['house'].id) == ['09:00', '09:30', '10:30', '11:00', '11:30']


def test_cancelled_and_completed_appointments_do_not_block(session_maker, world) -> None:
    for status, start in (('cancelled', time(10, 0)), ('completed', time(11, 0))):
        add_appointment(
            session_maker,
            patient_id=world['alice'].id,
            doctor_id=world['house'].id,
            appointment_date=MONDAY,
            appointment_time=start,
            status=status,
        )

    assert len(slot_times(session_maker, world['house'].id)) == 6


def test_hour_long_slots_skip_starts_overlapping_a_booking(session_maker, world) -> None:
    add_appointment(
        session_maker,
        patient_id=world['alice'].id,
        doctor_id=world['house'].id,
        appointment_date=MONDAY,
        appointment_time=time(10, 0),
        status='pending',
    )

    assert slot_times(session_maker, world['house'].id, duration=60) == ['09:00', '10:30', '11:00']


def test_booking_on_another_day_does_not_block(session_maker, world) -> None:
    add_appointment(
        session_maker,
        patient_id=world['alice'].id,
        doctor_id=world['house'].id,
        appointment_date=MONDAY + timedelta(days=7),
        appointment_time=time(9, 0),
        status='confirmed',
    )

    assert slot_times(session_maker, world['house'].id)[0] == '09:00'


def test_day_without_availability_is_empty(session_maker, world) -> None:
    assert slot_times(session_maker, world['house'].id, d=MONDAY + timedelta(days=1)) == []


def test_inactive_window_is_ignored(session_maker, world) -> None:
    async def deactivate() -> None:
        async with session_maker() as session:
            session.add(
                DoctorAvailability(
                    doctor_id=world['grey'].id,
                    day_of_week=1,
                    start_time=time(9, 0),
                    end_time=time(10, 0),
                    is_active=False,
                )
            )
            await session.commit()

    asyncio.run(deactivate())

    assert slot_times(session_maker, world['grey'].id) == []


def test_today_is_allowed(session_maker, world) -> None:
    assert slot_times(session_maker, world['house'].id, today=MONDAY)


def test_past_date_is_rejected(session_maker, world) -> None:
    with pytest.raises(PastDateError):
        slot_times(session_maker, world['house'].id, today=MONDAY + timedelta(days=1))


@pytest.mark.parametrize('duration', [0, -30])
def test_non_positive_duration_is_rejected(session_maker, world, duration: int) -> None:
    with pytest.raises(ValidationError):
        slot_times(session_maker, world['house'].id, duration=duration)


def test_unknown_doctor_is_not_found(session_maker, world) -> None:
    with pytest.raises(NotFoundError):
        slot_times(session_maker, 9999)


def test_inactive_doctor_has_no_slots(session_maker, world) -> None:
    async def deactivate() -> None:
        async with session_maker() as session:
            doctor = await session.get(Doctor, world['house'].id)
            doctor.is_active = False
            await session.commit()

    asyncio.run(deactivate())

    with pytest.raises(NotFoundError):
        slot_times(session_maker, world['house'].id)


def test_repeated_queries_return_the_same_slots(session_maker, world) -> None:
    first = slot_times(session_maker, world['house'].id)
    second = slot_times(session_maker, world['house'].id)

    assert first == second
