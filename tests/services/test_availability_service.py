import asyncio
from datetime import time, timezone

import pytest

from medibook.api.schemas.availability import UpdateAvailabilityRequest
from medibook.core.errors import ValidationError
from medibook.models import DoctorAvailabilityCreate
from medibook.services.availability_service import (
    list_doctor_availability,
    replace_doctor_availability,
    validate_schedule,
    validate_window,
)


def replace(session_maker, doctor_id: int, windows: list[DoctorAvailabilityCreate]):
    async def run():
        async with session_maker() as session:
            result = await replace_doctor_availability(session, doctor_id, windows)
            await session.commit()
            return result

    return asyncio.run(run())


def listing(session_maker, doctor_id: int):
    async def run():
        async with session_maker() as session:
            return await list_doctor_availability(session, doctor_id)

    return asyncio.run(run())


def test_listing_includes_day_name(session_maker, world) -> None:
    windows = listing(session_maker, world['house'].id)

    assert [(w.day_name, w.start_time, w.end_time) for w in windows] == [('Monday', time(9, 0), time(12, 0))]


def test_replace_swaps_whole_schedule_in_day_order(session_maker, world) -> None:
    windows = replace(
        session_maker,
        world['house'].id,
        [
            DoctorAvailabilityCreate(day_of_week=3, start_time=time(14, 0), end_time=time(17, 0)),
            DoctorAvailabilityCreate(day_of_week=0, start_time=time(10, 0), end_time=time(12, 0)),
            DoctorAvailabilityCreate(day_of_week=3, start_time=time(8, 0), end_time=time(12, 0)),
        ],
    )

    assert [(w.day_of_week, w.start_time) for w in windows] == [
        (0, time(10, 0)),
        (3, time(8, 0)),
        (3, time(14, 0)),
    ]
    assert [w.day_name for w in listing(session_maker, world['house'].id)] == ['Sunday', 'Wednesday', 'Wednesday']


def test_replace_with_empty_list_clears_schedule(session_maker, world) -> None:
    assert replace(session_maker, world['house'].id, []) == []
    assert listing(session_maker, world['house'].id) == []


def test_replace_leaves_other_doctors_alone(session_maker, world) -> None:
    replace(session_maker, world['grey'].id, [])

    assert len(listing(session_maker, world['house'].id)) == 1


def test_invalid_window_leaves_schedule_untouched(session_maker, world) -> None:
    with pytest.raises(ValidationError):
        replace(
            session_maker,
            world['house'].id,
            [
                DoctorAvailabilityCreate(day_of_week=2, start_time=time(9, 0), end_time=time(10, 0)),
                DoctorAvailabilityCreate(day_of_week=2, start_time=time(12, 0), end_time=time(11, 0)),
            ],
        )

    assert [w.day_of_week for w in listing(session_maker, world['house'].id)] == [1]


@pytest.mark.parametrize(
    'window',
    [
        DoctorAvailabilityCreate(day_of_week=7, start_time=time(9, 0), end_time=time(10, 0)),
        DoctorAvailabilityCreate(day_of_week=-1, start_time=time(9, 0), end_time=time(10, 0)),
        DoctorAvailabilityCreate(day_of_week=1, start_time=time(10, 0), end_time=time(10, 0)),
        DoctorAvailabilityCreate(day_of_week=1, start_time=time(9, 0, tzinfo=timezone.utc), end_time=time(12, 0)),
        DoctorAvailabilityCreate(day_of_week=1, start_time=time(9, 0), end_time=time(12, 0, tzinfo=timezone.utc)),
    ],
)
def test_validate_window_rejects_bad_input(window: DoctorAvailabilityCreate) -> None:
    with pytest.raises(ValidationError):
        validate_window(window)


def test_overlapping_windows_on_one_day_are_rejected(session_maker, world) -> None:
    with pytest.raises(ValidationError):
        replace(
            session_maker,
            world['house'].id,
            [
                DoctorAvailabilityCreate(day_of_week=1, start_time=time(9, 0), end_time=time(12, 0)),
                DoctorAvailabilityCreate(day_of_week=1, start_time=time(11, 0), end_time=time(13, 0)),
            ],
        )

    assert [(w.start_time, w.end_time) for w in listing(session_maker, world['house'].id)] == [
        (time(9, 0), time(12, 0))
    ]


def test_touching_and_cross_day_windows_are_accepted() -> None:
    validate_schedule(
        [
            DoctorAvailabilityCreate(day_of_week=1, start_time=time(9, 0), end_time=time(12, 0)),
            DoctorAvailabilityCreate(day_of_week=1, start_time=time(12, 0), end_time=time(14, 0)),
            DoctorAvailabilityCreate(day_of_week=2, start_time=time(9, 0), end_time=time(12, 0)),
        ]
    )


def test_request_with_utc_suffix_on_one_end_is_a_validation_error() -> None:
    request = UpdateAvailabilityRequest.model_validate(
        {'availability': [{'day_of_week': 1, 'start_time': '09:00:00Z', 'end_time': '12:00:00'}]}
    )

    with pytest.raises(ValidationError):
        validate_window(request.availability[0])
