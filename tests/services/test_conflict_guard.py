from datetime import time

import pytest

from medibook.services.conflict_guard import (
    format_minutes,
    intervals_overlap,
    is_blocked,
    minutes_since_midnight,
    time_from_minutes,
)


def test_minutes_since_midnight_ignores_seconds() -> None:
    assert minutes_since_midnight(time(9, 30, 45)) == 570


def test_time_from_minutes_round_trips_last_minute_of_day() -> None:
    assert time_from_minutes(1439) == time(23, 59)


@pytest.mark.parametrize('minutes', [-1, 1440])
def test_time_from_minutes_rejects_out_of_day_values(minutes: int) -> None:
    with pytest.raises(ValueError):
        time_from_minutes(minutes)


def test_format_minutes_zero_pads() -> None:
    assert format_minutes(9 * 60 + 5) == '09:05'


@pytest.mark.parametrize(
    ('a', 'b', 'expected'),
    [
        ((540, 570), (570, 600), False),
        ((570, 600), (540, 570), False),
        ((540, 600), (570, 630), True),
        ((540, 660), (570, 600), True),
        ((540, 570), (540, 570), True),
    ],
)
def test_intervals_overlap_is_half_open(a, b, expected) -> None:
    assert intervals_overlap(*a, *b) is expected


def test_slot_right_after_booking_is_free() -> None:
    assert not is_blocked(630, 30, [(600, 30)])


def test_slot_right_before_booking_is_free() -> None:
    assert not is_blocked(570, 30, [(600, 30)])


def test_longer_slot_running_into_booking_is_blocked() -> None:
    assert is_blocked(570, 60, [(600, 30)])


def test_missing_booked_duration_counts_as_thirty_minutes() -> None:
    assert is_blocked(615, 15, [(600, None)])
    assert not is_blocked(630, 15, [(600, None)])


@pytest.mark.parametrize('booked_duration', [0, -15])
def test_non_positive_booked_duration_never_blocks(booked_duration: int) -> None:
    assert not is_blocked(600, 30, [(600, booked_duration)])


def test_no_bookings_means_not_blocked() -> None:
    assert not is_blocked(600, 30, [])
