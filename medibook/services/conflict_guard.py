"""Overlap checks on time-of-day values.

All intra-day arithmetic is done on integer minutes since midnight, never on
full timestamps. Intervals are half-open: [start, start + duration).
"""

from collections.abc import Iterable
from datetime import time

DEFAULT_DURATION_MINUTES = 30
MINUTES_PER_DAY = 24 * 60

# (start minute, duration in minutes or None for the default)
BookedInterval = tuple[int, int | None]


def minutes_since_midnight(t: time) -> int:
    return t.hour * 60 + t.minute


def time_from_minutes(minutes: int) -> time:
    if not 0 <= minutes < MINUTES_PER_DAY:
        raise ValueError(f"{minutes} is not a time of day")
    return time(minutes // 60, minutes % 60)


def format_minutes(minutes: int) -> str:
    """HH:MM for a minutes-since-midnight value."""
    return f"{minutes // 60:02d}:{minutes % 60:02d}"


def intervals_overlap(start_a: int, end_a: int, start_b: int, end_b: int) -> bool:
    # touching endpoints do not overlap
    return start_a < end_b and end_a > start_b


def is_blocked(start: int, duration: int, booked: Iterable[BookedInterval]) -> bool:
    """True if [start, start + duration) collides with any booked interval.

    ``booked`` should only hold active (pending/confirmed) appointments.
    A booked duration of None falls back to 30 minutes; a non-positive one
    never blocks.
    """
    end = start + duration
    for booked_start, booked_duration in booked:
        if booked_duration is None:
            booked_duration = DEFAULT_DURATION_MINUTES
        if booked_duration <= 0:
            continue
        if intervals_overlap(start, end, booked_start, booked_start + booked_duration):
            return True
    return False
