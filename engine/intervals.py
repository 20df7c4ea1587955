"""
Interval arithmetic on wall-clock minutes.

All times inside the engine are integer minutes since midnight of the
scheduling date. Intervals are half-open: [start, end).
"""

from dataclasses import dataclass
from datetime import time
from typing import Union

from utils.constants import END_OF_DAY, MINUTES_PER_DAY, MINUTES_PER_HOUR
from utils.exceptions import InvalidInputError
from utils.validation import validate_time_string


@dataclass(frozen=True, order=True)
class Interval:
    """Half-open minute interval [start, end)."""

    start: int
    end: int

    @property
    def length(self) -> int:
        return self.end - self.start

    def overlaps(self, other: "Interval") -> bool:
        """[a,b) and [c,d) overlap iff a < d and c < b. Touching is not overlap."""
        return self.start < other.end and other.start < self.end

    def contains(self, other: "Interval") -> bool:
        return self.start <= other.start and other.end <= self.end


def parse_time(value: Union[str, time], allow_end_of_day: bool = False) -> int:
    """
    Convert a wall-clock time to minutes since midnight.

    Args:
        value: 'HH:MM' (or 'H:MM'), or a datetime.time
        allow_end_of_day: accept '24:00' as 1440, used for shift/appointment ends

    Raises:
        InvalidInputError: If the value is not a valid time
    """
    if isinstance(value, time):
        return value.hour * MINUTES_PER_HOUR + value.minute
    if isinstance(value, str):
        cleaned = value.strip()
        if allow_end_of_day and cleaned == END_OF_DAY:
            return MINUTES_PER_DAY
        if validate_time_string(cleaned):
            hours, minutes = cleaned.split(":")
            return int(hours) * MINUTES_PER_HOUR + int(minutes)
    raise InvalidInputError(f"Invalid time: {value!r}. Expected format HH:MM")


def format_minutes(minutes: int) -> str:
    """Format minutes since midnight as zero-padded 24-hour 'HH:MM'."""
    if minutes < 0 or minutes > MINUTES_PER_DAY:
        raise InvalidInputError(f"Time out of day range: {minutes} minutes")
    hours, rest = divmod(minutes, MINUTES_PER_HOUR)
    return f"{hours:02d}:{rest:02d}"


def add_minutes(start: Union[str, time], minutes: int) -> str:
    """
    End time of a window starting at `start` lasting `minutes`.

    Raises:
        InvalidInputError: If the window would cross midnight
    """
    end = parse_time(start) + minutes
    if end > MINUTES_PER_DAY:
        raise InvalidInputError(
            f"Window starting at {start} with {minutes} minutes crosses midnight"
        )
    return format_minutes(end)


def time_window(start: Union[str, time], duration_minutes: int) -> Interval:
    """Interval for a booking of `duration_minutes` starting at `start`."""
    begin = parse_time(start)
    return Interval(begin, begin + duration_minutes)
