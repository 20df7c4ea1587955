"""
Available-slot computation and overlap validation.

Everything here is a pure function of already-fetched data: the weekly
working hours, the target date, a duration and the commitment snapshot
for that professional and date. Callers fetch; this module decides.
"""

import math
from dataclasses import dataclass
from datetime import date, datetime, time
from typing import Iterator, List, Optional, Tuple, Union

from engine.intervals import Interval, format_minutes, time_window
from models.booking import SlotConflictReason
from models.commitments import Commitments
from models.schedule import Shift, WorkingHours
from utils.constants import MINUTES_PER_DAY
from utils.datetime_utils import day_bounds
from utils.exceptions import InvalidInputError


@dataclass(frozen=True)
class ConflictDetail:
    """Outcome of validating one requested window."""

    reason: SlotConflictReason
    appointment_ids: Tuple[str, ...] = ()


def _minutes_since(day_start: datetime, moment: datetime, round_up: bool) -> int:
    seconds = (moment - day_start).total_seconds()
    minutes = math.ceil(seconds / 60) if round_up else math.floor(seconds / 60)
    return max(0, min(MINUTES_PER_DAY, minutes))


def vacation_intervals(commitments: Commitments, target_date: date) -> List[Interval]:
    """Vacations clipped to target_date, as minute intervals of that day."""
    day_start, day_end = day_bounds(target_date)
    blocked = []
    for vacation in commitments.vacations:
        if vacation.end <= day_start or vacation.start >= day_end:
            continue
        blocked.append(
            Interval(
                _minutes_since(day_start, vacation.start, round_up=False),
                _minutes_since(day_start, vacation.end, round_up=True),
            )
        )
    return blocked


def appointment_intervals(commitments: Commitments) -> List[Tuple[Interval, Optional[str]]]:
    """(interval, appointment id) of every appointment still occupying the calendar."""
    return [
        (appointment.interval, appointment.id)
        for appointment in commitments.appointments
        if appointment.status.occupies_calendar
    ]


def overlapping_appointment_ids(window: Interval, commitments: Commitments) -> List[str]:
    """Ids of occupying appointments whose [start, end) overlaps window."""
    return [
        appointment_id or ""
        for interval, appointment_id in appointment_intervals(commitments)
        if interval.overlaps(window)
    ]


def iter_candidates(shift: Shift, duration_minutes: int, step_minutes: int) -> Iterator[Interval]:
    """
    Candidate windows inside one shift: shift.start + k * step while the
    whole window still ends by shift.end. No partial slots.
    """
    bounds = shift.interval
    start = bounds.start
    while start + duration_minutes <= bounds.end:
        yield Interval(start, start + duration_minutes)
        start += step_minutes


def iter_available_slots(
    working_hours: WorkingHours,
    target_date: date,
    duration_minutes: int,
    commitments: Commitments,
    step_minutes: Optional[int] = None,
) -> Iterator[str]:
    """
    Lazily yield bookable start times ('HH:MM') for target_date, ascending.

    Args:
        working_hours: Weekly schedule of the professional
        target_date: Scheduling date (no time component)
        duration_minutes: Service duration; <= 0 yields nothing
        commitments: Snapshot of appointments and vacations for the date
        step_minutes: Candidate spacing; None means back-to-back (= duration)

    Raises:
        InvalidInputError: If step_minutes is given and not positive
    """
    if step_minutes is not None and step_minutes <= 0:
        raise InvalidInputError(f"Slot step must be positive, got {step_minutes}")
    if duration_minutes <= 0:
        return

    step = step_minutes or duration_minutes
    blocked = [interval for interval, _ in appointment_intervals(commitments)]
    blocked.extend(vacation_intervals(commitments, target_date))

    # Shifts are sorted and disjoint, so per-shift order is global order
    for shift in working_hours.shifts_for(target_date):
        if shift.length_minutes < duration_minutes:
            continue
        for candidate in iter_candidates(shift, duration_minutes, step):
            if not any(candidate.overlaps(interval) for interval in blocked):
                yield format_minutes(candidate.start)


def compute_available_slots(
    working_hours: WorkingHours,
    target_date: date,
    duration_minutes: int,
    commitments: Commitments,
    step_minutes: Optional[int] = None,
) -> List[str]:
    """Materialized form of iter_available_slots; identical inputs give identical output."""
    return list(
        iter_available_slots(
            working_hours, target_date, duration_minutes, commitments, step_minutes
        )
    )


def find_conflict(
    working_hours: WorkingHours,
    target_date: date,
    start_time: Union[str, time],
    duration_minutes: int,
    commitments: Commitments,
) -> Optional[ConflictDetail]:
    """
    Validate one requested window against shifts and commitments.

    Returns:
        None when bookable, otherwise the first failing reason: outside every
        shift, inside a vacation, or overlapping existing appointments.

    Raises:
        InvalidInputError: If start_time is malformed or duration is not positive
    """
    if duration_minutes <= 0:
        raise InvalidInputError(f"Duration must be positive, got {duration_minutes}")

    window = time_window(start_time, duration_minutes)

    if not any(
        shift.interval.contains(window) for shift in working_hours.shifts_for(target_date)
    ):
        return ConflictDetail(SlotConflictReason.OUTSIDE_WORKING_HOURS)

    return find_collision(window, target_date, commitments)


def find_collision(
    window: Interval, target_date: date, commitments: Commitments
) -> Optional[ConflictDetail]:
    """
    Overlap-only check of a window against vacations and occupying
    appointments, ignoring working hours. Stores run this under their
    per-professional write lock.
    """
    if any(window.overlaps(blocked) for blocked in vacation_intervals(commitments, target_date)):
        return ConflictDetail(SlotConflictReason.VACATION)

    overlapping = overlapping_appointment_ids(window, commitments)
    if overlapping:
        return ConflictDetail(SlotConflictReason.OCCUPIED, tuple(overlapping))

    return None


def is_slot_available(
    working_hours: WorkingHours,
    target_date: date,
    start_time: Union[str, time],
    duration_minutes: int,
    commitments: Commitments,
) -> bool:
    """True when [start, start + duration) fits one shift and overlaps no commitment."""
    return (
        find_conflict(working_hours, target_date, start_time, duration_minutes, commitments)
        is None
    )
