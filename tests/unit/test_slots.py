"""
Unit tests for the pure slot computation and overlap checks.
"""

from datetime import date, datetime

import pytest

from engine.slots import (
    compute_available_slots,
    find_conflict,
    is_slot_available,
    iter_available_slots,
)
from models.appointment import AppointmentStatus
from models.booking import SlotConflictReason
from models.commitments import Commitments, CommittedAppointment, VacationWindow
from models.schedule import DaySchedule, Shift, WorkingHours
from utils.exceptions import InvalidInputError

MONDAY = date(2026, 1, 12)
TUESDAY = date(2026, 1, 13)
EMPTY = Commitments()


def booked(start, end, status=AppointmentStatus.SCHEDULED, appointment_id="a-1"):
    return CommittedAppointment(id=appointment_id, start_time=start, end_time=end, status=status)


def test_back_to_back_slots(working_hours):
    assert compute_available_slots(working_hours, MONDAY, 45, EMPTY) == [
        "09:00",
        "09:45",
        "10:30",
        "11:15",
    ]


def test_existing_appointment_removes_its_slot(working_hours):
    commitments = Commitments(appointments=[booked("10:30", "11:15")])
    assert compute_available_slots(working_hours, MONDAY, 45, commitments) == [
        "09:00",
        "09:45",
        "11:15",
    ]


def test_vacation_covering_the_day_blocks_everything(working_hours):
    commitments = Commitments(
        vacations=[VacationWindow(start=datetime(2026, 1, 12), end=datetime(2026, 1, 13))]
    )
    assert compute_available_slots(working_hours, MONDAY, 45, commitments) == []


def test_vacation_spanning_several_days(working_hours):
    commitments = Commitments(
        vacations=[VacationWindow(start=datetime(2026, 1, 10, 14, 0), end=datetime(2026, 1, 14, 9, 0))]
    )
    assert compute_available_slots(working_hours, MONDAY, 45, commitments) == []


def test_partial_vacation_only_blocks_overlapping_candidates(working_hours):
    commitments = Commitments(
        vacations=[VacationWindow(start=datetime(2026, 1, 12, 10, 0), end=datetime(2026, 1, 12, 11, 0))]
    )
    assert compute_available_slots(working_hours, MONDAY, 45, commitments) == ["09:00", "11:15"]


def test_vacation_minutes_are_rounded_outward(working_hours):
    # Ends 10:30:30, so 10:30 must be blocked
    commitments = Commitments(
        vacations=[
            VacationWindow(start=datetime(2026, 1, 12, 9, 50), end=datetime(2026, 1, 12, 10, 30, 30))
        ]
    )
    assert compute_available_slots(working_hours, MONDAY, 45, commitments) == ["09:00", "11:15"]


def test_cancelled_appointment_does_not_block(working_hours):
    commitments = Commitments(
        appointments=[booked("10:30", "11:15", status=AppointmentStatus.CANCELLED)]
    )
    assert "10:30" in compute_available_slots(working_hours, MONDAY, 45, commitments)


@pytest.mark.parametrize("status", [AppointmentStatus.NO_SHOW, AppointmentStatus.COMPLETED])
def test_other_statuses_keep_blocking(working_hours, status):
    commitments = Commitments(appointments=[booked("10:30", "11:15", status=status)])
    assert "10:30" not in compute_available_slots(working_hours, MONDAY, 45, commitments)


def test_partial_overlap_blocks_both_neighbours(working_hours):
    commitments = Commitments(appointments=[booked("10:00", "10:45")])
    assert compute_available_slots(working_hours, MONDAY, 45, commitments) == ["09:00", "11:15"]


def test_day_without_shifts(working_hours):
    assert compute_available_slots(working_hours, TUESDAY, 45, EMPTY) == []


def test_multi_shift_day_is_ordered_across_shifts():
    hours = WorkingHours(
        monday=DaySchedule(
            shifts=[Shift(start="14:00", end="16:00"), Shift(start="09:00", end="10:00")]
        )
    )
    assert compute_available_slots(hours, MONDAY, 60, EMPTY) == ["09:00", "14:00", "15:00"]


def test_uneven_division_drops_partial_tail():
    hours = WorkingHours(monday=DaySchedule(shifts=[Shift(start="09:00", end="11:00")]))
    assert compute_available_slots(hours, MONDAY, 50, EMPTY) == ["09:00", "09:50"]


def test_fixed_step_quantum(working_hours):
    slots = compute_available_slots(working_hours, MONDAY, 45, EMPTY, step_minutes=15)
    assert slots[:3] == ["09:00", "09:15", "09:30"]
    assert slots[-1] == "11:15"
    assert len(slots) == 10


def test_fixed_step_with_appointment(working_hours):
    commitments = Commitments(appointments=[booked("10:00", "10:30")])
    slots = compute_available_slots(working_hours, MONDAY, 30, commitments, step_minutes=30)
    assert slots == ["09:00", "09:30", "10:30", "11:00", "11:30"]


def test_shift_until_end_of_day():
    hours = WorkingHours(monday=DaySchedule(shifts=[Shift(start="22:00", end="24:00")]))
    assert compute_available_slots(hours, MONDAY, 60, EMPTY) == ["22:00", "23:00"]


def test_duration_longer_than_every_shift(working_hours):
    assert compute_available_slots(working_hours, MONDAY, 240, EMPTY) == []


def test_shift_shorter_than_duration_is_skipped():
    hours = WorkingHours(
        monday=DaySchedule(
            shifts=[Shift(start="08:00", end="08:30"), Shift(start="09:00", end="10:30")]
        )
    )
    assert hours.monday.shifts[0].length_minutes == 30
    assert compute_available_slots(hours, MONDAY, 45, EMPTY, step_minutes=15) == [
        "09:00",
        "09:15",
        "09:30",
        "09:45",
    ]


@pytest.mark.parametrize("duration", [0, -15])
def test_non_positive_duration_yields_nothing(working_hours, duration):
    assert compute_available_slots(working_hours, MONDAY, duration, EMPTY) == []


def test_non_positive_step_is_rejected(working_hours):
    with pytest.raises(InvalidInputError):
        compute_available_slots(working_hours, MONDAY, 45, EMPTY, step_minutes=0)


def test_iterator_is_lazy(working_hours):
    slots = iter_available_slots(working_hours, MONDAY, 45, EMPTY)
    assert next(slots) == "09:00"
    assert next(slots) == "09:45"


def test_is_slot_available_with_and_without_appointment(working_hours):
    commitments = Commitments(appointments=[booked("10:30", "11:15")])
    assert not is_slot_available(working_hours, MONDAY, "10:30", 45, commitments)

    cancelled = Commitments(
        appointments=[booked("10:30", "11:15", status=AppointmentStatus.CANCELLED)]
    )
    assert is_slot_available(working_hours, MONDAY, "10:30", 45, cancelled)


def test_touching_endpoints_are_available(working_hours):
    commitments = Commitments(appointments=[booked("10:30", "11:15")])
    assert is_slot_available(working_hours, MONDAY, "09:45", 45, commitments)
    assert is_slot_available(working_hours, MONDAY, "11:15", 45, commitments)


def test_off_grid_start_is_accepted(working_hours):
    assert is_slot_available(working_hours, MONDAY, "09:10", 45, EMPTY)


def test_find_conflict_reasons(working_hours):
    commitments = Commitments(
        appointments=[booked("09:00", "09:45", appointment_id="a-9")],
        vacations=[VacationWindow(start=datetime(2026, 1, 12, 11, 0), end=datetime(2026, 1, 12, 12, 0))],
    )

    outside = find_conflict(working_hours, MONDAY, "11:30", 45, commitments)
    assert outside.reason is SlotConflictReason.OUTSIDE_WORKING_HOURS

    occupied = find_conflict(working_hours, MONDAY, "09:30", 45, commitments)
    assert occupied.reason is SlotConflictReason.OCCUPIED
    assert occupied.appointment_ids == ("a-9",)

    vacation = find_conflict(working_hours, MONDAY, "10:30", 45, commitments)
    assert vacation.reason is SlotConflictReason.VACATION

    assert find_conflict(working_hours, MONDAY, "09:45", 45, commitments) is None


def test_window_spanning_two_shifts_is_outside_hours():
    hours = WorkingHours(
        monday=DaySchedule(
            shifts=[Shift(start="09:00", end="12:00"), Shift(start="12:00", end="15:00")]
        )
    )
    assert not is_slot_available(hours, MONDAY, "11:30", 60, EMPTY)


def test_window_past_midnight_is_outside_hours():
    hours = WorkingHours(monday=DaySchedule(shifts=[Shift(start="22:00", end="24:00")]))
    assert not is_slot_available(hours, MONDAY, "23:30", 60, EMPTY)


def test_is_slot_available_rejects_bad_input(working_hours):
    with pytest.raises(InvalidInputError):
        is_slot_available(working_hours, MONDAY, "10:30", 0, EMPTY)
    with pytest.raises(InvalidInputError):
        is_slot_available(working_hours, MONDAY, "10h30", 45, EMPTY)
