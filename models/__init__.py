"""Pydantic models for data validation and serialization."""

from .appointment import (
    Appointment,
    AppointmentCreate,
    AppointmentStatus,
    AppointmentUpdate,
)
from .booking import BookingResult, SlotConflict, SlotConflictReason
from .commitments import Commitments, CommittedAppointment, VacationWindow
from .schedule import DaySchedule, Professional, Shift, Weekday, WorkingHours
from .service import Service
from .vacation import Vacation

__all__ = [
    "Appointment",
    "AppointmentCreate",
    "AppointmentStatus",
    "AppointmentUpdate",
    "BookingResult",
    "Commitments",
    "CommittedAppointment",
    "DaySchedule",
    "Professional",
    "Service",
    "Shift",
    "SlotConflict",
    "SlotConflictReason",
    "Vacation",
    "VacationWindow",
    "Weekday",
    "WorkingHours",
]
