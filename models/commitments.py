"""
Commitment snapshot: everything occupying a professional's time on a date.

Returned by the scheduling store for one (professional, date) pair and
consumed read-only by the slot engine.
"""

from datetime import datetime
from typing import List, Optional

from pydantic import Field

from engine.intervals import Interval, parse_time
from models.appointment import Appointment, AppointmentStatus
from models.base import CamelModel
from models.vacation import Vacation


class CommittedAppointment(CamelModel):
    """Time window held by an existing appointment."""

    id: Optional[str] = None
    start_time: str
    end_time: str
    status: AppointmentStatus = AppointmentStatus.SCHEDULED

    @classmethod
    def from_appointment(cls, appointment: Appointment) -> "CommittedAppointment":
        return cls(
            id=appointment.id,
            start_time=appointment.start_time,
            end_time=appointment.end_time,
            status=appointment.status,
        )

    @property
    def interval(self) -> Interval:
        return Interval(
            parse_time(self.start_time), parse_time(self.end_time, allow_end_of_day=True)
        )


class VacationWindow(CamelModel):
    """Blocked datetime range [start, end)."""

    start: datetime
    end: datetime

    @classmethod
    def from_vacation(cls, vacation: Vacation) -> "VacationWindow":
        return cls(start=vacation.start, end=vacation.end)


class Commitments(CamelModel):
    """Non-cancelled appointments and vacations intersecting one date."""

    appointments: List[CommittedAppointment] = Field(default_factory=list)
    vacations: List[VacationWindow] = Field(default_factory=list)
