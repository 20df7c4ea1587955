"""Booking outcome models: tagged result of a create/update attempt."""

import datetime as dt
from enum import Enum
from typing import List, Optional

from pydantic import Field

from models.appointment import Appointment
from models.base import CamelModel
from utils.exceptions import SlotConflictError


class SlotConflictReason(str, Enum):
    """Why a requested window cannot be booked."""

    OCCUPIED = "occupied"
    OUTSIDE_WORKING_HOURS = "outside_working_hours"
    VACATION = "vacation"
    CONCURRENT_BOOKING = "concurrent_booking"


class SlotConflict(CamelModel):
    """Requested window that could not be booked, with enough detail to re-offer slots."""

    professional_id: str
    date: dt.date
    start_time: str
    end_time: str
    reason: SlotConflictReason
    conflicting_appointment_ids: List[str] = Field(default_factory=list)

    @property
    def message(self) -> str:
        if self.reason is SlotConflictReason.OUTSIDE_WORKING_HOURS:
            detail = "is outside the professional's working hours"
        elif self.reason is SlotConflictReason.VACATION:
            detail = "falls within the professional's vacation"
        else:
            detail = "is already booked"
        return (
            f"The time {self.start_time}-{self.end_time} on "
            f"{self.date.isoformat()} {detail}. Please choose another slot."
        )


class BookingResult(CamelModel):
    """Either a persisted appointment or the conflict that prevented it."""

    appointment: Optional[Appointment] = None
    conflict: Optional[SlotConflict] = None

    @classmethod
    def booked(cls, appointment: Appointment) -> "BookingResult":
        return cls(appointment=appointment)

    @classmethod
    def rejected(cls, conflict: SlotConflict) -> "BookingResult":
        return cls(conflict=conflict)

    @property
    def ok(self) -> bool:
        return self.appointment is not None

    def unwrap(self) -> Appointment:
        """
        Return the appointment or raise for exception-style callers.

        Raises:
            SlotConflictError: If the booking was rejected
        """
        if self.appointment is None:
            raise SlotConflictError(self.conflict)
        return self.appointment
