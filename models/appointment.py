"""Appointment models."""

import datetime as dt
from enum import Enum
from typing import Optional

from pydantic import Field, field_validator

from engine.intervals import Interval, format_minutes, parse_time
from models.base import CamelModel
from utils.constants import MAX_NOTES_LENGTH
from utils.exceptions import InvalidInputError
from utils.validation import sanitize_text


class AppointmentStatus(str, Enum):
    """Appointment status."""

    SCHEDULED = "SCHEDULED"
    CONFIRMED = "CONFIRMED"
    IN_PROGRESS = "IN_PROGRESS"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"
    NO_SHOW = "NO_SHOW"

    @property
    def occupies_calendar(self) -> bool:
        """Only cancelled appointments free the professional's time."""
        return self is not AppointmentStatus.CANCELLED


def _normalize_start_time(value: str) -> str:
    try:
        return format_minutes(parse_time(value))
    except InvalidInputError as e:
        raise ValueError(str(e)) from e


class Appointment(CamelModel):
    """Appointment model."""

    id: Optional[str] = None
    professional_id: str
    client_id: str
    service_id: str
    date: dt.date
    start_time: str
    end_time: str
    duration_minutes: int = Field(..., gt=0)
    price: float = Field(default=0.0, ge=0)
    status: AppointmentStatus = AppointmentStatus.SCHEDULED
    notes: Optional[str] = None
    created_at: Optional[dt.datetime] = None
    updated_at: Optional[dt.datetime] = None

    class Config:
        json_schema_extra = {
            "example": {
                "professionalId": "uuid-here",
                "clientId": "uuid-here",
                "serviceId": "uuid-here",
                "date": "2026-01-12",
                "startTime": "10:30",
                "endTime": "11:15",
                "durationMinutes": 45,
                "price": 60.0,
                "status": "SCHEDULED",
            }
        }

    @property
    def interval(self) -> Interval:
        return Interval(
            parse_time(self.start_time), parse_time(self.end_time, allow_end_of_day=True)
        )

    @property
    def occupies_calendar(self) -> bool:
        return self.status.occupies_calendar


class AppointmentCreate(CamelModel):
    """Appointment creation model. End time and price come from the service."""

    client_id: str = Field(..., min_length=1)
    professional_id: str = Field(..., min_length=1)
    service_id: str = Field(..., min_length=1)
    date: dt.date
    start_time: str
    notes: Optional[str] = None

    @field_validator("start_time")
    @classmethod
    def check_start(cls, value: str) -> str:
        return _normalize_start_time(value)

    @field_validator("notes")
    @classmethod
    def clean_notes(cls, value: Optional[str]) -> Optional[str]:
        if value is None:
            return None
        return sanitize_text(value, max_length=MAX_NOTES_LENGTH)


class AppointmentUpdate(CamelModel):
    """Partial update. Changing date, time, professional or service re-checks the slot."""

    client_id: Optional[str] = None
    professional_id: Optional[str] = None
    service_id: Optional[str] = None
    date: Optional[dt.date] = None
    start_time: Optional[str] = None
    notes: Optional[str] = None
    status: Optional[AppointmentStatus] = None

    @field_validator("start_time")
    @classmethod
    def check_start(cls, value: Optional[str]) -> Optional[str]:
        if value is None:
            return None
        return _normalize_start_time(value)

    @field_validator("notes")
    @classmethod
    def clean_notes(cls, value: Optional[str]) -> Optional[str]:
        if value is None:
            return None
        return sanitize_text(value, max_length=MAX_NOTES_LENGTH)

    @property
    def moves_slot(self) -> bool:
        return any(
            value is not None
            for value in (self.professional_id, self.service_id, self.date, self.start_time)
        )
