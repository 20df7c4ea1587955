"""Working-hours models: weekdays, shifts and a professional's weekly schedule."""

from datetime import date
from enum import Enum
from typing import List, Optional

from pydantic import Field, field_validator, model_validator

from engine.intervals import Interval, format_minutes, parse_time
from models.base import CamelModel
from utils.exceptions import InvalidInputError


class Weekday(str, Enum):
    """Weekday keys, in date.weekday() order."""

    MONDAY = "monday"
    TUESDAY = "tuesday"
    WEDNESDAY = "wednesday"
    THURSDAY = "thursday"
    FRIDAY = "friday"
    SATURDAY = "saturday"
    SUNDAY = "sunday"

    @classmethod
    def from_date(cls, target_date: date) -> "Weekday":
        return list(cls)[target_date.weekday()]


class Shift(CamelModel):
    """One continuous working window within a day, [start, end)."""

    start: str = Field(..., description="HH:MM")
    end: str = Field(..., description="HH:MM, or 24:00 for end of day")

    @field_validator("start")
    @classmethod
    def normalize_start(cls, value: str) -> str:
        try:
            return format_minutes(parse_time(value))
        except InvalidInputError as e:
            raise ValueError(str(e)) from e

    @field_validator("end")
    @classmethod
    def normalize_end(cls, value: str) -> str:
        try:
            return format_minutes(parse_time(value, allow_end_of_day=True))
        except InvalidInputError as e:
            raise ValueError(str(e)) from e

    @model_validator(mode="after")
    def check_order(self) -> "Shift":
        if self.interval.start >= self.interval.end:
            raise ValueError(f"Shift start {self.start} must be before end {self.end}")
        return self

    @property
    def interval(self) -> Interval:
        return Interval(parse_time(self.start), parse_time(self.end, allow_end_of_day=True))

    @property
    def length_minutes(self) -> int:
        return self.interval.length


class DaySchedule(CamelModel):
    """Shifts for one weekday. A disabled day has no effective shifts."""

    enabled: bool = True
    shifts: List[Shift] = Field(default_factory=list)

    @field_validator("shifts")
    @classmethod
    def sort_and_check_overlap(cls, shifts: List[Shift]) -> List[Shift]:
        ordered = sorted(shifts, key=lambda s: s.interval.start)
        for previous, current in zip(ordered, ordered[1:]):
            if previous.interval.overlaps(current.interval):
                raise ValueError(
                    f"Shifts {previous.start}-{previous.end} and "
                    f"{current.start}-{current.end} overlap"
                )
        return ordered

    @property
    def effective_shifts(self) -> List[Shift]:
        return list(self.shifts) if self.enabled else []


class WorkingHours(CamelModel):
    """
    Weekly working schedule of a professional.

    Serializes to the stored work-schedule JSON:
    {"monday": {"enabled": true, "shifts": [{"start": "09:00", "end": "12:00"}]}, ...}
    A missing weekday means the professional does not work that day.
    """

    monday: Optional[DaySchedule] = None
    tuesday: Optional[DaySchedule] = None
    wednesday: Optional[DaySchedule] = None
    thursday: Optional[DaySchedule] = None
    friday: Optional[DaySchedule] = None
    saturday: Optional[DaySchedule] = None
    sunday: Optional[DaySchedule] = None

    def day(self, weekday: Weekday) -> Optional[DaySchedule]:
        return getattr(self, weekday.value)

    def shifts_for(self, target_date: date) -> List[Shift]:
        """Effective shifts for the weekday of target_date, ordered by start."""
        schedule = self.day(Weekday.from_date(target_date))
        if schedule is None:
            return []
        return schedule.effective_shifts


class Professional(CamelModel):
    """Professional model."""

    id: Optional[str] = None
    name: str
    specialty: Optional[str] = None
    working_hours: WorkingHours = Field(default_factory=WorkingHours)

    class Config:
        json_schema_extra = {
            "example": {
                "name": "Ana Souza",
                "specialty": "Cabeleireiro",
                "workingHours": {
                    "monday": {
                        "enabled": True,
                        "shifts": [
                            {"start": "09:00", "end": "12:00"},
                            {"start": "13:00", "end": "18:00"},
                        ],
                    }
                },
            }
        }
