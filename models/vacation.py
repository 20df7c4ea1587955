"""Vacation / leave models."""

from datetime import datetime
from typing import Optional

from pydantic import Field, field_validator, model_validator

from models.base import CamelModel
from utils.constants import MAX_REASON_LENGTH
from utils.datetime_utils import to_local_naive
from utils.validation import sanitize_text


class Vacation(CamelModel):
    """
    A professional's leave period. Fully blocks availability in [start, end)
    regardless of anything else; may span several days.
    """

    id: Optional[str] = None
    professional_id: str = Field(..., min_length=1)
    start: datetime = Field(..., description="Local wall-clock start")
    end: datetime = Field(..., description="Local wall-clock end (exclusive)")
    reason: Optional[str] = None
    created_at: Optional[datetime] = None

    class Config:
        json_schema_extra = {
            "example": {
                "professionalId": "uuid-here",
                "start": "2026-01-12T00:00:00",
                "end": "2026-01-17T00:00:00",
                "reason": "Férias",
            }
        }

    @field_validator("start", "end")
    @classmethod
    def to_local(cls, value: datetime) -> datetime:
        # Stored as local wall-clock time of the scheduling timezone
        return to_local_naive(value)

    @field_validator("reason")
    @classmethod
    def clean_reason(cls, value: Optional[str]) -> Optional[str]:
        if value is None:
            return None
        return sanitize_text(value, max_length=MAX_REASON_LENGTH)

    @model_validator(mode="after")
    def check_range(self) -> "Vacation":
        if self.start >= self.end:
            raise ValueError("Vacation start must be before its end")
        return self
