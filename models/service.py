"""Service models for bookable services."""

from typing import Optional

from pydantic import Field

from models.base import CamelModel
from utils.constants import MAX_SERVICE_DURATION_MINUTES, MIN_SERVICE_DURATION_MINUTES


class Service(CamelModel):
    """Service model. Duration is the only input the slot engine needs."""

    id: Optional[str] = None
    name: str = Field(..., min_length=1)
    description: Optional[str] = None
    duration_minutes: int = Field(
        ...,
        ge=MIN_SERVICE_DURATION_MINUTES,
        le=MAX_SERVICE_DURATION_MINUTES,
        description="Duration in minutes",
    )
    price: float = Field(..., ge=0)
    professional_id: Optional[str] = Field(
        default=None, description="Owning professional, None for global services"
    )

    class Config:
        json_schema_extra = {
            "example": {
                "name": "Corte masculino",
                "description": "Corte com máquina e tesoura",
                "durationMinutes": 45,
                "price": 60.0,
            }
        }
