"""Scheduling services: slot engine facade and booking workflow."""

from .booking_service import BookingService
from .slot_engine import SlotEngine

__all__ = ["BookingService", "SlotEngine"]
