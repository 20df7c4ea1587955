"""
Custom exception classes for the scheduling core.
Provides specific error types instead of generic exceptions.
"""

from typing import TYPE_CHECKING, Optional

if TYPE_CHECKING:
    from models.booking import SlotConflict


class SchedulingError(Exception):
    """Base exception for scheduling operations."""

    pass


class InvalidInputError(SchedulingError):
    """Raised when input is malformed or references unknown records."""

    pass


class PastBookingError(InvalidInputError):
    """Raised when a booking targets a moment before 'now'."""

    pass


class NotFoundError(SchedulingError):
    """Base exception for missing records."""

    pass


class ProfessionalNotFoundError(InvalidInputError, NotFoundError):
    """Raised when a professional is not found."""

    pass


class ServiceNotFoundError(InvalidInputError, NotFoundError):
    """Raised when a service is not found."""

    pass


class AppointmentNotFoundError(NotFoundError):
    """Raised when an appointment is not found."""

    pass


class VacationNotFoundError(NotFoundError):
    """Raised when a vacation is not found."""

    pass


class SlotConflictError(SchedulingError):
    """
    Raised when a create/update targets an already-occupied interval.

    Carries the SlotConflict describing the professional and the requested
    window so callers can build a user-facing message.
    """

    def __init__(self, conflict: "SlotConflict", message: Optional[str] = None):
        self.conflict = conflict
        super().__init__(
            message
            or (
                f"Professional {conflict.professional_id} is not available on "
                f"{conflict.date.isoformat()} between {conflict.start_time} "
                f"and {conflict.end_time} ({conflict.reason.value})"
            )
        )


class ConcurrencyConflictError(SlotConflictError):
    """Raised by a store when its atomic check-then-insert loses a race."""

    pass


class DatabaseError(SchedulingError):
    """Raised when the backing store fails."""

    pass
