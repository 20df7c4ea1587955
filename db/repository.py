"""
Scheduling store contract.

The slot engine only needs the three read operations at the top. The rest
supports the booking service. Implementations must make
insert_appointment_if_free / update_appointment_if_free atomic with
respect to other writers for the same professional: that, not the
engine's courtesy check, is what prevents double booking.
"""

from abc import ABC, abstractmethod
from datetime import date
from typing import Any, Dict, List, Optional

from models.appointment import Appointment, AppointmentStatus
from models.commitments import Commitments
from models.schedule import Professional, WorkingHours
from models.service import Service
from models.vacation import Vacation

# Fields that decide where an appointment sits on the calendar. Status is
# left out: the store judges occupancy from the status stored at write time.
SLOT_FIELDS = (
    "professional_id",
    "service_id",
    "date",
    "start_time",
    "end_time",
    "duration_minutes",
)


class SchedulingRepository(ABC):
    """Async data-access contract for professionals, services, appointments and vacations."""

    # ========== Engine Read Contract ==========

    @abstractmethod
    async def get_working_hours(self, professional_id: str) -> WorkingHours:
        """Raises ProfessionalNotFoundError for unknown ids."""

    @abstractmethod
    async def get_service_duration(self, service_id: str) -> int:
        """Raises ServiceNotFoundError for unknown ids."""

    @abstractmethod
    async def get_commitments(
        self,
        professional_id: str,
        target_date: date,
        exclude_appointment_id: Optional[str] = None,
    ) -> Commitments:
        """Non-cancelled appointments on target_date and vacations intersecting it."""

    # ========== Professionals & Services ==========

    @abstractmethod
    async def get_professional(self, professional_id: str) -> Optional[Professional]:
        ...

    @abstractmethod
    async def save_professional(self, professional: Professional) -> Professional:
        ...

    @abstractmethod
    async def set_working_hours(
        self, professional_id: str, working_hours: WorkingHours
    ) -> Professional:
        """Raises ProfessionalNotFoundError for unknown ids."""

    @abstractmethod
    async def get_service(self, service_id: str) -> Optional[Service]:
        ...

    @abstractmethod
    async def save_service(self, service: Service) -> Service:
        ...

    # ========== Appointments ==========

    @abstractmethod
    async def get_appointment(self, appointment_id: str) -> Optional[Appointment]:
        ...

    @abstractmethod
    async def list_appointments(
        self, professional_id: str, target_date: Optional[date] = None
    ) -> List[Appointment]:
        """All appointments (any status) ordered by date and start time."""

    @abstractmethod
    async def insert_appointment_if_free(self, appointment: Appointment) -> Appointment:
        """
        Atomically re-check overlap and insert.

        Raises:
            ConcurrencyConflictError: If an occupying appointment or vacation
                overlaps the window at write time
        """

    @abstractmethod
    async def update_appointment_if_free(
        self, appointment_id: str, changes: Dict[str, Any]
    ) -> Appointment:
        """
        Atomically merge `changes` onto the stored record, re-check overlap
        (ignoring the appointment itself) and save it.

        `changes` must carry every field in SLOT_FIELDS. Fields left out
        keep their value at write time, so a concurrent notes edit survives
        a reschedule.

        Raises:
            AppointmentNotFoundError: If the appointment does not exist
            ConcurrencyConflictError: If the new window is taken at write time
        """

    @abstractmethod
    async def update_appointment(
        self, appointment_id: str, changes: Dict[str, Any]
    ) -> Appointment:
        """
        Write only `changes` without an overlap check. Only for fields that
        keep the slot (client, notes, non-reactivating status).

        Raises:
            AppointmentNotFoundError: If the appointment does not exist
            ConcurrencyConflictError: If the store rejects the row as overlapping
        """

    @abstractmethod
    async def set_appointment_status(
        self, appointment_id: str, status: AppointmentStatus
    ) -> Appointment:
        """
        Status change that cannot create an overlap (any move to CANCELLED,
        or between occupying statuses).

        Raises:
            AppointmentNotFoundError: If the appointment does not exist
        """

    # ========== Vacations ==========

    @abstractmethod
    async def list_vacations(self, professional_id: str) -> List[Vacation]:
        ...

    @abstractmethod
    async def create_vacation(self, vacation: Vacation) -> Vacation:
        """Raises ProfessionalNotFoundError for unknown professionals."""

    @abstractmethod
    async def delete_vacation(self, vacation_id: str) -> bool:
        ...
