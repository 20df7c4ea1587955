"""
In-memory scheduling store.

Used for development, tests and single-process deployments. Writes that
can create an overlap are serialized per professional with an
asyncio.Lock held across the re-check and the write.
"""

import asyncio
import uuid
from collections import defaultdict
from datetime import date
from typing import Any, Dict, List, Optional

from engine.slots import find_collision
from models.appointment import Appointment, AppointmentStatus
from models.booking import SlotConflict, SlotConflictReason
from models.commitments import Commitments, CommittedAppointment, VacationWindow
from models.schedule import Professional, WorkingHours
from models.service import Service
from models.vacation import Vacation
from db.repository import SchedulingRepository
from utils.datetime_utils import day_bounds, utc_now
from utils.exceptions import (
    AppointmentNotFoundError,
    ConcurrencyConflictError,
    ProfessionalNotFoundError,
    ServiceNotFoundError,
)
from utils.logging_config import get_logger

logger = get_logger(__name__)


def _new_id() -> str:
    return str(uuid.uuid4())


class InMemorySchedulingStore(SchedulingRepository):
    """Dict-backed store with per-professional write serialization."""

    def __init__(self):
        self._professionals: Dict[str, Professional] = {}
        self._services: Dict[str, Service] = {}
        self._appointments: Dict[str, Appointment] = {}
        self._vacations: Dict[str, Vacation] = {}
        self._locks: Dict[str, asyncio.Lock] = defaultdict(asyncio.Lock)

    def lock_for(self, professional_id: str) -> asyncio.Lock:
        """Write lock serializing bookings of one professional."""
        return self._locks[professional_id]

    # ========== Engine Read Contract ==========

    async def get_working_hours(self, professional_id: str) -> WorkingHours:
        professional = self._professionals.get(professional_id)
        if professional is None:
            raise ProfessionalNotFoundError(f"Professional {professional_id} not found")
        return professional.working_hours.model_copy(deep=True)

    async def get_service_duration(self, service_id: str) -> int:
        service = self._services.get(service_id)
        if service is None:
            raise ServiceNotFoundError(f"Service {service_id} not found")
        return service.duration_minutes

    async def get_commitments(
        self,
        professional_id: str,
        target_date: date,
        exclude_appointment_id: Optional[str] = None,
    ) -> Commitments:
        return self._snapshot(professional_id, target_date, exclude_appointment_id)

    def _snapshot(
        self,
        professional_id: str,
        target_date: date,
        exclude_appointment_id: Optional[str] = None,
    ) -> Commitments:
        appointments = [
            CommittedAppointment.from_appointment(appointment)
            for appointment in self._appointments.values()
            if appointment.professional_id == professional_id
            and appointment.date == target_date
            and appointment.occupies_calendar
            and appointment.id != exclude_appointment_id
        ]
        appointments.sort(key=lambda a: a.interval)

        day_start, day_end = day_bounds(target_date)
        vacations = [
            VacationWindow.from_vacation(vacation)
            for vacation in self._vacations.values()
            if vacation.professional_id == professional_id
            and vacation.start < day_end
            and vacation.end > day_start
        ]
        return Commitments(appointments=appointments, vacations=vacations)

    # ========== Professionals & Services ==========

    async def get_professional(self, professional_id: str) -> Optional[Professional]:
        professional = self._professionals.get(professional_id)
        return professional.model_copy(deep=True) if professional else None

    async def save_professional(self, professional: Professional) -> Professional:
        stored = professional.model_copy(update={"id": professional.id or _new_id()}, deep=True)
        self._professionals[stored.id] = stored
        return stored.model_copy(deep=True)

    async def set_working_hours(
        self, professional_id: str, working_hours: WorkingHours
    ) -> Professional:
        professional = self._professionals.get(professional_id)
        if professional is None:
            raise ProfessionalNotFoundError(f"Professional {professional_id} not found")
        updated = professional.model_copy(update={"working_hours": working_hours}, deep=True)
        self._professionals[professional_id] = updated
        logger.info(f"Working hours updated for professional {professional_id}")
        return updated.model_copy(deep=True)

    async def get_service(self, service_id: str) -> Optional[Service]:
        service = self._services.get(service_id)
        return service.model_copy() if service else None

    async def save_service(self, service: Service) -> Service:
        stored = service.model_copy(update={"id": service.id or _new_id()})
        self._services[stored.id] = stored
        return stored.model_copy()

    # ========== Appointments ==========

    async def get_appointment(self, appointment_id: str) -> Optional[Appointment]:
        appointment = self._appointments.get(appointment_id)
        return appointment.model_copy() if appointment else None

    async def list_appointments(
        self, professional_id: str, target_date: Optional[date] = None
    ) -> List[Appointment]:
        appointments = [
            appointment.model_copy()
            for appointment in self._appointments.values()
            if appointment.professional_id == professional_id
            and (target_date is None or appointment.date == target_date)
        ]
        return sorted(appointments, key=lambda a: (a.date, a.interval))

    def _ensure_free(self, appointment: Appointment) -> None:
        commitments = self._snapshot(
            appointment.professional_id, appointment.date, appointment.id
        )
        collision = find_collision(appointment.interval, appointment.date, commitments)
        if collision is not None:
            raise ConcurrencyConflictError(
                SlotConflict(
                    professional_id=appointment.professional_id,
                    date=appointment.date,
                    start_time=appointment.start_time,
                    end_time=appointment.end_time,
                    reason=SlotConflictReason.CONCURRENT_BOOKING,
                    conflicting_appointment_ids=list(collision.appointment_ids),
                )
            )

    async def insert_appointment_if_free(self, appointment: Appointment) -> Appointment:
        async with self.lock_for(appointment.professional_id):
            now = utc_now()
            stored = appointment.model_copy(
                update={"id": appointment.id or _new_id(), "created_at": now, "updated_at": now}
            )
            if stored.occupies_calendar:
                self._ensure_free(stored)
            self._appointments[stored.id] = stored
            return stored.model_copy()

    async def update_appointment_if_free(
        self, appointment_id: str, changes: Dict[str, Any]
    ) -> Appointment:
        async with self.lock_for(changes["professional_id"]):
            current = self._appointments.get(appointment_id)
            if current is None:
                raise AppointmentNotFoundError(f"Appointment {appointment_id} not found")
            # Merge onto the record as stored now, not as the caller read it
            stored = current.model_copy(update={**changes, "updated_at": utc_now()})
            if stored.occupies_calendar:
                self._ensure_free(stored)
            self._appointments[appointment_id] = stored
            return stored.model_copy()

    async def update_appointment(
        self, appointment_id: str, changes: Dict[str, Any]
    ) -> Appointment:
        current = self._appointments.get(appointment_id)
        if current is None:
            raise AppointmentNotFoundError(f"Appointment {appointment_id} not found")
        stored = current.model_copy(update={**changes, "updated_at": utc_now()})
        self._appointments[appointment_id] = stored
        return stored.model_copy()

    async def set_appointment_status(
        self, appointment_id: str, status: AppointmentStatus
    ) -> Appointment:
        return await self.update_appointment(appointment_id, {"status": status})

    # ========== Vacations ==========

    async def list_vacations(self, professional_id: str) -> List[Vacation]:
        vacations = [
            vacation.model_copy()
            for vacation in self._vacations.values()
            if vacation.professional_id == professional_id
        ]
        return sorted(vacations, key=lambda v: v.start)

    async def create_vacation(self, vacation: Vacation) -> Vacation:
        if vacation.professional_id not in self._professionals:
            raise ProfessionalNotFoundError(
                f"Professional {vacation.professional_id} not found"
            )
        stored = vacation.model_copy(
            update={"id": vacation.id or _new_id(), "created_at": utc_now()}
        )
        self._vacations[stored.id] = stored
        logger.info(
            f"Vacation {stored.id} created for professional {stored.professional_id}: "
            f"{stored.start.isoformat()} - {stored.end.isoformat()}"
        )
        return stored.model_copy()

    async def delete_vacation(self, vacation_id: str) -> bool:
        return self._vacations.pop(vacation_id, None) is not None
