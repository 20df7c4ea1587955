"""
Supabase-backed scheduling store.

Tables (see db/migrations/001_scheduling.sql):
    professionals  - id, name, specialty, work_schedule (jsonb)
    services       - id, name, description, duration_minutes, price, professional_id
    appointments   - id, professional_id, client_id, service_id, date,
                     start_time, end_time, duration_minutes, price, status, notes
    vacations      - id, professional_id, start_at, end_at, reason

Double-booking is prevented in the database, not here:
1. book_appointment / reschedule_appointment lock the professional row
   (SELECT ... FOR UPDATE) and re-check vacations and appointments.
   reschedule_appointment also locks the appointment row and merges only
   the changed columns onto it.
2. An exclusion constraint over (professional_id, time range) rejects any
   overlapping non-cancelled row that slips past the functions.
Both surface as SQLSTATE 23P01 and are mapped to ConcurrencyConflictError.

This client uses the service key which bypasses RLS.
"""

from datetime import date
from enum import Enum
from typing import Any, Dict, List, Optional

from postgrest.exceptions import APIError
from supabase import Client as SupabaseClientType
from supabase import create_client

from config import settings
from db.repository import SchedulingRepository
from models.appointment import Appointment, AppointmentStatus
from models.booking import SlotConflict, SlotConflictReason
from models.commitments import Commitments, CommittedAppointment, VacationWindow
from models.schedule import Professional, WorkingHours
from models.service import Service
from models.vacation import Vacation
from utils.constants import APPOINTMENTS_LIST_LIMIT, PG_EXCLUSION_VIOLATION
from utils.datetime_utils import day_bounds, parse_local_datetime
from utils.exceptions import (
    AppointmentNotFoundError,
    ConcurrencyConflictError,
    DatabaseError,
    ProfessionalNotFoundError,
    ServiceNotFoundError,
)
from utils.logging_config import get_logger

logger = get_logger(__name__)


def _hhmm(value: str) -> str:
    """Postgres time ('09:00:00') to 'HH:MM'."""
    return value[:5]


def _single_row(data: Any) -> Optional[dict]:
    if isinstance(data, list):
        return data[0] if data else None
    return data or None


def _serialize_changes(changes: Dict[str, Any]) -> Dict[str, Any]:
    """Column values for a partial appointment write."""
    serialized = {}
    for key, value in changes.items():
        if isinstance(value, date):
            value = value.isoformat()
        elif isinstance(value, Enum):
            value = value.value
        serialized[key] = value
    return serialized


def _race_conflict(slot: Dict[str, Any]) -> SlotConflict:
    """Conflict reported when the database rejects a window at write time."""
    return SlotConflict(
        professional_id=slot["professional_id"],
        date=slot["date"],
        start_time=slot["start_time"],
        end_time=slot["end_time"],
        reason=SlotConflictReason.CONCURRENT_BOOKING,
    )


class SupabaseSchedulingStore(SchedulingRepository):
    """
    Supabase database client wrapper implementing the scheduling store.

    Supabase calls are synchronous; they are wrapped in async methods to
    match the store contract, like the rest of the codebase.
    """

    def __init__(self, client: Optional[SupabaseClientType] = None):
        self.client: SupabaseClientType = client or create_client(
            settings.supabase_url, settings.supabase_key
        )

    # ========== Engine Read Contract ==========

    async def get_working_hours(self, professional_id: str) -> WorkingHours:
        try:
            response = (
                self.client.table("professionals")
                .select("work_schedule")
                .eq("id", professional_id)
                .execute()
            )
        except Exception as e:
            raise DatabaseError(f"Failed to get working hours: {e}") from e

        if not response.data:
            raise ProfessionalNotFoundError(f"Professional {professional_id} not found")
        return WorkingHours.model_validate(response.data[0].get("work_schedule") or {})

    async def get_service_duration(self, service_id: str) -> int:
        try:
            response = (
                self.client.table("services")
                .select("duration_minutes")
                .eq("id", service_id)
                .execute()
            )
        except Exception as e:
            raise DatabaseError(f"Failed to get service duration: {e}") from e

        if not response.data:
            raise ServiceNotFoundError(f"Service {service_id} not found")
        return int(response.data[0]["duration_minutes"])

    async def get_commitments(
        self,
        professional_id: str,
        target_date: date,
        exclude_appointment_id: Optional[str] = None,
    ) -> Commitments:
        day_start, day_end = day_bounds(target_date)
        try:
            query = (
                self.client.table("appointments")
                .select("id, start_time, end_time, status")
                .eq("professional_id", professional_id)
                .eq("date", target_date.isoformat())
                .neq("status", AppointmentStatus.CANCELLED.value)
            )
            if exclude_appointment_id:
                query = query.neq("id", exclude_appointment_id)
            appointments_response = query.order("start_time").execute()

            vacations_response = (
                self.client.table("vacations")
                .select("start_at, end_at")
                .eq("professional_id", professional_id)
                .lt("start_at", day_end.isoformat())
                .gt("end_at", day_start.isoformat())
                .execute()
            )
        except Exception as e:
            raise DatabaseError(f"Failed to get commitments: {e}") from e

        appointments = [
            CommittedAppointment(
                id=item["id"],
                start_time=_hhmm(item["start_time"]),
                end_time=_hhmm(item["end_time"]),
                status=AppointmentStatus(item["status"]),
            )
            for item in appointments_response.data
        ]
        vacations = [
            VacationWindow(
                start=parse_local_datetime(item["start_at"]),
                end=parse_local_datetime(item["end_at"]),
            )
            for item in vacations_response.data
        ]
        return Commitments(appointments=appointments, vacations=vacations)

    # ========== Professionals & Services ==========

    async def get_professional(self, professional_id: str) -> Optional[Professional]:
        try:
            response = (
                self.client.table("professionals")
                .select("*")
                .eq("id", professional_id)
                .execute()
            )
        except Exception as e:
            raise DatabaseError(f"Failed to get professional: {e}") from e

        if response.data:
            return self._parse_professional(response.data[0])
        return None

    async def save_professional(self, professional: Professional) -> Professional:
        payload = {
            "name": professional.name,
            "specialty": professional.specialty,
            "work_schedule": professional.working_hours.model_dump(mode="json", exclude_none=True),
        }
        if professional.id:
            payload["id"] = professional.id
        try:
            response = self.client.table("professionals").upsert(payload).execute()
        except Exception as e:
            raise DatabaseError(f"Failed to save professional: {e}") from e

        if not response.data:
            raise DatabaseError("Failed to save professional: no data returned")
        return self._parse_professional(response.data[0])

    async def set_working_hours(
        self, professional_id: str, working_hours: WorkingHours
    ) -> Professional:
        try:
            response = (
                self.client.table("professionals")
                .update({"work_schedule": working_hours.model_dump(mode="json", exclude_none=True)})
                .eq("id", professional_id)
                .execute()
            )
        except Exception as e:
            raise DatabaseError(f"Failed to update working hours: {e}") from e

        if not response.data:
            raise ProfessionalNotFoundError(f"Professional {professional_id} not found")
        logger.info(f"Working hours updated for professional {professional_id}")
        return self._parse_professional(response.data[0])

    async def get_service(self, service_id: str) -> Optional[Service]:
        try:
            response = (
                self.client.table("services").select("*").eq("id", service_id).execute()
            )
        except Exception as e:
            raise DatabaseError(f"Failed to get service: {e}") from e

        if response.data:
            return Service.model_validate(response.data[0])
        return None

    async def save_service(self, service: Service) -> Service:
        payload = service.model_dump(mode="json", exclude_none=True)
        try:
            response = self.client.table("services").upsert(payload).execute()
        except Exception as e:
            raise DatabaseError(f"Failed to save service: {e}") from e

        if not response.data:
            raise DatabaseError("Failed to save service: no data returned")
        return Service.model_validate(response.data[0])

    # ========== Appointments ==========

    async def get_appointment(self, appointment_id: str) -> Optional[Appointment]:
        try:
            response = (
                self.client.table("appointments")
                .select("*")
                .eq("id", appointment_id)
                .execute()
            )
        except Exception as e:
            raise DatabaseError(f"Failed to get appointment: {e}") from e

        if response.data:
            return self._parse_appointment(response.data[0])
        return None

    async def list_appointments(
        self, professional_id: str, target_date: Optional[date] = None
    ) -> List[Appointment]:
        try:
            query = (
                self.client.table("appointments")
                .select("*")
                .eq("professional_id", professional_id)
            )
            if target_date is not None:
                query = query.eq("date", target_date.isoformat())
            response = (
                query.order("date")
                .order("start_time")
                .limit(APPOINTMENTS_LIST_LIMIT)
                .execute()
            )
        except Exception as e:
            raise DatabaseError(f"Failed to list appointments: {e}") from e

        return [self._parse_appointment(item) for item in response.data]

    async def insert_appointment_if_free(self, appointment: Appointment) -> Appointment:
        params = {"p_appointment": self._appointment_payload(appointment)}
        row = await self._call_booking_rpc(
            "book_appointment", params, _race_conflict(appointment.model_dump())
        )
        if row is None:
            raise DatabaseError("Failed to create appointment: no data returned")
        return self._parse_appointment(row)

    async def update_appointment_if_free(
        self, appointment_id: str, changes: Dict[str, Any]
    ) -> Appointment:
        params = {"p_id": appointment_id, "p_changes": _serialize_changes(changes)}
        row = await self._call_booking_rpc(
            "reschedule_appointment", params, _race_conflict(changes)
        )
        if row is None:
            raise AppointmentNotFoundError(f"Appointment {appointment_id} not found")
        return self._parse_appointment(row)

    async def update_appointment(
        self, appointment_id: str, changes: Dict[str, Any]
    ) -> Appointment:
        try:
            response = (
                self.client.table("appointments")
                .update(_serialize_changes(changes))
                .eq("id", appointment_id)
                .execute()
            )
        except APIError as e:
            if e.code == PG_EXCLUSION_VIOLATION:
                stored = await self.get_appointment(appointment_id)
                if stored is None:
                    raise AppointmentNotFoundError(
                        f"Appointment {appointment_id} not found"
                    ) from e
                logger.warning(
                    f"Update of appointment {appointment_id} rejected by overlap "
                    f"constraint: {e.message}"
                )
                raise ConcurrencyConflictError(_race_conflict(stored.model_dump())) from e
            raise DatabaseError(f"Failed to update appointment: {e.message}") from e
        except Exception as e:
            raise DatabaseError(f"Failed to update appointment: {e}") from e

        if not response.data:
            raise AppointmentNotFoundError(f"Appointment {appointment_id} not found")
        return self._parse_appointment(response.data[0])

    async def set_appointment_status(
        self, appointment_id: str, status: AppointmentStatus
    ) -> Appointment:
        return await self.update_appointment(appointment_id, {"status": status})

    async def _call_booking_rpc(
        self, function: str, params: Dict[str, Any], conflict: SlotConflict
    ) -> Optional[dict]:
        try:
            response = self.client.rpc(function, params).execute()
        except APIError as e:
            if e.code == PG_EXCLUSION_VIOLATION:
                logger.warning(
                    f"{function} lost a race for professional {conflict.professional_id} "
                    f"on {conflict.date} {conflict.start_time}: {e.message}"
                )
                raise ConcurrencyConflictError(conflict) from e
            raise DatabaseError(f"Failed to call {function}: {e.message}") from e
        except Exception as e:
            raise DatabaseError(f"Failed to call {function}: {e}") from e

        return _single_row(response.data)

    # ========== Vacations ==========

    async def list_vacations(self, professional_id: str) -> List[Vacation]:
        try:
            response = (
                self.client.table("vacations")
                .select("*")
                .eq("professional_id", professional_id)
                .order("start_at")
                .execute()
            )
        except Exception as e:
            raise DatabaseError(f"Failed to list vacations: {e}") from e

        return [self._parse_vacation(item) for item in response.data]

    async def create_vacation(self, vacation: Vacation) -> Vacation:
        if await self.get_professional(vacation.professional_id) is None:
            raise ProfessionalNotFoundError(
                f"Professional {vacation.professional_id} not found"
            )

        payload = {
            "professional_id": vacation.professional_id,
            "start_at": vacation.start.isoformat(),
            "end_at": vacation.end.isoformat(),
            "reason": vacation.reason,
        }
        try:
            response = self.client.table("vacations").insert(payload).execute()
        except Exception as e:
            raise DatabaseError(f"Failed to create vacation: {e}") from e

        if not response.data:
            raise DatabaseError("Failed to create vacation: no data returned")
        return self._parse_vacation(response.data[0])

    async def delete_vacation(self, vacation_id: str) -> bool:
        try:
            response = (
                self.client.table("vacations").delete().eq("id", vacation_id).execute()
            )
            return len(response.data) > 0
        except Exception as e:
            raise DatabaseError(f"Failed to delete vacation: {e}") from e

    # ========== Row Parsing ==========

    def _appointment_payload(self, appointment: Appointment) -> dict:
        return {
            "professional_id": appointment.professional_id,
            "client_id": appointment.client_id,
            "service_id": appointment.service_id,
            "date": appointment.date.isoformat(),
            "start_time": appointment.start_time,
            "end_time": appointment.end_time,
            "duration_minutes": appointment.duration_minutes,
            "price": appointment.price,
            "status": appointment.status.value,
            "notes": appointment.notes,
        }

    def _parse_professional(self, item: dict) -> Professional:
        return Professional(
            id=item["id"],
            name=item["name"],
            specialty=item.get("specialty"),
            working_hours=WorkingHours.model_validate(item.get("work_schedule") or {}),
        )

    def _parse_appointment(self, item: dict) -> Appointment:
        """Parse appointment from database row, normalizing time columns."""
        return Appointment(
            id=item["id"],
            professional_id=item["professional_id"],
            client_id=item["client_id"],
            service_id=item["service_id"],
            date=item["date"],
            start_time=_hhmm(item["start_time"]),
            end_time=_hhmm(item["end_time"]),
            duration_minutes=item["duration_minutes"],
            price=item.get("price") or 0.0,
            status=AppointmentStatus(item["status"]),
            notes=item.get("notes"),
            created_at=item.get("created_at"),
            updated_at=item.get("updated_at"),
        )

    def _parse_vacation(self, item: dict) -> Vacation:
        return Vacation(
            id=item["id"],
            professional_id=item["professional_id"],
            start=parse_local_datetime(item["start_at"]),
            end=parse_local_datetime(item["end_at"]),
            reason=item.get("reason"),
            created_at=item.get("created_at"),
        )
