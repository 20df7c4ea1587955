"""
Appointment booking workflow.

Create, reschedule, status change and cancellation. Every write that can
make a professional's appointments overlap goes through two gates:
1. a courtesy check through the slot engine, which yields a detailed
   conflict (outside hours, vacation, occupied) for the caller;
2. the store's atomic insert/update, which is what actually prevents
   double booking when two requests race.
Conflicts from either gate come back as BookingResult.rejected(...).
"""

from datetime import date, datetime, timedelta
from typing import Any, Dict, List, Optional

from config import settings
from db.repository import SLOT_FIELDS, SchedulingRepository
from engine.intervals import add_minutes, parse_time
from models.appointment import (
    Appointment,
    AppointmentCreate,
    AppointmentStatus,
    AppointmentUpdate,
)
from models.booking import BookingResult, SlotConflict
from models.schedule import Professional
from models.service import Service
from services.slot_engine import SlotEngine
from utils.datetime_utils import day_bounds
from utils.exceptions import (
    AppointmentNotFoundError,
    ConcurrencyConflictError,
    InvalidInputError,
    PastBookingError,
    ProfessionalNotFoundError,
    ServiceNotFoundError,
)
from utils.logging_config import get_logger

logger = get_logger(__name__, log_file="booking.log")


class BookingService:
    """Appointment writes guarded against double booking."""

    def __init__(
        self,
        repository: SchedulingRepository,
        slot_engine: Optional[SlotEngine] = None,
        allow_past_bookings: Optional[bool] = None,
    ):
        self.repository = repository
        self.slot_engine = slot_engine or SlotEngine(repository)
        self.allow_past_bookings = (
            settings.allow_past_bookings
            if allow_past_bookings is None
            else allow_past_bookings
        )

    # ========== Reads ==========

    async def get_appointment(self, appointment_id: str) -> Appointment:
        """
        Raises:
            AppointmentNotFoundError: If the appointment does not exist
        """
        appointment = await self.repository.get_appointment(appointment_id)
        if appointment is None:
            raise AppointmentNotFoundError(f"Appointment {appointment_id} not found")
        return appointment

    async def list_appointments(
        self, professional_id: str, target_date: Optional[date] = None
    ) -> List[Appointment]:
        return await self.repository.list_appointments(professional_id, target_date)

    # ========== Writes ==========

    async def create_appointment(
        self, data: AppointmentCreate, *, now: datetime
    ) -> BookingResult:
        """
        Book a new appointment.

        Args:
            data: Validated creation payload
            now: Current local wall-clock time of the scheduling timezone

        Returns:
            BookingResult with the stored appointment, or the conflict

        Raises:
            InvalidInputError: Unknown professional/service, past date, bad time
        """
        professional = await self._require_professional(data.professional_id)
        service = await self._require_service(data.service_id, professional)
        self._ensure_not_past(data.date, data.start_time, now)

        conflict = await self.slot_engine.check_slot(
            professional.id, data.date, data.start_time, service.duration_minutes
        )
        if conflict is not None:
            self._log_conflict("create", conflict)
            return BookingResult.rejected(conflict)

        appointment = Appointment(
            professional_id=professional.id,
            client_id=data.client_id,
            service_id=service.id,
            date=data.date,
            start_time=data.start_time,
            end_time=add_minutes(data.start_time, service.duration_minutes),
            duration_minutes=service.duration_minutes,
            price=service.price,
            notes=data.notes,
        )

        try:
            saved = await self.repository.insert_appointment_if_free(appointment)
        except ConcurrencyConflictError as e:
            self._log_conflict("create", e.conflict)
            return BookingResult.rejected(e.conflict)

        logger.info(
            f"Appointment {saved.id} booked: professional={saved.professional_id}, "
            f"date={saved.date.isoformat()}, {saved.start_time}-{saved.end_time}"
        )
        return BookingResult.booked(saved)

    async def update_appointment(
        self, appointment_id: str, data: AppointmentUpdate, *, now: datetime
    ) -> BookingResult:
        """
        Update an appointment.

        Only the fields present in the payload are written; everything else
        keeps its value at write time. Moving it (date, start time,
        professional or service) recomputes end time and duration from the
        service and re-runs both gates, ignoring the appointment's own
        current slot. A status in the payload is applied in the same write.

        Raises:
            AppointmentNotFoundError: If the appointment does not exist
            InvalidInputError: Unknown professional/service, past date, bad time
        """
        current = await self.get_appointment(appointment_id)
        changes = data.model_dump(exclude_none=True)
        status = data.status or current.status
        reactivates = not current.occupies_calendar and status.occupies_calendar

        if not data.moves_slot:
            if reactivates:
                return await self._guarded_update(current, changes, "reactivate")
            if not changes:
                return BookingResult.booked(current)
            return await self._plain_update(current.id, changes, "update")

        professional = await self._require_professional(
            data.professional_id or current.professional_id
        )
        service = await self._require_service(
            data.service_id or current.service_id, professional
        )
        target_date = data.date or current.date
        start_time = data.start_time or current.start_time
        self._ensure_not_past(target_date, start_time, now)

        changes.update(
            professional_id=professional.id,
            service_id=service.id,
            date=target_date,
            start_time=start_time,
            end_time=add_minutes(start_time, service.duration_minutes),
            duration_minutes=service.duration_minutes,
        )
        if service.id != current.service_id:
            changes["price"] = service.price

        return await self._guarded_update(current, changes, "reschedule")

    async def update_status(
        self, appointment_id: str, status: AppointmentStatus, *, now: datetime
    ) -> BookingResult:
        """
        Change an appointment's status.

        Moving a cancelled appointment back to an occupying status re-claims
        its slot and may therefore be rejected. `now` is accepted for
        symmetry with the other writes; status changes are not time-gated.

        Raises:
            AppointmentNotFoundError: If the appointment does not exist
        """
        current = await self.get_appointment(appointment_id)
        if status == current.status:
            return BookingResult.booked(current)

        if not current.occupies_calendar and status.occupies_calendar:
            return await self._guarded_update(current, {"status": status}, "reactivate")

        result = await self._plain_update(appointment_id, {"status": status}, "update")
        if result.ok:
            logger.info(
                f"Appointment {appointment_id} status {current.status.value} -> {status.value}"
            )
        return result

    async def cancel_appointment(self, appointment_id: str) -> Appointment:
        """
        Cancel an appointment, freeing its slot immediately.

        Raises:
            AppointmentNotFoundError: If the appointment does not exist
        """
        saved = await self.repository.set_appointment_status(
            appointment_id, AppointmentStatus.CANCELLED
        )
        logger.info(f"Appointment {appointment_id} cancelled")
        return saved

    # ========== Helpers ==========

    async def _guarded_update(
        self, current: Appointment, changes: Dict[str, Any], action: str
    ) -> BookingResult:
        target = current.model_copy(update=changes)
        # A cancelled appointment holds no slot; the store still re-checks
        # if it occupies the calendar at write time
        if target.occupies_calendar:
            conflict = await self.slot_engine.check_slot(
                target.professional_id,
                target.date,
                target.start_time,
                target.duration_minutes,
                exclude_appointment_id=current.id,
            )
            if conflict is not None:
                self._log_conflict(action, conflict)
                return BookingResult.rejected(conflict)

        write = {field: getattr(target, field) for field in SLOT_FIELDS}
        write.update(changes)
        try:
            saved = await self.repository.update_appointment_if_free(current.id, write)
        except ConcurrencyConflictError as e:
            self._log_conflict(action, e.conflict)
            return BookingResult.rejected(e.conflict)

        logger.info(
            f"Appointment {saved.id} {action}d: date={saved.date.isoformat()}, "
            f"{saved.start_time}-{saved.end_time}, status={saved.status.value}"
        )
        return BookingResult.booked(saved)

    async def _plain_update(
        self, appointment_id: str, changes: Dict[str, Any], action: str
    ) -> BookingResult:
        try:
            saved = await self.repository.update_appointment(appointment_id, changes)
        except ConcurrencyConflictError as e:
            self._log_conflict(action, e.conflict)
            return BookingResult.rejected(e.conflict)

        logger.info(f"Appointment {saved.id} {action}d: {sorted(changes)}")
        return BookingResult.booked(saved)

    async def _require_professional(self, professional_id: str) -> Professional:
        professional = await self.repository.get_professional(professional_id)
        if professional is None:
            raise ProfessionalNotFoundError(f"Professional {professional_id} not found")
        return professional

    async def _require_service(self, service_id: str, professional: Professional) -> Service:
        service = await self.repository.get_service(service_id)
        if service is None:
            raise ServiceNotFoundError(f"Service {service_id} not found")
        if service.professional_id and service.professional_id != professional.id:
            raise InvalidInputError(
                f"Service {service_id} is not offered by professional {professional.id}"
            )
        return service

    def _ensure_not_past(self, target_date: date, start_time: str, now: datetime) -> None:
        if self.allow_past_bookings:
            return
        day_start, _ = day_bounds(target_date)
        starts_at = day_start + timedelta(minutes=parse_time(start_time))
        if starts_at < now.replace(tzinfo=None):
            raise PastBookingError(
                f"Cannot book {target_date.isoformat()} {start_time}: it is in the past"
            )

    def _log_conflict(self, action: str, conflict: SlotConflict) -> None:
        logger.warning(
            f"Booking {action} rejected ({conflict.reason.value}): "
            f"professional={conflict.professional_id}, date={conflict.date.isoformat()}, "
            f"{conflict.start_time}-{conflict.end_time}, "
            f"conflicting={conflict.conflicting_appointment_ids}"
        )
