"""
HTTP API for slot availability and appointment booking.

Thin aiohttp layer over SlotEngine and BookingService:
- Query/body keys are camelCase, dates YYYY-MM-DD, times HH:MM
- Domain errors are mapped to status codes in one middleware
- Slot conflicts return 409 with the conflict and re-offered free slots
- Security headers on every response
"""

import json
import time
from typing import Callable, Optional

from aiohttp import web
from aiohttp.web import Request, Response
from pydantic import ValidationError

from config import settings
from db import get_repository
from db.repository import SchedulingRepository
from models.appointment import AppointmentCreate, AppointmentStatus, AppointmentUpdate
from models.booking import BookingResult
from models.schedule import WorkingHours
from models.vacation import Vacation
from services.booking_service import BookingService
from services.slot_engine import SlotEngine
from utils.datetime_utils import local_now, parse_date
from utils.exceptions import (
    DatabaseError,
    InvalidInputError,
    NotFoundError,
    ProfessionalNotFoundError,
    SlotConflictError,
    VacationNotFoundError,
)
from utils.logging_config import get_logger
from utils.validation import parse_positive_int, require_id

logger = get_logger(__name__, log_file="api.log")

MAX_REQUEST_BODY_SIZE = 64 * 1024  # 64KB

REPOSITORY_KEY = web.AppKey("repository", SchedulingRepository)
SLOT_ENGINE_KEY = web.AppKey("slot_engine", SlotEngine)
BOOKING_SERVICE_KEY = web.AppKey("booking_service", BookingService)
NOW_FN_KEY = web.AppKey("now_fn", Callable)
START_TIME_KEY = web.AppKey("start_time", float)


def _error(status: int, error: str, message: str, **extra) -> Response:
    return web.json_response(
        {"status": "error", "error": error, "message": message, **extra},
        status=status,
    )


@web.middleware
async def error_middleware(request: Request, handler):
    """
    Map domain exceptions to JSON error responses.

    SlotConflictError -> 409, NotFoundError -> 404, invalid input -> 400,
    store failures -> 503, anything else -> 500.
    """
    try:
        return await handler(request)
    except web.HTTPException:
        raise
    except SlotConflictError as e:
        return _error(409, "slot_conflict", e.conflict.message, conflict=e.conflict.to_json_dict())
    except NotFoundError as e:
        return _error(404, "not_found", str(e))
    except InvalidInputError as e:
        return _error(400, "invalid_input", str(e))
    except ValidationError as e:
        return _error(
            400,
            "validation_failed",
            "Request validation failed",
            details=json.loads(e.json(include_url=False, include_context=False)),
        )
    except DatabaseError as e:
        logger.error(f"Store failure on {request.method} {request.path}: {e}", exc_info=True)
        return _error(503, "storage_unavailable", "Storage backend unavailable")
    except Exception as e:
        logger.error(f"Unexpected error on {request.method} {request.path}: {e}", exc_info=True)
        return _error(500, "internal_error", "Internal server error")


def _apply_security_headers(headers) -> None:
    headers["X-Content-Type-Options"] = "nosniff"
    headers["X-Frame-Options"] = "DENY"
    headers["X-XSS-Protection"] = "1; mode=block"
    headers["Strict-Transport-Security"] = "max-age=31536000; includeSubDomains"
    headers["Cache-Control"] = "no-store"


@web.middleware
async def security_headers_middleware(request: Request, handler):
    """Add security headers to all responses, router 404/405 included."""
    try:
        response = await handler(request)
    except web.HTTPException as e:
        _apply_security_headers(e.headers)
        raise
    _apply_security_headers(response.headers)
    return response


async def _read_json(request: Request) -> dict:
    raw_body = await request.read()
    if len(raw_body) > MAX_REQUEST_BODY_SIZE:
        raise InvalidInputError(
            f"Request body exceeds maximum size of {MAX_REQUEST_BODY_SIZE} bytes"
        )
    if not raw_body:
        raise InvalidInputError("Empty request body")
    try:
        payload = json.loads(raw_body.decode("utf-8"))
    except (UnicodeDecodeError, json.JSONDecodeError) as e:
        raise InvalidInputError(f"Invalid JSON body: {e}") from e
    if not isinstance(payload, dict):
        raise InvalidInputError("Request body must be a JSON object")
    return payload


def _now(request: Request):
    return request.app[NOW_FN_KEY]()


async def _booking_response(
    request: Request, result: BookingResult, service_id: str, success_status: int = 200
) -> Response:
    if result.ok:
        return web.json_response(result.appointment.to_json_dict(), status=success_status)

    conflict = result.conflict
    available = await request.app[SLOT_ENGINE_KEY].compute_available_slots(
        conflict.professional_id, service_id, conflict.date
    )
    return _error(
        409,
        "slot_conflict",
        conflict.message,
        conflict=conflict.to_json_dict(),
        availableSlots=available,
    )


# ========== Health ==========


async def health_check(request: Request) -> Response:
    """Health check endpoint."""
    uptime_seconds = time.time() - request.app[START_TIME_KEY]
    return web.json_response(
        {
            "status": "ok",
            "service": "booking-slots",
            "timestamp": time.time(),
            "uptime_hours": round(uptime_seconds / 3600, 2),
            "configuration": {
                "storage_backend": settings.storage_backend,
                "timezone": settings.timezone,
                "slot_step_minutes": settings.slot_step_minutes,
            },
        }
    )


# ========== Availability ==========


async def available_slots_handler(request: Request) -> Response:
    """GET /appointments/available-slots?professionalId&serviceId&date"""
    query = request.query
    professional_id = require_id(query.get("professionalId"), "professionalId")
    service_id = require_id(query.get("serviceId"), "serviceId")
    target_date = parse_date(require_id(query.get("date"), "date"))

    slots = await request.app[SLOT_ENGINE_KEY].compute_available_slots(
        professional_id, service_id, target_date
    )
    return web.json_response({"date": target_date.isoformat(), "slots": slots})


async def availability_handler(request: Request) -> Response:
    """GET /appointments/availability?professionalId&date&startTime&duration"""
    query = request.query
    professional_id = require_id(query.get("professionalId"), "professionalId")
    target_date = parse_date(require_id(query.get("date"), "date"))
    start_time = require_id(query.get("startTime"), "startTime")
    duration = parse_positive_int(query.get("duration"), "duration")

    available = await request.app[SLOT_ENGINE_KEY].is_slot_available(
        professional_id,
        target_date,
        start_time,
        duration,
        exclude_appointment_id=query.get("excludeAppointmentId"),
    )
    return web.json_response({"available": available})


# ========== Appointments ==========


async def create_appointment_handler(request: Request) -> Response:
    """POST /appointments"""
    data = AppointmentCreate.model_validate(await _read_json(request))
    result = await request.app[BOOKING_SERVICE_KEY].create_appointment(
        data, now=_now(request)
    )
    return await _booking_response(request, result, data.service_id, success_status=201)


async def list_appointments_handler(request: Request) -> Response:
    """GET /appointments?professionalId&date"""
    professional_id = require_id(request.query.get("professionalId"), "professionalId")
    raw_date = request.query.get("date")
    target_date = parse_date(raw_date) if raw_date else None

    appointments = await request.app[BOOKING_SERVICE_KEY].list_appointments(
        professional_id, target_date
    )
    return web.json_response([a.to_json_dict() for a in appointments])


async def get_appointment_handler(request: Request) -> Response:
    """GET /appointments/{id}"""
    appointment = await request.app[BOOKING_SERVICE_KEY].get_appointment(
        request.match_info["id"]
    )
    return web.json_response(appointment.to_json_dict())


async def update_appointment_handler(request: Request) -> Response:
    """PATCH /appointments/{id}"""
    data = AppointmentUpdate.model_validate(await _read_json(request))
    booking_service = request.app[BOOKING_SERVICE_KEY]
    result = await booking_service.update_appointment(
        request.match_info["id"], data, now=_now(request)
    )
    if result.ok:
        return await _booking_response(request, result, result.appointment.service_id)

    current = await booking_service.get_appointment(request.match_info["id"])
    return await _booking_response(request, result, data.service_id or current.service_id)


async def update_status_handler(request: Request) -> Response:
    """PATCH /appointments/{id}/status"""
    payload = await _read_json(request)
    try:
        status = AppointmentStatus(payload.get("status"))
    except ValueError as e:
        raise InvalidInputError(f"Invalid status: {payload.get('status')!r}") from e

    booking_service = request.app[BOOKING_SERVICE_KEY]
    appointment_id = request.match_info["id"]
    result = await booking_service.update_status(appointment_id, status, now=_now(request))
    if result.ok:
        return await _booking_response(request, result, result.appointment.service_id)

    current = await booking_service.get_appointment(appointment_id)
    return await _booking_response(request, result, current.service_id)


async def cancel_appointment_handler(request: Request) -> Response:
    """DELETE /appointments/{id}"""
    appointment = await request.app[BOOKING_SERVICE_KEY].cancel_appointment(
        request.match_info["id"]
    )
    return web.json_response(appointment.to_json_dict())


# ========== Working Hours & Vacations ==========


async def get_working_hours_handler(request: Request) -> Response:
    """GET /professionals/{id}/working-hours"""
    professional_id = request.match_info["id"]
    professional = await request.app[REPOSITORY_KEY].get_professional(professional_id)
    if professional is None:
        raise ProfessionalNotFoundError(f"Professional {professional_id} not found")
    return web.json_response(
        {
            "professionalId": professional.id,
            "workingHours": professional.working_hours.model_dump(mode="json", exclude_none=True),
        }
    )


async def set_working_hours_handler(request: Request) -> Response:
    """PUT /professionals/{id}/working-hours"""
    working_hours = WorkingHours.model_validate(await _read_json(request))
    professional = await request.app[REPOSITORY_KEY].set_working_hours(
        request.match_info["id"], working_hours
    )
    return web.json_response(
        {
            "professionalId": professional.id,
            "workingHours": professional.working_hours.model_dump(mode="json", exclude_none=True),
        }
    )


async def list_vacations_handler(request: Request) -> Response:
    """GET /professionals/{id}/vacations"""
    vacations = await request.app[REPOSITORY_KEY].list_vacations(request.match_info["id"])
    return web.json_response([v.to_json_dict() for v in vacations])


async def create_vacation_handler(request: Request) -> Response:
    """POST /vacations"""
    payload = await _read_json(request)
    payload.pop("id", None)
    vacation = Vacation.model_validate(payload)
    created = await request.app[REPOSITORY_KEY].create_vacation(vacation)
    return web.json_response(created.to_json_dict(), status=201)


async def delete_vacation_handler(request: Request) -> Response:
    """DELETE /vacations/{id}"""
    vacation_id = request.match_info["id"]
    if not await request.app[REPOSITORY_KEY].delete_vacation(vacation_id):
        raise VacationNotFoundError(f"Vacation {vacation_id} not found")
    return web.json_response({"status": "deleted", "id": vacation_id})


def create_app(
    repository: Optional[SchedulingRepository] = None,
    now_fn: Optional[Callable] = None,
) -> web.Application:
    """
    Create aiohttp application with middleware and routes.

    Args:
        repository: Scheduling store; defaults to get_repository()
        now_fn: Returns the current local wall-clock time; defaults to
            local_now(settings.timezone)

    Returns:
        Configured web application
    """
    app = web.Application(middlewares=[security_headers_middleware, error_middleware])

    store = repository or get_repository()
    slot_engine = SlotEngine(store)
    app[REPOSITORY_KEY] = store
    app[SLOT_ENGINE_KEY] = slot_engine
    app[BOOKING_SERVICE_KEY] = BookingService(store, slot_engine=slot_engine)
    app[NOW_FN_KEY] = now_fn or (lambda: local_now(settings.timezone))
    app[START_TIME_KEY] = time.time()

    # Routes
    app.router.add_get("/health", health_check)
    app.router.add_get("/appointments/available-slots", available_slots_handler)
    app.router.add_get("/appointments/availability", availability_handler)
    app.router.add_post("/appointments", create_appointment_handler)
    app.router.add_get("/appointments", list_appointments_handler)
    app.router.add_get("/appointments/{id}", get_appointment_handler)
    app.router.add_patch("/appointments/{id}", update_appointment_handler)
    app.router.add_patch("/appointments/{id}/status", update_status_handler)
    app.router.add_delete("/appointments/{id}", cancel_appointment_handler)
    app.router.add_get("/professionals/{id}/working-hours", get_working_hours_handler)
    app.router.add_put("/professionals/{id}/working-hours", set_working_hours_handler)
    app.router.add_get("/professionals/{id}/vacations", list_vacations_handler)
    app.router.add_post("/vacations", create_vacation_handler)
    app.router.add_delete("/vacations/{id}", delete_vacation_handler)

    return app


if __name__ == "__main__":
    """
    Run the API server.

    For production, run behind a process manager and set
    STORAGE_BACKEND=supabase with SUPABASE_URL / SUPABASE_KEY.
    """
    settings.validate_all_required()
    logger.info(
        f"Starting booking API on {settings.host}:{settings.port} "
        f"(storage={settings.storage_backend}, timezone={settings.timezone})"
    )
    web.run_app(create_app(), host=settings.host, port=settings.port)
