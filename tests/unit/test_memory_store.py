"""
Unit tests for the in-memory scheduling store.
"""

import asyncio
from datetime import datetime

import pytest

from db.repository import SLOT_FIELDS
from models.appointment import Appointment, AppointmentCreate, AppointmentStatus
from models.booking import SlotConflictReason
from models.schedule import DaySchedule, Shift, WorkingHours
from models.vacation import Vacation
from services.booking_service import BookingService
from tests.conftest import MONDAY, PROFESSIONAL_ID, SERVICE_ID, TUESDAY
from utils.exceptions import (
    AppointmentNotFoundError,
    ConcurrencyConflictError,
    ProfessionalNotFoundError,
    ServiceNotFoundError,
)


def appointment(start, end, client_id="client-1", **overrides):
    data = {
        "professional_id": PROFESSIONAL_ID,
        "client_id": client_id,
        "service_id": SERVICE_ID,
        "date": MONDAY,
        "start_time": start,
        "end_time": end,
        "duration_minutes": 45,
    }
    data.update(overrides)
    return Appointment(**data)


def slot(stored, **overrides):
    """Slot fields of an appointment, as a guarded update expects them."""
    changes = {field: getattr(stored, field) for field in SLOT_FIELDS}
    changes.update(overrides)
    return changes


@pytest.mark.asyncio
async def test_read_contract(store):
    hours = await store.get_working_hours(PROFESSIONAL_ID)

    assert hours.shifts_for(MONDAY)[0].start == "09:00"
    assert await store.get_service_duration(SERVICE_ID) == 45

    with pytest.raises(ProfessionalNotFoundError):
        await store.get_working_hours("nobody")
    with pytest.raises(ServiceNotFoundError):
        await store.get_service_duration("nothing")


@pytest.mark.asyncio
async def test_returned_records_are_copies(store):
    hours = await store.get_working_hours(PROFESSIONAL_ID)
    hours.monday.shifts.clear()

    assert (await store.get_working_hours(PROFESSIONAL_ID)).monday.shifts


@pytest.mark.asyncio
async def test_commitments_filter_by_date_status_and_exclusion(store):
    kept = await store.insert_appointment_if_free(appointment("09:00", "09:45"))
    cancelled = await store.insert_appointment_if_free(appointment("10:30", "11:15"))
    await store.set_appointment_status(cancelled.id, AppointmentStatus.CANCELLED)
    await store.insert_appointment_if_free(appointment("09:00", "09:45", date=TUESDAY))

    commitments = await store.get_commitments(PROFESSIONAL_ID, MONDAY)
    assert [a.id for a in commitments.appointments] == [kept.id]

    excluded = await store.get_commitments(PROFESSIONAL_ID, MONDAY, exclude_appointment_id=kept.id)
    assert excluded.appointments == []


@pytest.mark.asyncio
async def test_commitments_include_vacations_touching_the_date(store):
    await store.create_vacation(
        Vacation(professional_id=PROFESSIONAL_ID, start=datetime(2026, 1, 10), end=datetime(2026, 1, 12, 10, 0))
    )
    await store.create_vacation(
        Vacation(professional_id=PROFESSIONAL_ID, start=datetime(2026, 1, 5), end=datetime(2026, 1, 12))
    )

    commitments = await store.get_commitments(PROFESSIONAL_ID, MONDAY)

    assert len(commitments.vacations) == 1
    assert commitments.vacations[0].end == datetime(2026, 1, 12, 10, 0)


@pytest.mark.asyncio
async def test_insert_rejects_overlap(store):
    first = await store.insert_appointment_if_free(appointment("10:30", "11:15"))

    with pytest.raises(ConcurrencyConflictError) as exc_info:
        await store.insert_appointment_if_free(appointment("11:00", "11:45", client_id="c2"))

    conflict = exc_info.value.conflict
    assert conflict.reason is SlotConflictReason.CONCURRENT_BOOKING
    assert conflict.conflicting_appointment_ids == [first.id]


@pytest.mark.asyncio
async def test_insert_rejects_vacation_overlap(store):
    await store.create_vacation(
        Vacation(professional_id=PROFESSIONAL_ID, start=datetime(2026, 1, 12, 11, 0), end=datetime(2026, 1, 12, 12, 0))
    )

    with pytest.raises(ConcurrencyConflictError):
        await store.insert_appointment_if_free(appointment("10:30", "11:15"))


@pytest.mark.asyncio
async def test_cancelled_insert_never_conflicts(store):
    await store.insert_appointment_if_free(appointment("10:30", "11:15"))

    stored = await store.insert_appointment_if_free(
        appointment("10:30", "11:15", status=AppointmentStatus.CANCELLED)
    )

    assert stored.id


@pytest.mark.asyncio
async def test_other_professionals_do_not_conflict(store):
    await store.insert_appointment_if_free(appointment("10:30", "11:15"))

    other = await store.insert_appointment_if_free(
        appointment("10:30", "11:15", professional_id="pro-2")
    )

    assert other.professional_id == "pro-2"


@pytest.mark.asyncio
async def test_update_if_free_excludes_itself(store):
    stored = await store.insert_appointment_if_free(appointment("10:30", "11:15"))

    moved = await store.update_appointment_if_free(
        stored.id, slot(stored, start_time="10:45", end_time="11:30")
    )

    assert moved.start_time == "10:45"
    assert moved.created_at == stored.created_at


@pytest.mark.asyncio
async def test_update_if_free_rejects_taken_window(store):
    await store.insert_appointment_if_free(appointment("09:00", "09:45"))
    stored = await store.insert_appointment_if_free(appointment("10:30", "11:15", client_id="c2"))

    with pytest.raises(ConcurrencyConflictError) as exc_info:
        await store.update_appointment_if_free(
            stored.id, slot(stored, start_time="09:30", end_time="10:15")
        )

    assert exc_info.value.conflict.reason is SlotConflictReason.CONCURRENT_BOOKING
    assert (await store.get_appointment(stored.id)).start_time == "10:30"


@pytest.mark.asyncio
async def test_update_if_free_keeps_fields_it_was_not_given(store):
    stored = await store.insert_appointment_if_free(appointment("10:30", "11:15"))
    await store.update_appointment(stored.id, {"notes": "Allergic to latex"})

    moved = await store.update_appointment_if_free(
        stored.id, slot(stored, start_time="11:15", end_time="12:00")
    )

    assert moved.start_time == "11:15"
    assert moved.notes == "Allergic to latex"


@pytest.mark.asyncio
async def test_update_appointment_writes_only_changes(store):
    stored = await store.insert_appointment_if_free(appointment("10:30", "11:15"))

    updated = await store.update_appointment(stored.id, {"client_id": "client-9"})

    assert updated.client_id == "client-9"
    assert updated.start_time == "10:30"
    assert updated.status is AppointmentStatus.SCHEDULED
    assert updated.created_at == stored.created_at


@pytest.mark.asyncio
async def test_update_unknown_appointment(store):
    with pytest.raises(AppointmentNotFoundError):
        await store.update_appointment_if_free(
            "missing", slot(appointment("10:30", "11:15"))
        )
    with pytest.raises(AppointmentNotFoundError):
        await store.update_appointment("missing", {"notes": "x"})
    with pytest.raises(AppointmentNotFoundError):
        await store.set_appointment_status("missing", AppointmentStatus.CANCELLED)


@pytest.mark.asyncio
async def test_set_working_hours(store):
    hours = WorkingHours(tuesday=DaySchedule(shifts=[Shift(start="13:00", end="17:00")]))

    updated = await store.set_working_hours(PROFESSIONAL_ID, hours)

    assert updated.working_hours.monday is None
    assert (await store.get_working_hours(PROFESSIONAL_ID)).shifts_for(TUESDAY)[0].end == "17:00"
    with pytest.raises(ProfessionalNotFoundError):
        await store.set_working_hours("nobody", hours)


@pytest.mark.asyncio
async def test_vacation_lifecycle(store):
    vacation = await store.create_vacation(
        Vacation(professional_id=PROFESSIONAL_ID, start=datetime(2026, 1, 12), end=datetime(2026, 1, 13))
    )

    assert [v.id for v in await store.list_vacations(PROFESSIONAL_ID)] == [vacation.id]
    assert await store.delete_vacation(vacation.id) is True
    assert await store.delete_vacation(vacation.id) is False

    with pytest.raises(ProfessionalNotFoundError):
        await store.create_vacation(
            Vacation(professional_id="nobody", start=datetime(2026, 1, 12), end=datetime(2026, 1, 13))
        )


@pytest.mark.asyncio
async def test_concurrent_creates_book_exactly_one(store, now):
    booking_service = BookingService(store)
    requests = [
        AppointmentCreate(
            client_id=f"client-{i}",
            professional_id=PROFESSIONAL_ID,
            service_id=SERVICE_ID,
            date=MONDAY,
            start_time="10:30",
        )
        for i in range(10)
    ]

    results = await asyncio.gather(
        *(booking_service.create_appointment(data, now=now) for data in requests)
    )

    assert sum(result.ok for result in results) == 1
    assert all(
        result.conflict.reason in (SlotConflictReason.OCCUPIED, SlotConflictReason.CONCURRENT_BOOKING)
        for result in results
        if not result.ok
    )
    assert len(await store.list_appointments(PROFESSIONAL_ID, MONDAY)) == 1


@pytest.mark.asyncio
async def test_writes_wait_for_the_professional_lock(store):
    lock = store.lock_for(PROFESSIONAL_ID)
    await lock.acquire()
    insert = asyncio.create_task(store.insert_appointment_if_free(appointment("10:30", "11:15")))

    await asyncio.sleep(0)
    assert not insert.done()
    assert await store.list_appointments(PROFESSIONAL_ID) == []

    lock.release()
    stored = await insert
    assert stored.start_time == "10:30"
