"""
Slot engine facade.

Resolves professional and service ids through the scheduling store and
delegates the decision to the pure functions in engine.slots. Every call
re-reads commitments; nothing is cached between calls.
"""

import datetime as dt
from typing import List, Optional, Union

from config import settings
from db.repository import SchedulingRepository
from engine import slots
from engine.intervals import format_minutes, parse_time
from models.booking import SlotConflict
from utils.constants import MINUTES_PER_DAY
from utils.datetime_utils import parse_date
from utils.logging_config import get_logger

logger = get_logger(__name__)

_UNSET = object()


class SlotEngine:
    """
    Available-slot computation and single-slot availability checks.

    Args:
        repository: Store providing working hours, durations and commitments
        step_minutes: Candidate spacing; None means back-to-back. Defaults to
            settings.slot_step_minutes
    """

    def __init__(self, repository: SchedulingRepository, step_minutes=_UNSET):
        self.repository = repository
        self.step_minutes: Optional[int] = (
            settings.slot_step_minutes if step_minutes is _UNSET else step_minutes
        )

    async def compute_available_slots(
        self,
        professional_id: str,
        service_id: str,
        target_date: Union[dt.date, str],
    ) -> List[str]:
        """
        Bookable start times for a professional, service and date.

        Returns:
            Ascending 'HH:MM' strings; empty when nothing fits

        Raises:
            InvalidInputError: If the date is malformed or an id is unknown
        """
        day = parse_date(target_date)
        working_hours = await self.repository.get_working_hours(professional_id)
        duration = await self.repository.get_service_duration(service_id)
        commitments = await self.repository.get_commitments(professional_id, day)

        available = slots.compute_available_slots(
            working_hours, day, duration, commitments, self.step_minutes
        )
        logger.debug(
            f"{len(available)} slots for professional {professional_id}, "
            f"service {service_id} on {day.isoformat()}"
        )
        return available

    async def check_slot(
        self,
        professional_id: str,
        target_date: Union[dt.date, str],
        start_time: str,
        duration_minutes: int,
        exclude_appointment_id: Optional[str] = None,
    ) -> Optional[SlotConflict]:
        """
        Detailed availability check.

        Returns:
            None when the window is bookable, otherwise the SlotConflict

        Raises:
            InvalidInputError: If date, time or duration are invalid
        """
        day = parse_date(target_date)
        # Fail on a malformed time before touching the store
        start = parse_time(start_time)
        working_hours = await self.repository.get_working_hours(professional_id)
        commitments = await self.repository.get_commitments(
            professional_id, day, exclude_appointment_id
        )

        detail = slots.find_conflict(
            working_hours, day, start_time, duration_minutes, commitments
        )
        if detail is None:
            return None

        return SlotConflict(
            professional_id=professional_id,
            date=day,
            start_time=format_minutes(start),
            # Windows running past midnight are reported clamped to 24:00
            end_time=format_minutes(min(start + duration_minutes, MINUTES_PER_DAY)),
            reason=detail.reason,
            conflicting_appointment_ids=list(detail.appointment_ids),
        )

    async def is_slot_available(
        self,
        professional_id: str,
        target_date: Union[dt.date, str],
        start_time: str,
        duration_minutes: int,
        exclude_appointment_id: Optional[str] = None,
    ) -> bool:
        """True when [start, start + duration) is inside a shift and free."""
        conflict = await self.check_slot(
            professional_id,
            target_date,
            start_time,
            duration_minutes,
            exclude_appointment_id,
        )
        return conflict is None
