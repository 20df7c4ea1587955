"""
Datetime utilities for the scheduling timezone.

Appointment dates, shift times and vacation ranges are stored as naive
wall-clock values in the professional's scheduling timezone. "Now" is
always resolved explicitly through local_now() and passed down as a
parameter, never read inside the engine.
"""

from datetime import date, datetime, timedelta, timezone
from typing import Optional, Union
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from config import settings
from utils.constants import DATE_FORMAT
from utils.exceptions import InvalidInputError


def utc_now() -> datetime:
    """Get current UTC time as timezone-aware datetime."""
    return datetime.now(timezone.utc)


def local_now(tz_name: str) -> datetime:
    """
    Current wall-clock time in the scheduling timezone, as a naive datetime.

    Raises:
        InvalidInputError: If the timezone name is unknown
    """
    try:
        tz = ZoneInfo(tz_name)
    except (ZoneInfoNotFoundError, ValueError) as e:
        raise InvalidInputError(f"Unknown timezone: {tz_name}") from e
    return utc_now().astimezone(tz).replace(tzinfo=None)


def parse_date(value: Union[date, str]) -> date:
    """
    Parse a calendar date given as date or 'YYYY-MM-DD'.

    datetime values are rejected: the scheduling date carries no time part.

    Raises:
        InvalidInputError: If the value is not a valid calendar date
    """
    if isinstance(value, datetime):
        raise InvalidInputError(f"Expected a date without time, got {value!r}")
    if isinstance(value, date):
        return value
    if not isinstance(value, str):
        raise InvalidInputError(f"Invalid date: {value!r}")
    try:
        return datetime.strptime(value.strip(), DATE_FORMAT).date()
    except ValueError as e:
        raise InvalidInputError(
            f"Invalid date: {value!r}. Expected format YYYY-MM-DD"
        ) from e


def to_local_naive(value: datetime, tz_name: Optional[str] = None) -> datetime:
    """
    Convert a datetime to naive wall-clock time of the scheduling timezone.

    Aware values are converted first; naive values are already local.

    Raises:
        InvalidInputError: If the timezone name is unknown
    """
    if value.tzinfo is None:
        return value
    tz_name = tz_name or settings.timezone
    try:
        tz = ZoneInfo(tz_name)
    except (ZoneInfoNotFoundError, ValueError) as e:
        raise InvalidInputError(f"Unknown timezone: {tz_name}") from e
    return value.astimezone(tz).replace(tzinfo=None)


def parse_local_datetime(value: Union[datetime, str]) -> datetime:
    """
    Parse an ISO datetime into a naive local datetime.

    Values carrying an offset (or Z) are converted to the scheduling
    timezone; values without one are taken as local wall-clock time.
    """
    if isinstance(value, datetime):
        return to_local_naive(value)
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except (AttributeError, ValueError) as e:
        raise InvalidInputError(f"Invalid datetime: {value!r}") from e
    return to_local_naive(parsed)


def day_bounds(target_date: date) -> tuple[datetime, datetime]:
    """Half-open [00:00, next day 00:00) bounds of a calendar date."""
    start = datetime.combine(target_date, datetime.min.time())
    return start, start + timedelta(days=1)
