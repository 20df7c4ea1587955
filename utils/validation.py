"""
Input validation utilities for API inputs.
"""

import re
from typing import Optional

from utils.exceptions import InvalidInputError

# 0:00-23:59, hour may omit the leading zero
_TIME_PATTERN = re.compile(r"^([0-1]?[0-9]|2[0-3]):[0-5][0-9]$")


def validate_time_string(value: str) -> bool:
    """
    Validate wall-clock time format (HH:MM, 24-hour).

    Args:
        value: Time string

    Returns:
        True if valid format, False otherwise
    """
    if not value or not isinstance(value, str):
        return False
    return bool(_TIME_PATTERN.match(value.strip()))


def require_id(value: Optional[str], field: str) -> str:
    """
    Ensure a record identifier is a non-empty string.

    Raises:
        InvalidInputError: If missing or blank
    """
    if not value or not isinstance(value, str) or not value.strip():
        raise InvalidInputError(f"{field} is required")
    return value.strip()


def parse_positive_int(value: Optional[str], field: str) -> int:
    """
    Parse a query-string integer that must be strictly positive.

    Raises:
        InvalidInputError: If missing, not an integer, or <= 0
    """
    try:
        number = int(str(value).strip())
    except (TypeError, ValueError) as e:
        raise InvalidInputError(f"{field} must be an integer") from e
    if number <= 0:
        raise InvalidInputError(f"{field} must be positive")
    return number


def sanitize_text(text: str, max_length: Optional[int] = None) -> str:
    """
    Sanitize user input text.

    Args:
        text: Input text
        max_length: Optional maximum length

    Returns:
        Sanitized text
    """
    if not text:
        return ""

    # Remove control characters except newlines and tabs
    sanitized = re.sub(r"[\x00-\x08\x0B-\x0C\x0E-\x1F\x7F]", "", str(text))
    sanitized = sanitized.strip()

    if max_length and len(sanitized) > max_length:
        sanitized = sanitized[:max_length]

    return sanitized
