"""Shared validation utilities"""

import re
from typing import Optional

from ..exceptions import ValidationFailed
from .clock import format_clock, parse_clock

CLOCK_PATTERN = re.compile(r"^([01]?[0-9]|2[0-3]):[0-5][0-9]$")
PHONE_PATTERN = re.compile(r"^\+?[0-9][0-9 ()-]{6,19}$")


def validate_clock(value: str) -> str:
    """
    Validate a 24h `HH:MM` time and normalize it to two-digit hours.

    Raises:
        ValueError: If the time is malformed
    """
    if not isinstance(value, str) or not CLOCK_PATTERN.match(value.strip()):
        raise ValueError("Invalid appointment time, expected HH:MM (24h)")
    return format_clock(parse_clock(value))


def validate_phone(phone: Optional[str]) -> Optional[str]:
    """
    Validate a phone number loosely (digits, spaces, dashes, parentheses, optional +).

    Returns:
        The phone number with surrounding whitespace removed

    Raises:
        ValueError: If phone number is invalid
    """
    if not phone:
        return phone

    phone = phone.strip()
    if not PHONE_PATTERN.match(phone):
        raise ValueError("Invalid phone number")
    return phone


def validate_email(email: Optional[str]) -> Optional[str]:
    """
    Validate email format.

    Returns:
        Lowercase email address

    Raises:
        ValueError: If email format is invalid
    """
    if not email:
        return email

    email = email.strip().lower()

    # Basic email validation pattern
    email_pattern = r"^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$"

    if not re.match(email_pattern, email):
        raise ValueError("Invalid email format")

    return email


def require_text(value: Optional[str], field: str) -> str:
    if value is None or not value.strip():
        raise ValueError(f"{field} is required")
    return value.strip()


def validate_ratings(**ratings) -> None:
    """
    Every rating must lie in [1, 5].

    Raises:
        ValidationFailed: Listing each out-of-range rating
    """
    errors = []
    for field, value in ratings.items():
        if value is None or not 1 <= value <= 5:
            errors.append({"field": field, "message": f"{field} must be between 1 and 5"})
    if errors:
        raise ValidationFailed("Ratings must be between 1 and 5", errors=errors)
