"""Time helpers.

Persisted timestamps are naive UTC. Appointment dates and times are
wall-clock values in APP_TIMEZONE and are only made aware when compared
against the current moment.
"""

from datetime import date, datetime, time, timezone
from zoneinfo import ZoneInfo

from ..config import APP_TIMEZONE


def utcnow() -> datetime:
    """Current UTC time without tzinfo, the form stored in the database"""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def local_zone() -> ZoneInfo:
    return ZoneInfo(APP_TIMEZONE)


def local_now() -> datetime:
    return datetime.now(local_zone())


def parse_clock(value: str) -> time:
    """Parse an `HH:MM` string (24h, leading zero optional)"""
    hours, minutes = value.strip().split(":")
    return time(int(hours), int(minutes))


def format_clock(value: time) -> str:
    return f"{value.hour:02d}:{value.minute:02d}"


def appointment_datetime(day: date, clock: str) -> datetime:
    """Aware datetime for an appointment date and `HH:MM` time"""
    return datetime.combine(day, parse_clock(clock), tzinfo=local_zone())

