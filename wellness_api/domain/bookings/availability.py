"""
Availability resolution for health professionals.

A professional publishes a weekly schedule:
    [{"day": "monday", "startTime": "08:00", "endTime": "17:00", "isAvailable": true}, ...]

A request (weekday, HH:MM) is available iff the day has an enabled entry and
startTime <= time <= endTime. Both bounds are inclusive and times are compared
as clock times.
"""

from datetime import date, datetime, time, timedelta
from typing import Optional

from ...shared.clock import format_clock, parse_clock

WEEKDAYS = ["monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday"]


def weekday_name(day: date) -> str:
    return WEEKDAYS[day.weekday()]


def _window_for(schedule: list, day_name: str) -> Optional[dict]:
    for entry in schedule or []:
        if entry.get("day") == day_name and entry.get("isAvailable") is True:
            return entry
    return None


def is_available(schedule: list, day_name: str, clock: str) -> bool:
    """Check a weekly schedule for a weekday and `HH:MM` time"""
    window = _window_for(schedule, day_name.lower())
    if not window:
        return False

    requested = parse_clock(clock)
    start = parse_clock(window["startTime"])
    end = parse_clock(window["endTime"])
    return start <= requested <= end


def next_available_slot(schedule: list, now: datetime) -> Optional[dict]:
    """
    First open (date, time) at or after `now`.

    Today counts if its window has not closed yet; the slot time is then the
    later of the window start and the next whole minute, so the slot is
    always bookable. Otherwise the first enabled day within the next week
    opens at its start time.
    """
    today = now.date()
    upcoming = now.replace(second=0, microsecond=0) + timedelta(minutes=1)
    current = time(upcoming.hour, upcoming.minute)

    window = _window_for(schedule, weekday_name(today))
    if window and upcoming.date() == today:
        start = parse_clock(window["startTime"])
        end = parse_clock(window["endTime"])
        if current <= end:
            slot = start if current < start else current
            return {"date": today.isoformat(), "day": weekday_name(today), "time": format_clock(slot)}

    for offset in range(1, 8):
        candidate = today + timedelta(days=offset)
        window = _window_for(schedule, weekday_name(candidate))
        if window:
            return {
                "date": candidate.isoformat(),
                "day": weekday_name(candidate),
                "time": format_clock(parse_clock(window["startTime"])),
            }

    return None


def minutes_of_day(clock: str) -> int:
    parsed = parse_clock(clock)
    return parsed.hour * 60 + parsed.minute


def intervals_overlap(
    start_a: str, duration_a: int, start_b: str, duration_b: int, days_apart: int = 0
) -> bool:
    """
    Whether [start, start + duration) intervals intersect.

    `days_apart` is the calendar offset of b relative to a, so a late booking
    that runs past midnight still blocks the start of the next day.
    """
    a0 = minutes_of_day(start_a)
    b0 = minutes_of_day(start_b) + days_apart * 24 * 60
    return a0 < b0 + duration_b and b0 < a0 + duration_a
