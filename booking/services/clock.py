"""
clock.py
--------
Pure time arithmetic for sessions, bookings and reminders.

- combine() turns a session's calendar date and "HH:MM" string into a
  timezone-aware instant (project timezone).
- Fixed offsets: 24h cancellation deadline, 2h reminder lead, package expiry.

The reminder window is asymmetric (7 minutes early, 8 minutes late) and is
15 minutes wide so that consecutive 15-minute scheduler ticks always overlap
by at least one boundary instant.
"""

from datetime import date as date_cls, datetime, time, timedelta

from django.utils import timezone
from django.utils.dateparse import parse_date

from ..exceptions import InvalidTimeFormat

CANCELLATION_NOTICE = timedelta(hours=24)
REMINDER_LEAD = timedelta(hours=2)
REMINDER_EARLY_SLACK = timedelta(minutes=7)
REMINDER_LATE_SLACK = timedelta(minutes=8)


def parse_hhmm(value: str) -> time:
    """
    Parse "HH:MM" into a time object.
    Raises InvalidTimeFormat unless the value is two integers around one colon.
    """
    parts = (value or "").strip().split(":")
    if len(parts) != 2:
        raise InvalidTimeFormat(f"Invalid time '{value}'. Use HH:MM.")
    try:
        return time(int(parts[0]), int(parts[1]))
    except ValueError:
        raise InvalidTimeFormat(f"Invalid time '{value}'. Use HH:MM.")


def as_date(value) -> date_cls:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date_cls):
        return value
    try:
        parsed = parse_date((value or "").strip()) if isinstance(value, str) else None
    except ValueError:
        # well formed but not a real day, e.g. 2026-02-30
        parsed = None
    if parsed is None:
        raise InvalidTimeFormat(f"Invalid date '{value}'. Use YYYY-MM-DD.")
    return parsed


def _make_aware(dt_naive: datetime):
    """
    Convert a naive datetime to an aware one using Django's current timezone.
    """
    if timezone.is_aware(dt_naive):
        return dt_naive
    return timezone.make_aware(dt_naive, timezone.get_current_timezone())


def combine(day, hhmm: str) -> datetime:
    """Absolute start instant of a session held on `day` at `hhmm`."""
    return _make_aware(datetime.combine(as_date(day), parse_hhmm(hhmm)))


def deadline(instant: datetime) -> datetime:
    return instant - CANCELLATION_NOTICE


def reminder_window(now: datetime):
    """
    Return (start, end) of the sessions that should be reminded at `now`:
    [now + 2h - 7min, now + 2h + 8min], both ends inclusive.
    """
    target = now + REMINDER_LEAD
    return target - REMINDER_EARLY_SLACK, target + REMINDER_LATE_SLACK


def package_expiry(now: datetime, days: int) -> datetime:
    return now + timedelta(days=days)
