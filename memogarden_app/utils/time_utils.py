"""
Centralized Utilities for Time Handling in MemoGarden.
Goal: Ensure consistent UTC storage and user-timezone day boundaries.
"""
from datetime import date, datetime, time, timedelta, timezone
from typing import Optional

import pytz
from flask import current_app, has_app_context


def utcnow() -> datetime:
    """
    Get the current timezone-aware UTC datetime.
    Always use this instead of datetime.utcnow() or datetime.now().
    """
    return datetime.now(timezone.utc)


def ensure_utc(dt: Optional[datetime]) -> Optional[datetime]:
    """Return ``dt`` as an aware UTC datetime. Naive values are read as UTC."""
    if dt is None:
        return None
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def resolve_timezone(tz_name: Optional[str]):
    """Return the pytz zone for ``tz_name``, falling back to UTC."""
    if not tz_name:
        return pytz.UTC
    try:
        return pytz.timezone(tz_name)
    except pytz.UnknownTimeZoneError:
        return pytz.UTC


def to_user_timezone(dt: Optional[datetime], tz_name: Optional[str]) -> Optional[datetime]:
    """Convert a UTC (or naive-as-UTC) datetime to the given zone."""
    if dt is None:
        return None
    return ensure_utc(dt).astimezone(resolve_timezone(tz_name))


def local_date(dt: datetime, tz_name: Optional[str]) -> date:
    """Calendar date of ``dt`` as seen in the given zone."""
    return to_user_timezone(dt, tz_name).date()


def _localize(day: date, at: time, tz_name: Optional[str]) -> datetime:
    tz = resolve_timezone(tz_name)
    local = tz.localize(datetime.combine(day, at))
    return local.astimezone(timezone.utc)


def get_day_end(now: datetime, tz_name: Optional[str]) -> datetime:
    """
    Last instant of the local calendar day containing ``now``, in UTC.

    A card due at 23:59 local time is still part of that day's session.
    """
    return _localize(local_date(now, tz_name), time.max, tz_name)


def local_noon(now: datetime, tz_name: Optional[str]) -> datetime:
    """12:00 of the local calendar day containing ``now``, in UTC."""
    return _localize(local_date(now, tz_name), time(12, 0), tz_name)


def local_day_range(start_day: date, days: int, tz_name: Optional[str]):
    """Yield ``(day, start_utc, end_utc)`` for ``days`` consecutive local days."""
    for offset in range(days):
        day = start_day + timedelta(days=offset)
        yield day, _localize(day, time.min, tz_name), _localize(day, time.max, tz_name)


def user_timezone(user) -> Optional[str]:
    """The user's IANA zone name, else the configured system zone."""
    tz_name = getattr(user, 'timezone', None)
    if tz_name:
        return tz_name
    if has_app_context():
        return current_app.config.get('SYSTEM_TIMEZONE')
    return None
