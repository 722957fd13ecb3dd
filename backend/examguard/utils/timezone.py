"""
Time helpers.

All timestamps are stored as naive UTC; conversion to the configured display
time zone happens only when formatting for responses.
"""
from datetime import datetime
from typing import Optional

import pytz

from ..core.config import settings


def get_display_timezone():
    return pytz.timezone(settings.default_timezone)


def get_utc_now() -> datetime:
    """Current time as naive UTC, the storage format for every DateTime column"""
    return datetime.now(pytz.UTC).replace(tzinfo=None)


def to_naive_utc(dt: datetime) -> datetime:
    if dt.tzinfo is None:
        return dt
    return dt.astimezone(pytz.UTC).replace(tzinfo=None)


def utc_to_local(utc_dt: datetime) -> datetime:
    if utc_dt.tzinfo is None:
        utc_dt = utc_dt.replace(tzinfo=pytz.UTC)
    return utc_dt.astimezone(get_display_timezone())


def format_local_time(dt: Optional[datetime], format_str: Optional[str] = None) -> Optional[str]:
    if dt is None:
        return None
    return utc_to_local(dt).strftime(format_str or settings.timezone_display_format)


def minutes_between(start: datetime, end: datetime) -> float:
    return (to_naive_utc(end) - to_naive_utc(start)).total_seconds() / 60
