"""Time Utilities - UTC timestamps and formatting"""
from datetime import datetime, timezone, timedelta
from typing import Optional
from dateutil import parser as date_parser


def utc_now() -> datetime:
    """Get current UTC datetime"""
    return datetime.now(timezone.utc)


def ensure_utc(dt: datetime) -> datetime:
    """Attach UTC to naive datetimes, convert aware ones"""
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def format_iso(dt: datetime) -> str:
    """
    Format datetime to ISO 8601 string

    Args:
        dt: Datetime object

    Returns:
        ISO formatted string with Z suffix for UTC
    """
    return ensure_utc(dt).isoformat().replace("+00:00", "Z")


def parse_iso(iso_string: str) -> datetime:
    """
    Parse ISO 8601 string to datetime

    Args:
        iso_string: ISO formatted datetime string

    Returns:
        Datetime object in UTC
    """
    return ensure_utc(date_parser.isoparse(iso_string))


def milliseconds_since(dt: Optional[datetime], now: Optional[datetime] = None) -> float:
    """
    Elapsed milliseconds between dt and now

    A missing timestamp counts as "just now" (0 ms).
    """
    if dt is None:
        return 0.0
    current = ensure_utc(now) if now else utc_now()
    return (current - ensure_utc(dt)).total_seconds() * 1000


def is_within(dt: Optional[datetime], window: timedelta, now: Optional[datetime] = None) -> bool:
    """Check whether dt lies within the trailing window ending at now"""
    if dt is None:
        return False
    current = ensure_utc(now) if now else utc_now()
    return current - ensure_utc(dt) < window
