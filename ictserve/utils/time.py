"""Time Utilities - UTC timestamps and formatting"""
from datetime import datetime, timezone, timedelta
from typing import Optional, Union
from dateutil import parser as date_parser


def utc_now() -> datetime:
    """Get current UTC datetime"""
    return datetime.now(timezone.utc)


def ensure_aware(dt: datetime) -> datetime:
    """Treat naive datetimes as UTC"""
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt


def format_iso(dt: datetime) -> str:
    """
    Format datetime to ISO 8601 string
    
    Args:
        dt: Datetime object
        
    Returns:
        ISO formatted string with Z suffix for UTC
    """
    return ensure_aware(dt).isoformat().replace("+00:00", "Z")


def parse_iso(value: Union[str, datetime]) -> datetime:
    """
    Parse ISO 8601 string to datetime
    
    Args:
        value: ISO formatted datetime string (datetimes pass through)
        
    Returns:
        Timezone-aware datetime, UTC when no offset was given
    """
    if isinstance(value, datetime):
        return ensure_aware(value)
    return ensure_aware(date_parser.isoparse(value))


def add_hours(dt: datetime, hours: float) -> datetime:
    """Add (possibly fractional) hours to datetime"""
    return dt + timedelta(hours=hours)


def minutes_between(start: datetime, end: datetime) -> int:
    """Whole minutes from start to end (negative when end is earlier)"""
    delta = ensure_aware(end) - ensure_aware(start)
    return int(delta.total_seconds() / 60)



def export_timestamp(dt: Optional[datetime] = None) -> str:
    """Timestamp used in export file names (YYYY-MM-DD-HH-MM-SS)"""
    return (dt or utc_now()).strftime("%Y-%m-%d-%H-%M-%S")
