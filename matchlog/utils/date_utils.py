from datetime import datetime, timedelta
from typing import Optional


def parse_timestamp(value) -> Optional[datetime]:
    """Parse an ISO timestamp (or a datetime) into a datetime, None if unparseable."""
    if isinstance(value, datetime):
        return value
    if not isinstance(value, str) or not value:
        return None
    try:
        return datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return None


def get_day_key(date_str) -> str:
    """Get day identifier (YYYY-MM-DD) from a timestamp."""
    dt = parse_timestamp(date_str)
    return dt.date().isoformat() if dt else "Unknown"


def get_week_key(date_str) -> str:
    """Get week identifier from date string (YYYY-WXX format)."""
    dt = parse_timestamp(date_str)
    if dt is None:
        return "Unknown"
    iso_calendar = dt.isocalendar()
    return f"{iso_calendar[0]}-W{iso_calendar[1]:02d}"


def get_previous_week(week_key: str) -> str:
    """Week key seven days before week_key; unparseable keys come back unchanged."""
    try:
        year, week = (int(part) for part in week_key.split("-W"))
        monday = datetime.fromisocalendar(year, week, 1)
    except (ValueError, AttributeError):
        return week_key
    return get_week_key(monday - timedelta(days=7))
