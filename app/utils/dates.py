from datetime import date, datetime, time, timedelta, timezone
from typing import Tuple, Union


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def ensure_utc(dt: datetime) -> datetime:
    """Treat naive datetimes as UTC; convert aware ones to UTC."""
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def parse_iso_date(value: Union[str, date]) -> date:
    """Parse 'YYYY-MM-DD' (or a full ISO timestamp, keeping only its date)."""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    text = value.strip()
    try:
        return date.fromisoformat(text[:10])
    except ValueError:
        raise ValueError(f"Invalid date: {value!r}")


def day_window(day: date, days: int = 1) -> Tuple[datetime, datetime]:
    """Half-open UTC window [day 00:00, day + days 00:00)."""
    start = datetime.combine(day, time.min, tzinfo=timezone.utc)
    return start, start + timedelta(days=days)


def duration_minutes(start: datetime, end: datetime) -> int:
    """Whole minutes between two instants, truncated."""
    seconds = (ensure_utc(end) - ensure_utc(start)).total_seconds()
    return int(seconds // 60)


def format_duration_minutes(total_minutes: int) -> str:
    """
    Convert duration in minutes to the compact form used in route listings,
    e.g. 390 -> "6h 30m", 45 -> "0h 45m".
    """
    if total_minutes is None or total_minutes < 0:
        return ""
    return f"{total_minutes // 60}h {total_minutes % 60}m"
