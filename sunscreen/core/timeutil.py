from datetime import date, datetime, time, timedelta, timezone
from zoneinfo import ZoneInfo
from .config import settings


def local_tz() -> ZoneInfo:
    return ZoneInfo(settings.timezone)


def now_utc() -> datetime:
    return datetime.now(timezone.utc)


def now_local() -> datetime:
    return now_utc().astimezone(local_tz())


def parse_hhmm(s: str) -> time:
    """Parse "HH:MM" into a time. Raises ValueError on bad input."""
    h, m = s.strip().split(":")
    return time(hour=int(h), minute=int(m))


def at_day(day: date, t: time, tz) -> datetime:
    """Combine a date with a clock time in the given timezone."""
    return datetime(day.year, day.month, day.day, t.hour, t.minute, tzinfo=tz)


def shift_days(dt: datetime, days: int) -> datetime:
    """Move a datetime by whole calendar days, keeping its clock time."""
    return datetime.combine(dt.date() + timedelta(days=days), dt.timetz())
