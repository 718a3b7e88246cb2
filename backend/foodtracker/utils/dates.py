"""
Day-granularity date helpers.

Expiration is tracked per calendar day. Every comparison first reduces both
sides to a ``date`` in one time zone, so time-of-day can never shift an offset.
"""

from datetime import date, datetime, time, timedelta, tzinfo
from zoneinfo import ZoneInfo

from foodtracker.config import get_settings


def notification_tz() -> ZoneInfo:
    return ZoneInfo(get_settings().NOTIFY_TIMEZONE)


def to_local_date(value: datetime | date | str, tz: tzinfo | None = None) -> date:
    """
    Calendar date of ``value`` in ``tz``.
    Naive datetimes are taken to already be wall-clock time in ``tz``.
    Raises ValueError/TypeError for anything that is not a date.
    """
    if isinstance(value, str):
        value = datetime.fromisoformat(value.strip().replace("Z", "+00:00"))
    if isinstance(value, datetime):
        if value.tzinfo is not None:
            value = value.astimezone(tz or notification_tz())
        return value.date()
    if isinstance(value, date):
        return value
    raise TypeError(f"Expected a date, got {type(value).__name__}")


def days_until(
    target: datetime | date | str,
    reference: datetime | date | str,
    tz: tzinfo | None = None,
) -> int:
    """Whole days from ``reference`` to ``target`` after stripping time-of-day."""
    tz = tz or notification_tz()
    return (to_local_date(target, tz) - to_local_date(reference, tz)).days


def start_of_day(day: date, tz: tzinfo | None = None) -> datetime:
    return datetime.combine(day, time.min, tzinfo=tz or notification_tz())


def local_today(tz: tzinfo | None = None) -> date:
    tz = tz or notification_tz()
    return datetime.now(tz).date()


def add_days(day: date, days: int) -> date:
    return day + timedelta(days=days)


def traffic_light_status(days_left: int) -> str:
    """red: expired or expires today, yellow: 1-3 days, green: later."""
    if days_left <= 0:
        return "red"
    elif days_left <= 3:
        return "yellow"
    return "green"


def format_relative_expiration(days_left: int) -> str:
    if days_left == 0:
        return "Expires today"
    elif days_left == 1:
        return "Expires tomorrow"
    elif days_left > 1:
        return f"Expires in {days_left} days"
    elif days_left == -1:
        return "Expired yesterday"
    return f"Expired {abs(days_left)} days ago"
