"""
Wall-clock helpers.

All timestamps are stored as naive datetimes in the configured
application timezone (Asia/Jakarta by default), so "today" and
"this week" line up with what office staff see on the wall.
"""

from __future__ import annotations

from datetime import date, datetime, time, timedelta
from typing import Optional
from zoneinfo import ZoneInfo

from .config import settings


WEEKDAY_LABELS = ("Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun")
MONTH_LABELS = ("Jan", "Feb", "Mar", "Apr", "May", "Jun", "Jul", "Aug", "Sep", "Oct", "Nov", "Dec")


def now_local() -> datetime:
    return datetime.now(ZoneInfo(settings.app_timezone)).replace(tzinfo=None)


def start_of_day(value: datetime) -> datetime:
    return datetime.combine(value.date(), time.min)


def end_of_day(value: datetime) -> datetime:
    return start_of_day(value) + timedelta(days=1) - timedelta(microseconds=1)


def start_of_week(value: datetime) -> datetime:
    """Monday 00:00 of the week containing ``value``."""
    return start_of_day(value) - timedelta(days=value.weekday())


def start_of_month(value: datetime) -> datetime:
    return datetime(value.year, value.month, 1)


def add_months(value: datetime, months: int) -> datetime:
    """Shift the first-of-month of ``value`` by ``months`` (may be negative)."""
    index = value.year * 12 + (value.month - 1) + months
    return datetime(index // 12, index % 12 + 1, 1)


def parse_date_param(value: Optional[str], *, inclusive_end: bool = False) -> Optional[datetime]:
    """Parse an ISO date or datetime query value.

    A bare ``YYYY-MM-DD`` maps to the start of that day, or to its last
    microsecond when ``inclusive_end`` is set. Aware datetimes are
    converted to local wall-clock time. Returns None when the value is
    missing or malformed.
    """
    if value is None:
        return None
    raw = str(value).strip()
    if not raw:
        return None
    try:
        if len(raw) == 10:
            parsed = datetime.combine(date.fromisoformat(raw), time.min)
            return end_of_day(parsed) if inclusive_end else parsed
        parsed = datetime.fromisoformat(raw.replace("Z", "+00:00"))
    except ValueError:
        return None
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(ZoneInfo(settings.app_timezone)).replace(tzinfo=None)
    return parsed


def format_date(value: Optional[datetime], default: str = "N/A") -> str:
    if value is None:
        return default
    return value.strftime("%Y-%m-%d")


def format_timestamp(value: Optional[datetime], default: str = "N/A") -> str:
    if value is None:
        return default
    return value.strftime("%Y-%m-%d %H:%M:%S")


def short_day_label(value: datetime) -> str:
    return f"{value.day:02d} {MONTH_LABELS[value.month - 1]}"


def month_label(value: datetime) -> str:
    return f"{MONTH_LABELS[value.month - 1]} {value.year}"
