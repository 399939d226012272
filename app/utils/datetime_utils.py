"""
Timezone-aware datetime helpers.
- Store and compute in UTC in DB.
- Calendar days and attendance thresholds are evaluated in the organisation zone (settings.ORG_TIMEZONE).
- API responses expose datetimes in the organisation zone; never Z.
"""
import calendar
import re
from datetime import date, datetime, timedelta, timezone
from typing import List, Optional, Tuple
from zoneinfo import ZoneInfo

from app.core.config import settings

UTC = timezone.utc

_PERIOD_RE = re.compile(r"^(\d{4})-(\d{2})$")


def org_tz() -> ZoneInfo:
    """Organisation time zone"""
    return ZoneInfo(settings.ORG_TIMEZONE)


def now_utc() -> datetime:
    """Current time in UTC (timezone-aware)."""
    return datetime.now(UTC)


def ensure_utc(dt: Optional[datetime]) -> Optional[datetime]:
    """If dt is naive, treat as UTC and return timezone-aware UTC. If already aware, convert to UTC."""
    if dt is None:
        return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=UTC)
    else:
        dt = dt.astimezone(UTC)
    return dt


def to_local(dt: Optional[datetime]) -> Optional[datetime]:
    """Convert to the organisation zone. Naive datetimes are treated as UTC before converting."""
    if dt is None:
        return None
    return ensure_utc(dt).astimezone(org_tz())


def iso_local(dt: Optional[datetime]) -> Optional[str]:
    """Serialize as ISO-8601 with the organisation offset (e.g. +05:30). Use for API response datetimes."""
    if dt is None:
        return None
    return to_local(dt).isoformat()


def parse_period(period: str) -> Tuple[int, int]:
    """
    Parse a YYYY-MM period string.

    Raises:
        ValueError: If the string is not a valid year-month
    """
    match = _PERIOD_RE.match((period or "").strip())
    if not match:
        raise ValueError(f"Invalid month '{period}', expected YYYY-MM")
    year, month = int(match.group(1)), int(match.group(2))
    if not 1 <= month <= 12:
        raise ValueError(f"Invalid month '{period}', expected YYYY-MM")
    return year, month


def month_bounds(year: int, month: int) -> Tuple[date, date]:
    """First and last calendar day of the month"""
    last = calendar.monthrange(year, month)[1]
    return date(year, month, 1), date(year, month, last)


def days_in_month(year: int, month: int) -> int:
    return calendar.monthrange(year, month)[1]


def iter_days(from_date: date, to_date: date) -> List[date]:
    """Inclusive list of days between two dates"""
    days = []
    current = from_date
    while current <= to_date:
        days.append(current)
        current += timedelta(days=1)
    return days
