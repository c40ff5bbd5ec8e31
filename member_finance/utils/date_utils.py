"""Date manipulation utilities"""

from datetime import datetime, timedelta, timezone
from typing import Optional, Tuple

from dateutil.relativedelta import relativedelta


def utcnow() -> datetime:
    """Current UTC time as a naive datetime (the storage convention)"""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def as_naive_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Normalize aware datetimes coming back from the database to naive UTC"""
    if value is None or value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


def add_months(start: datetime, months: int) -> datetime:
    """Calendar month addition; the day is clipped to the end of shorter months"""
    return start + relativedelta(months=months)


def start_of_month(moment: datetime) -> datetime:
    return moment.replace(day=1, hour=0, minute=0, second=0, microsecond=0)


def end_of_month(moment: datetime) -> datetime:
    return start_of_month(moment) + relativedelta(months=1) - timedelta(microseconds=1)


def period_range(
    period: Optional[str] = None,
    month: Optional[int] = None,
    year: Optional[int] = None,
    now: Optional[datetime] = None,
) -> Tuple[Optional[datetime], Optional[datetime], str]:
    """
    Resolve a transaction list filter into an inclusive [start, end] window.

    Precedence:
    - period="week": current week, Monday to Sunday
    - period="all": no window
    - month + year: that calendar month
    - year: that calendar year
    - otherwise: no window

    Returns:
        (start, end, label); start and end are None for "All Time"
    """
    now = now or utcnow()

    if period == "week":
        monday = (now - timedelta(days=now.weekday())).replace(hour=0, minute=0, second=0, microsecond=0)
        end = monday + timedelta(days=7) - timedelta(microseconds=1)
        return monday, end, f"This Week ({monday:%b} {monday.day} - {end:%b} {end.day}, {end.year})"

    if period == "all":
        return None, None, "All Time"

    if month and year:
        first = datetime(year, month, 1)
        return first, end_of_month(first), f"{first:%B %Y}"

    if year:
        first = datetime(year, 1, 1)
        last = datetime(year + 1, 1, 1) - timedelta(microseconds=1)
        return first, last, str(year)

    return None, None, "All Time"
