"""Calendar helpers.

Timestamps are stored in UTC. A "day" is a calendar date in the business
time zone (``settings.APP_TZ``); naive datetimes coming from clients are read as
business-local wall time, naive datetimes coming back from the database
(SQLite drops the offset) are read as UTC.
"""
import calendar
from datetime import date, datetime, time, timedelta, timezone
from zoneinfo import ZoneInfo

from caisse.config import settings


def business_tz() -> ZoneInfo:
    return ZoneInfo(settings.APP_TZ)


def to_utc(dt: datetime) -> datetime:
    """Normalize an incoming (client) datetime to aware UTC."""
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=business_tz())
    return dt.astimezone(timezone.utc)


def from_db(dt: datetime | None) -> datetime | None:
    if dt is None:
        return None
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt


def local_day(dt: datetime) -> date:
    return from_db(dt).astimezone(business_tz()).date()


def today() -> date:
    return datetime.now(business_tz()).date()


def day_bounds(start: date, end: date | None = None) -> tuple[datetime, datetime]:
    """Half-open UTC interval [start 00:00, (end + 1) 00:00) in business time."""
    end = end or start
    tz = business_tz()
    lo = datetime.combine(start, time.min, tzinfo=tz).astimezone(timezone.utc)
    hi = datetime.combine(end + timedelta(days=1), time.min, tzinfo=tz).astimezone(timezone.utc)
    return lo, hi


def add_months(dt: datetime, months: int) -> datetime:
    idx = dt.month - 1 + months
    year, month = dt.year + idx // 12, idx % 12 + 1
    last = calendar.monthrange(year, month)[1]
    return dt.replace(year=year, month=month, day=min(dt.day, last))


def month_bounds(d: date) -> tuple[date, date]:
    last = calendar.monthrange(d.year, d.month)[1]
    return d.replace(day=1), d.replace(day=last)


def iter_days(start: date, end: date):
    cur = start
    while cur <= end:
        yield cur
        cur += timedelta(days=1)


def iter_months(start: date, end: date):
    cur = start.replace(day=1)
    while cur <= end:
        yield cur
        cur = add_months(datetime.combine(cur, time.min), 1).date()
