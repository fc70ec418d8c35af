# marketdata/domain/dates.py
from __future__ import annotations

import calendar
from datetime import date, datetime, timezone


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def ensure_aware_utc(dt: datetime) -> datetime:
    """
    SQLite + SQLAlchemy hands back naive datetimes even when we stored UTC.
    If naive, assume it's UTC and attach tzinfo so comparisons don't explode.
    """
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def as_date(x: date | datetime) -> date:
    return x.date() if isinstance(x, datetime) else x


def add_months(d: date, months: int) -> date:
    """Calendar month shift; the day is clamped to the target month's length (Mar 31 - 1 -> Feb 28/29)."""
    idx = d.year * 12 + (d.month - 1) + months
    year, month0 = divmod(idx, 12)
    last = calendar.monthrange(year, month0 + 1)[1]
    return d.replace(year=year, month=month0 + 1, day=min(d.day, last))


def month_key(d: date) -> str:
    return f"{d.year:04d}-{d.month:02d}"
