from __future__ import annotations

import calendar
from datetime import date, datetime, timedelta, timezone
from typing import Iterator, Optional


def utcnow() -> datetime:
    """Server-side 'now' in UTC (naive, canonical)."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def today() -> date:
    return utcnow().date()


def parse_iso_datetime(value: Optional[str]) -> Optional[datetime]:
    """
    Parse an ISO-8601 datetime string and normalize to UTC-naive datetime.

    - None / "" -> None
    - "YYYY-MM-DDTHH:MM" (naive) is interpreted as UTC
    - "...Z" or "...+/-HH:MM" is converted to UTC and tzinfo is stripped
    """
    if value is None:
        return None
    s = value.strip()
    if not s:
        return None

    # Accept trailing Z
    if s.endswith("Z"):
        s = s[:-1] + "+00:00"

    dt = datetime.fromisoformat(s)

    # Normalize to UTC-naive
    if dt.tzinfo is None:
        # interpret naive as UTC
        return dt.replace(tzinfo=None)

    return dt.astimezone(timezone.utc).replace(tzinfo=None)


def to_day(value) -> Optional[date]:
    """
    Reduce a date-like value to a calendar day.

    Accepts date, datetime (time-of-day dropped) or an ISO-8601 string
    ("2024-06-10" or a full timestamp). None / "" -> None.
    """
    if value is None:
        return None
    # datetime is a subclass of date, check it first
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        s = value.strip()
        if not s:
            return None
        if len(s) == 10:
            return date.fromisoformat(s)
        return parse_iso_datetime(s).date()
    raise TypeError(f"Cannot interpret {value!r} as a date")


def iter_days(start: date, end: date) -> Iterator[date]:
    """Yield every calendar day from start to end, both inclusive."""
    current = start
    while current <= end:
        yield current
        current += timedelta(days=1)


def month_bounds(value) -> tuple[date, date]:
    """
    First and last day of the month containing value.

    Strings may be "YYYY-MM" or any form accepted by to_day().
    """
    if isinstance(value, str) and len(value.strip()) == 7:
        year, month = (int(part) for part in value.strip().split("-"))
    else:
        day = to_day(value)
        if day is None:
            raise ValueError("month is required")
        year, month = day.year, day.month
    last = calendar.monthrange(year, month)[1]
    return date(year, month, 1), date(year, month, last)


def to_iso_day(d: Optional[date]) -> Optional[str]:
    return d.isoformat() if d else None


def to_utc_z(dt: Optional[datetime]) -> Optional[str]:
    """
    Serializes datetime to ISO-8601 with trailing 'Z'.
    If dt is naive, it is treated as UTC.
    """
    if dt is None:
        return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    dt_utc = dt.astimezone(timezone.utc).replace(microsecond=0)
    return dt_utc.isoformat().replace("+00:00", "Z")
