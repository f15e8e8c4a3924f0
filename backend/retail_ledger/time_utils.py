# Overview: UTC clock and ISO-8601 parsing for ledger timestamps and report windows.

from __future__ import annotations

from datetime import date, datetime, timedelta, timezone
from typing import Optional


def utcnow() -> datetime:
    """Server-side 'now' in UTC, stored naive."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def to_utc_z(dt: Optional[datetime]) -> Optional[str]:
    """Serialize to ISO-8601 with a trailing 'Z'. Naive values are UTC."""
    if dt is None:
        return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    dt_utc = dt.astimezone(timezone.utc).replace(microsecond=0)
    return dt_utc.isoformat().replace("+00:00", "Z")


def _is_date_only(value: str) -> bool:
    try:
        date.fromisoformat(value)
    except ValueError:
        return False
    return True


def parse_iso_datetime(value: Optional[str], *, end_of_day: bool = False) -> Optional[datetime]:
    """
    Parse a report bound and normalize it to UTC-naive.

    - None / "" -> None
    - "YYYY-MM-DD" is midnight UTC, or the last microsecond of that day
      when end_of_day is set, so an end date includes the whole day
    - "...Z" / "...+HH:MM" are converted to UTC; other naive values are UTC

    Raises ValueError on unparseable input.
    """
    if value is None:
        return None
    s = value.strip()
    if not s:
        return None

    if _is_date_only(s):
        dt = datetime.fromisoformat(s)
        if end_of_day:
            dt += timedelta(days=1) - timedelta(microseconds=1)
        return dt

    if s.endswith("Z"):
        s = s[:-1] + "+00:00"
    dt = datetime.fromisoformat(s)
    if dt.tzinfo is None:
        return dt
    return dt.astimezone(timezone.utc).replace(tzinfo=None)


def parse_window(start: Optional[str], end: Optional[str]) -> tuple[Optional[datetime], Optional[datetime]]:
    """(start, end) bounds for a report query. Raises ValueError if reversed."""
    start_dt = parse_iso_datetime(start)
    end_dt = parse_iso_datetime(end, end_of_day=True)
    if start_dt and end_dt and start_dt > end_dt:
        raise ValueError("start must be before end")
    return start_dt, end_dt
