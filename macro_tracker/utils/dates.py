"""Calendar-date helpers. Dates travel as YYYY-MM-DD strings in the app timezone."""
from __future__ import annotations

import re
from datetime import date, datetime, timedelta, timezone
from typing import Optional
from zoneinfo import ZoneInfo

DEFAULT_TIMEZONE = "America/New_York"
ISO_DATE_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")


def today_in_zone(tz_name: str = DEFAULT_TIMEZONE, now: Optional[datetime] = None) -> str:
    """Today's date in `tz_name`."""
    tz = ZoneInfo(tz_name)
    current = now.astimezone(tz) if now is not None else datetime.now(tz)
    return current.date().isoformat()


def offset_date(date_str: str, days: int) -> str:
    return (parse_date(date_str) + timedelta(days=days)).isoformat()


def parse_date(date_str: str) -> date:
    return date.fromisoformat(date_str)


def now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def is_iso_date(value: Optional[str]) -> bool:
    """True for a real calendar date written as YYYY-MM-DD."""
    if not isinstance(value, str) or not ISO_DATE_RE.match(value):
        return False
    try:
        parse_date(value)
    except ValueError:
        return False
    return True
