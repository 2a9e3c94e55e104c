"""
Timestamp conventions.

Everything stored is a naive datetime in UTC. Anything shown to the operator
as a calendar day ("today", a daily report row) is converted to the shop's
timezone first.
"""

from __future__ import annotations

from datetime import date, datetime, timezone, tzinfo
from typing import Optional
from zoneinfo import ZoneInfo


def utcnow() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


def _as_utc(dt: datetime) -> datetime:
    return dt.replace(tzinfo=timezone.utc) if dt.tzinfo is None else dt.astimezone(timezone.utc)


def parse_iso_datetime(value: Optional[str]) -> Optional[datetime]:
    """
    ISO-8601 string -> UTC-naive datetime; None or blank -> None.

    A trailing "Z" or an explicit offset is honoured; a string without either
    is taken to be UTC already.
    """
    if value is None or not value.strip():
        return None
    text = value.strip()
    if text[-1] in "Zz":
        text = text[:-1] + "+00:00"
    return _as_utc(datetime.fromisoformat(text)).replace(tzinfo=None)


def to_utc_z(dt: Optional[datetime]) -> Optional[str]:
    """Whole-second ISO-8601 in UTC with a "Z" suffix, e.g. 2024-03-01T10:00:00Z."""
    if dt is None:
        return None
    return _as_utc(dt).replace(microsecond=0, tzinfo=None).isoformat() + "Z"


def resolve_timezone(name: Optional[str]) -> tzinfo:
    # UTC needs no tz database
    if not name or name.upper() in {"UTC", "Z"}:
        return timezone.utc
    return ZoneInfo(name)


def local_date(dt: datetime, tz: tzinfo) -> date:
    """Calendar day of a stored timestamp in the shop's timezone."""
    return _as_utc(dt).astimezone(tz).date()


def local_today(tz: tzinfo) -> date:
    return local_date(utcnow(), tz)
