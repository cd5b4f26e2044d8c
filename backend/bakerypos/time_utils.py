from __future__ import annotations

from datetime import date, datetime, timezone
from typing import Optional
from zoneinfo import ZoneInfo

from flask import current_app, has_app_context


DEFAULT_BUSINESS_TIMEZONE = "Asia/Colombo"


def utcnow() -> datetime:
    """Server-side 'now' in UTC (naive, canonical)."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def business_timezone() -> ZoneInfo:
    name = DEFAULT_BUSINESS_TIMEZONE
    if has_app_context():
        name = current_app.config.get("BUSINESS_TIMEZONE", DEFAULT_BUSINESS_TIMEZONE)
    return ZoneInfo(name)


def business_now() -> datetime:
    """
    Wall-clock time at the shop.

    Stock rows, document numbers and special pricing are keyed on the
    shop's calendar, not on UTC.
    """
    return datetime.now(business_timezone())


def business_today() -> date:
    return business_now().date()


def parse_iso_date(value: Optional[str]) -> Optional[date]:
    """
    Parse a YYYY-MM-DD string.

    - None / "" -> None
    - date / datetime instances are passed through (datetime -> date)
    """
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    s = str(value).strip()
    if not s:
        return None
    return datetime.strptime(s, "%Y-%m-%d").date()


def to_iso_date(d: Optional[date]) -> Optional[str]:
    if d is None:
        return None
    return d.isoformat()


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
