from __future__ import annotations

from datetime import date, datetime, time, timedelta, timezone, tzinfo
from typing import Literal

from shelf_alerts.errors import MalformedItem
from shelf_alerts.models import InventoryItem

ExpirationStatus = Literal["fresh", "expiring_soon", "expires_today", "expired"]

# Older clients store dates as dd-MM-yy.
_LEGACY_DATE_FORMATS = ("%d-%m-%y", "%d-%m-%Y", "%d/%m/%Y")


def now_utc() -> datetime:
    return datetime.now(timezone.utc).replace(microsecond=0)


def parse_expiration_date(value: str | None) -> date | None:
    if not value:
        return None
    raw = str(value).strip()
    if not raw:
        return None
    try:
        return date.fromisoformat(raw[:10])
    except ValueError:
        pass
    for fmt in _LEGACY_DATE_FORMATS:
        try:
            return datetime.strptime(raw, fmt).date()
        except ValueError:
            continue
    return None


def expiration_date_of(item: InventoryItem) -> date:
    expires = parse_expiration_date(item.expires_on)
    if expires is None:
        raise MalformedItem(item.id, item.expires_on)
    return expires


def local_date(moment: datetime) -> date:
    """Calendar date of `moment` in its own timezone."""
    return moment.date()


def days_until_expiration(expires_on: date, now: datetime) -> int:
    """Whole calendar days between today and `expires_on`, cut at local midnight."""
    return (expires_on - local_date(now)).days


def at_local_time(day: date, hour: int, minute: int, tz: tzinfo | None) -> datetime:
    return datetime.combine(day, time(hour=hour, minute=minute), tzinfo=tz)


def next_occurrence(now: datetime, hour: int, minute: int) -> datetime:
    """Next instant at hour:minute in now's zone, today if still ahead, else tomorrow."""
    candidate = at_local_time(local_date(now), hour, minute, now.tzinfo)
    if candidate <= now:
        candidate = at_local_time(local_date(now) + timedelta(days=1), hour, minute, now.tzinfo)
    return candidate


def status_from_days(days: int, advance_notice_days: int = 3) -> ExpirationStatus:
    if days < 0:
        return "expired"
    if days == 0:
        return "expires_today"
    if days <= advance_notice_days:
        return "expiring_soon"
    return "fresh"
