"""
Timezone helpers.

All wall-clock conversions go through the IANA database (zoneinfo) for
the specific calendar date, never through a fixed UTC offset. The store
keeps naive UTC datetimes; everything crossing the service boundary is
timezone-aware.
"""

from datetime import date, datetime, time, timedelta, timezone
from zoneinfo import ZoneInfo


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(dt: datetime) -> datetime:
    """Aware UTC datetime. Naive input is taken to be UTC already."""
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def to_naive_utc(dt: datetime) -> datetime:
    """Storage form: naive datetime in UTC."""
    return as_utc(dt).replace(tzinfo=None)


def local_wall_to_utc(
    local_date: date,
    minutes: int,
    zone: ZoneInfo,
    strict: bool = True,
) -> datetime | None:
    """
    Convert a wall-clock time (minutes after local midnight) to UTC.

    Returns None when the wall-clock time does not exist on that date
    (spring-forward gap), unless ``strict`` is off. An ambiguous time
    (fall-back overlap) resolves to the earlier UTC instant (fold=0).
    """
    naive = datetime.combine(local_date, time()) + timedelta(minutes=minutes)
    utc = naive.replace(tzinfo=zone).astimezone(timezone.utc)
    if strict and utc.astimezone(zone).replace(tzinfo=None) != naive:
        return None
    return utc


def local_day_bounds(local_date: date, zone: ZoneInfo) -> tuple[datetime, datetime]:
    """UTC half-open window [start, end) covering one local calendar date."""
    start = datetime.combine(local_date, time(), tzinfo=zone).astimezone(timezone.utc)
    end = datetime.combine(local_date + timedelta(days=1), time(), tzinfo=zone).astimezone(timezone.utc)
    return start, end


def format_local_time(dt: datetime, zone: ZoneInfo) -> str:
    """Human readable local time, e.g. "9:30 AM"."""
    local = as_utc(dt).astimezone(zone)
    hour = local.hour % 12 or 12
    suffix = "AM" if local.hour < 12 else "PM"
    return f"{hour}:{local.minute:02d} {suffix}"
