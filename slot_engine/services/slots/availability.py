# slot_engine/services/slots/availability.py
"""
Availability resolution for one local date and a requested duration.

Steps:
1. [day_start, day_end) in UTC for the local date in the business timezone
2. Bookable slots starting in that window (Redis cache, else database)
3. Active appointments (scheduled/confirmed) near the window
4. Drop candidates that would run past closing time for that date
5. Drop candidates whose occupied window [start, start + duration + buffer)
   intersects an appointment padded by the same buffer on both sides
6. First ``page_size`` survivors, ordered by start

All intervals are half-open: touching boundaries are not conflicts.
"""

import logging
from dataclasses import dataclass
from datetime import date, datetime, timedelta

from redis import Redis
from redis.exceptions import RedisError
from sqlalchemy.orm import Session

from .appointments import find_overlapping
from .config import SlotEngineConfig, get_engine_config
from .errors import InvalidDuration
from .redis_store import SlotsRedisStore
from .schedule import BusinessSchedule, get_business_schedule
from .store import fetch_bookable_slots
from .timeutils import as_utc, format_local_time, local_day_bounds, local_wall_to_utc, utcnow

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Candidate:
    start_utc: datetime
    end_utc: datetime
    display_local_time: str


def get_available_slots(
    db: Session,
    business_id: int,
    target_date: date,
    duration_minutes: int,
    config: SlotEngineConfig | None = None,
    now: datetime | None = None,
    redis: Redis | None = None,
) -> list[Candidate]:
    """
    Bookable candidates for ``target_date`` (a local calendar date).

    Raises:
        BusinessNotFound, ScheduleConfigError, InvalidDuration
    """
    config = config or get_engine_config()
    now = as_utc(now) if now else utcnow()
    validate_duration(duration_minutes, config)

    schedule = get_business_schedule(db, business_id)
    zone = schedule.zone
    closes_at = closing_time_utc(schedule, target_date)
    if closes_at is None:
        return []
    day_start, day_end = local_day_bounds(target_date, zone)

    starts = _get_bookable_starts(db, business_id, target_date, day_start, day_end, now, redis)
    if not starts:
        return []

    buffer_min = config.travel_buffer_for(duration_minutes)
    lookup_start, lookup_end = conflict_lookup_window(day_start, day_end, duration_minutes, buffer_min)
    appointments = find_overlapping(db, business_id, lookup_start, lookup_end)

    duration = timedelta(minutes=duration_minutes)
    candidates: list[Candidate] = []
    for start in starts:
        if start + duration > closes_at:
            break
        if has_conflict(start, duration_minutes, buffer_min, appointments):
            continue
        candidates.append(Candidate(
            start_utc=start,
            end_utc=start + duration,
            display_local_time=format_local_time(start, zone),
        ))
        if len(candidates) >= config.page_size:
            break

    return candidates


def closing_time_utc(schedule: BusinessSchedule, local_date: date) -> datetime | None:
    """UTC instant the business closes on a local date, None when closed."""
    hours = schedule.hours_for(local_date.weekday())
    if hours is None:
        return None
    return local_wall_to_utc(local_date, hours.end_minutes, schedule.zone, strict=False)


def validate_duration(duration_minutes: int, config: SlotEngineConfig) -> None:
    if (
        not isinstance(duration_minutes, int)
        or duration_minutes <= 0
        or duration_minutes > config.max_duration_minutes
    ):
        raise InvalidDuration(
            f"Duration must be between 1 and {config.max_duration_minutes} minutes, "
            f"got {duration_minutes!r}"
        )


def has_conflict(
    start: datetime,
    duration_minutes: int,
    buffer_minutes: int,
    appointments: list,
) -> bool:
    """
    True if [start, start + duration + buffer) intersects any appointment
    window expanded by ``buffer_minutes`` on both sides.
    """
    start = as_utc(start)
    buffer = timedelta(minutes=buffer_minutes)
    end = start + timedelta(minutes=duration_minutes) + buffer

    for appt in appointments:
        appt_start = as_utc(appt.start_time) - buffer
        appt_end = as_utc(appt.end_time) + buffer
        if start < appt_end and end > appt_start:
            return True
    return False


def conflict_lookup_window(
    window_start: datetime,
    window_end: datetime,
    duration_minutes: int,
    buffer_minutes: int,
) -> tuple[datetime, datetime]:
    """
    Range of appointment times that can conflict with a candidate starting
    in [window_start, window_end).
    """
    buffer = timedelta(minutes=buffer_minutes)
    return (
        window_start - buffer,
        window_end + timedelta(minutes=duration_minutes) + 2 * buffer,
    )


# ── Bookable starts (with cache) ─────────────────────────────────────────


def _get_bookable_starts(
    db: Session,
    business_id: int,
    target_date: date,
    day_start: datetime,
    day_end: datetime,
    now: datetime,
    redis: Redis | None,
) -> list[datetime]:
    """Future bookable slot starts for the day, using Redis cache when available."""
    if redis is not None:
        store = SlotsRedisStore(redis)
        try:
            cached = store.get_bookable_starts(business_id, target_date, now)
            if cached is not None:
                return cached

            # Cache miss: load the whole day and store it, unless the
            # business was invalidated while we were reading
            version = store.get_version(business_id)
            rows = fetch_bookable_slots(db, business_id, day_start, day_end, now=None)
            starts = [as_utc(row.slot_start) for row in rows]
            store.store_day_slots(business_id, target_date, starts, version)
            return [s for s in starts if s > now]
        except RedisError:
            logger.exception(f"Slot cache unavailable for business={business_id}, reading database")

    # No Redis, read live
    rows = fetch_bookable_slots(db, business_id, day_start, day_end, now=now)
    return [as_utc(row.slot_start) for row in rows]
