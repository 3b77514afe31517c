# slot_engine/services/slots/calculator.py
"""
Slot generation: weekly schedule → concrete UTC slot windows.

For every local calendar date in the horizon:
✓ weekday looked up in the business timezone (not a fixed UTC offset)
✓ candidates every slot_step_minutes inside [start, end)
✓ a candidate is kept only if start + slot_duration_minutes <= end
✓ wall-clock → UTC evaluated for that specific date (DST per occurrence)
✓ only slots starting strictly after `now`

Spring-forward: wall-clock starts inside the skipped hour are dropped.
Fall-back: a repeated wall-clock time is emitted once, at its earlier
UTC instant.

Pure function, no database access.
"""

from dataclasses import dataclass
from datetime import datetime, timedelta

from .schedule import BusinessSchedule, DayHours
from .timeutils import as_utc, local_wall_to_utc


@dataclass(frozen=True)
class Slot:
    business_id: int
    start_utc: datetime
    end_utc: datetime
    is_available: bool = True
    is_blocked: bool = False


def generate_slots(
    schedule: BusinessSchedule,
    horizon_days: int,
    now: datetime,
) -> list[Slot]:
    """
    Expand a weekly schedule into slots over ``horizon_days`` local dates.

    Returns:
        Slots ordered by start_utc.
    """
    if horizon_days <= 0:
        return []

    now = as_utc(now)
    zone = schedule.zone
    local_today = now.astimezone(zone).date()
    duration = timedelta(minutes=schedule.slot_duration_minutes)

    slots: list[Slot] = []
    seen: set[datetime] = set()

    for offset in range(horizon_days):
        local_date = local_today + timedelta(days=offset)
        hours = schedule.hours_for(local_date.weekday())
        if hours is None:
            continue

        for minutes in day_start_minutes(hours, schedule.slot_duration_minutes, schedule.slot_step_minutes):
            start_utc = local_wall_to_utc(local_date, minutes, zone)
            if start_utc is None or start_utc <= now or start_utc in seen:
                continue
            seen.add(start_utc)
            slots.append(Slot(
                business_id=schedule.business_id,
                start_utc=start_utc,
                end_utc=start_utc + duration,
            ))

    slots.sort(key=lambda s: s.start_utc)
    return slots


def day_start_minutes(hours: DayHours, duration_minutes: int, step_minutes: int) -> list[int]:
    """
    Local start times (minutes after midnight) for one open day.

    Count is floor((end - start - duration) / step) + 1 when the duration
    fits the window, else 0.
    """
    result = []
    t = hours.start_minutes
    while t + duration_minutes <= hours.end_minutes:
        result.append(t)
        t += step_minutes
    return result
