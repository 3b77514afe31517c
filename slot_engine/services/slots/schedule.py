# slot_engine/services/slots/schedule.py
"""
Business schedule: weekly hours + timezone + slot sizing.

Stored format of ``businesses.business_hours`` (JSON text):

    {"monday": {"enabled": true, "start": "09:00", "end": "17:00"}, ...}

Short day names ("mon", "tue", ...) are accepted as well. A missing day
means closed. Malformed values raise ScheduleConfigError naming the
field; nothing is silently defaulted.
"""

import json
from dataclasses import dataclass, field
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from sqlalchemy.orm import Session

from .config import time_str_to_minutes
from .errors import BusinessNotFound, ScheduleConfigError

DAY_NAMES = ["monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday"]
SHORT_DAY_NAMES = ["mon", "tue", "wed", "thu", "fri", "sat", "sun"]


@dataclass(frozen=True)
class DayHours:
    """Open window of one weekday, in minutes after local midnight."""
    enabled: bool
    start_minutes: int = 0
    end_minutes: int = 0


@dataclass(frozen=True)
class BusinessSchedule:
    business_id: int
    timezone: str
    weekly_hours: dict[int, DayHours] = field(default_factory=dict)  # 0 = Monday
    slot_duration_minutes: int = 60
    slot_step_minutes: int = 30

    @property
    def zone(self) -> ZoneInfo:
        return ZoneInfo(self.timezone)

    def hours_for(self, weekday: int) -> DayHours | None:
        """Open hours for a weekday, or None if closed."""
        hours = self.weekly_hours.get(weekday)
        if hours is None or not hours.enabled:
            return None
        return hours


def parse_business_schedule(business) -> BusinessSchedule:
    """Build a BusinessSchedule from a ``businesses`` row."""
    if not business.timezone:
        raise ScheduleConfigError("timezone", "is required")
    try:
        ZoneInfo(business.timezone)
    except (ZoneInfoNotFoundError, ValueError):
        raise ScheduleConfigError("timezone", f"unknown IANA timezone {business.timezone!r}")

    duration = business.slot_duration_minutes
    step = business.slot_step_minutes
    if not duration or duration <= 0:
        raise ScheduleConfigError("slot_duration_minutes", "must be a positive number of minutes")
    if not step or step <= 0:
        raise ScheduleConfigError("slot_step_minutes", "must be a positive number of minutes")

    return BusinessSchedule(
        business_id=business.id,
        timezone=business.timezone,
        weekly_hours=parse_weekly_hours(business.business_hours),
        slot_duration_minutes=duration,
        slot_step_minutes=step,
    )


def parse_weekly_hours(raw) -> dict[int, DayHours]:
    """Parse the business_hours JSON (string or dict) into DayHours by weekday."""
    if raw is None or raw == "":
        raise ScheduleConfigError("business_hours", "is required")
    if isinstance(raw, str):
        try:
            raw = json.loads(raw)
        except json.JSONDecodeError:
            raise ScheduleConfigError("business_hours", "is not valid JSON")
    if not isinstance(raw, dict):
        raise ScheduleConfigError("business_hours", "must be an object keyed by weekday")

    weekly: dict[int, DayHours] = {}
    for key, value in raw.items():
        day = str(key).strip().lower()
        if day in DAY_NAMES:
            weekday = DAY_NAMES.index(day)
        elif day in SHORT_DAY_NAMES:
            weekday = SHORT_DAY_NAMES.index(day)
        else:
            raise ScheduleConfigError(f"business_hours.{key}", "unknown weekday")
        weekly[weekday] = _parse_day(f"business_hours.{key}", value)
    return weekly


def _parse_day(field_name: str, value) -> DayHours:
    if value is None:
        return DayHours(enabled=False)
    if not isinstance(value, dict):
        raise ScheduleConfigError(field_name, "must be an object with enabled/start/end")

    if not value.get("enabled"):
        return DayHours(enabled=False)

    for part in ("start", "end"):
        if not value.get(part):
            raise ScheduleConfigError(f"{field_name}.{part}", "is required when the day is enabled")

    try:
        start = time_str_to_minutes(value["start"])
    except (ValueError, AttributeError):
        raise ScheduleConfigError(f"{field_name}.start", f"invalid time {value['start']!r}")
    try:
        end = time_str_to_minutes(value["end"])
    except (ValueError, AttributeError):
        raise ScheduleConfigError(f"{field_name}.end", f"invalid time {value['end']!r}")

    # Overnight windows (22:00-02:00) are not supported
    if start >= end:
        raise ScheduleConfigError(field_name, "start must be before end (overnight hours are not supported)")

    return DayHours(enabled=True, start_minutes=start, end_minutes=end)


def get_business_schedule(db: Session, business_id: int) -> BusinessSchedule:
    """Business Schedule Store lookup."""
    business = get_business(db, business_id)
    return parse_business_schedule(business)


def get_business(db: Session, business_id: int):
    from ...models.generated import Businesses
    business = db.get(Businesses, business_id)
    if business is None:
        raise BusinessNotFound(business_id)
    return business
