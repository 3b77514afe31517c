from types import SimpleNamespace

import pytest

from slot_engine.services.slots import BusinessNotFound, ScheduleConfigError, parse_business_schedule
from slot_engine.services.slots.config import minutes_to_time_str, time_str_to_minutes
from slot_engine.services.slots.schedule import get_business_schedule, parse_weekly_hours


def _business(**overrides):
    values = dict(
        id=7,
        timezone="America/Chicago",
        business_hours='{"monday": {"enabled": true, "start": "08:00", "end": "12:30"}}',
        slot_duration_minutes=60,
        slot_step_minutes=30,
    )
    values.update(overrides)
    return SimpleNamespace(**values)


def test_parses_stored_row() -> None:
    schedule = parse_business_schedule(_business())

    assert schedule.business_id == 7
    assert schedule.zone.key == "America/Chicago"
    monday = schedule.hours_for(0)
    assert (monday.start_minutes, monday.end_minutes) == (480, 750)
    assert schedule.hours_for(1) is None


def test_short_day_names_and_missing_enabled() -> None:
    weekly = parse_weekly_hours({
        "tue": {"enabled": True, "start": "10:00", "end": "14:00"},
        "wed": {"start": "10:00", "end": "14:00"},
        "sun": None,
    })

    assert weekly[1].enabled
    assert not weekly[2].enabled
    assert not weekly[6].enabled


@pytest.mark.parametrize(
    "overrides, field",
    [
        ({"timezone": None}, "timezone"),
        ({"timezone": "Mars/Olympus_Mons"}, "timezone"),
        ({"slot_duration_minutes": 0}, "slot_duration_minutes"),
        ({"slot_step_minutes": -15}, "slot_step_minutes"),
        ({"business_hours": None}, "business_hours"),
        ({"business_hours": "not json"}, "business_hours"),
        ({"business_hours": '["monday"]'}, "business_hours"),
        ({"business_hours": '{"funday": {"enabled": true}}'}, "business_hours.funday"),
        ({"business_hours": '{"monday": {"enabled": true, "end": "17:00"}}'}, "business_hours.monday.start"),
        ({"business_hours": '{"monday": {"enabled": true, "start": "9am", "end": "17:00"}}'}, "business_hours.monday.start"),
        ({"business_hours": '{"monday": {"enabled": true, "start": "09:00", "end": "25:00"}}'}, "business_hours.monday.end"),
    ],
)
def test_config_errors_name_the_field(overrides, field) -> None:
    with pytest.raises(ScheduleConfigError) as exc_info:
        parse_business_schedule(_business(**overrides))
    assert exc_info.value.field == field


def test_overnight_hours_are_rejected() -> None:
    with pytest.raises(ScheduleConfigError) as exc_info:
        parse_business_schedule(_business(business_hours='{"friday": {"enabled": true, "start": "22:00", "end": "02:00"}}'))
    assert exc_info.value.field == "business_hours.friday"
    assert "overnight" in exc_info.value.message


def test_end_of_day_is_allowed() -> None:
    weekly = parse_weekly_hours({"saturday": {"enabled": True, "start": "18:00", "end": "24:00"}})
    assert weekly[5].end_minutes == 24 * 60


def test_time_helpers() -> None:
    assert time_str_to_minutes("09:30") == 570
    assert minutes_to_time_str(570) == "09:30"
    with pytest.raises(ValueError):
        time_str_to_minutes("24:30")


def test_unknown_business(db) -> None:
    with pytest.raises(BusinessNotFound):
        get_business_schedule(db, 999)
