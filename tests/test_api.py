from datetime import date, datetime, timedelta
from zoneinfo import ZoneInfo

import pytest
from fastapi.testclient import TestClient

from slot_engine.database import get_db
from slot_engine.main import app
from slot_engine.models.generated import CalendarSlots
from slot_engine.services.slots import SlotMaintenance

HOURS_PAYLOAD = {
    "timezone": "America/New_York",
    "business_hours": {
        day: {"enabled": True, "start": "09:00", "end": "17:00"}
        for day in ("monday", "tuesday", "wednesday", "thursday", "friday")
    },
}


def _next_week_monday() -> date:
    today = datetime.now(ZoneInfo("America/New_York")).date()
    return today + timedelta(days=14 - today.weekday())


@pytest.fixture
def client(session_factory):
    def override_get_db():
        db = session_factory()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_get_db
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def business_id(client, make_business):
    business_id = make_business().id
    response = client.post(f"/businesses/{business_id}/slots/generate", params={"horizon_days": 21})
    assert response.status_code == 200
    return business_id


def _availability(client, business_id: int, **params):
    params.setdefault("date", _next_week_monday().isoformat())
    return client.get(f"/businesses/{business_id}/availability", params=params)


def _book(client, business_id: int, **body):
    body.setdefault("customer", {"name": "Jane Doe", "phone": "+15550100"})
    return client.post(f"/businesses/{business_id}/appointments/", json=body)


def test_health(client) -> None:
    assert client.get("/health").json() == {"redis": None}


def test_availability_lists_first_page(client, business_id) -> None:
    response = _availability(client, business_id, duration=60)

    assert response.status_code == 200
    data = response.json()
    assert data["duration_minutes"] == 60
    assert len(data["candidates"]) == 10
    assert data["candidates"][0]["display_local_time"] == "9:00 AM"


def test_book_then_conflict(client, business_id) -> None:
    first = _availability(client, business_id).json()["candidates"][0]

    booked = _book(client, business_id, start_utc=first["start_utc"])
    assert booked.status_code == 201
    assert booked.json()["duration_minutes"] == 60
    assert booked.json()["status"] == "scheduled"

    again = _book(client, business_id, start_utc=first["start_utc"])
    assert again.status_code == 409
    assert again.json()["code"] == "slot_conflict"

    remaining = _availability(client, business_id).json()["candidates"]
    assert remaining[0]["display_local_time"] == "10:30 AM"


def test_booking_errors_map_to_status_codes(client, business_id) -> None:
    start = _availability(client, business_id).json()["candidates"][0]["start_utc"]

    unknown_service = _book(client, business_id, start_utc=start, service_type_id=999)
    assert unknown_service.status_code == 404
    assert unknown_service.json()["code"] == "service_not_found"

    bad_duration = _book(client, business_id, start_utc=start, duration_minutes=900)
    assert bad_duration.status_code == 422
    assert bad_duration.json()["code"] == "invalid_duration"

    outside = datetime.combine(_next_week_monday(), datetime.min.time(), ZoneInfo("America/New_York"))
    closed = _book(client, business_id, start_utc=outside.isoformat())
    assert closed.status_code == 422
    assert closed.json()["code"] == "outside_business_hours"

    missing = _book(client, 404, start_utc=start)
    assert missing.status_code == 404
    assert missing.json()["code"] == "business_not_found"


def test_booking_requires_start_or_session_option(client, business_id) -> None:
    assert _book(client, business_id).status_code == 422

    # No Redis configured: the session offer cannot be resolved
    response = _book(client, business_id, session_id="CA123", option=1)
    assert response.status_code == 422


def test_invalid_duration_on_availability(client, business_id) -> None:
    response = _availability(client, business_id, duration=0)
    assert response.status_code == 422
    assert response.json()["code"] == "invalid_duration"


def test_update_hours_regenerates(client, make_business) -> None:
    business_id = make_business(hours={}).id

    response = client.put(f"/businesses/{business_id}/hours", json=HOURS_PAYLOAD)

    assert response.status_code == 200
    created = response.json()["slots_created"]
    assert created > 0

    horizon = client.get(f"/businesses/{business_id}/slots/horizon").json()
    assert horizon["future_slots"] == created
    assert horizon["horizon_days"] >= 390


def test_update_hours_rejects_bad_schedule(client, business_id) -> None:
    payload = dict(HOURS_PAYLOAD, timezone="Nowhere/Land")

    response = client.put(f"/businesses/{business_id}/hours", json=payload)

    assert response.status_code == 422
    assert response.json()["field"] == "timezone"
    # Existing slots survive
    assert client.get(f"/businesses/{business_id}/slots/horizon").json()["future_slots"] > 0


def test_onboarding_complete(client, make_business) -> None:
    business_id = make_business().id

    response = client.post(f"/businesses/{business_id}/onboarding/complete")

    assert response.status_code == 200
    assert response.json()["slots_created"] > 0


def test_block_and_unblock(client, business_id, db) -> None:
    slot_id = db.query(CalendarSlots.id).filter(CalendarSlots.business_id == business_id).first()[0]

    blocked = client.post(f"/businesses/{business_id}/slots/{slot_id}/block", json={"reason": "vacation"})
    assert blocked.status_code == 200
    assert blocked.json()["is_blocked"] is True
    assert blocked.json()["block_reason"] == "vacation"

    unblocked = client.post(f"/businesses/{business_id}/slots/{slot_id}/unblock")
    assert unblocked.status_code == 200
    assert unblocked.json()["is_blocked"] is False

    missing = client.post(f"/businesses/{business_id}/slots/999999/block", json={})
    assert missing.status_code == 404


def test_maintenance_endpoints(client, session_factory, config) -> None:
    app.state.maintenance = SlotMaintenance(session_factory, config=config, business_delay_seconds=0)
    try:
        status = client.get("/maintenance/status")
        assert status.status_code == 200
        assert status.json()["is_running"] is False

        run = client.post("/maintenance/run")
        assert run.json() == {"started": True}
        assert client.get("/maintenance/status").json()["last_generation"] is not None
    finally:
        del app.state.maintenance


def test_maintenance_unavailable_without_lifespan(client) -> None:
    assert client.get("/maintenance/status").status_code == 503
