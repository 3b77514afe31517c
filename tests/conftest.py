import json
import os
from datetime import datetime, timedelta, timezone

# Settings are read at import time
os.environ.setdefault("DATABASE_URL", "sqlite:///./test_slot_engine.db")
os.environ["REDIS_URL"] = ""
os.environ["MAINTENANCE_ENABLED"] = "false"

import pytest
from sqlalchemy.orm import sessionmaker

from slot_engine.database import build_engine
from slot_engine.models.generated import Appointments, Base, Businesses, ServiceTypes
from slot_engine.services.slots import SlotEngineConfig

WEEKDAY_HOURS = {
    day: {"enabled": True, "start": "09:00", "end": "17:00"}
    for day in ("monday", "tuesday", "wednesday", "thursday", "friday")
}
WEEKDAY_HOURS["saturday"] = {"enabled": False}


@pytest.fixture
def engine(tmp_path):
    engine = build_engine(f"sqlite:///{tmp_path / 'slots.db'}")
    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def config():
    return SlotEngineConfig(horizon_days=14, min_future_days=7, min_future_slots_per_day=10)


@pytest.fixture
def make_business(db):
    def _make(
        name: str = "Acme Plumbing",
        timezone_name: str | None = "America/New_York",
        hours: dict | str | None = None,
        duration: int = 60,
        step: int = 30,
        is_active: bool = True,
    ) -> Businesses:
        if hours is None:
            hours = WEEKDAY_HOURS
        business = Businesses(
            name=name,
            timezone=timezone_name,
            business_hours=hours if isinstance(hours, str) else json.dumps(hours),
            slot_duration_minutes=duration,
            slot_step_minutes=step,
            is_active=is_active,
        )
        db.add(business)
        db.commit()
        db.refresh(business)
        return business

    return _make


@pytest.fixture
def make_service(db):
    def _make(business_id: int, duration: int = 90, is_active: bool = True) -> ServiceTypes:
        service = ServiceTypes(
            business_id=business_id,
            name="Water heater install",
            duration_minutes=duration,
            is_active=is_active,
        )
        db.add(service)
        db.commit()
        db.refresh(service)
        return service

    return _make


@pytest.fixture
def make_appointment(db):
    def _make(business_id: int, start: datetime, minutes: int = 60, status: str = "scheduled") -> Appointments:
        appointment = Appointments(
            business_id=business_id,
            start_time=start.astimezone(timezone.utc).replace(tzinfo=None),
            end_time=(start + timedelta(minutes=minutes)).astimezone(timezone.utc).replace(tzinfo=None),
            duration_minutes=minutes,
            status=status,
            customer_name="Existing Customer",
        )
        db.add(appointment)
        db.commit()
        return appointment

    return _make
