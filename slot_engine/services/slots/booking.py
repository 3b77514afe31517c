# slot_engine/services/slots/booking.py
"""
Booking commit.

The resolver's answer is only a snapshot. The committer re-runs the
overlap check inside the transaction that inserts the appointment, while
holding a per-business lock:

- PostgreSQL: pg_advisory_xact_lock(namespace, business_id), released
  automatically on commit/rollback
- other databases (SQLite in development/tests): an in-process lock

Bookings for different businesses never wait on each other. Slot rows
are not modified: availability is derived live from appointments.
"""

import logging
import threading
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import datetime, timedelta

from sqlalchemy import select, text
from sqlalchemy.orm import Session

from ...models.generated import Appointments, ServiceTypes
from ..events import emit_event
from .appointments import find_overlapping, insert_appointment
from .availability import closing_time_utc, conflict_lookup_window, has_conflict, validate_duration
from .config import SlotEngineConfig, get_engine_config
from .errors import OutsideBusinessHours, ServiceNotFound, SlotConflict
from .schedule import get_business, parse_business_schedule
from .store import get_slot_at
from .timeutils import as_utc, utcnow

logger = logging.getLogger(__name__)

# First key of the two-int advisory lock; keeps booking locks apart from
# any other advisory lock users in the same database
ADVISORY_LOCK_NAMESPACE = 7301

_local_locks: dict[int, threading.Lock] = {}
_local_locks_guard = threading.Lock()


@dataclass
class CustomerInfo:
    name: str
    phone: str | None = None
    email: str | None = None
    address: str | None = None
    issue: str | None = None


def book_appointment(
    db: Session,
    business_id: int,
    start_utc: datetime,
    customer: CustomerInfo,
    duration_minutes: int | None = None,
    service_type_id: int | None = None,
    booking_source: str = "api",
    call_sid: str | None = None,
    config: SlotEngineConfig | None = None,
    now: datetime | None = None,
) -> Appointments:
    """
    Commit an appointment at ``start_utc``.

    Duration: explicit value, else the service type's duration, else the
    business slot duration.

    Raises:
        BusinessNotFound, ScheduleConfigError, ServiceNotFound,
        InvalidDuration, OutsideBusinessHours, SlotConflict
    """
    config = config or get_engine_config()
    now = as_utc(now) if now else utcnow()
    start = as_utc(start_utc)

    business = get_business(db, business_id)

    if service_type_id is not None:
        service = _get_active_service(db, business_id, service_type_id)
        if service is None:
            raise ServiceNotFound(f"Service type {service_type_id} not found or inactive")
        if duration_minutes is None:
            duration_minutes = service.duration_minutes

    if duration_minutes is None:
        duration_minutes = business.slot_duration_minutes
    validate_duration(duration_minutes, config)

    slot = get_slot_at(db, business_id, start)
    if slot is None or slot.is_blocked or not slot.is_available or start <= now:
        raise OutsideBusinessHours(f"No bookable slot starts at {start.isoformat()}")

    schedule = parse_business_schedule(business)
    closes_at = closing_time_utc(schedule, start.astimezone(schedule.zone).date())
    if closes_at is None or start + timedelta(minutes=duration_minutes) > closes_at:
        raise OutsideBusinessHours(
            f"{duration_minutes} min from {start.isoformat()} runs past closing time"
        )

    buffer_min = config.travel_buffer_for(duration_minutes)
    lookup_start, lookup_end = conflict_lookup_window(start, start, duration_minutes, buffer_min)

    try:
        with business_booking_lock(db, business_id):
            existing = find_overlapping(db, business_id, lookup_start, lookup_end)
            if has_conflict(start, duration_minutes, buffer_min, existing):
                raise SlotConflict(
                    f"{start.isoformat()} for {duration_minutes} min conflicts with an existing appointment"
                )

            appointment = insert_appointment(
                db,
                business_id=business_id,
                service_type_id=service_type_id,
                start_time=start,
                end_time=start + timedelta(minutes=duration_minutes),
                duration_minutes=duration_minutes,
                status="scheduled",
                customer_name=customer.name,
                customer_phone=customer.phone,
                customer_email=customer.email,
                customer_address=customer.address,
                issue_description=customer.issue,
                booking_source=booking_source,
                call_sid=call_sid,
            )
            db.commit()
    except SlotConflict:
        db.rollback()
        logger.warning(f"Booking conflict: business={business_id}, start={start.isoformat()}")
        raise
    except Exception:
        db.rollback()
        raise

    db.refresh(appointment)
    logger.info(
        f"Appointment booked: id={appointment.id}, business={business_id}, "
        f"start={start.isoformat()}, duration={duration_minutes}"
    )

    emit_event("booking_created", {
        "business_id": business_id,
        "appointment_id": appointment.id,
        "start_utc": start.isoformat(),
        "duration_minutes": duration_minutes,
        "customer_name": customer.name,
    })

    return appointment


@contextmanager
def business_booking_lock(db: Session, business_id: int):
    """Serialize booking transactions of one business."""
    if db.get_bind().dialect.name == "postgresql":
        # Held until the surrounding transaction ends
        db.execute(
            text("SELECT pg_advisory_xact_lock(:namespace, :key)"),
            {"namespace": ADVISORY_LOCK_NAMESPACE, "key": business_id},
        )
        yield
        return

    with _local_lock(business_id):
        yield


def _local_lock(business_id: int) -> threading.Lock:
    with _local_locks_guard:
        lock = _local_locks.get(business_id)
        if lock is None:
            lock = _local_locks[business_id] = threading.Lock()
        return lock


def _get_active_service(db: Session, business_id: int, service_type_id: int) -> ServiceTypes | None:
    return db.execute(
        select(ServiceTypes).where(
            ServiceTypes.id == service_type_id,
            ServiceTypes.business_id == business_id,
            ServiceTypes.is_active.is_(True),
        )
    ).scalar_one_or_none()
