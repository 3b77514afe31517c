# slot_engine/services/slots/appointments.py
"""
Appointment Store access used by the resolver and the committer.

Only start_time, end_time and status matter for conflict checks.
"""

from datetime import datetime

from sqlalchemy import select
from sqlalchemy.orm import Session

from ...models.generated import ACTIVE_APPOINTMENT_STATUSES, Appointments
from .timeutils import to_naive_utc


def find_overlapping(
    db: Session,
    business_id: int,
    window_start: datetime,
    window_end: datetime,
    statuses: tuple[str, ...] = ACTIVE_APPOINTMENT_STATUSES,
) -> list[Appointments]:
    """Appointments intersecting [window_start, window_end) with a given status."""
    return list(
        db.execute(
            select(Appointments)
            .where(
                Appointments.business_id == business_id,
                Appointments.status.in_(statuses),
                Appointments.start_time < to_naive_utc(window_end),
                Appointments.end_time > to_naive_utc(window_start),
            )
            .order_by(Appointments.start_time)
        ).scalars()
    )


def insert_appointment(db: Session, **fields) -> Appointments:
    """Add an appointment to the current transaction (flushed, not committed)."""
    for key in ("start_time", "end_time"):
        fields[key] = to_naive_utc(fields[key])
    appointment = Appointments(**fields)
    db.add(appointment)
    db.flush()
    return appointment
