# slot_engine/routers/appointments.py

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from ..database import get_db
from ..schemas.appointments import AppointmentCreate, AppointmentRead
from ..services.call_sessions import CallSessionStore, get_call_session_store
from ..services.slots import CustomerInfo, book_appointment

router = APIRouter(prefix="/businesses/{business_id}/appointments", tags=["appointments"])


@router.post("/", response_model=AppointmentRead, status_code=status.HTTP_201_CREATED)
def create_appointment(
    business_id: int,
    data: AppointmentCreate,
    db: Session = Depends(get_db),
    sessions: CallSessionStore | None = Depends(get_call_session_store),
):
    """
    Book an appointment.

    On 409 (slot_conflict) the caller should fetch availability again.
    """
    start_utc = data.start_utc
    duration = data.duration_minutes

    if start_utc is None:
        resolved = (
            sessions.resolve_option(data.session_id, business_id, data.option)
            if sessions is not None
            else None
        )
        if resolved is None:
            raise HTTPException(
                status_code=422,
                detail="Session expired or option not offered; fetch availability again",
            )
        start_utc, offered_duration = resolved
        if duration is None:
            duration = offered_duration

    return book_appointment(
        db,
        business_id,
        start_utc,
        CustomerInfo(**data.customer.model_dump()),
        duration_minutes=duration,
        service_type_id=data.service_type_id,
        booking_source=data.booking_source,
        call_sid=data.call_sid,
    )
