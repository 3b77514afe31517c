# slot_engine/routers/slots.py
"""
Slots API endpoints.

POST /businesses/{id}/slots/generate        - (Re)generate the slot horizon
GET  /businesses/{id}/slots/horizon         - How far ahead slots exist
POST /businesses/{id}/slots/{slot}/block    - Manual block
POST /businesses/{id}/slots/{slot}/unblock  - Manual unblock
GET  /businesses/{id}/availability          - Bookable candidates for a day
"""

from datetime import date
from fastapi import APIRouter, Depends, HTTPException, Query
from redis import Redis
from sqlalchemy.orm import Session

from ..database import get_db
from ..redis_client import get_redis
from ..schemas.slots import (
    AvailabilityResponse,
    CandidateRead,
    HorizonResponse,
    SlotBlockRequest,
    SlotRead,
    SlotsGenerateResponse,
)
from ..services.call_sessions import CallSessionStore, get_call_session_store
from ..services.slots import (
    block_slot,
    generate_slots_for_business,
    get_available_slots,
    unblock_slot,
)
from ..services.slots.schedule import get_business
from ..services.slots.store import get_horizon
from ..services.slots.timeutils import utcnow


router = APIRouter(prefix="/businesses/{business_id}", tags=["slots"])


@router.post("/slots/generate", response_model=SlotsGenerateResponse)
def generate_business_slots(
    business_id: int,
    horizon_days: int | None = Query(None, ge=1, le=730),
    db: Session = Depends(get_db),
    redis: Redis | None = Depends(get_redis),
):
    """Regenerate all future slots (onboarding completion / hours change)."""
    created = generate_slots_for_business(db, business_id, horizon_days, redis=redis)
    return SlotsGenerateResponse(business_id=business_id, slots_created=created)


@router.get("/slots/horizon", response_model=HorizonResponse)
def get_business_horizon(business_id: int, db: Session = Depends(get_db)):
    get_business(db, business_id)
    return get_horizon(db, business_id, utcnow())


@router.post("/slots/{slot_id}/block", response_model=SlotRead)
def block_business_slot(
    business_id: int,
    slot_id: int,
    data: SlotBlockRequest,
    db: Session = Depends(get_db),
    redis: Redis | None = Depends(get_redis),
):
    slot = block_slot(db, business_id, slot_id, data.reason, redis=redis)
    if slot is None:
        raise HTTPException(status_code=404, detail="Slot not found")
    return slot


@router.post("/slots/{slot_id}/unblock", response_model=SlotRead)
def unblock_business_slot(
    business_id: int,
    slot_id: int,
    db: Session = Depends(get_db),
    redis: Redis | None = Depends(get_redis),
):
    slot = unblock_slot(db, business_id, slot_id, redis=redis)
    if slot is None:
        raise HTTPException(status_code=404, detail="Slot not found")
    return slot


@router.get("/availability", response_model=AvailabilityResponse)
def get_business_availability(
    business_id: int,
    target_date: date = Query(..., alias="date"),
    duration: int = Query(60, description="Requested duration in minutes"),
    session_id: str | None = Query(None, description="Call session to remember the offer in"),
    db: Session = Depends(get_db),
    redis: Redis | None = Depends(get_redis),
    sessions: CallSessionStore | None = Depends(get_call_session_store),
):
    """Bookable candidates for a local date, first page only."""
    candidates = get_available_slots(db, business_id, target_date, duration, redis=redis)

    if session_id and sessions is not None:
        sessions.remember_offer(
            session_id,
            business_id,
            [c.start_utc for c in candidates],
            duration,
        )

    return AvailabilityResponse(
        business_id=business_id,
        date=target_date,
        duration_minutes=duration,
        candidates=[CandidateRead.model_validate(c) for c in candidates],
    )
