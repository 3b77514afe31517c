# slot_engine/routers/businesses.py
"""
Schedule hooks of the business settings flow.

Saving hours (or finishing onboarding) regenerates the slot horizon.
"""

import json
import logging

from fastapi import APIRouter, Depends
from redis import Redis
from sqlalchemy.orm import Session

from ..database import get_db
from ..redis_client import get_redis
from ..schemas.businesses import BusinessHoursUpdate
from ..schemas.slots import SlotsGenerateResponse
from ..services.slots import on_schedule_changed, parse_business_schedule
from ..services.slots.schedule import get_business

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/businesses/{business_id}", tags=["businesses"])


@router.put("/hours", response_model=SlotsGenerateResponse)
def update_business_hours(
    business_id: int,
    data: BusinessHoursUpdate,
    db: Session = Depends(get_db),
    redis: Redis | None = Depends(get_redis),
):
    business = get_business(db, business_id)

    business.timezone = data.timezone
    business.business_hours = json.dumps(
        {day: hours.model_dump() for day, hours in data.business_hours.items()}
    )
    if data.slot_duration_minutes is not None:
        business.slot_duration_minutes = data.slot_duration_minutes
    if data.slot_step_minutes is not None:
        business.slot_step_minutes = data.slot_step_minutes

    # Reject before saving: a bad schedule must not replace a good one
    try:
        parse_business_schedule(business)
    except Exception:
        db.rollback()
        raise
    db.commit()

    created = on_schedule_changed(db, business_id, redis=redis)
    return SlotsGenerateResponse(business_id=business_id, slots_created=created)


@router.post("/onboarding/complete", response_model=SlotsGenerateResponse)
def complete_onboarding(
    business_id: int,
    db: Session = Depends(get_db),
    redis: Redis | None = Depends(get_redis),
):
    business = get_business(db, business_id)
    parse_business_schedule(business)

    business.onboarding_completed = True
    db.commit()
    logger.info(f"Onboarding completed for business={business_id}")

    created = on_schedule_changed(db, business_id, redis=redis)
    return SlotsGenerateResponse(business_id=business_id, slots_created=created)
