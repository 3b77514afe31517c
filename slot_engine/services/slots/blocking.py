# slot_engine/services/slots/blocking.py
"""
Manual block / unblock of single slots by the business owner.

Single-row updates. A later regeneration (hours change, maintainer)
recreates future slots unblocked.
"""

import logging

from redis import Redis
from sqlalchemy.orm import Session

from ...models.generated import CalendarSlots
from .invalidator import invalidate_business_cache, local_date_of
from .schedule import get_business
from .store import set_slot_blocked

logger = logging.getLogger(__name__)


def block_slot(
    db: Session,
    business_id: int,
    slot_id: int,
    reason: str | None = None,
    redis: Redis | None = None,
) -> CalendarSlots | None:
    return _set_blocked(db, business_id, slot_id, True, reason, redis)


def unblock_slot(
    db: Session,
    business_id: int,
    slot_id: int,
    redis: Redis | None = None,
) -> CalendarSlots | None:
    return _set_blocked(db, business_id, slot_id, False, None, redis)


def _set_blocked(
    db: Session,
    business_id: int,
    slot_id: int,
    blocked: bool,
    reason: str | None,
    redis: Redis | None,
) -> CalendarSlots | None:
    business = get_business(db, business_id)
    slot = set_slot_blocked(db, business_id, slot_id, blocked, reason)
    if slot is None:
        return None

    if business.timezone:
        invalidate_business_cache(redis, business_id, [local_date_of(slot.slot_start, business.timezone)])
    else:
        invalidate_business_cache(redis, business_id)

    logger.info(
        f"Slot {'blocked' if blocked else 'unblocked'}: business={business_id}, "
        f"slot={slot_id}, reason={reason!r}"
    )
    return slot
