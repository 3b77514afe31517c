# slot_engine/services/slots/invalidator.py
"""
Cache invalidation for business day slots.

Triggers:
✓ Slots regenerated (onboarding, hours change, maintainer) → all dates
✓ Slot blocked / unblocked → that slot's local date

Does NOT trigger:
✗ Booking created/cancelled (appointments are read live)
"""

import logging
from datetime import date, datetime
from zoneinfo import ZoneInfo

from redis import Redis
from redis.exceptions import RedisError

from .redis_store import SlotsRedisStore
from .timeutils import as_utc

logger = logging.getLogger(__name__)


def invalidate_business_cache(
    redis: Redis | None,
    business_id: int,
    dates: list[date] | None = None,
) -> int:
    """
    Invalidate cached days for a business.

    Cache failures are logged, not raised: a stale cache must never fail
    the write that triggered the invalidation.

    Returns:
        Number of deleted cache keys
    """
    if redis is None:
        return 0
    try:
        store = SlotsRedisStore(redis)
        # Bump first so an in-flight fill of the old data is rejected
        store.bump_version(business_id)
        return store.delete_day_slots(business_id, dates)
    except RedisError:
        logger.exception(f"Failed to invalidate slot cache for business={business_id}")
        return 0


def local_date_of(slot_start: datetime, timezone_name: str) -> date:
    """Local calendar date a UTC slot start belongs to."""
    return as_utc(slot_start).astimezone(ZoneInfo(timezone_name)).date()
