# slot_engine/services/slots/generation.py
"""
Slot (re)generation for one business.

Invoked on onboarding completion, on business-hours change and by the
horizon maintainer. A run = load schedule → generate → replace future
slots in one transaction. Transient database errors retry the whole run;
the transaction guarantees no partial state survives a failed attempt.
"""

import logging
from datetime import datetime

from redis import Redis
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import Session
from tenacity import (
    RetryCallState, retry, retry_if_exception_type, stop_after_attempt, wait_exponential,
)

from .calculator import generate_slots
from .config import SlotEngineConfig, get_engine_config
from .invalidator import invalidate_business_cache
from .schedule import get_business_schedule
from .store import replace_future_slots
from .timeutils import utcnow

logger = logging.getLogger(__name__)


def _log_before_sleep(retry_state: RetryCallState) -> None:
    exc = retry_state.outcome.exception() if retry_state.outcome else None
    logger.warning(
        f"Slot generation attempt {retry_state.attempt_number} failed ({exc!r}), retrying"
    )


def generate_slots_for_business(
    db: Session,
    business_id: int,
    horizon_days: int | None = None,
    config: SlotEngineConfig | None = None,
    now: datetime | None = None,
    redis: Redis | None = None,
) -> int:
    """
    Regenerate all future slots of a business.

    Returns:
        Number of slots created.

    Raises:
        BusinessNotFound, ScheduleConfigError (not retried),
        OperationalError after the last retry.
    """
    config = config or get_engine_config()
    horizon_days = horizon_days or config.horizon_days

    def _run() -> int:
        run_now = now or utcnow()
        schedule = get_business_schedule(db, business_id)
        slots = generate_slots(schedule, horizon_days, run_now)
        return replace_future_slots(db, business_id, slots, run_now, config.insert_batch_size)

    decorated = retry(
        retry=retry_if_exception_type(OperationalError),
        stop=stop_after_attempt(config.generation_retry_attempts),
        wait=wait_exponential(multiplier=1, min=1, max=4),
        before_sleep=_log_before_sleep,
        reraise=True,
    )(_run)

    logger.info(f"Generating {horizon_days} days of slots for business={business_id}")
    created = decorated()
    invalidate_business_cache(redis, business_id)
    logger.info(f"Generated {created} slots for business={business_id}")
    return created


def on_schedule_changed(
    db: Session,
    business_id: int,
    config: SlotEngineConfig | None = None,
    redis: Redis | None = None,
) -> int:
    """
    Hours or timezone changed: wipe and regenerate all future slots.

    Manual blocks on future slots are dropped as part of the wipe.
    """
    logger.info(f"Business hours changed for business={business_id}, regenerating slots")
    return generate_slots_for_business(db, business_id, config=config, redis=redis)
