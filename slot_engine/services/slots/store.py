# slot_engine/services/slots/store.py
"""
Slot Store: the persisted ``calendar_slots`` table.

Regeneration replaces all future slots of one business inside a single
transaction (delete, then batched multi-row inserts), so a failed run
never leaves a mix of stale and fresh rows. Manual blocks on future
slots are dropped by a regeneration; that is current product behavior.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta

from sqlalchemy import and_, delete, func, insert, or_, select, text
from sqlalchemy.orm import Session

from ...models.generated import Businesses, CalendarSlots
from .calculator import Slot
from .timeutils import as_utc, to_naive_utc

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class HorizonReport:
    business_id: int
    future_slots: int
    furthest_slot: datetime | None
    horizon_days: int


@dataclass(frozen=True)
class ShortBusiness:
    """A business whose generated horizon is below the minimum."""
    id: int
    name: str
    current_slots: int
    furthest_slot: datetime | None


# ── Write ────────────────────────────────────────────────────────────────


def replace_future_slots(
    db: Session,
    business_id: int,
    slots: list[Slot],
    now: datetime,
    batch_size: int = 1000,
) -> int:
    """
    Delete the business's future slots and insert ``slots`` in batches.

    Everything happens in one transaction; on error it is rolled back and
    the exception propagates.

    Returns:
        Number of inserted slots.
    """
    now_naive = to_naive_utc(now)
    try:
        deleted = db.execute(
            delete(CalendarSlots).where(
                CalendarSlots.business_id == business_id,
                CalendarSlots.slot_start >= now_naive,
            )
        ).rowcount

        rows = [
            {
                "business_id": business_id,
                "slot_start": to_naive_utc(slot.start_utc),
                "slot_end": to_naive_utc(slot.end_utc),
                "is_available": slot.is_available,
                "is_blocked": slot.is_blocked,
            }
            for slot in slots
        ]
        batches = (len(rows) + batch_size - 1) // batch_size
        for i in range(0, len(rows), batch_size):
            batch = rows[i:i + batch_size]
            db.execute(insert(CalendarSlots).values(batch))
            logger.debug(
                f"Inserted batch {i // batch_size + 1}/{batches} "
                f"({len(batch)} slots) for business={business_id}"
            )

        db.commit()
    except Exception:
        db.rollback()
        raise

    logger.info(
        f"Replaced future slots for business={business_id}: "
        f"deleted={deleted}, inserted={len(rows)}"
    )
    return len(rows)


def set_slot_blocked(
    db: Session,
    business_id: int,
    slot_id: int,
    blocked: bool,
    reason: str | None = None,
) -> CalendarSlots | None:
    """Manually block or unblock a single slot. Returns None if not found."""
    slot = db.execute(
        select(CalendarSlots).where(
            CalendarSlots.id == slot_id,
            CalendarSlots.business_id == business_id,
        )
    ).scalar_one_or_none()
    if slot is None:
        return None

    slot.is_blocked = blocked
    slot.block_reason = reason if blocked else None
    db.commit()
    db.refresh(slot)
    return slot


def delete_expired_slots(db: Session, cutoff: datetime) -> int:
    """Delete slots starting before ``cutoff`` across all businesses."""
    try:
        result = db.execute(
            delete(CalendarSlots).where(CalendarSlots.slot_start < to_naive_utc(cutoff))
        )
        db.commit()
    except Exception:
        db.rollback()
        raise
    return result.rowcount


# ── Read ─────────────────────────────────────────────────────────────────


def fetch_bookable_slots(
    db: Session,
    business_id: int,
    window_start: datetime,
    window_end: datetime,
    now: datetime | None,
) -> list[CalendarSlots]:
    """
    Available, unblocked slots whose start falls in [window_start, window_end),
    ordered by start. With ``now`` only slots starting after it are returned.
    """
    query = select(CalendarSlots).where(
        CalendarSlots.business_id == business_id,
        CalendarSlots.is_available.is_(True),
        CalendarSlots.is_blocked.is_(False),
        CalendarSlots.slot_start >= to_naive_utc(window_start),
        CalendarSlots.slot_start < to_naive_utc(window_end),
    )
    if now is not None:
        query = query.where(CalendarSlots.slot_start > to_naive_utc(now))
    return list(db.execute(query.order_by(CalendarSlots.slot_start)).scalars())


def get_slot_at(db: Session, business_id: int, slot_start: datetime) -> CalendarSlots | None:
    return db.execute(
        select(CalendarSlots).where(
            CalendarSlots.business_id == business_id,
            CalendarSlots.slot_start == to_naive_utc(slot_start),
        )
    ).scalar_one_or_none()


def get_horizon(db: Session, business_id: int, now: datetime) -> HorizonReport:
    """How far ahead slots currently exist for a business."""
    count, furthest = db.execute(
        select(func.count(CalendarSlots.id), func.max(CalendarSlots.slot_start)).where(
            CalendarSlots.business_id == business_id,
            CalendarSlots.slot_start > to_naive_utc(now),
        )
    ).one()

    horizon_days = 0
    if furthest is not None:
        furthest = as_utc(furthest)
        horizon_days = max((furthest - as_utc(now)).days, 0)

    return HorizonReport(
        business_id=business_id,
        future_slots=count or 0,
        furthest_slot=furthest,
        horizon_days=horizon_days,
    )


def find_businesses_needing_slots(
    db: Session,
    now: datetime,
    min_future_days: int,
    min_future_slots: int,
) -> list[ShortBusiness]:
    """
    Businesses with hours whose furthest future slot is closer than
    ``min_future_days`` or whose future slot count is below the floor.
    Fewest slots first.
    """
    now_naive = to_naive_utc(now)
    slot_count = func.count(CalendarSlots.id)
    furthest = func.max(CalendarSlots.slot_start)

    rows = db.execute(
        select(Businesses.id, Businesses.name, slot_count, furthest)
        .outerjoin(
            CalendarSlots,
            and_(
                CalendarSlots.business_id == Businesses.id,
                CalendarSlots.slot_start > now_naive,
            ),
        )
        .where(
            Businesses.business_hours.is_not(None),
            Businesses.business_hours != "",
            Businesses.is_active.is_(True),
        )
        .group_by(Businesses.id, Businesses.name)
        .having(
            or_(
                slot_count < min_future_slots,
                furthest.is_(None),
                furthest < now_naive + timedelta(days=min_future_days),
            )
        )
        .order_by(slot_count.asc(), Businesses.id)
    ).all()

    return [
        ShortBusiness(
            id=row[0],
            name=row[1],
            current_slots=row[2] or 0,
            furthest_slot=as_utc(row[3]) if row[3] is not None else None,
        )
        for row in rows
    ]


def refresh_statistics(db: Session) -> dict:
    """Refresh planner statistics for the slot table and return a summary."""
    db.execute(text("ANALYZE calendar_slots"))
    db.commit()

    row = db.execute(
        select(
            func.count(CalendarSlots.id),
            func.count(func.distinct(CalendarSlots.business_id)),
            func.min(CalendarSlots.slot_start),
            func.max(CalendarSlots.slot_start),
            func.count(CalendarSlots.id).filter(CalendarSlots.is_available.is_(True)),
        )
    ).one()

    return {
        "total_slots": row[0] or 0,
        "businesses_with_slots": row[1] or 0,
        "earliest_slot": row[2],
        "latest_slot": row[3],
        "available_slots": row[4] or 0,
    }
