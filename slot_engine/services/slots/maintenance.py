# slot_engine/services/slots/maintenance.py
"""
Horizon maintenance.

Periodically keeps every business's slot horizon healthy:
1. Cleanup: delete slots older than cleanup_threshold_days (all businesses)
2. Generation: regenerate businesses whose furthest future slot is closer
   than min_future_days or whose future slot count is below the floor.
   The floor is capped by what the schedule can produce in min_future_days,
   so a business with few open hours is not regenerated (and its manual
   blocks wiped) on every cycle
3. Optimize: refresh planner statistics for calendar_slots

Each phase is retried on transient database errors and logged on its own;
a failing phase does not stop the next one, and a failing business does
not stop the rest of the fleet.

Runs are non-overlapping: a run requested while another is in progress
is skipped, not queued.

Runs as an asyncio task in the app lifespan.
Uses synchronous DB access (via asyncio.to_thread).
"""

import asyncio
import logging
import threading
import time
from datetime import datetime, timedelta
from typing import Callable

from redis import Redis
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import Session
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential

from .calculator import generate_slots
from .config import SlotEngineConfig, get_engine_config
from .generation import generate_slots_for_business
from .schedule import get_business_schedule
from .store import ShortBusiness, delete_expired_slots, find_businesses_needing_slots, refresh_statistics
from .timeutils import utcnow

logger = logging.getLogger(__name__)


class SlotMaintenance:
    """Horizon maintainer. One instance per process, owned by the app."""

    def __init__(
        self,
        session_factory: Callable[[], Session],
        config: SlotEngineConfig | None = None,
        redis: Redis | None = None,
        business_delay_seconds: float = 0.5,
        phase_retry_attempts: int = 2,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.session_factory = session_factory
        self.config = config or get_engine_config()
        self.redis = redis
        self.business_delay_seconds = business_delay_seconds
        self.phase_retry_attempts = phase_retry_attempts
        self.clock = clock

        self._run_lock = threading.Lock()
        self.last_cleanup: datetime | None = None
        self.last_generation: datetime | None = None
        self.last_optimize: datetime | None = None
        self.last_stats: dict | None = None

    @property
    def is_running(self) -> bool:
        return self._run_lock.locked()

    # ── Cycle ────────────────────────────────────────────────────────────

    def run_maintenance(self) -> bool:
        """
        Run one complete maintenance cycle.

        Returns:
            False if skipped because a cycle is already running.
        """
        if not self._run_lock.acquire(blocking=False):
            logger.info("Maintenance already running, skipping")
            return False

        started = time.monotonic()
        try:
            logger.info("Slot maintenance cycle started")
            self._run_phase("cleanup", self.cleanup_old_slots)
            self._run_phase("generation", self.generate_missing_slots)
            self._run_phase("optimize", self.optimize)
            logger.info(f"Slot maintenance cycle completed in {int((time.monotonic() - started) * 1000)}ms")
        finally:
            self._run_lock.release()
        return True

    def run_manual_maintenance(self) -> bool:
        logger.info("Running manual maintenance")
        return self.run_maintenance()

    def _run_phase(self, name: str, phase: Callable[[], object]) -> None:
        decorated = retry(
            retry=retry_if_exception_type(OperationalError),
            stop=stop_after_attempt(self.phase_retry_attempts),
            wait=wait_exponential(multiplier=1, min=1, max=4),
            reraise=True,
        )(phase)
        try:
            decorated()
        except Exception:
            logger.exception(f"Maintenance phase '{name}' failed")

    # ── Phases ───────────────────────────────────────────────────────────

    def cleanup_old_slots(self) -> int:
        """Delete slots older than the retention threshold."""
        cutoff = self.clock() - timedelta(days=self.config.cleanup_threshold_days)
        logger.info(f"Cleaning up slots older than {cutoff.isoformat()}")

        db = self.session_factory()
        try:
            deleted = delete_expired_slots(db, cutoff)
        finally:
            db.close()

        logger.info(f"Cleaned up {deleted} old slots")
        self.last_cleanup = self.clock()
        return deleted

    def generate_missing_slots(self) -> int:
        """Regenerate slots for every business whose horizon has shrunk."""
        now = self.clock()
        db = self.session_factory()
        try:
            businesses = find_businesses_needing_slots(
                db,
                now,
                self.config.min_future_days,
                self.config.min_future_slots,
            )
            logger.info(f"Found {len(businesses)} businesses below the slot floor")

            total = 0
            regenerated = 0
            for business in businesses:
                try:
                    if not self.needs_regeneration(db, business, now):
                        continue
                    if regenerated and self.business_delay_seconds:
                        time.sleep(self.business_delay_seconds)
                    regenerated += 1
                    created = generate_slots_for_business(
                        db,
                        business.id,
                        self.config.horizon_days,
                        config=self.config,
                        now=now,
                        redis=self.redis,
                    )
                    total += created
                    logger.info(
                        f"Generated {created} slots for business={business.id} "
                        f"({business.name}, had {business.current_slots})"
                    )
                except Exception:
                    db.rollback()
                    logger.exception(f"Failed to generate slots for business={business.id} ({business.name})")
        finally:
            db.close()

        logger.info(f"Total slots generated: {total}")
        self.last_generation = self.clock()
        return total

    def needs_regeneration(self, db: Session, business: ShortBusiness, now: datetime) -> bool:
        """
        True if the horizon is too short, or the slot count is below both the
        configured floor and what the schedule yields in min_future_days.
        """
        threshold = now + timedelta(days=self.config.min_future_days)
        if business.furthest_slot is None or business.furthest_slot < threshold:
            return True

        schedule = get_business_schedule(db, business.id)
        capacity = len(generate_slots(schedule, self.config.min_future_days, now))
        return business.current_slots < min(self.config.min_future_slots, capacity)

    def optimize(self) -> dict:
        """Refresh planner statistics and log a summary of the slot table."""
        db = self.session_factory()
        try:
            stats = refresh_statistics(db)
        finally:
            db.close()

        logger.info(
            f"Slot statistics: total={stats['total_slots']}, "
            f"businesses={stats['businesses_with_slots']}, "
            f"available={stats['available_slots']}, "
            f"range={stats['earliest_slot']}..{stats['latest_slot']}"
        )
        self.last_optimize = self.clock()
        self.last_stats = stats
        return stats

    # ── Status ───────────────────────────────────────────────────────────

    def get_status(self) -> dict:
        return {
            "is_running": self.is_running,
            "last_cleanup": self.last_cleanup,
            "last_generation": self.last_generation,
            "last_optimize": self.last_optimize,
            "config": {
                "days_to_maintain": self.config.horizon_days,
                "cleanup_threshold_days": self.config.cleanup_threshold_days,
                "min_future_days": self.config.min_future_days,
            },
        }


async def maintenance_loop(maintenance: SlotMaintenance, interval_seconds: float) -> None:
    """
    Periodic loop: one cycle at startup, then every ``interval_seconds``.
    """
    logger.info("maintenance_loop started")

    try:
        while True:
            try:
                await asyncio.to_thread(maintenance.run_maintenance)
            except asyncio.CancelledError:
                logger.info("maintenance_loop cancelled")
                raise
            except Exception:
                logger.exception("maintenance_loop error")

            await asyncio.sleep(interval_seconds)
    except asyncio.CancelledError:
        pass
