# slot_engine/services/slots/config.py
"""
Slot engine configuration.
"""

from dataclasses import dataclass
from functools import lru_cache

from ...config import settings


@dataclass(frozen=True)
class SlotEngineConfig:
    """
    Policy values for generation, resolution and maintenance.

    Attributes:
        horizon_days: Target horizon when (re)generating slots
        min_future_days: Maintainer regenerates when the furthest slot is closer
        min_future_slots_per_day: Floor of future slots = min_future_days * this
        cleanup_threshold_days: Slots older than this are purged
        insert_batch_size: Rows per INSERT statement (500..1000)
        page_size: Max candidates returned by the resolver
        travel_buffer_minutes: Buffer padded around appointments
        long_job_buffer_minutes: Buffer used for long requested durations
        long_job_threshold_minutes: Durations above this use the long-job buffer
        max_duration_minutes: Upper bound for a bookable duration
        generation_retry_attempts: Wholesale retries of a failed regeneration
        session_ttl_seconds: Lifetime of a call session in Redis
    """
    horizon_days: int = 400
    min_future_days: int = 350
    min_future_slots_per_day: int = 10
    cleanup_threshold_days: int = 30
    insert_batch_size: int = 1000
    page_size: int = 10
    travel_buffer_minutes: int = 30
    long_job_buffer_minutes: int = 15
    long_job_threshold_minutes: int = 180
    max_duration_minutes: int = 12 * 60
    generation_retry_attempts: int = 3
    session_ttl_seconds: int = 1800

    def __post_init__(self):
        """Validate configuration."""
        if not 500 <= self.insert_batch_size <= 1000:
            raise ValueError(f"insert_batch_size must be within 500..1000, got {self.insert_batch_size}")
        if self.page_size < 1:
            raise ValueError(f"page_size must be positive, got {self.page_size}")
        if self.min_future_days > self.horizon_days:
            raise ValueError("min_future_days cannot exceed horizon_days")
        if self.generation_retry_attempts < 1:
            raise ValueError("generation_retry_attempts must be at least 1")

    @property
    def min_future_slots(self) -> int:
        """Future slot count below which a business is considered short."""
        return self.min_future_days * self.min_future_slots_per_day

    def travel_buffer_for(self, duration_minutes: int) -> int:
        """
        Buffer applied around a requested duration.

        Long jobs already include slack, so they get the smaller buffer.
        """
        if duration_minutes > self.long_job_threshold_minutes:
            return self.long_job_buffer_minutes
        return self.travel_buffer_minutes


def time_str_to_minutes(value: str) -> int:
    """Convert "HH:MM" to minutes since midnight."""
    hour, minute = value.strip().split(":")
    hour, minute = int(hour), int(minute)
    if not (0 <= hour <= 24 and 0 <= minute < 60) or (hour == 24 and minute):
        raise ValueError(f"Invalid time: {value!r}")
    return hour * 60 + minute


def minutes_to_time_str(minutes: int) -> str:
    """Convert minutes since midnight to "HH:MM"."""
    return f"{minutes // 60:02d}:{minutes % 60:02d}"


@lru_cache
def get_engine_config() -> SlotEngineConfig:
    """Get engine configuration (singleton), overridable through Settings."""
    return SlotEngineConfig(
        horizon_days=settings.horizon_days,
        min_future_days=settings.min_future_days,
        cleanup_threshold_days=settings.cleanup_threshold_days,
        insert_batch_size=settings.insert_batch_size,
        page_size=settings.page_size,
        travel_buffer_minutes=settings.travel_buffer_minutes,
        session_ttl_seconds=settings.session_ttl_seconds,
    )
