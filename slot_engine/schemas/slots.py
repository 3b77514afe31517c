# slot_engine/schemas/slots.py
"""
Pydantic schemas for slots API.
"""

from datetime import date, datetime
from pydantic import BaseModel, Field


class SlotsGenerateResponse(BaseModel):
    """Result of a slot (re)generation."""
    business_id: int
    slots_created: int


class HorizonResponse(BaseModel):
    """How far ahead generated slots currently reach."""
    business_id: int
    future_slots: int
    furthest_slot: datetime | None = None
    horizon_days: int

    model_config = {"from_attributes": True}


class SlotRead(BaseModel):
    id: int
    business_id: int
    slot_start: datetime = Field(description="UTC")
    slot_end: datetime = Field(description="UTC")
    is_available: bool
    is_blocked: bool
    block_reason: str | None = None

    model_config = {"from_attributes": True}


class SlotBlockRequest(BaseModel):
    reason: str | None = Field(None, description='e.g. "vacation", "maintenance"')


class CandidateRead(BaseModel):
    """A bookable start time."""
    start_utc: datetime
    end_utc: datetime
    display_local_time: str = Field(description='Local time, e.g. "9:30 AM"')

    model_config = {"from_attributes": True}


class AvailabilityResponse(BaseModel):
    business_id: int
    date: date
    duration_minutes: int
    candidates: list[CandidateRead]
