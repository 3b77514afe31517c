# slot_engine/schemas/businesses.py

from datetime import datetime
from pydantic import BaseModel, Field


class DayHoursSchema(BaseModel):
    enabled: bool = False
    start: str | None = Field(None, description="HH:MM, business local time")
    end: str | None = Field(None, description="HH:MM, business local time")


class BusinessHoursUpdate(BaseModel):
    timezone: str = Field(description="IANA name, e.g. America/New_York")
    business_hours: dict[str, DayHoursSchema]
    slot_duration_minutes: int | None = Field(None, gt=0)
    slot_step_minutes: int | None = Field(None, gt=0)


class MaintenanceStatusResponse(BaseModel):
    is_running: bool
    last_cleanup: datetime | None = None
    last_generation: datetime | None = None
    last_optimize: datetime | None = None
    config: dict


class MaintenanceRunResponse(BaseModel):
    started: bool
