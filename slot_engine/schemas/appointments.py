# slot_engine/schemas/appointments.py

from datetime import datetime
from pydantic import BaseModel, Field, model_validator


class CustomerInfoSchema(BaseModel):
    name: str = Field(min_length=1)
    phone: str | None = None
    email: str | None = None
    address: str | None = None
    issue: str | None = Field(None, description="Issue description")


class AppointmentCreate(BaseModel):
    """
    Either ``start_utc`` or ``session_id`` + ``option`` (1-based index into
    the candidates last offered in that session).
    """
    customer: CustomerInfoSchema
    start_utc: datetime | None = None
    duration_minutes: int | None = Field(None, gt=0)
    service_type_id: int | None = None
    session_id: str | None = None
    option: int | None = Field(None, ge=1)
    booking_source: str = "api"
    call_sid: str | None = None

    @model_validator(mode="after")
    def check_target(self):
        if self.start_utc is None and (self.session_id is None or self.option is None):
            raise ValueError("start_utc or session_id + option is required")
        return self


class AppointmentRead(BaseModel):
    id: int
    business_id: int
    service_type_id: int | None = None
    start_time: datetime
    end_time: datetime
    duration_minutes: int
    status: str
    customer_name: str | None = None
    customer_phone: str | None = None
    booking_source: str | None = None

    model_config = {"from_attributes": True}
