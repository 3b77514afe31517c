"""
Slot engine exceptions.

Configuration errors name the offending field; booking errors carry a
stable ``code`` that the API returns to callers.
"""


class SlotEngineError(Exception):
    """Base class for slot engine failures."""


class BusinessNotFound(SlotEngineError):
    def __init__(self, business_id: int):
        self.business_id = business_id
        super().__init__(f"Business {business_id} not found")


class ScheduleConfigError(SlotEngineError):
    """Missing or malformed business hours / timezone."""

    def __init__(self, field: str, message: str):
        self.field = field
        self.message = message
        super().__init__(f"{field}: {message}")


class BookingError(SlotEngineError):
    code = "booking_error"

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class ServiceNotFound(BookingError):
    code = "service_not_found"


class SlotConflict(BookingError):
    """Another booking took the window first. Retry with a fresh lookup."""
    code = "slot_conflict"


class OutsideBusinessHours(BookingError):
    code = "outside_business_hours"


class InvalidDuration(BookingError):
    code = "invalid_duration"
