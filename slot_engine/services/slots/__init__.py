# slot_engine/services/slots/__init__.py
"""
Calendar slot engine.

Generation: weekly hours → UTC slot rows (calendar_slots)
Resolution: slot rows − active appointments (with travel buffer)
Commit:     locked re-check + appointment insert
Maintenance: purge old slots, extend short horizons
"""

from .config import SlotEngineConfig, get_engine_config
from .calculator import Slot, generate_slots
from .schedule import BusinessSchedule, DayHours, parse_business_schedule
from .generation import generate_slots_for_business, on_schedule_changed
from .availability import Candidate, get_available_slots
from .booking import CustomerInfo, book_appointment
from .blocking import block_slot, unblock_slot
from .maintenance import SlotMaintenance, maintenance_loop
from .errors import (
    BookingError,
    BusinessNotFound,
    InvalidDuration,
    OutsideBusinessHours,
    ScheduleConfigError,
    ServiceNotFound,
    SlotConflict,
    SlotEngineError,
)

__all__ = [
    "SlotEngineConfig",
    "get_engine_config",
    "Slot",
    "generate_slots",
    "BusinessSchedule",
    "DayHours",
    "parse_business_schedule",
    "generate_slots_for_business",
    "on_schedule_changed",
    "Candidate",
    "get_available_slots",
    "CustomerInfo",
    "book_appointment",
    "block_slot",
    "unblock_slot",
    "SlotMaintenance",
    "maintenance_loop",
    "BookingError",
    "BusinessNotFound",
    "InvalidDuration",
    "OutsideBusinessHours",
    "ScheduleConfigError",
    "ServiceNotFound",
    "SlotConflict",
    "SlotEngineError",
]
