from sqlalchemy import (
    Boolean, Column, DateTime, ForeignKey, Index, Integer, Text, UniqueConstraint, text,
)
from sqlalchemy.orm import declarative_base, relationship

Base = declarative_base()
metadata = Base.metadata

# Appointment statuses that occupy time on the calendar
ACTIVE_APPOINTMENT_STATUSES = ("scheduled", "confirmed")
APPOINTMENT_STATUSES = ("scheduled", "confirmed", "completed", "cancelled", "no_show")


class Businesses(Base):
    __tablename__ = 'businesses'

    name = Column(Text, nullable=False)
    id = Column(Integer, primary_key=True)
    timezone = Column(Text)
    business_hours = Column(Text)
    slot_duration_minutes = Column(Integer, nullable=False, default=60, server_default=text('60'))
    slot_step_minutes = Column(Integer, nullable=False, default=30, server_default=text('30'))
    is_active = Column(Boolean, nullable=False, default=True, server_default=text('true'))
    onboarding_completed = Column(Boolean, nullable=False, default=False, server_default=text('false'))
    created_at = Column(DateTime, server_default=text('CURRENT_TIMESTAMP'))

    service_types = relationship('ServiceTypes', back_populates='business')
    calendar_slots = relationship('CalendarSlots', back_populates='business', passive_deletes=True)
    appointments = relationship('Appointments', back_populates='business')


class ServiceTypes(Base):
    __tablename__ = 'service_types'

    business_id = Column(ForeignKey('businesses.id', ondelete='CASCADE'), nullable=False)
    name = Column(Text, nullable=False)
    duration_minutes = Column(Integer, nullable=False, default=60, server_default=text('60'))
    id = Column(Integer, primary_key=True)
    is_active = Column(Boolean, nullable=False, default=True, server_default=text('true'))

    business = relationship('Businesses', back_populates='service_types')
    appointments = relationship('Appointments', back_populates='service_type')


class CalendarSlots(Base):
    """Generated slot windows. slot_start / slot_end are naive UTC."""
    __tablename__ = 'calendar_slots'
    __table_args__ = (
        UniqueConstraint('business_id', 'slot_start', name='uq_calendar_slots_business_start'),
        Index(
            'idx_calendar_slots_bookable',
            'business_id', 'slot_start',
            postgresql_where=text('is_available AND NOT is_blocked'),
            sqlite_where=text('is_available AND NOT is_blocked'),
        ),
    )

    business_id = Column(ForeignKey('businesses.id', ondelete='CASCADE'), nullable=False)
    slot_start = Column(DateTime, nullable=False)
    slot_end = Column(DateTime, nullable=False)
    id = Column(Integer, primary_key=True)
    is_available = Column(Boolean, nullable=False, default=True, server_default=text('true'))
    is_blocked = Column(Boolean, nullable=False, default=False, server_default=text('false'))
    block_reason = Column(Text)
    created_at = Column(DateTime, server_default=text('CURRENT_TIMESTAMP'))

    business = relationship('Businesses', back_populates='calendar_slots')


class Appointments(Base):
    """Appointment store. start_time / end_time are naive UTC."""
    __tablename__ = 'appointments'
    __table_args__ = (
        Index('idx_appointments_business_time', 'business_id', 'start_time'),
    )

    business_id = Column(ForeignKey('businesses.id', ondelete='CASCADE'), nullable=False)
    start_time = Column(DateTime, nullable=False)
    end_time = Column(DateTime, nullable=False)
    duration_minutes = Column(Integer, nullable=False)
    status = Column(Text, nullable=False, default='scheduled', server_default=text("'scheduled'"))
    id = Column(Integer, primary_key=True)
    service_type_id = Column(ForeignKey('service_types.id', ondelete='SET NULL'))
    customer_name = Column(Text)
    customer_phone = Column(Text)
    customer_email = Column(Text)
    customer_address = Column(Text)
    issue_description = Column(Text)
    booking_source = Column(Text)
    call_sid = Column(Text)
    created_at = Column(DateTime, server_default=text('CURRENT_TIMESTAMP'))

    business = relationship('Businesses', back_populates='appointments')
    service_type = relationship('ServiceTypes', back_populates='appointments')
