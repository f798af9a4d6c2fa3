"""Appointment model definitions."""

import enum

from sqlalchemy import Column, DateTime, ForeignKey, String, Text, UniqueConstraint
from vaccine_booking.database import Base, generate_id


class AppointmentStatus(str, enum.Enum):
    SCHEDULED = "Scheduled"
    IN_PROGRESS = "In Progress"
    COMPLETED = "Completed"
    MISSED = "Missed"
    CANCELLED_BY_PROVIDER = "Cancelled by Provider"


class Appointment(Base):
    """Represents a booked seat in a slot."""
    __tablename__ = "appointments"
    __table_args__ = (
        UniqueConstraint("user_id", "slot_id", name="uq_appointments_user_slot"),
    )

    id = Column(String(36), primary_key=True, default=generate_id)
    user_id = Column(String(36), nullable=False)
    user_email = Column(String(255), nullable=False)
    slot_id = Column(String(36), ForeignKey("slots.id"), nullable=False, index=True)
    vaccine_id = Column(String(36), nullable=False)
    booked_at = Column(DateTime(timezone=True), nullable=False)
    status = Column(String(32), nullable=False, default=AppointmentStatus.SCHEDULED.value)
    credential_token = Column(Text)
    credential_hash = Column(String(64))
    updated_at = Column(DateTime(timezone=True))
