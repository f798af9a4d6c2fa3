"""Slot model definitions."""

from sqlalchemy import CheckConstraint, Column, Date, ForeignKey, Integer, String, Time
from vaccine_booking.database import Base, generate_id


class Slot(Base):
    """A bookable time window for one vaccine with a fixed number of seats."""
    __tablename__ = "slots"
    __table_args__ = (
        CheckConstraint("booked_count >= 0", name="ck_slots_booked_count_non_negative"),
        CheckConstraint("booked_count <= max_appointments", name="ck_slots_booked_count_within_capacity"),
    )

    id = Column(String(36), primary_key=True, default=generate_id)
    vaccine_id = Column(String(36), ForeignKey("vaccines.id"), nullable=False, index=True)
    date = Column(Date, nullable=False)
    start_time = Column(Time, nullable=False)
    end_time = Column(Time, nullable=False)
    max_appointments = Column(Integer, nullable=False)
    booked_count = Column(Integer, nullable=False, default=0)
    # Bumped on every write; reservations are bound to the value they replaced.
    version = Column(Integer, nullable=False, default=0)

    @property
    def remaining_capacity(self) -> int:
        return max(0, (self.max_appointments or 0) - (self.booked_count or 0))
