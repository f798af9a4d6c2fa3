"""Vaccine catalog model definitions."""

from sqlalchemy import Column, Integer, String, Text
from vaccine_booking.database import Base, generate_id


class Vaccine(Base):
    """A vaccine offered by the clinic and its remaining dose stock."""
    __tablename__ = "vaccines"

    id = Column(String(36), primary_key=True, default=generate_id)
    name = Column(String(120), nullable=False)
    manufacturer = Column(String(120))
    doses_available = Column(Integer, nullable=False, default=0)
    description = Column(Text)
