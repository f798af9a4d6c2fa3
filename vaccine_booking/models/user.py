"""User model definitions."""

from sqlalchemy import Column, String
from vaccine_booking.database import Base, generate_id


class User(Base):
    """Represents an application user."""
    __tablename__ = "users"

    id = Column(String(36), primary_key=True, default=generate_id)
    email = Column(String(255), unique=True, index=True, nullable=False)
    role = Column(String(16), nullable=False, default="patient")  # patient/admin
