"""Doctor model definitions."""

from sqlalchemy import Boolean, Column, Integer, String
from hospital_backend.database import Base


class Doctor(Base):
    """Represents a doctor that patients can book."""
    __tablename__ = "doctors"

    doctor_id = Column(Integer, primary_key=True)
    first_name = Column(String(50), nullable=False)
    last_name = Column(String(50), nullable=False)
    specialization = Column(String(50))
    is_active = Column(Boolean, default=True)
