"""Appointment model definitions."""

import enum

from sqlalchemy import Column, Enum, ForeignKey, Index, Integer
from hospital_backend.database import Base
from hospital_backend.models.types import UTCDateTime


class AppointmentStatus(str, enum.Enum):
    SCHEDULED = "SCHEDULED"
    CANCELED = "CANCELED"
    COMPLETED = "COMPLETED"


class Appointment(Base):
    """Represents a booked appointment between a client and a doctor."""
    __tablename__ = "appointments"
    __table_args__ = (
        Index("idx_appointments_doctor_time", "doctor_id", "appointment_time"),
    )

    appointment_id = Column(Integer, primary_key=True)
    client_id = Column(Integer, ForeignKey("clients.client_id"), nullable=False, index=True)
    doctor_id = Column(Integer, ForeignKey("doctors.doctor_id"), nullable=False)
    appointment_time = Column(UTCDateTime, nullable=False)
    status = Column(
        Enum(AppointmentStatus, native_enum=False, length=16),
        nullable=False,
        default=AppointmentStatus.SCHEDULED,
    )
    deleted_at = Column(UTCDateTime, nullable=True)

    @property
    def is_deleted(self) -> bool:
        return self.deleted_at is not None
