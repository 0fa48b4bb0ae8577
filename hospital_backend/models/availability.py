"""Availability model definitions."""

import enum

from sqlalchemy import CheckConstraint, Column, Enum, ForeignKey, Integer, Time
from hospital_backend.database import Base


class WeekDay(str, enum.Enum):
    MONDAY = "MONDAY"
    TUESDAY = "TUESDAY"
    WEDNESDAY = "WEDNESDAY"
    THURSDAY = "THURSDAY"
    FRIDAY = "FRIDAY"
    SATURDAY = "SATURDAY"
    SUNDAY = "SUNDAY"

    @classmethod
    def from_date(cls, value) -> "WeekDay":
        return list(cls)[value.weekday()]


class AvailabilityWindow(Base):
    """A doctor's recurring open hours for one day of the week."""
    __tablename__ = "availability"
    __table_args__ = (
        CheckConstraint("start_time < end_time", name="ck_availability_time_order"),
    )

    schedule_id = Column(Integer, primary_key=True)
    doctor_id = Column(Integer, ForeignKey("doctors.doctor_id"), nullable=False, index=True)
    day_of_week = Column(Enum(WeekDay, native_enum=False, length=16), nullable=False)
    start_time = Column(Time, nullable=False)
    end_time = Column(Time, nullable=False)
