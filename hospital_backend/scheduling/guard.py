"""Conflict guard: the serialization point for booking a doctor's calendar.

``check_and_reserve`` must run inside the same transaction as the write that
follows it. It locks the doctor's row with ``SELECT ... FOR UPDATE`` so that
concurrent bookings for one doctor queue behind each other while bookings for
other doctors proceed, then counts active appointments inside the guard
interval and matches the candidate to one of the doctor's generated slots.
The matched slot, not the raw candidate, is what callers store.
The lock is held until the surrounding transaction commits or rolls back.
"""

import logging
from datetime import date, datetime, timedelta
from typing import Callable, Sequence

from sqlalchemy import func
from sqlalchemy.orm import Session

from hospital_backend.models.appointment import Appointment
from hospital_backend.models.availability import AvailabilityWindow
from hospital_backend.models.doctor import Doctor
from hospital_backend.scheduling.clock import as_utc
from hospital_backend.scheduling.errors import ErrorReason, NotFoundError, ValidationError
from hospital_backend.scheduling.occupancy import active_appointments_query, day_bounds
from hospital_backend.scheduling.slots import (
    GUARD_INTERVAL,
    SLOT_INCREMENT,
    SLOT_MATCH_TOLERANCE,
    generate_candidate_slots,
    match_slot,
)
from hospital_backend.scheduling.windows import get_windows_for_doctor

logger = logging.getLogger(__name__)

WindowReader = Callable[[Session, int], Sequence[AvailabilityWindow]]


class ConflictGuard:
    def __init__(
        self,
        window_reader: WindowReader = get_windows_for_doctor,
        guard_interval: timedelta = GUARD_INTERVAL,
        slot_increment: timedelta = SLOT_INCREMENT,
        slot_tolerance: timedelta = SLOT_MATCH_TOLERANCE,
    ) -> None:
        self.window_reader = window_reader
        self.guard_interval = guard_interval
        self.slot_increment = slot_increment
        self.slot_tolerance = slot_tolerance

    def lock_doctor(self, db: Session, doctor_id: int) -> Doctor:
        doctor = db.query(Doctor).filter(Doctor.doctor_id == doctor_id).with_for_update().first()
        if doctor is None:
            raise NotFoundError(ErrorReason.DOCTOR_NOT_FOUND)
        return doctor

    def count_conflicts(
        self,
        db: Session,
        doctor_id: int,
        on_date: date,
        candidate_time: datetime,
        exclude_appointment_id: int | None = None,
    ) -> int:
        candidate = as_utc(candidate_time)
        day_start, day_end = day_bounds(on_date)

        query = active_appointments_query(db, doctor_id).filter(
            Appointment.appointment_time >= day_start,
            Appointment.appointment_time < day_end,
            Appointment.appointment_time > candidate - self.guard_interval,
            Appointment.appointment_time < candidate + self.guard_interval,
        )
        if exclude_appointment_id is not None:
            query = query.filter(Appointment.appointment_id != exclude_appointment_id)

        return query.with_entities(func.count(Appointment.appointment_id)).scalar() or 0

    def check_and_reserve(
        self,
        db: Session,
        doctor_id: int,
        on_date: date,
        candidate_time: datetime,
        exclude_appointment_id: int | None = None,
    ) -> datetime:
        self.lock_doctor(db, doctor_id)

        slots = generate_candidate_slots(self.window_reader(db, doctor_id), on_date, self.slot_increment)
        slot = match_slot(candidate_time, slots, self.slot_tolerance)

        conflicts = self.count_conflicts(db, doctor_id, on_date, slot or candidate_time, exclude_appointment_id)
        if conflicts > 0:
            logger.warning(
                'Rejected %s for doctor %s: %d appointment(s) within the guard interval',
                candidate_time.isoformat(), doctor_id, conflicts,
            )
            raise ValidationError(ErrorReason.SLOT_UNAVAILABLE)

        if slot is None:
            logger.warning(
                'Rejected %s for doctor %s: not one of the doctor\'s slots',
                candidate_time.isoformat(), doctor_id,
            )
            raise ValidationError(ErrorReason.SLOT_UNAVAILABLE)

        return slot
