"""Appointment lifecycle.

    SCHEDULED -> CANCELED    owning client, or an admin on anyone's behalf
    SCHEDULED -> COMPLETED   administrative
    any       -> soft-deleted (deleted_at set), administrative
    any       -> hard-deleted (row removed), administrative, irreversible

Canceled and soft-deleted appointments stop occupying their slot at once.
"""

import logging
from contextlib import contextmanager
from datetime import date, datetime
from typing import Iterator

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from hospital_backend.database import DatabasePool
from hospital_backend.models.appointment import Appointment, AppointmentStatus
from hospital_backend.models.client import Caller
from hospital_backend.scheduling import occupancy
from hospital_backend.scheduling.booking import BookingTransaction, ensure_can_modify
from hospital_backend.scheduling.clock import Clock, utc_now
from hospital_backend.scheduling.errors import DatabaseError, ErrorReason, NotFoundError, ValidationError
from hospital_backend.scheduling.guard import ConflictGuard

logger = logging.getLogger(__name__)

ALLOWED_TRANSITIONS = {
    AppointmentStatus.SCHEDULED: {AppointmentStatus.CANCELED, AppointmentStatus.COMPLETED},
    AppointmentStatus.CANCELED: set(),
    AppointmentStatus.COMPLETED: set(),
}


class AppointmentService:
    def __init__(
        self,
        pool: DatabasePool,
        guard: ConflictGuard | None = None,
        clock: Clock = utc_now,
    ) -> None:
        self.pool = pool
        self.clock = clock
        self.booking = BookingTransaction(pool, guard=guard, clock=clock)

    @property
    def guard(self) -> ConflictGuard:
        return self.booking.guard

    def book_appointment(self, client_id: int, doctor_id: int, appointment_time: datetime) -> Appointment:
        appointment_id = self.booking.create(client_id, doctor_id, appointment_time)
        return self.get_appointment(appointment_id)

    def reschedule_appointment(
        self,
        appointment_id: int,
        new_time: datetime,
        caller: Caller | None = None,
    ) -> Appointment:
        return self.booking.reschedule(appointment_id, new_time, caller=caller)

    def cancel_appointment(self, appointment_id: int, caller: Caller | None = None) -> Appointment:
        return self._change_status(appointment_id, AppointmentStatus.CANCELED, caller)

    def complete_appointment(self, appointment_id: int) -> Appointment:
        return self._change_status(appointment_id, AppointmentStatus.COMPLETED)

    def soft_delete_appointment(self, appointment_id: int) -> Appointment:
        with self.booking.transaction('Failed to delete appointment.') as db:
            appointment = self.booking.lock_appointment(db, appointment_id)
            appointment.deleted_at = self.clock()

        logger.info('Soft deleted appointment %s', appointment_id)
        return appointment

    def hard_delete_appointment(self, appointment_id: int) -> None:
        with self.booking.transaction('Failed to delete appointment.') as db:
            appointment = db.query(Appointment).filter(
                Appointment.appointment_id == appointment_id,
            ).with_for_update().first()
            if appointment is None:
                raise NotFoundError(ErrorReason.APPOINTMENT_NOT_FOUND)
            db.delete(appointment)

        logger.info('Hard deleted appointment %s', appointment_id)

    def get_appointment(self, appointment_id: int, include_deleted: bool = False) -> Appointment:
        with self._reading('Failed to retrieve appointment.') as db:
            query = db.query(Appointment).filter(Appointment.appointment_id == appointment_id)
            if not include_deleted:
                query = query.filter(Appointment.deleted_at.is_(None))
            appointment = query.first()

        if appointment is None:
            raise NotFoundError(ErrorReason.APPOINTMENT_NOT_FOUND)
        return appointment

    def list_client_appointments(self, client_id: int, include_deleted: bool = False) -> list[Appointment]:
        with self._reading('Failed to retrieve client appointments.') as db:
            query = db.query(Appointment).filter(Appointment.client_id == client_id)
            if not include_deleted:
                query = query.filter(Appointment.deleted_at.is_(None))
            return query.order_by(Appointment.appointment_time.asc()).all()

    def get_available_slots(self, doctor_id: int, on_date: date) -> list[datetime]:
        with self._reading('Failed to retrieve available slots.') as db:
            return occupancy.get_available_slots(db, doctor_id, on_date, now=self.clock())

    def _change_status(
        self,
        appointment_id: int,
        new_status: AppointmentStatus,
        caller: Caller | None = None,
    ) -> Appointment:
        with self.booking.transaction('Failed to update appointment status.') as db:
            appointment = self.booking.lock_appointment(db, appointment_id)
            ensure_can_modify(caller, appointment)

            current_status = AppointmentStatus(appointment.status)
            if new_status not in ALLOWED_TRANSITIONS[current_status]:
                raise ValidationError(
                    ErrorReason.INVALID_STATUS_TRANSITION,
                    f'Cannot change a {current_status.value} appointment to {new_status.value}.',
                )

            appointment.status = new_status

        logger.info('Appointment %s is now %s', appointment_id, new_status.value)
        return appointment

    @contextmanager
    def _reading(self, failure_message: str) -> Iterator[Session]:
        try:
            with self.pool.session() as db:
                yield db
        except SQLAlchemyError as exc:
            logger.exception(failure_message)
            raise DatabaseError(failure_message, exc) from exc
