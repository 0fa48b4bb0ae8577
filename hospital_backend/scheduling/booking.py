"""Booking transactions.

Every write to an appointment's time goes through ``BookingTransaction``: one
pooled session per call, the conflict guard and the write inside the same
transaction, commit on success, rollback on any failure, and the session
released exactly once on every exit path.
"""

import logging
from contextlib import contextmanager
from datetime import datetime
from typing import Iterator

from sqlalchemy import update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from hospital_backend.database import DatabasePool, begin_write
from hospital_backend.models.appointment import Appointment, AppointmentStatus
from hospital_backend.models.client import Caller, Client
from hospital_backend.scheduling.clock import Clock, as_utc, utc_now
from hospital_backend.scheduling.errors import (
    AuthorizationError,
    DatabaseError,
    ErrorReason,
    NotFoundError,
    SchedulingError,
    ValidationError,
)
from hospital_backend.scheduling.guard import ConflictGuard

logger = logging.getLogger(__name__)


def ensure_can_modify(caller: Caller | None, appointment: Appointment) -> None:
    if caller is None or caller.is_admin or caller.owns(appointment.client_id):
        return
    raise AuthorizationError(ErrorReason.NOT_APPOINTMENT_OWNER)


class BookingTransaction:
    def __init__(
        self,
        pool: DatabasePool,
        guard: ConflictGuard | None = None,
        clock: Clock = utc_now,
    ) -> None:
        self.pool = pool
        self.guard = guard or ConflictGuard()
        self.clock = clock

    @contextmanager
    def transaction(self, failure_message: str) -> Iterator[Session]:
        """Borrow a session, run the block in one transaction and always give the session back.

        Scheduling errors are re-raised unchanged after rollback; anything else
        is wrapped in ``DatabaseError``.
        """
        try:
            db = self.pool.acquire()
        except Exception as exc:
            logger.exception('Could not acquire a database connection.')
            raise DatabaseError(failure_message, exc) from exc

        try:
            db.begin()
            begin_write(db)
            yield db
            db.commit()
        except SchedulingError:
            self._rollback(db)
            raise
        except Exception as exc:
            logger.exception(failure_message)
            self._rollback(db)
            raise DatabaseError(failure_message, exc) from exc
        finally:
            self.pool.release(db)

    def validate_future(self, appointment_time: datetime) -> datetime:
        candidate = as_utc(appointment_time)
        if candidate <= as_utc(self.clock()):
            raise ValidationError(ErrorReason.INVALID_APPOINTMENT_TIME)
        return candidate

    def create(self, client_id: int, doctor_id: int, appointment_time: datetime) -> int:
        with self.transaction('Failed to create appointment.') as db:
            candidate = self.validate_future(appointment_time)

            if db.get(Client, client_id) is None:
                raise NotFoundError(ErrorReason.CLIENT_NOT_FOUND)

            slot = self.guard.check_and_reserve(db, doctor_id, candidate.date(), candidate)

            appointment = Appointment(
                client_id=client_id,
                doctor_id=doctor_id,
                appointment_time=slot,
                status=AppointmentStatus.SCHEDULED,
            )
            db.add(appointment)
            db.flush()
            appointment_id = appointment.appointment_id

        logger.info('Booked appointment %s with doctor %s at %s', appointment_id, doctor_id, slot.isoformat())
        return appointment_id

    def reschedule(self, appointment_id: int, new_time: datetime, caller: Caller | None = None) -> Appointment:
        with self.transaction('Failed to change appointment.') as db:
            candidate = self.validate_future(new_time)
            appointment = self.lock_appointment(db, appointment_id)
            ensure_can_modify(caller, appointment)

            if appointment.status != AppointmentStatus.SCHEDULED:
                raise ValidationError(
                    ErrorReason.INVALID_STATUS_TRANSITION,
                    'Only scheduled appointments can be rescheduled.',
                )

            slot = self.guard.check_and_reserve(
                db,
                appointment.doctor_id,
                candidate.date(),
                candidate,
                exclude_appointment_id=appointment_id,
            )

            result = db.execute(
                update(Appointment)
                .where(
                    Appointment.appointment_id == appointment_id,
                    Appointment.appointment_time != slot,
                )
                .values(appointment_time=slot)
                .execution_options(synchronize_session=False)
            )
            if result.rowcount == 0:
                raise ValidationError(ErrorReason.NO_CHANGE_APPLIED, 'No changes applied to the appointment.')

            db.refresh(appointment)

        logger.info('Rescheduled appointment %s to %s', appointment_id, slot.isoformat())
        return appointment

    def lock_appointment(self, db: Session, appointment_id: int) -> Appointment:
        """Lock the appointment's doctor, then the appointment row itself.

        Every transaction that changes an existing appointment takes the two
        locks in this order. Only the doctor id is read before the doctor lock,
        so the row loaded afterwards reflects anything committed while waiting.
        """
        doctor_id = db.query(Appointment.doctor_id).filter(
            Appointment.appointment_id == appointment_id,
            Appointment.deleted_at.is_(None),
        ).scalar()
        if doctor_id is None:
            raise NotFoundError(ErrorReason.APPOINTMENT_NOT_FOUND)

        self.guard.lock_doctor(db, doctor_id)
        return load_active_appointment(db, appointment_id, for_update=True)

    def _rollback(self, db: Session) -> None:
        try:
            db.rollback()
        except SQLAlchemyError:
            logger.exception('Rollback failed.')


def load_active_appointment(db: Session, appointment_id: int, for_update: bool = False) -> Appointment:
    query = db.query(Appointment).filter(
        Appointment.appointment_id == appointment_id,
        Appointment.deleted_at.is_(None),
    )
    if for_update:
        query = query.with_for_update().populate_existing()

    appointment = query.first()
    if appointment is None:
        raise NotFoundError(ErrorReason.APPOINTMENT_NOT_FOUND)
    return appointment
