"""Availability window storage.

The booking engine only reads windows (``get_windows_for_doctor``); the
insert/update/delete helpers back the schedule management endpoints.
"""

import logging
from datetime import time

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from hospital_backend.models.availability import AvailabilityWindow, WeekDay
from hospital_backend.models.doctor import Doctor
from hospital_backend.scheduling.errors import DatabaseError, ErrorReason, NotFoundError, ValidationError

logger = logging.getLogger(__name__)

UPDATABLE_FIELDS = ('day_of_week', 'start_time', 'end_time')


def validate_window_times(start_time: time, end_time: time) -> None:
    if start_time >= end_time:
        raise ValidationError(ErrorReason.INVALID_SCHEDULE)


def get_windows_for_doctor(db: Session, doctor_id: int) -> list[AvailabilityWindow]:
    return db.query(AvailabilityWindow).filter(
        AvailabilityWindow.doctor_id == doctor_id,
    ).order_by(AvailabilityWindow.schedule_id.asc()).all()


def get_window(db: Session, schedule_id: int) -> AvailabilityWindow:
    window = db.query(AvailabilityWindow).filter(AvailabilityWindow.schedule_id == schedule_id).first()
    if window is None:
        raise NotFoundError(ErrorReason.SCHEDULE_NOT_FOUND)
    return window


def create_window(
    db: Session,
    doctor_id: int,
    day_of_week: WeekDay,
    start_time: time,
    end_time: time,
) -> AvailabilityWindow:
    validate_window_times(start_time, end_time)

    try:
        if db.get(Doctor, doctor_id) is None:
            raise NotFoundError(ErrorReason.DOCTOR_NOT_FOUND)

        window = AvailabilityWindow(
            doctor_id=doctor_id,
            day_of_week=WeekDay(day_of_week),
            start_time=start_time,
            end_time=end_time,
        )
        db.add(window)
        db.commit()
        db.refresh(window)
        logger.info('Created availability window %s for doctor %s', window.schedule_id, doctor_id)
        return window
    except SQLAlchemyError as exc:
        db.rollback()
        raise DatabaseError('Failed to create schedule.', exc) from exc
    except NotFoundError:
        db.rollback()
        raise


def update_window(db: Session, schedule_id: int, **changes) -> AvailabilityWindow:
    updates = {key: value for key, value in changes.items() if key in UPDATABLE_FIELDS and value is not None}
    if not updates:
        raise ValidationError(ErrorReason.NO_CHANGE_APPLIED, 'No valid fields to update.')

    try:
        window = get_window(db, schedule_id)
        if 'day_of_week' in updates:
            updates['day_of_week'] = WeekDay(updates['day_of_week'])

        validate_window_times(
            updates.get('start_time', window.start_time),
            updates.get('end_time', window.end_time),
        )

        changed = {key: value for key, value in updates.items() if getattr(window, key) != value}
        if not changed:
            raise ValidationError(ErrorReason.NO_CHANGE_APPLIED, 'No changes applied to the schedule.')

        for key, value in changed.items():
            setattr(window, key, value)

        db.commit()
        db.refresh(window)
        return window
    except SQLAlchemyError as exc:
        db.rollback()
        raise DatabaseError('Failed to update schedule.', exc) from exc
    except (NotFoundError, ValidationError):
        db.rollback()
        raise


def delete_window(db: Session, schedule_id: int) -> None:
    try:
        window = get_window(db, schedule_id)
        db.delete(window)
        db.commit()
        logger.info('Deleted availability window %s', schedule_id)
    except SQLAlchemyError as exc:
        db.rollback()
        raise DatabaseError('Failed to delete schedule.', exc) from exc
    except NotFoundError:
        db.rollback()
        raise
