"""Read-side queries over appointments that hold a doctor's time."""

from datetime import date, datetime, time, timedelta, timezone

from sqlalchemy.orm import Query, Session

from hospital_backend.models.appointment import Appointment, AppointmentStatus
from hospital_backend.scheduling.clock import as_utc
from hospital_backend.scheduling.slots import filter_available_slots, generate_candidate_slots
from hospital_backend.scheduling.windows import get_windows_for_doctor


def day_bounds(on_date: date) -> tuple[datetime, datetime]:
    day_start = datetime.combine(on_date, time.min, tzinfo=timezone.utc)
    return day_start, day_start + timedelta(days=1)


def active_appointments_query(db: Session, doctor_id: int) -> Query:
    """Appointments that still occupy the doctor: not canceled, not soft-deleted."""
    return db.query(Appointment).filter(
        Appointment.doctor_id == doctor_id,
        Appointment.status != AppointmentStatus.CANCELED,
        Appointment.deleted_at.is_(None),
    )


def get_occupying_appointments(db: Session, doctor_id: int, on_date: date) -> list[Appointment]:
    day_start, day_end = day_bounds(on_date)
    return active_appointments_query(db, doctor_id).filter(
        Appointment.appointment_time >= day_start,
        Appointment.appointment_time < day_end,
    ).order_by(Appointment.appointment_time.asc()).all()


def get_available_slots(
    db: Session,
    doctor_id: int,
    on_date: date,
    now: datetime | None = None,
) -> list[datetime]:
    windows = get_windows_for_doctor(db, doctor_id)
    slots = generate_candidate_slots(windows, on_date)
    occupied_times = [appointment.appointment_time for appointment in get_occupying_appointments(db, doctor_id, on_date)]
    available = filter_available_slots(slots, occupied_times)

    if now is not None:
        current = as_utc(now)
        available = [slot for slot in available if slot > current]

    return available
