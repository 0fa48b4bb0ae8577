import os
from datetime import date, datetime, time, timezone
from types import SimpleNamespace

import pytest

os.environ.setdefault('DATABASE_URL', 'sqlite:///./test.db')

from hospital_backend.database import DatabasePool  # noqa: E402
from hospital_backend.models.availability import AvailabilityWindow, WeekDay  # noqa: E402
from hospital_backend.models.client import Client, Role  # noqa: E402
from hospital_backend.models.doctor import Doctor  # noqa: E402
from hospital_backend.scheduling.lifecycle import AppointmentService  # noqa: E402


@pytest.fixture
def now() -> datetime:
    return datetime(2030, 1, 1, 8, 0, tzinfo=timezone.utc)


@pytest.fixture
def monday() -> date:
    return date(2030, 1, 7)


@pytest.fixture
def at(monday):
    def build(hour: int, minute: int = 0, on_date: date | None = None) -> datetime:
        return datetime.combine(on_date or monday, time(hour, minute), tzinfo=timezone.utc)

    return build


@pytest.fixture
def pool(tmp_path):
    database_pool = DatabasePool(f'sqlite:///{tmp_path / "scheduler.db"}')
    database_pool.init()
    try:
        yield database_pool
    finally:
        database_pool.shutdown()


@pytest.fixture
def seeded(pool) -> SimpleNamespace:
    with pool.session() as db:
        doctor = Doctor(first_name='John', last_name='Doe', specialization='CARDIOLOGY')
        other_doctor = Doctor(first_name='Jane', last_name='Smith', specialization='NEUROLOGY')
        unscheduled_doctor = Doctor(first_name='Emily', last_name='Johnson', specialization='ONCOLOGY')
        patient = Client(first_name='Mohamed', last_name='Ali', email='mohamed.ali@example.com', role=Role.PATIENT)
        other_patient = Client(first_name='Sarah', last_name='Davis', email='sarah.davis@example.com', role=Role.PATIENT)
        admin = Client(first_name='Emily', last_name='Smith', email='emily.smith@example.com', role=Role.ADMIN)
        db.add_all([doctor, other_doctor, unscheduled_doctor, patient, other_patient, admin])
        db.flush()

        db.add_all([
            AvailabilityWindow(
                doctor_id=doctor.doctor_id,
                day_of_week=WeekDay.MONDAY,
                start_time=time(9, 0),
                end_time=time(17, 0),
            ),
            AvailabilityWindow(
                doctor_id=doctor.doctor_id,
                day_of_week=WeekDay.WEDNESDAY,
                start_time=time(13, 0),
                end_time=time(17, 0),
            ),
            AvailabilityWindow(
                doctor_id=other_doctor.doctor_id,
                day_of_week=WeekDay.MONDAY,
                start_time=time(9, 0),
                end_time=time(12, 0),
            ),
        ])
        db.commit()

        return SimpleNamespace(
            doctor_id=doctor.doctor_id,
            other_doctor_id=other_doctor.doctor_id,
            unscheduled_doctor_id=unscheduled_doctor.doctor_id,
            patient_id=patient.client_id,
            other_patient_id=other_patient.client_id,
            admin_id=admin.client_id,
        )


@pytest.fixture
def service(pool, seeded, now) -> AppointmentService:
    return AppointmentService(pool, clock=lambda: now)
