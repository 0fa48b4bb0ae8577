from datetime import time

import pytest
from fastapi import HTTPException
from pydantic import ValidationError

from hospital_backend.models.availability import WeekDay
from hospital_backend.models.client import Caller, Role
from hospital_backend.routes.schedule_routes import (
    CreateScheduleRequest,
    UpdateScheduleRequest,
    create_schedule,
    delete_schedule,
    get_db,
    get_schedule,
    list_doctor_schedules,
    update_schedule,
)


@pytest.fixture
def admin(seeded) -> Caller:
    return Caller(seeded.admin_id, Role.ADMIN)


def test_create_schedule_request_normalizes_day() -> None:
    request = CreateScheduleRequest(doctor_id=1, day_of_week=' friday ', start_time=time(9, 0), end_time=time(12, 0))

    assert request.day_of_week == WeekDay.FRIDAY


def test_create_schedule_request_rejects_unknown_day() -> None:
    with pytest.raises(ValidationError):
        CreateScheduleRequest(doctor_id=1, day_of_week='FUNDAY', start_time=time(9, 0), end_time=time(12, 0))


def test_get_db_releases_session(pool) -> None:
    dependency = get_db(pool=pool)
    db = next(dependency)
    assert db is not None

    with pytest.raises(StopIteration):
        next(dependency)


def test_create_and_list_schedules(pool, seeded, admin) -> None:
    request = CreateScheduleRequest(
        doctor_id=seeded.unscheduled_doctor_id,
        day_of_week='THURSDAY',
        start_time=time(8, 0),
        end_time=time(12, 0),
    )

    with pool.session() as db:
        created = create_schedule(request, _admin=admin, db=db)

    with pool.session() as db:
        listed = list_doctor_schedules(seeded.unscheduled_doctor_id, db=db)
        fetched = get_schedule(created.schedule_id, db=db)

    assert [window.schedule_id for window in listed] == [created.schedule_id]
    assert fetched.day_of_week == WeekDay.THURSDAY


def test_create_schedule_with_inverted_times_returns_bad_request(pool, seeded, admin) -> None:
    request = CreateScheduleRequest(
        doctor_id=seeded.doctor_id,
        day_of_week=WeekDay.FRIDAY,
        start_time=time(17, 0),
        end_time=time(9, 0),
    )

    with pool.session() as db:
        with pytest.raises(HTTPException) as exception_info:
            create_schedule(request, _admin=admin, db=db)

    assert exception_info.value.status_code == 400


def test_update_and_delete_schedule(pool, seeded, admin) -> None:
    with pool.session() as db:
        schedule_id = list_doctor_schedules(seeded.other_doctor_id, db=db)[0].schedule_id

    with pool.session() as db:
        updated = update_schedule(schedule_id, UpdateScheduleRequest(end_time=time(11, 0)), _admin=admin, db=db)
    assert updated.end_time == time(11, 0)

    with pool.session() as db:
        with pytest.raises(HTTPException) as exception_info:
            update_schedule(schedule_id, UpdateScheduleRequest(), _admin=admin, db=db)
    assert exception_info.value.status_code == 400

    with pool.session() as db:
        delete_schedule(schedule_id, _admin=admin, db=db)

    with pool.session() as db:
        with pytest.raises(HTTPException) as exception_info:
            get_schedule(schedule_id, db=db)
    assert exception_info.value.status_code == 404
