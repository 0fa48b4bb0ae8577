from datetime import time

from fastapi import APIRouter, Depends, status
from pydantic import BaseModel, field_validator
from sqlalchemy.orm import Session

from hospital_backend.auth.dependencies import require_admin
from hospital_backend.database import DatabasePool, get_pool
from hospital_backend.models.availability import WeekDay
from hospital_backend.models.client import Caller
from hospital_backend.routes.appointment_routes import ensure_database_ready
from hospital_backend.routes.errors import to_http_exception
from hospital_backend.scheduling import windows
from hospital_backend.scheduling.errors import SchedulingError

router = APIRouter(tags=['schedules'])


def _normalize_day(value):
    if isinstance(value, str):
        return value.strip().upper()
    return value


class CreateScheduleRequest(BaseModel):
    doctor_id: int
    day_of_week: WeekDay
    start_time: time
    end_time: time

    @field_validator('day_of_week', mode='before')
    @classmethod
    def normalize_day_of_week(cls, value):
        return _normalize_day(value)


class UpdateScheduleRequest(BaseModel):
    day_of_week: WeekDay | None = None
    start_time: time | None = None
    end_time: time | None = None

    @field_validator('day_of_week', mode='before')
    @classmethod
    def normalize_day_of_week(cls, value):
        return _normalize_day(value)


class ScheduleResponse(BaseModel):
    schedule_id: int
    doctor_id: int
    day_of_week: WeekDay
    start_time: time
    end_time: time

    class Config:
        from_attributes = True


def get_db(pool: DatabasePool = Depends(get_pool)):
    ensure_database_ready(pool)
    db = pool.acquire()
    try:
        yield db
    finally:
        pool.release(db)


@router.get('/schedules/doctor/{doctor_id}', response_model=list[ScheduleResponse])
def list_doctor_schedules(doctor_id: int, db: Session = Depends(get_db)):
    return windows.get_windows_for_doctor(db, doctor_id)


@router.get('/schedules/{schedule_id}', response_model=ScheduleResponse)
def get_schedule(schedule_id: int, db: Session = Depends(get_db)):
    try:
        return windows.get_window(db, schedule_id)
    except SchedulingError as exc:
        raise to_http_exception(exc) from exc


@router.post('/schedules', response_model=ScheduleResponse, status_code=status.HTTP_201_CREATED)
def create_schedule(
    data: CreateScheduleRequest,
    _admin: Caller = Depends(require_admin),
    db: Session = Depends(get_db),
):
    try:
        return windows.create_window(db, data.doctor_id, data.day_of_week, data.start_time, data.end_time)
    except SchedulingError as exc:
        raise to_http_exception(exc) from exc


@router.put('/schedules/{schedule_id}', response_model=ScheduleResponse)
def update_schedule(
    schedule_id: int,
    data: UpdateScheduleRequest,
    _admin: Caller = Depends(require_admin),
    db: Session = Depends(get_db),
):
    try:
        return windows.update_window(db, schedule_id, **data.model_dump(exclude_none=True))
    except SchedulingError as exc:
        raise to_http_exception(exc) from exc


@router.delete('/schedules/{schedule_id}', status_code=status.HTTP_204_NO_CONTENT)
def delete_schedule(
    schedule_id: int,
    _admin: Caller = Depends(require_admin),
    db: Session = Depends(get_db),
):
    try:
        windows.delete_window(db, schedule_id)
    except SchedulingError as exc:
        raise to_http_exception(exc) from exc
