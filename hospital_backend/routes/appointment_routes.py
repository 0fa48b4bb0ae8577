from datetime import date, datetime

from fastapi import APIRouter, Depends, HTTPException, Query, status
from pydantic import BaseModel, field_validator

from hospital_backend.auth.dependencies import get_current_caller, require_admin
from hospital_backend.database import DatabasePool, get_pool
from hospital_backend.models.appointment import AppointmentStatus
from hospital_backend.models.client import Caller
from hospital_backend.routes.errors import to_http_exception
from hospital_backend.scheduling.clock import as_utc
from hospital_backend.scheduling.errors import SchedulingError
from hospital_backend.scheduling.lifecycle import AppointmentService

router = APIRouter(tags=['appointments'])


class CreateAppointmentRequest(BaseModel):
    doctor_id: int
    appointment_time: datetime
    client_id: int | None = None

    @field_validator('doctor_id')
    @classmethod
    def validate_doctor_id(cls, value: int) -> int:
        if value <= 0:
            raise ValueError('Invalid doctor ID.')
        return value

    @field_validator('appointment_time')
    @classmethod
    def normalize_appointment_time(cls, value: datetime) -> datetime:
        return as_utc(value)


class RescheduleAppointmentRequest(BaseModel):
    appointment_time: datetime

    @field_validator('appointment_time')
    @classmethod
    def normalize_appointment_time(cls, value: datetime) -> datetime:
        return as_utc(value)


class AppointmentResponse(BaseModel):
    appointment_id: int
    client_id: int
    doctor_id: int
    appointment_time: datetime
    status: AppointmentStatus
    deleted_at: datetime | None = None

    class Config:
        from_attributes = True


class AvailableSlotsResponse(BaseModel):
    doctor_id: int
    date: date
    slots: list[datetime]


def ensure_database_ready(pool: DatabasePool) -> None:
    if not pool.is_initialized:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail='Database unavailable. Verify DATABASE_URL and database credentials.',
        )


def get_appointment_service(pool: DatabasePool = Depends(get_pool)) -> AppointmentService:
    ensure_database_ready(pool)
    return AppointmentService(pool)


@router.post('/appointments', response_model=AppointmentResponse, status_code=status.HTTP_201_CREATED)
def book_appointment(
    data: CreateAppointmentRequest,
    caller: Caller = Depends(get_current_caller),
    service: AppointmentService = Depends(get_appointment_service),
):
    client_id = data.client_id or caller.client_id
    if not caller.is_admin and not caller.owns(client_id):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail='Patients can only book appointments for themselves.',
        )

    try:
        return service.book_appointment(client_id, data.doctor_id, data.appointment_time)
    except SchedulingError as exc:
        raise to_http_exception(exc) from exc


@router.get('/appointments/{appointment_id}', response_model=AppointmentResponse)
def get_appointment(
    appointment_id: int,
    caller: Caller = Depends(get_current_caller),
    service: AppointmentService = Depends(get_appointment_service),
):
    try:
        appointment = service.get_appointment(appointment_id, include_deleted=caller.is_admin)
    except SchedulingError as exc:
        raise to_http_exception(exc) from exc

    if not caller.is_admin and not caller.owns(appointment.client_id):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail='You have permission to view only your own appointments.',
        )

    return appointment


@router.patch('/appointments/{appointment_id}', response_model=AppointmentResponse)
def reschedule_appointment(
    appointment_id: int,
    data: RescheduleAppointmentRequest,
    caller: Caller = Depends(get_current_caller),
    service: AppointmentService = Depends(get_appointment_service),
):
    try:
        return service.reschedule_appointment(appointment_id, data.appointment_time, caller=caller)
    except SchedulingError as exc:
        raise to_http_exception(exc) from exc


@router.post('/appointments/{appointment_id}/cancel', response_model=AppointmentResponse)
def cancel_appointment(
    appointment_id: int,
    caller: Caller = Depends(get_current_caller),
    service: AppointmentService = Depends(get_appointment_service),
):
    try:
        return service.cancel_appointment(appointment_id, caller=caller)
    except SchedulingError as exc:
        raise to_http_exception(exc) from exc


@router.post('/appointments/{appointment_id}/complete', response_model=AppointmentResponse)
def complete_appointment(
    appointment_id: int,
    _admin: Caller = Depends(require_admin),
    service: AppointmentService = Depends(get_appointment_service),
):
    try:
        return service.complete_appointment(appointment_id)
    except SchedulingError as exc:
        raise to_http_exception(exc) from exc


@router.delete('/appointments/{appointment_id}', status_code=status.HTTP_204_NO_CONTENT)
def delete_appointment(
    appointment_id: int,
    hard: bool = Query(default=False),
    _admin: Caller = Depends(require_admin),
    service: AppointmentService = Depends(get_appointment_service),
):
    try:
        if hard:
            service.hard_delete_appointment(appointment_id)
        else:
            service.soft_delete_appointment(appointment_id)
    except SchedulingError as exc:
        raise to_http_exception(exc) from exc


@router.get('/clients/{client_id}/appointments', response_model=list[AppointmentResponse])
def list_client_appointments(
    client_id: int,
    caller: Caller = Depends(get_current_caller),
    service: AppointmentService = Depends(get_appointment_service),
):
    if not caller.is_admin and not caller.owns(client_id):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail='You have permission to view only your own appointments.',
        )

    try:
        return service.list_client_appointments(client_id, include_deleted=caller.is_admin)
    except SchedulingError as exc:
        raise to_http_exception(exc) from exc


@router.get('/doctors/{doctor_id}/available-slots', response_model=AvailableSlotsResponse)
def list_available_slots(
    doctor_id: int,
    on_date: date = Query(..., alias='date'),
    service: AppointmentService = Depends(get_appointment_service),
):
    try:
        slots = service.get_available_slots(doctor_id, on_date)
    except SchedulingError as exc:
        raise to_http_exception(exc) from exc

    return AvailableSlotsResponse(doctor_id=doctor_id, date=on_date, slots=slots)
