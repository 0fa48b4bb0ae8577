"""Error taxonomy for the scheduling engine.

ValidationError and NotFoundError are raised directly by the slot, guard and
lifecycle code. Anything unexpected coming out of a transaction is wrapped in
DatabaseError with the original exception attached.
"""

import enum


class ErrorReason(str, enum.Enum):
    INVALID_APPOINTMENT_TIME = "InvalidAppointmentTime"
    SLOT_UNAVAILABLE = "SlotUnavailable"
    NO_CHANGE_APPLIED = "NoChangeApplied"
    INVALID_STATUS_TRANSITION = "InvalidStatusTransition"
    INVALID_SCHEDULE = "InvalidSchedule"
    NO_SCHEDULE_FOR_DOCTOR = "NoScheduleForDoctor"
    DOCTOR_NOT_AVAILABLE_THIS_DAY = "DoctorNotAvailableThisDay"
    APPOINTMENT_NOT_FOUND = "AppointmentNotFound"
    DOCTOR_NOT_FOUND = "DoctorNotFound"
    CLIENT_NOT_FOUND = "ClientNotFound"
    SCHEDULE_NOT_FOUND = "ScheduleNotFound"
    NOT_APPOINTMENT_OWNER = "NotAppointmentOwner"
    DATABASE_FAILURE = "DatabaseFailure"


DEFAULT_MESSAGES = {
    ErrorReason.INVALID_APPOINTMENT_TIME: 'Invalid appointment time. Please choose a future date and time.',
    ErrorReason.SLOT_UNAVAILABLE: 'The selected appointment time is not available.',
    ErrorReason.NO_CHANGE_APPLIED: 'No changes applied.',
    ErrorReason.INVALID_STATUS_TRANSITION: 'The appointment cannot change to the requested status.',
    ErrorReason.INVALID_SCHEDULE: 'Schedule start time must be before its end time.',
    ErrorReason.NO_SCHEDULE_FOR_DOCTOR: 'No schedule found for this doctor.',
    ErrorReason.DOCTOR_NOT_AVAILABLE_THIS_DAY: 'Doctor is not available on this day.',
    ErrorReason.APPOINTMENT_NOT_FOUND: 'Appointment not found.',
    ErrorReason.DOCTOR_NOT_FOUND: 'Doctor not found.',
    ErrorReason.CLIENT_NOT_FOUND: 'Client not found.',
    ErrorReason.SCHEDULE_NOT_FOUND: 'Schedule not found.',
    ErrorReason.NOT_APPOINTMENT_OWNER: 'You do not have permission to change this appointment.',
    ErrorReason.DATABASE_FAILURE: 'Database operation failed.',
}


class SchedulingError(Exception):
    def __init__(self, reason: ErrorReason, message: str | None = None) -> None:
        self.reason = reason
        self.message = message or DEFAULT_MESSAGES[reason]
        super().__init__(self.message)


class ValidationError(SchedulingError):
    pass


class NotFoundError(SchedulingError):
    pass


class AuthorizationError(SchedulingError):
    pass


class DatabaseError(SchedulingError):
    def __init__(self, message: str | None = None, original_error: BaseException | None = None) -> None:
        super().__init__(ErrorReason.DATABASE_FAILURE, message)
        self.original_error = original_error
